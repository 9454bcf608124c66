# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

"""Errors and small helpers shared by the providers and the plan/apply engine."""

from __future__ import annotations
import os
import re
from typing import Any, Dict, List, Optional

# Matches "${pureport_network.main.id}" style references between declared resources.
INTERPOLATION_RE = re.compile(r"\$\{([^}]+)\}")
UNKNOWN_VALUE = "(known after apply)"


class CustomClientHTTPError(Exception):
    """Raised by the HTTP client for a non-retryable error response."""

    def __init__(self, status_code: int, message: str = "") -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"{status_code} Error: {message}")


class ResourceError(Exception):
    """A resource operation failed against the vendor API."""

    def __init__(self, message: str, resource_type: Optional[str] = None, _id: Optional[str] = None) -> None:
        self.message = message
        self.resource_type = resource_type
        self._id = _id

        details = []
        if resource_type:
            details.append(f"type={resource_type}")
        if _id:
            details.append(f"id={_id}")

        if details:
            super().__init__(f"{message} [{', '.join(details)}]")
        else:
            super().__init__(message)


class ImportAsExistsError(ResourceError):
    """A resource that is about to be created already exists remotely and must be imported."""

    def __init__(self, resource_type: str, _id: str) -> None:
        message = (
            f"A resource with the ID {_id!r} already exists - to be managed via this tool "
            f"it needs to be imported into the State. Please see the `import` command for "
            f"{resource_type!r} for more information."
        )
        super().__init__(message, resource_type=resource_type, _id=_id)


class ConfigValidationError(Exception):
    """The declarative configuration failed schema validation."""

    def __init__(self, address: str, errors: List[str]) -> None:
        self.address = address
        self.errors = errors
        super().__init__(f"{address}: " + "; ".join(errors))


class CycleError(Exception):
    """The dependency graph between declared resources contains a cycle."""


def response_was_not_found(err: Exception) -> bool:
    """Return True when the exception is a 404 from the vendor API."""
    return isinstance(err, CustomClientHTTPError) and err.status_code == 404


def is_interpolated(value: Any) -> bool:
    """Return True for values that still carry an unresolved reference."""
    return isinstance(value, str) and (value == UNKNOWN_VALUE or INTERPOLATION_RE.search(value) is not None)


def id_from_location(location: Optional[str]) -> str:
    """Extract a resource id from a ``Location`` response header.

    The id is the last path segment, query strings and trailing slashes are ignored.
    """
    if not location:
        return ""
    path = location.split("?", 1)[0].rstrip("/")
    return os.path.basename(path)


def env_value(names: Optional[List[str]]) -> Optional[str]:
    """Return the value of the first environment variable that is set."""
    for name in names or []:
        value = os.environ.get(name)
        if value is not None and value != "":
            return value
    return None


def find_attr(path: str, obj: Dict) -> Any:
    """Walk a dotted path (``"network.0.id"``) through nested dicts and lists."""
    current: Any = obj
    for part in path.split("."):
        if isinstance(current, list):
            try:
                current = current[int(part)]
            except (ValueError, IndexError):
                return None
        elif isinstance(current, dict):
            if part not in current:
                return None
            current = current[part]
        else:
            return None
    return current
