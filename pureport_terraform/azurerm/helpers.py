# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

"""Resource id parsing and schema building blocks shared by the ARM resources."""

from __future__ import annotations
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Tuple
from urllib.parse import urlparse

from pureport_terraform.utils.schema import Schema, ValueType

if TYPE_CHECKING:
    from pureport_terraform.utils.resource_data import ResourceData

RESOURCE_GROUP_NAME_RE = re.compile(r"^[-\w._()]+$")
MAX_TAGS = 50
MAX_TAG_KEY_LENGTH = 512
MAX_TAG_VALUE_LENGTH = 256


@dataclass
class ResourceID:
    """An ARM resource id split into its parts.

    ``path`` holds the remaining key/value segments, e.g.
    ``{"ddosProtectionPlans": "plan1"}``.
    """

    subscription_id: str
    resource_group: str
    provider: str = ""
    path: Dict[str, str] = field(default_factory=dict)


def parse_azure_resource_id(_id: str) -> ResourceID:
    """Parse ``/subscriptions/{sub}/resourceGroups/{rg}/providers/{ns}/{type}/{name}``.

    Raises:
        ValueError: If the id is malformed or lacks a subscription or resource group.
    """
    path = urlparse(_id).path if "://" in _id else _id
    path = path.strip("/")
    if not path:
        raise ValueError(f"Cannot parse Azure ID: {_id!r}")

    components = path.split("/")
    if len(components) % 2 != 0:
        raise ValueError(f"The number of path segments is not divisible by 2 in {_id!r}")

    component_map: Dict[str, str] = {}
    for key, value in zip(components[::2], components[1::2]):
        if not key or not value:
            raise ValueError(f"Key/Value cannot be empty strings. Key: {key!r}, Value: {value!r}")
        component_map[key] = value

    subscription_id = component_map.pop("subscriptions", "")
    if not subscription_id:
        raise ValueError(f"No subscription ID found in: {_id!r}")

    # Some APIs return the segment in lower case.
    resource_group = component_map.pop("resourceGroups", "") or component_map.pop("resourcegroups", "")
    if not resource_group:
        raise ValueError(f"No resource group name found in: {_id!r}")

    provider = component_map.pop("providers", "")
    return ResourceID(subscription_id, resource_group, provider, component_map)


def extract_names_from_ids(ids: Iterable[str], segment: str) -> List[str]:
    """Return the unique names found under ``segment`` in each id, in first-seen order."""
    names: List[str] = []
    for _id in ids:
        name = parse_azure_resource_id(_id).path.get(segment)
        if not name:
            raise ValueError(f"ID {_id!r} does not contain a {segment!r} segment")
        if name not in names:
            names.append(name)
    return names


def normalize_location(location: Any) -> str:
    return str(location or "").replace(" ", "").lower()


def suppress_location_difference(key: str, old: Any, new: Any) -> bool:
    return normalize_location(old) == normalize_location(new)


def validate_resource_group_name(value: Any, key: str) -> Tuple[List[str], List[str]]:
    errors = []
    if not isinstance(value, str):
        return [], [f"expected type of {key} to be string"]
    if len(value) > 90:
        errors.append(f"{key} may not exceed 90 characters in length")
    if value.endswith("."):
        errors.append(f"{key} cannot end with a period")
    if not RESOURCE_GROUP_NAME_RE.match(value):
        errors.append(f"{key} may only contain alphanumeric characters, dash, underscores, parentheses and periods")
    return [], errors


def schema_location() -> Schema:
    return Schema(
        ValueType.STRING,
        required=True,
        force_new=True,
        state_func=normalize_location,
        diff_suppress_func=suppress_location_difference,
    )


def schema_location_for_data_source() -> Schema:
    return Schema(ValueType.STRING, computed=True)


def schema_resource_group_name() -> Schema:
    return Schema(ValueType.STRING, required=True, force_new=True, validate_func=validate_resource_group_name)


def schema_resource_group_name_for_data_source() -> Schema:
    return Schema(ValueType.STRING, required=True, validate_func=validate_resource_group_name)


def schema_resource_group_name_computed() -> Schema:
    return Schema(ValueType.STRING, computed=True)


def schema_zones_computed() -> Schema:
    return Schema(ValueType.LIST, computed=True, elem=Schema(ValueType.STRING))


def validate_azure_rm_tags(value: Any, key: str) -> Tuple[List[str], List[str]]:
    if not isinstance(value, dict):
        return [], [f"expected type of {key} to be map"]

    errors = []
    if len(value) > MAX_TAGS:
        errors.append(f"a maximum of {MAX_TAGS} tags can be applied to each ARM resource")
    for k, v in value.items():
        if len(k) > MAX_TAG_KEY_LENGTH:
            errors.append(f"the maximum length for a tag key is {MAX_TAG_KEY_LENGTH} characters: {k!r} is {len(k)}")
        if len(str(v)) > MAX_TAG_VALUE_LENGTH:
            errors.append(f"the maximum length for a tag value is {MAX_TAG_VALUE_LENGTH} characters: {k!r} is {len(str(v))}")
    return [], errors


def tags_schema() -> Schema:
    return Schema(
        ValueType.MAP,
        optional=True,
        elem=Schema(ValueType.STRING),
        validate_func=validate_azure_rm_tags,
    )


def tags_for_data_source_schema() -> Schema:
    return Schema(ValueType.MAP, computed=True, elem=Schema(ValueType.STRING))


def expand_tags(tags: Optional[Dict[str, Any]]) -> Dict[str, str]:
    return {k: str(v) for k, v in (tags or {}).items()}


def flatten_and_set_tags(d: ResourceData, tags: Optional[Dict[str, str]]) -> None:
    d.set("tags", dict(tags or {}))
