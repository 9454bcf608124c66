# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

"""In-memory representation of one resource while it is being planned or applied."""

from __future__ import annotations
import copy
from typing import Any, Dict, Optional, Tuple

from pureport_terraform.utils.resource_utils import find_attr
from pureport_terraform.utils.schema import Schema, ValueType, zero_value

_MISSING = object()


class ResourceData:
    """Configuration, prior state and freshly read values of a single resource.

    CRUD functions read their inputs with ``get``/``get_ok`` and write what the
    remote API returned with ``set``; ``state()`` then yields the attributes to
    persist.

    Attributes:
        schema: The attribute declarations of the resource.
        config: The normalised desired configuration, None outside of create/update.
        prior: The attributes recorded in state before this operation.
    """

    def __init__(
        self,
        schema: Dict[str, Schema],
        config: Optional[Dict] = None,
        prior: Optional[Dict] = None,
        _id: str = "",
        is_new: bool = False,
    ) -> None:
        self.schema = schema
        self.config = config
        self.prior = prior or {}
        self._id = _id
        self._is_new = is_new
        self._set: Dict[str, Any] = {}

    @property
    def id(self) -> str:
        return self._id

    def set_id(self, _id: Optional[str]) -> None:
        """Record the remote id. An empty id marks the resource as gone."""
        self._id = _id or ""

    def is_new_resource(self) -> bool:
        return self._is_new

    def _lookup(self, source: Optional[Dict], key: str) -> Any:
        if source is None:
            return _MISSING
        top = key.split(".", 1)[0]
        if top not in source:
            return _MISSING
        if "." not in key:
            return source[top]
        value = find_attr(key, source)
        return _MISSING if value is None else value

    def _schema_for(self, key: str) -> Optional[Schema]:
        parts = key.split(".")
        schema_map: Any = self.schema
        schema: Optional[Schema] = None
        for part in parts:
            if part.isdigit():
                continue
            if not isinstance(schema_map, dict) or part not in schema_map:
                return None
            schema = schema_map[part]
            schema_map = schema.elem
        return schema

    def get(self, key: str) -> Any:
        """Resolve an attribute from set values, then config, then prior state.

        While a configuration is present, prior state only backs computed
        attributes; a non-computed attribute left out of the configuration
        resolves to its zero value so removing it clears it remotely.
        """
        top = self.schema.get(key.split(".", 1)[0])
        sources = [self._set, self.config]
        if self.config is None or (top is not None and top.computed):
            sources.append(self.prior)

        for source in sources:
            value = self._lookup(source, key)
            if value is not _MISSING and value is not None:
                return value

        schema = self._schema_for(key)
        if schema is None:
            return None
        return zero_value(schema)

    def get_ok(self, key: str) -> Tuple[Any, bool]:
        value = self.get(key)
        schema = self._schema_for(key)
        if value is None:
            return value, False
        if schema is not None and value == zero_value(schema):
            return value, False
        return value, True

    def set(self, key: str, value: Any) -> None:
        if key not in self.schema:
            raise KeyError(f"Invalid address to set: {key!r}")

        schema = self.schema[key]
        if schema.is_block() and isinstance(value, dict):
            value = [value]
        if value is None:
            value = zero_value(schema)
        elif schema.type in (ValueType.LIST, ValueType.SET) and isinstance(value, tuple):
            value = list(value)

        self._set[key] = copy.deepcopy(value)

    def has_change(self, key: str) -> bool:
        if self.config is None:
            return False
        old = self._lookup(self.prior, key)
        new = self._lookup(self.config, key)
        old = None if old is _MISSING else old
        new = None if new is _MISSING else new
        return old != new

    def state(self) -> Optional[Dict]:
        """Return the attributes to persist, or None when the resource is gone."""
        if not self._id:
            return None
        return {key: self.get(key) for key in self.schema}
