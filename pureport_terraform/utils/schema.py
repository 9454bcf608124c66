# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

"""Schema declarations for provider, resource and data source attributes.

A schema map (``Dict[str, Schema]``) describes every attribute a resource
accepts or exports. It drives three things:

- normalisation of the raw declarative configuration (defaults, env defaults,
  single nested blocks given as a mapping, scalar coercion),
- validation of the normalised configuration before any API call,
- attribute level diffing between the prior state and the desired config.
"""

from __future__ import annotations
import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set, Tuple, Union

from deepdiff import DeepDiff

from pureport_terraform.utils.resource_utils import env_value, is_interpolated

ValidateFunc = Callable[[Any, str], Tuple[List[str], List[str]]]
DiffSuppressFunc = Callable[[str, Any, Any], bool]

TRUE_STRINGS = ("1", "true", "t", "yes", "y", "on")


class ValueType(Enum):
    STRING = "string"
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"
    LIST = "list"
    SET = "set"
    MAP = "map"


@dataclass
class Schema:
    """Declaration of a single attribute."""

    type: ValueType
    required: bool = False
    optional: bool = False
    computed: bool = False
    force_new: bool = False
    sensitive: bool = False
    default: Any = None
    description: str = ""
    elem: Optional[Union["Schema", Dict[str, "Schema"]]] = None
    max_items: int = 0
    min_items: int = 0
    validate_func: Optional[ValidateFunc] = None
    diff_suppress_func: Optional[DiffSuppressFunc] = None
    state_func: Optional[Callable[[Any], Any]] = None
    env_default: Optional[List[str]] = None
    deprecated: str = ""

    def is_block(self) -> bool:
        return self.type in (ValueType.LIST, ValueType.SET) and isinstance(self.elem, dict)

    def is_computed_only(self) -> bool:
        return self.computed and not self.required and not self.optional


@dataclass
class AttributeDiff:
    """Result of comparing prior state attributes against desired attributes."""

    changed: List[str] = field(default_factory=list)
    requires_replace: List[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.changed)


def zero_value(schema: Schema) -> Any:
    if schema.type == ValueType.STRING:
        return ""
    if schema.type == ValueType.INT:
        return 0
    if schema.type == ValueType.FLOAT:
        return 0.0
    if schema.type == ValueType.BOOL:
        return False
    if schema.type == ValueType.MAP:
        return {}
    return []


def suppress_case_difference(key: str, old: Any, new: Any) -> bool:
    return isinstance(old, str) and isinstance(new, str) and old.lower() == new.lower()


def _coerce_scalar(value_type: ValueType, value: Any) -> Any:
    if is_interpolated(value):
        return value
    try:
        if value_type == ValueType.STRING and isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        if value_type == ValueType.INT and isinstance(value, str):
            return int(value)
        if value_type == ValueType.FLOAT and isinstance(value, (str, int)) and not isinstance(value, bool):
            return float(value)
        if value_type == ValueType.BOOL and isinstance(value, str):
            return value.strip().lower() in TRUE_STRINGS
    except ValueError:
        # Left as-is; validate_config reports the type mismatch.
        return value
    return value


def _normalize_value(schema: Schema, value: Any) -> Any:
    if schema.is_block():
        if isinstance(value, dict):
            value = [value]
        if not isinstance(value, list):
            return value
        return [normalize_config(schema.elem, item) if isinstance(item, dict) else item for item in value]

    if schema.type in (ValueType.LIST, ValueType.SET):
        if not isinstance(value, list):
            return value
        if isinstance(schema.elem, Schema):
            return [_coerce_scalar(schema.elem.type, item) for item in value]
        return list(value)

    if schema.type == ValueType.MAP:
        if not isinstance(value, dict):
            return value
        if isinstance(schema.elem, Schema):
            return {k: _coerce_scalar(schema.elem.type, v) for k, v in value.items()}
        return dict(value)

    value = _coerce_scalar(schema.type, value)
    if schema.state_func is not None and not is_interpolated(value):
        value = schema.state_func(value)
    return value


def normalize_config(schema_map: Dict[str, Schema], raw: Optional[Dict]) -> Dict:
    """Apply defaults and coercions to a raw configuration block.

    Unknown keys are carried through untouched so ``validate_config`` can report them.
    """
    raw = raw or {}
    config: Dict[str, Any] = {}

    for key, schema in schema_map.items():
        if raw.get(key) is not None:
            config[key] = _normalize_value(schema, raw[key])
            continue

        value = None
        from_env = env_value(schema.env_default)
        if from_env is not None:
            value = _normalize_value(schema, from_env)
        elif schema.default is not None:
            value = copy.deepcopy(schema.default)

        if value is not None:
            config[key] = value

    for key, value in raw.items():
        if key not in schema_map:
            config[key] = value

    return config


def _type_matches(value_type: ValueType, value: Any) -> bool:
    if value_type == ValueType.STRING:
        return isinstance(value, str)
    if value_type == ValueType.INT:
        return isinstance(value, int) and not isinstance(value, bool)
    if value_type == ValueType.FLOAT:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if value_type == ValueType.BOOL:
        return isinstance(value, bool)
    if value_type == ValueType.MAP:
        return isinstance(value, dict)
    return isinstance(value, list)


def validate_config(
    schema_map: Dict[str, Schema], config: Dict, prefix: str = ""
) -> Tuple[List[str], List[str]]:
    """Validate a normalised configuration block against its schema map.

    Args:
        schema_map: The attribute declarations.
        config: The normalised configuration.
        prefix: Key prefix used when validating nested blocks.

    Returns:
        A tuple of (warnings, errors).
    """
    warnings: List[str] = []
    errors: List[str] = []

    for key in config:
        if key not in schema_map:
            errors.append(f"{prefix}{key}: unsupported argument")

    for key, schema in schema_map.items():
        full_key = f"{prefix}{key}"
        value = config.get(key)

        if value is None:
            if schema.required:
                errors.append(f"{full_key}: required attribute is not set")
            continue

        if schema.is_computed_only():
            errors.append(f"{full_key}: computed attribute cannot be set")
            continue

        if schema.deprecated:
            warnings.append(f"{full_key}: {schema.deprecated}")

        if is_interpolated(value):
            continue

        if not _type_matches(schema.type, value):
            errors.append(f"{full_key}: expected {schema.type.value}, got {type(value).__name__}")
            continue

        if schema.type in (ValueType.LIST, ValueType.SET):
            if schema.max_items and len(value) > schema.max_items:
                errors.append(f"{full_key}: attribute supports {schema.max_items} item maximum, config has {len(value)}")
            if schema.min_items and len(value) < schema.min_items:
                errors.append(f"{full_key}: attribute requires {schema.min_items} item minimum, config has {len(value)}")

            for i, item in enumerate(value):
                if schema.is_block():
                    if not isinstance(item, dict):
                        errors.append(f"{full_key}.{i}: expected a block")
                        continue
                    w, e = validate_config(schema.elem, item, prefix=f"{full_key}.{i}.")
                    warnings.extend(w)
                    errors.extend(e)
                elif isinstance(schema.elem, Schema) and not is_interpolated(item):
                    if not _type_matches(schema.elem.type, item):
                        errors.append(f"{full_key}.{i}: expected {schema.elem.type.value}, got {type(item).__name__}")
                    elif schema.elem.validate_func is not None:
                        w, e = schema.elem.validate_func(item, f"{full_key}.{i}")
                        warnings.extend(w)
                        errors.extend(e)

        if schema.validate_func is not None:
            w, e = schema.validate_func(value, full_key)
            warnings.extend(w)
            errors.extend(e)

    return warnings, errors


def _deepdiff_path(path: str, key: str) -> str:
    return f"{path}['{key}']"


def diff_attributes(
    schema_map: Dict[str, Schema],
    prior: Optional[Dict],
    desired: Optional[Dict],
    excluded_paths: Optional[Set[str]] = None,
    _prefix: str = "",
    _path: str = "root",
    _parent_force_new: bool = False,
) -> AttributeDiff:
    """Compare prior state against desired configuration attribute by attribute.

    Computed-only attributes never produce a change, neither do optional+computed
    attributes the configuration leaves unset. ``excluded_paths`` holds deepdiff
    style paths (``root['tags']``) that are skipped entirely.
    """
    prior = prior or {}
    desired = desired or {}
    excluded_paths = excluded_paths or set()
    result = AttributeDiff()

    for key, schema in schema_map.items():
        path = _deepdiff_path(_path, key)
        full_key = f"{_prefix}{key}"
        if path in excluded_paths or schema.is_computed_only():
            continue

        new = desired.get(key)
        if new is None and schema.computed:
            continue

        old = prior.get(key)
        old = zero_value(schema) if old is None else old
        new = zero_value(schema) if new is None else new
        force_new = schema.force_new or _parent_force_new

        if schema.diff_suppress_func is not None and schema.diff_suppress_func(full_key, old, new):
            continue

        if schema.type == ValueType.LIST and schema.is_block() and isinstance(old, list) and isinstance(new, list):
            if len(old) != len(new):
                result.changed.append(full_key)
                if force_new:
                    result.requires_replace.append(full_key)
                continue
            for i, (old_item, new_item) in enumerate(zip(old, new)):
                nested = diff_attributes(
                    schema.elem,
                    old_item if isinstance(old_item, dict) else {},
                    new_item if isinstance(new_item, dict) else {},
                    excluded_paths,
                    _prefix=f"{full_key}.{i}.",
                    _path=path,
                    _parent_force_new=force_new,
                )
                result.changed.extend(nested.changed)
                result.requires_replace.extend(nested.requires_replace)
            continue

        if is_interpolated(new) or DeepDiff(old, new, ignore_order=schema.type == ValueType.SET):
            result.changed.append(full_key)
            if force_new:
                result.requires_replace.append(full_key)

    return result
