# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

"""Reusable validate funcs.

Every factory returns a callable ``(value, key) -> (warnings, errors)`` that can
be attached to ``Schema.validate_func``.
"""

from __future__ import annotations
import ipaddress
import re
from typing import Any, Iterable, List, Tuple

from pureport_terraform.utils.schema import ValidateFunc


def string_in_slice(valid: Iterable[str], ignore_case: bool = False) -> ValidateFunc:
    valid = list(valid)

    def _validate(value: Any, key: str) -> Tuple[List[str], List[str]]:
        if not isinstance(value, str):
            return [], [f"expected type of {key} to be string"]

        for candidate in valid:
            if value == candidate or (ignore_case and value.lower() == candidate.lower()):
                return [], []

        return [], [f"expected {key} to be one of {valid}, got {value}"]

    return _validate


def string_match(pattern: str, message: str = "") -> ValidateFunc:
    regex = re.compile(pattern)

    def _validate(value: Any, key: str) -> Tuple[List[str], List[str]]:
        if not isinstance(value, str):
            return [], [f"expected type of {key} to be string"]

        if not regex.match(value):
            if message:
                return [], [f"invalid value for {key} ({message})"]
            return [], [f"expected value of {key} to match regular expression {pattern!r}, got {value}"]

        return [], []

    return _validate


def string_is_not_empty(value: Any, key: str) -> Tuple[List[str], List[str]]:
    if not isinstance(value, str):
        return [], [f"expected type of {key} to be string"]
    if value.strip() == "":
        return [], [f"expected {key} to not be an empty string"]
    return [], []


def int_in_slice(valid: Iterable[int]) -> ValidateFunc:
    valid = list(valid)

    def _validate(value: Any, key: str) -> Tuple[List[str], List[str]]:
        if not isinstance(value, int) or isinstance(value, bool):
            return [], [f"expected type of {key} to be int"]
        if value not in valid:
            return [], [f"expected {key} to be one of {valid}, got {value}"]
        return [], []

    return _validate


def int_between(minimum: int, maximum: int) -> ValidateFunc:
    def _validate(value: Any, key: str) -> Tuple[List[str], List[str]]:
        if not isinstance(value, int) or isinstance(value, bool):
            return [], [f"expected type of {key} to be int"]
        if value < minimum or value > maximum:
            return [], [f"expected {key} to be in the range ({minimum} - {maximum}), got {value}"]
        return [], []

    return _validate


def validate_cidr(value: Any, key: str) -> Tuple[List[str], List[str]]:
    if not isinstance(value, str):
        return [], [f"expected type of {key} to be string"]
    # ip_network would read a bare address as a host route
    if "/" not in value:
        return [], [f"expected {key} to contain a valid CIDR, got {value}: missing prefix length"]
    try:
        ipaddress.ip_network(value, strict=True)
    except ValueError as e:
        return [], [f"expected {key} to contain a valid CIDR, got {value}: {e}"]
    return [], []
