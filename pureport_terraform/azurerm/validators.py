# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

from __future__ import annotations
import re
import uuid
from datetime import datetime
from typing import Any, List, Tuple

from pureport_terraform.utils.schema import ValidateFunc
from pureport_terraform.utils.validation import string_in_slice

RFC3339_RE = re.compile(r"^\d{4}-\d{2}-\d{2}[Tt]\d{2}:\d{2}:\d{2}(\.\d+)?([Zz]|[+-]\d{2}:\d{2})$")
ISO8601_DURATION_RE = re.compile(r"^P([0-9]+Y)?([0-9]+M)?([0-9]+W)?([0-9]+D)?(T([0-9]+H)?([0-9]+M)?([0-9]+(\.?[0-9]+)?S)?)?$")
COLLATION_RE = re.compile(r"^[A-Za-z0-9_. ]+$")

# http://jackstromberg.com/2017/01/list-of-time-zones-consumed-by-azure/
VIRTUAL_MACHINE_TIME_ZONES = [
    "",
    "Afghanistan Standard Time",
    "Alaskan Standard Time",
    "Arab Standard Time",
    "Arabian Standard Time",
    "Arabic Standard Time",
    "Argentina Standard Time",
    "Atlantic Standard Time",
    "AUS Central Standard Time",
    "AUS Eastern Standard Time",
    "Azerbaijan Standard Time",
    "Azores Standard Time",
    "Bahia Standard Time",
    "Bangladesh Standard Time",
    "Belarus Standard Time",
    "Canada Central Standard Time",
    "Cape Verde Standard Time",
    "Caucasus Standard Time",
    "Cen. Australia Standard Time",
    "Central America Standard Time",
    "Central Asia Standard Time",
    "Central Brazilian Standard Time",
    "Central Europe Standard Time",
    "Central European Standard Time",
    "Central Pacific Standard Time",
    "Central Standard Time (Mexico)",
    "Central Standard Time",
    "China Standard Time",
    "Dateline Standard Time",
    "E. Africa Standard Time",
    "E. Australia Standard Time",
    "E. Europe Standard Time",
    "E. South America Standard Time",
    "Eastern Standard Time (Mexico)",
    "Eastern Standard Time",
    "Egypt Standard Time",
    "Ekaterinburg Standard Time",
    "Fiji Standard Time",
    "FLE Standard Time",
    "Georgian Standard Time",
    "GMT Standard Time",
    "Greenland Standard Time",
    "Greenwich Standard Time",
    "GTB Standard Time",
    "Hawaiian Standard Time",
    "India Standard Time",
    "Iran Standard Time",
    "Israel Standard Time",
    "Jordan Standard Time",
    "Kaliningrad Standard Time",
    "Korea Standard Time",
    "Libya Standard Time",
    "Line Islands Standard Time",
    "Magadan Standard Time",
    "Mauritius Standard Time",
    "Middle East Standard Time",
    "Montevideo Standard Time",
    "Morocco Standard Time",
    "Mountain Standard Time (Mexico)",
    "Mountain Standard Time",
    "Myanmar Standard Time",
    "N. Central Asia Standard Time",
    "Namibia Standard Time",
    "Nepal Standard Time",
    "New Zealand Standard Time",
    "Newfoundland Standard Time",
    "North Asia East Standard Time",
    "North Asia Standard Time",
    "Pacific SA Standard Time",
    "Pacific Standard Time (Mexico)",
    "Pacific Standard Time",
    "Pakistan Standard Time",
    "Paraguay Standard Time",
    "Romance Standard Time",
    "Russia Time Zone 10",
    "Russia Time Zone 11",
    "Russia Time Zone 3",
    "Russian Standard Time",
    "SA Eastern Standard Time",
    "SA Pacific Standard Time",
    "SA Western Standard Time",
    "Samoa Standard Time",
    "SE Asia Standard Time",
    "Singapore Standard Time",
    "South Africa Standard Time",
    "Sri Lanka Standard Time",
    "Syria Standard Time",
    "Taipei Standard Time",
    "Tasmania Standard Time",
    "Tokyo Standard Time",
    "Tonga Standard Time",
    "Turkey Standard Time",
    "Ulaanbaatar Standard Time",
    "US Eastern Standard Time",
    "US Mountain Standard Time",
    "UTC",
    "UTC+12",
    "UTC-02",
    "UTC-11",
    "Venezuela Standard Time",
    "Vladivostok Standard Time",
    "W. Australia Standard Time",
    "W. Central Africa Standard Time",
    "W. Europe Standard Time",
    "West Asia Standard Time",
    "West Pacific Standard Time",
    "Yakutsk Standard Time",
]


def validate_rfc3339_date(value: Any, key: str) -> Tuple[List[str], List[str]]:
    if not isinstance(value, str) or not RFC3339_RE.match(value):
        return [], [f"{key!r} is an invalid RFC3339 date: {value!r}"]

    normalized = value.upper().replace("Z", "+00:00")
    try:
        datetime.strptime(normalized[:19], "%Y-%m-%dT%H:%M:%S")
    except ValueError as e:
        return [], [f"{key!r} is an invalid RFC3339 date: {e}"]
    return [], []


def validate_uuid(value: Any, key: str) -> Tuple[List[str], List[str]]:
    try:
        uuid.UUID(str(value))
    except ValueError as e:
        return [], [f"{key!r} is an invalid UUID: {e}"]
    return [], []


def validate_iso8601_duration() -> ValidateFunc:
    def _validate(value: Any, key: str) -> Tuple[List[str], List[str]]:
        if not isinstance(value, str):
            return [], [f"expected type of {key} to be string"]
        if not ISO8601_DURATION_RE.match(value):
            return [], [f"expected {key} to be in ISO 8601 duration format, got {value}"]
        return [], []

    return _validate


def validate_azure_virtual_machine_time_zone() -> ValidateFunc:
    return string_in_slice(VIRTUAL_MACHINE_TIME_ZONES, ignore_case=True)


def validate_collation() -> ValidateFunc:
    def _validate(value: Any, key: str) -> Tuple[List[str], List[str]]:
        if not isinstance(value, str):
            return [], [f"expected type of {key} to be string"]
        if not COLLATION_RE.match(value):
            return [], [f"{key} contains invalid characters, only underscores are supported, got {value}"]
        return [], []

    return _validate


def validate_file_path() -> ValidateFunc:
    def _validate(value: Any, key: str) -> Tuple[List[str], List[str]]:
        if not str(value).startswith("/"):
            return [], [f"{key!r} must start with `/`"]
        return [], []

    return _validate


def evaluate_schema_validate_func(value: Any, key: str, validate_func: ValidateFunc) -> Tuple[bool, str]:
    """Run a validate func outside of schema validation.

    Returns:
        A tuple of (valid, joined_error_messages).
    """
    _, errors = validate_func(value, key)
    if errors:
        return False, "\n".join(errors)
    return True, ""
