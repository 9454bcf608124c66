# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

from __future__ import annotations
import re
import zlib
from typing import TYPE_CHECKING, Dict, List

from pureport_terraform.utils.base_resource import DataSource
from pureport_terraform.utils.resource_utils import CustomClientHTTPError, ResourceError
from pureport_terraform.utils.schema import Schema, ValueType

if TYPE_CHECKING:
    from pureport_terraform.utils.resource_data import ResourceData

CLOUD_PROVIDERS = ["AWS", "AZURE", "GOOGLE"]


def validate_regex(value, key):
    try:
        re.compile(value)
    except (re.error, TypeError) as e:
        return [], [f"{key}: invalid regular expression {value!r}: {e}"]
    return [], []


def name_regex_schema() -> Schema:
    return Schema(ValueType.STRING, optional=True, validate_func=validate_regex)


def hash_ids(ids: List[str]) -> str:
    """Stable id for a data source read, derived from the ids it returned."""
    return str(zlib.crc32(",".join(ids).encode("utf-8")))


def filter_by_name_regex(items: List[Dict], name_regex: str) -> List[Dict]:
    if not name_regex:
        return items
    regex = re.compile(name_regex)
    return [item for item in items if regex.search(item.get("name") or "")]


class PureportListDataSource(DataSource):
    """Lists one Pureport collection, filters it and exposes it flattened.

    Attributes:
        items_key: Attribute the flattened list is stored in.
        provider_filter: Whether the collection can be filtered by cloud provider.
    """

    items_key: str
    provider_filter: bool = False

    def flatten_item(self, item: Dict) -> Dict:
        raise NotImplementedError

    async def read_resource(self, d: ResourceData) -> None:
        client = self.config.pureport_client
        try:
            items = await client.get(self.resource_config.base_path)
        except CustomClientHTTPError as e:
            raise ResourceError(f"Error reading {self.items_key}: {e}", self.resource_type) from e

        items = filter_by_name_regex(items or [], d.get("name_regex"))
        if self.provider_filter:
            provider, ok = d.get_ok("provider")
            if ok:
                items = [item for item in items if (item.get("provider") or "").upper() == provider.upper()]

        flattened = [self.flatten_item(item) for item in items]
        d.set(self.items_key, flattened)
        d.set_id(hash_ids([item["id"] for item in flattened]))
