# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

from __future__ import annotations
from typing import Dict

from pureport_terraform.pureport.data_source import PureportListDataSource, name_regex_schema
from pureport_terraform.utils.base_resource import ResourceConfig
from pureport_terraform.utils.schema import Schema, ValueType


class Locations(PureportListDataSource):
    resource_type = "pureport_locations"
    resource_config = ResourceConfig(
        schema={
            "name_regex": name_regex_schema(),
            "locations": Schema(
                ValueType.LIST,
                computed=True,
                elem={
                    "id": Schema(ValueType.STRING, computed=True),
                    "href": Schema(ValueType.STRING, computed=True),
                    "name": Schema(ValueType.STRING, computed=True),
                },
            ),
        },
        base_path="/locations",
    )
    items_key = "locations"

    def flatten_item(self, item: Dict) -> Dict:
        return {"id": item.get("id", ""), "href": item.get("href", ""), "name": item.get("name", "")}
