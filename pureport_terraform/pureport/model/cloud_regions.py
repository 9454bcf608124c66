# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

from __future__ import annotations
from typing import Dict

from pureport_terraform.pureport.data_source import CLOUD_PROVIDERS, PureportListDataSource, name_regex_schema
from pureport_terraform.utils.base_resource import ResourceConfig
from pureport_terraform.utils.schema import Schema, ValueType
from pureport_terraform.utils.validation import string_in_slice


class CloudRegions(PureportListDataSource):
    resource_type = "pureport_cloud_regions"
    resource_config = ResourceConfig(
        schema={
            "name_regex": name_regex_schema(),
            "provider": Schema(ValueType.STRING, optional=True, validate_func=string_in_slice(CLOUD_PROVIDERS, True)),
            "regions": Schema(
                ValueType.LIST,
                computed=True,
                elem={
                    "id": Schema(ValueType.STRING, computed=True),
                    "name": Schema(ValueType.STRING, computed=True),
                    "provider": Schema(ValueType.STRING, computed=True),
                    "identifier": Schema(ValueType.STRING, computed=True),
                },
            ),
        },
        base_path="/cloudRegions",
    )
    items_key = "regions"
    provider_filter = True

    def flatten_item(self, item: Dict) -> Dict:
        return {
            "id": item.get("id", ""),
            "name": item.get("displayName") or item.get("name", ""),
            "provider": item.get("provider", ""),
            "identifier": item.get("identifier", ""),
        }
