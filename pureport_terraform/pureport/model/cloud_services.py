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


class CloudServices(PureportListDataSource):
    """Cloud services (e.g. S3 in a region) reachable over public peering."""

    resource_type = "pureport_cloud_services"
    resource_config = ResourceConfig(
        schema={
            "name_regex": name_regex_schema(),
            "provider": Schema(ValueType.STRING, optional=True, validate_func=string_in_slice(CLOUD_PROVIDERS, True)),
            "services": Schema(
                ValueType.LIST,
                computed=True,
                elem={
                    "id": Schema(ValueType.STRING, computed=True),
                    "name": Schema(ValueType.STRING, computed=True),
                    "provider": Schema(ValueType.STRING, computed=True),
                    "service": Schema(ValueType.STRING, computed=True),
                    "href": Schema(ValueType.STRING, computed=True),
                    "ipv4_prefix_count": Schema(ValueType.INT, computed=True),
                    "ipv6_prefix_count": Schema(ValueType.INT, computed=True),
                },
            ),
        },
        base_path="/cloudServices",
    )
    items_key = "services"
    provider_filter = True

    def flatten_item(self, item: Dict) -> Dict:
        return {
            "id": item.get("id", ""),
            "name": item.get("name", ""),
            "provider": item.get("provider", ""),
            "service": item.get("service", ""),
            "href": item.get("href", ""),
            "ipv4_prefix_count": item.get("ipv4PrefixCount", 0),
            "ipv6_prefix_count": item.get("ipv6PrefixCount", 0),
        }
