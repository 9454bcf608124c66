# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

from __future__ import annotations
from typing import TYPE_CHECKING

from pureport_terraform.azurerm.arm_resource import ArmDataSource
from pureport_terraform.azurerm.config import STORAGE_API_VERSION
from pureport_terraform.azurerm.helpers import (
    flatten_and_set_tags,
    normalize_location,
    schema_location_for_data_source,
    schema_resource_group_name_for_data_source,
    tags_for_data_source_schema,
)
from pureport_terraform.utils.base_resource import ResourceConfig
from pureport_terraform.utils.resource_utils import ResourceError
from pureport_terraform.utils.schema import Schema, ValueType

if TYPE_CHECKING:
    from pureport_terraform.utils.resource_data import ResourceData


class StorageAccount(ArmDataSource):
    """Storage account lookup, including its primary access key from the key cache."""

    resource_type = "azurerm_storage_account"
    resource_config = ResourceConfig(
        schema={
            "name": Schema(ValueType.STRING, required=True),
            "resource_group_name": schema_resource_group_name_for_data_source(),
            "location": schema_location_for_data_source(),
            "account_kind": Schema(ValueType.STRING, computed=True),
            "account_tier": Schema(ValueType.STRING, computed=True),
            "account_replication_type": Schema(ValueType.STRING, computed=True),
            "primary_blob_endpoint": Schema(ValueType.STRING, computed=True),
            "primary_access_key": Schema(ValueType.STRING, computed=True, sensitive=True),
            "tags": tags_for_data_source_schema(),
        },
        api_version=STORAGE_API_VERSION,
    )
    namespace = "Microsoft.Storage"
    type_segment = "storageAccounts"
    display_name = "Storage Account"

    async def read_resource(self, d: ResourceData) -> None:
        name = d.get("name")
        resource_group = d.get("resource_group_name")

        account = await self.get_existing(resource_group, name)
        if account is None:
            raise ResourceError(f"Error: {self.describe(resource_group, name)} was not found", self.resource_type)

        d.set_id(account["id"])
        d.set("location", normalize_location(account.get("location")))
        d.set("account_kind", account.get("kind"))

        sku = account.get("sku") or {}
        d.set("account_tier", sku.get("tier"))
        sku_name = sku.get("name") or ""
        d.set("account_replication_type", sku_name.split("_", 1)[1] if "_" in sku_name else "")

        props = account.get("properties") or {}
        d.set("primary_blob_endpoint", (props.get("primaryEndpoints") or {}).get("blob"))

        key, exists = await self.arm.get_key_for_storage_account(resource_group, name)
        if not exists:
            raise ResourceError(f"{self.describe(resource_group, name)} disappeared while reading keys", self.resource_type)
        d.set("primary_access_key", key)

        flatten_and_set_tags(d, account.get("tags"))
