# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

from __future__ import annotations
from typing import TYPE_CHECKING

from pureport_terraform.azurerm.arm_resource import ArmDataSource
from pureport_terraform.azurerm.helpers import (
    flatten_and_set_tags,
    schema_resource_group_name_for_data_source,
    schema_zones_computed,
    tags_for_data_source_schema,
)
from pureport_terraform.utils.base_resource import ResourceConfig
from pureport_terraform.utils.resource_utils import ResourceError
from pureport_terraform.utils.schema import Schema, ValueType

if TYPE_CHECKING:
    from pureport_terraform.utils.resource_data import ResourceData


class ManagedDisk(ArmDataSource):
    resource_type = "azurerm_managed_disk"
    resource_config = ResourceConfig(
        schema={
            "name": Schema(ValueType.STRING, required=True),
            "resource_group_name": schema_resource_group_name_for_data_source(),
            "zones": schema_zones_computed(),
            "storage_account_type": Schema(ValueType.STRING, computed=True),
            "source_uri": Schema(ValueType.STRING, computed=True),
            "source_resource_id": Schema(ValueType.STRING, computed=True),
            "os_type": Schema(ValueType.STRING, computed=True),
            "disk_size_gb": Schema(ValueType.INT, computed=True),
            "create_option": Schema(ValueType.STRING, computed=True),
            "tags": tags_for_data_source_schema(),
        },
        api_version="2018-09-30",
    )
    namespace = "Microsoft.Compute"
    type_segment = "disks"
    display_name = "Managed Disk"

    async def read_resource(self, d: ResourceData) -> None:
        name = d.get("name")
        resource_group = d.get("resource_group_name")

        disk = await self.get_existing(resource_group, name)
        if disk is None:
            raise ResourceError(f"Error: {self.describe(resource_group, name)} was not found", self.resource_type)

        d.set_id(disk["id"])
        d.set("storage_account_type", (disk.get("sku") or {}).get("name"))

        props = disk.get("properties") or {}
        if props.get("diskSizeGB") is not None:
            d.set("disk_size_gb", props["diskSizeGB"])
        if props.get("osType"):
            d.set("os_type", props["osType"])

        creation = props.get("creationData")
        if creation:
            d.set("create_option", creation.get("createOption"))
            d.set("source_uri", creation.get("sourceUri"))
            d.set("source_resource_id", creation.get("sourceResourceId"))

        d.set("zones", disk.get("zones") or [])
        flatten_and_set_tags(d, disk.get("tags"))
