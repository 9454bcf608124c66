# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

"""DDoS Protection Plan resource.

A plan and the Virtual Networks protected by it both record the association,
so every mutation of a plan locks the plan name and the names of the networks
it lists, and every mutation of a network locks the plan it references.
"""

from __future__ import annotations
from typing import TYPE_CHECKING, List

from pureport_terraform.azurerm.arm_resource import ArmResource
from pureport_terraform.azurerm.helpers import (
    expand_tags,
    extract_names_from_ids,
    flatten_and_set_tags,
    normalize_location,
    schema_location,
    schema_resource_group_name,
    tags_schema,
)
from pureport_terraform.utils.base_resource import ResourceConfig
from pureport_terraform.utils.resource_utils import CustomClientHTTPError, ResourceError
from pureport_terraform.utils.schema import Schema, ValueType

if TYPE_CHECKING:
    from pureport_terraform.utils.resource_data import ResourceData

DDOS_PROTECTION_PLAN_LOCK = "azurerm_ddos_protection_plan"
VIRTUAL_NETWORK_LOCK = "azurerm_virtual_network"
NETWORK_API_VERSION = "2018-12-01"

DEPRECATION_MESSAGE = (
    "The 'azurerm_ddos_protection_plan' resource is deprecated in favour of the renamed version "
    "'azurerm_network_ddos_protection_plan'. It will be removed in the next major version."
)


def ddos_protection_plan_schema():
    return {
        "name": Schema(ValueType.STRING, required=True, force_new=True),
        "location": schema_location(),
        "resource_group_name": schema_resource_group_name(),
        "virtual_network_ids": Schema(ValueType.LIST, computed=True, elem=Schema(ValueType.STRING)),
        "tags": tags_schema(),
    }


class NetworkDDoSProtectionPlan(ArmResource):
    resource_type = "azurerm_network_ddos_protection_plan"
    resource_config = ResourceConfig(schema=ddos_protection_plan_schema(), api_version=NETWORK_API_VERSION)
    namespace = "Microsoft.Network"
    type_segment = "ddosProtectionPlans"
    display_name = "DDoS Protection Plan"

    def vnet_names_to_lock(self, d: ResourceData) -> List[str]:
        try:
            return extract_names_from_ids(d.get("virtual_network_ids") or [], "virtualNetworks")
        except ValueError as e:
            raise ResourceError(f"Error extracting names of Virtual Network: {e}", self.resource_type, d.id) from e

    def locks(self, name: str, vnet_names: List[str]):
        return self.config.mutex_kv.lock_resources({DDOS_PROTECTION_PLAN_LOCK: [name], VIRTUAL_NETWORK_LOCK: vnet_names})

    async def create_resource(self, d: ResourceData) -> None:
        await self._create_update(d)

    async def update_resource(self, d: ResourceData) -> None:
        await self._create_update(d)

    async def _create_update(self, d: ResourceData) -> None:
        self.config.logger.info("Preparing arguments for DDoS protection plan creation", self.resource_type)
        name = d.get("name")
        resource_group = d.get("resource_group_name")
        await self.check_import_as_exists(d, resource_group, name)

        parameters = {"location": normalize_location(d.get("location")), "tags": expand_tags(d.get("tags"))}
        vnet_names = self.vnet_names_to_lock(d)
        path = self.path_for(resource_group, name)

        async with self.locks(name, vnet_names):
            try:
                await self.arm.put(path, parameters, self.api_version)
            except CustomClientHTTPError as e:
                raise ResourceError(
                    f"Error creating/updating {self.describe(resource_group, name)}: {e}", self.resource_type
                ) from e

            plan = await self.get_existing(resource_group, name)
            if not plan or not plan.get("id"):
                raise ResourceError(f"Cannot read {self.describe(resource_group, name)} ID", self.resource_type)

            d.set_id(plan["id"])
            await self.read_resource(d)

    async def read_resource(self, d: ResourceData) -> None:
        found = await self.get_for_read(d)
        if found is None:
            return
        resource_group, _, plan = found

        d.set("name", plan.get("name"))
        d.set("resource_group_name", resource_group)
        if plan.get("location"):
            d.set("location", normalize_location(plan["location"]))

        props = plan.get("properties") or {}
        d.set("virtual_network_ids", [v["id"] for v in props.get("virtualNetworks") or [] if v.get("id")])
        flatten_and_set_tags(d, plan.get("tags"))

    async def delete_resource(self, d: ResourceData) -> None:
        resource_group, name = self.parse_id(d.id)
        if await self.get_existing(resource_group, name) is None:
            self.config.logger.debug(
                f"{self.describe(resource_group, name)} was not found, assuming removed", self.resource_type, d.id
            )
            d.set_id("")
            return

        vnet_names = self.vnet_names_to_lock(d)
        async with self.locks(name, vnet_names):
            try:
                await self.arm.delete(self.path_for(resource_group, name), self.api_version)
            except CustomClientHTTPError as e:
                raise ResourceError(
                    f"Error deleting {self.describe(resource_group, name)}: {e}", self.resource_type, d.id
                ) from e

        d.set_id("")


class DDoSProtectionPlan(NetworkDDoSProtectionPlan):
    """Deprecated name of ``azurerm_network_ddos_protection_plan``."""

    resource_type = "azurerm_ddos_protection_plan"
    resource_config = ResourceConfig(
        schema=ddos_protection_plan_schema(),
        api_version=NETWORK_API_VERSION,
        deprecation_message=DEPRECATION_MESSAGE,
    )
