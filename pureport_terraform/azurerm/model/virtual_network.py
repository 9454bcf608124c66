# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

from __future__ import annotations
from typing import TYPE_CHECKING, Any, Dict, List

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
from pureport_terraform.azurerm.model.ddos_protection_plan import (
    DDOS_PROTECTION_PLAN_LOCK,
    NETWORK_API_VERSION,
    VIRTUAL_NETWORK_LOCK,
)
from pureport_terraform.utils.base_resource import ResourceConfig
from pureport_terraform.utils.resource_utils import CustomClientHTTPError, ResourceError, response_was_not_found
from pureport_terraform.utils.schema import Schema, ValueType
from pureport_terraform.utils.validation import validate_cidr

if TYPE_CHECKING:
    from pureport_terraform.utils.resource_data import ResourceData


class VirtualNetwork(ArmResource):
    """Virtual Network, optionally protected by a DDoS Protection Plan."""

    resource_type = "azurerm_virtual_network"
    resource_config = ResourceConfig(
        schema={
            "name": Schema(ValueType.STRING, required=True, force_new=True),
            "location": schema_location(),
            "resource_group_name": schema_resource_group_name(),
            "address_space": Schema(
                ValueType.LIST, required=True, min_items=1, elem=Schema(ValueType.STRING, validate_func=validate_cidr)
            ),
            "dns_servers": Schema(ValueType.LIST, optional=True, elem=Schema(ValueType.STRING)),
            "ddos_protection_plan": Schema(
                ValueType.LIST,
                optional=True,
                max_items=1,
                elem={
                    "id": Schema(ValueType.STRING, required=True),
                    "enable": Schema(ValueType.BOOL, required=True),
                },
            ),
            "guid": Schema(ValueType.STRING, computed=True),
            "tags": tags_schema(),
        },
        api_version=NETWORK_API_VERSION,
    )
    namespace = "Microsoft.Network"
    type_segment = "virtualNetworks"
    display_name = "Virtual Network"

    def ddos_plan_names_to_lock(self, d: ResourceData) -> List[str]:
        plans = d.get("ddos_protection_plan") or []
        try:
            return extract_names_from_ids([p["id"] for p in plans if p.get("id")], "ddosProtectionPlans")
        except ValueError as e:
            raise ResourceError(f"Error extracting names of DDoS Protection Plan: {e}", self.resource_type, d.id) from e

    def locks(self, name: str, plan_names: List[str]):
        return self.config.mutex_kv.lock_resources({VIRTUAL_NETWORK_LOCK: [name], DDOS_PROTECTION_PLAN_LOCK: plan_names})

    def expand_properties(self, d: ResourceData) -> Dict[str, Any]:
        properties: Dict[str, Any] = {
            "addressSpace": {"addressPrefixes": list(d.get("address_space"))},
            "dhcpOptions": {"dnsServers": list(d.get("dns_servers") or [])},
        }

        plans = d.get("ddos_protection_plan")
        if plans:
            properties["ddosProtectionPlan"] = {"id": plans[0]["id"]}
            properties["enableDdosProtection"] = plans[0]["enable"]
        return properties

    async def create_resource(self, d: ResourceData) -> None:
        await self._create_update(d)

    async def update_resource(self, d: ResourceData) -> None:
        await self._create_update(d)

    async def _create_update(self, d: ResourceData) -> None:
        name = d.get("name")
        resource_group = d.get("resource_group_name")
        await self.check_import_as_exists(d, resource_group, name)

        parameters = {
            "location": normalize_location(d.get("location")),
            "tags": expand_tags(d.get("tags")),
            "properties": self.expand_properties(d),
        }

        async with self.locks(name, self.ddos_plan_names_to_lock(d)):
            try:
                await self.arm.put(self.path_for(resource_group, name), parameters, self.api_version)
            except CustomClientHTTPError as e:
                raise ResourceError(
                    f"Error creating/updating {self.describe(resource_group, name)}: {e}", self.resource_type
                ) from e

            network = await self.get_existing(resource_group, name)
            if not network or not network.get("id"):
                raise ResourceError(f"Cannot read {self.describe(resource_group, name)} ID", self.resource_type)

            d.set_id(network["id"])
            await self.read_resource(d)

    async def read_resource(self, d: ResourceData) -> None:
        found = await self.get_for_read(d)
        if found is None:
            return
        resource_group, _, network = found

        d.set("name", network.get("name"))
        d.set("resource_group_name", resource_group)
        if network.get("location"):
            d.set("location", normalize_location(network["location"]))

        props = network.get("properties") or {}
        d.set("address_space", (props.get("addressSpace") or {}).get("addressPrefixes") or [])
        d.set("dns_servers", (props.get("dhcpOptions") or {}).get("dnsServers") or [])
        d.set("guid", props.get("resourceGuid"))

        plan = props.get("ddosProtectionPlan") or {}
        if plan.get("id"):
            d.set("ddos_protection_plan", [{"id": plan["id"], "enable": props.get("enableDdosProtection", False)}])
        else:
            d.set("ddos_protection_plan", [])

        flatten_and_set_tags(d, network.get("tags"))

    async def delete_resource(self, d: ResourceData) -> None:
        resource_group, name = self.parse_id(d.id)
        async with self.locks(name, self.ddos_plan_names_to_lock(d)):
            try:
                await self.arm.delete(self.path_for(resource_group, name), self.api_version)
            except CustomClientHTTPError as e:
                if not response_was_not_found(e):
                    raise ResourceError(
                        f"Error deleting {self.describe(resource_group, name)}: {e}", self.resource_type, d.id
                    ) from e

        d.set_id("")
