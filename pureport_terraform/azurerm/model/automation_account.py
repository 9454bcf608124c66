# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

from __future__ import annotations
from typing import TYPE_CHECKING, Dict, List, Optional

from pureport_terraform.azurerm.arm_resource import ArmResource
from pureport_terraform.azurerm.helpers import (
    expand_tags,
    flatten_and_set_tags,
    normalize_location,
    schema_location,
    schema_resource_group_name,
    tags_schema,
)
from pureport_terraform.utils.base_resource import ResourceConfig
from pureport_terraform.utils.resource_utils import CustomClientHTTPError, ResourceError, response_was_not_found
from pureport_terraform.utils.schema import Schema, ValueType, suppress_case_difference
from pureport_terraform.utils.validation import string_in_slice, string_match

if TYPE_CHECKING:
    from pureport_terraform.utils.resource_data import ResourceData

SKU_BASIC = "Basic"
SKU_FREE = "Free"

ACCOUNT_NAME_MESSAGE = (
    "The account name must not be empty, and must not exceed 50 characters in length. "
    "The account name must start with a letter or number. The account name can contain letters, "
    "numbers, and dashes. The final character must be a letter or a number."
)


def expand_automation_account_sku(d: ResourceData) -> Dict[str, str]:
    return {"name": d.get("sku")[0].get("name") or SKU_BASIC}


def flatten_automation_account_sku(sku: Optional[Dict]) -> List[Dict[str, str]]:
    if not sku:
        return []
    return [{"name": sku.get("name", "")}]


class AutomationAccount(ArmResource):
    """Automation Account with its DSC registration endpoint and keys."""

    resource_type = "azurerm_automation_account"
    resource_config = ResourceConfig(
        schema={
            "name": Schema(
                ValueType.STRING,
                required=True,
                force_new=True,
                validate_func=string_match(r"^[0-9a-zA-Z]([-0-9a-zA-Z]{0,48}[0-9a-zA-Z])?$", ACCOUNT_NAME_MESSAGE),
            ),
            "location": schema_location(),
            "resource_group_name": schema_resource_group_name(),
            "sku": Schema(
                ValueType.LIST,
                required=True,
                min_items=1,
                max_items=1,
                elem={
                    "name": Schema(
                        ValueType.STRING,
                        optional=True,
                        default=SKU_BASIC,
                        diff_suppress_func=suppress_case_difference,
                        validate_func=string_in_slice([SKU_BASIC, SKU_FREE], ignore_case=True),
                    ),
                },
            ),
            "tags": tags_schema(),
            "dsc_server_endpoint": Schema(ValueType.STRING, computed=True),
            "dsc_primary_access_key": Schema(ValueType.STRING, computed=True, sensitive=True),
            "dsc_secondary_access_key": Schema(ValueType.STRING, computed=True, sensitive=True),
        },
        api_version="2015-10-31",
    )
    namespace = "Microsoft.Automation"
    type_segment = "automationAccounts"
    display_name = "Automation Account"

    async def create_resource(self, d: ResourceData) -> None:
        await self._create_update(d)

    async def update_resource(self, d: ResourceData) -> None:
        await self._create_update(d)

    async def _create_update(self, d: ResourceData) -> None:
        self.config.logger.info("Preparing arguments for Automation Account create/update", self.resource_type)
        name = d.get("name")
        resource_group = d.get("resource_group_name")
        await self.check_import_as_exists(d, resource_group, name)

        parameters = {
            "location": normalize_location(d.get("location")),
            "tags": expand_tags(d.get("tags")),
            "properties": {"sku": expand_automation_account_sku(d)},
        }
        try:
            await self.arm.put(self.path_for(resource_group, name), parameters, self.api_version)
        except CustomClientHTTPError as e:
            raise ResourceError(
                f"Error creating/updating {self.describe(resource_group, name)}: {e}", self.resource_type
            ) from e

        account = await self.get_existing(resource_group, name)
        if not account or not account.get("id"):
            raise ResourceError(f"Cannot read {self.describe(resource_group, name)} ID", self.resource_type)

        d.set_id(account["id"])
        await self.read_resource(d)

    async def read_resource(self, d: ResourceData) -> None:
        found = await self.get_for_read(d)
        if found is None:
            return
        resource_group, name, account = found

        path = f"{self.path_for(resource_group, name)}/agentRegistrationInformation"
        try:
            registration = await self.arm.get(path, self.api_version)
        except CustomClientHTTPError as e:
            if response_was_not_found(e):
                self.config.logger.debug(
                    f"Agent Registration Info for {self.describe(resource_group, name)} was not found, removing from state",
                    self.resource_type,
                    d.id,
                )
                d.set_id("")
                return
            raise ResourceError(
                f"Error making Read request for Agent Registration Info for {self.describe(resource_group, name)}: {e}",
                self.resource_type,
                d.id,
            ) from e

        d.set("name", account.get("name"))
        d.set("resource_group_name", resource_group)
        if account.get("location"):
            d.set("location", normalize_location(account["location"]))

        props = account.get("properties") or {}
        d.set("sku", flatten_automation_account_sku(props.get("sku")))

        registration = registration or {}
        d.set("dsc_server_endpoint", registration.get("endpoint"))
        keys = registration.get("keys") or {}
        d.set("dsc_primary_access_key", keys.get("primary"))
        d.set("dsc_secondary_access_key", keys.get("secondary"))

        if account.get("tags") is not None:
            flatten_and_set_tags(d, account["tags"])

    async def delete_resource(self, d: ResourceData) -> None:
        resource_group, name = self.parse_id(d.id)
        try:
            await self.arm.delete(self.path_for(resource_group, name), self.api_version)
        except CustomClientHTTPError as e:
            if not response_was_not_found(e):
                raise ResourceError(
                    f"Error issuing AzureRM delete request for {self.describe(resource_group, name)}: {e}",
                    self.resource_type,
                    d.id,
                ) from e

        d.set_id("")
