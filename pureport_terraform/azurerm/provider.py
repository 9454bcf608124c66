# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

from __future__ import annotations
from typing import TYPE_CHECKING

from pureport_terraform.azurerm.config import (
    ENVIRONMENTS,
    ArmClient,
    ArmTokenAuth,
    build_credential,
    correlation_request_id,
    determine_environment,
    user_agent,
)
from pureport_terraform.azurerm.model.automation_account import AutomationAccount
from pureport_terraform.azurerm.model.ddos_protection_plan import DDoSProtectionPlan, NetworkDDoSProtectionPlan
from pureport_terraform.azurerm.model.managed_disk import ManagedDisk
from pureport_terraform.azurerm.model.storage_account import StorageAccount
from pureport_terraform.azurerm.model.virtual_network import VirtualNetwork
from pureport_terraform.azurerm.validators import validate_uuid
from pureport_terraform.utils.base_provider import BaseProvider
from pureport_terraform.utils.custom_client import CustomClient
from pureport_terraform.utils.resource_utils import ResourceError
from pureport_terraform.utils.schema import Schema, ValueType
from pureport_terraform.utils.validation import string_in_slice

if TYPE_CHECKING:
    from pureport_terraform.utils.resource_data import ResourceData


def _optional_uuid(value, key):
    if value == "":
        return [], []
    return validate_uuid(value, key)


class AzureRMProvider(BaseProvider):
    """Azure Resource Manager provider.

    Authenticates as a service principal when ``client_id``, ``client_secret``
    and ``tenant_id`` are all set, and through the Azure CLI login otherwise.
    """

    name = "azurerm"
    schema = {
        "subscription_id": Schema(ValueType.STRING, optional=True, default="", env_default=["ARM_SUBSCRIPTION_ID"]),
        "client_id": Schema(ValueType.STRING, optional=True, default="", env_default=["ARM_CLIENT_ID"]),
        "client_secret": Schema(
            ValueType.STRING, optional=True, default="", sensitive=True, env_default=["ARM_CLIENT_SECRET"]
        ),
        "tenant_id": Schema(ValueType.STRING, optional=True, default="", env_default=["ARM_TENANT_ID"]),
        "environment": Schema(
            ValueType.STRING,
            optional=True,
            default="public",
            env_default=["ARM_ENVIRONMENT"],
            validate_func=string_in_slice(list(ENVIRONMENTS), ignore_case=True),
        ),
        "partner_id": Schema(
            ValueType.STRING, optional=True, default="", env_default=["ARM_PARTNER_ID"], validate_func=_optional_uuid
        ),
        "skip_provider_registration": Schema(
            ValueType.BOOL, optional=True, default=False, env_default=["ARM_SKIP_PROVIDER_REGISTRATION"]
        ),
        "require_resources_to_be_imported": Schema(
            ValueType.BOOL, optional=True, default=False, env_default=["ARM_PROVIDER_STRICT"]
        ),
    }
    resources = {
        DDoSProtectionPlan.resource_type: DDoSProtectionPlan,
        NetworkDDoSProtectionPlan.resource_type: NetworkDDoSProtectionPlan,
        VirtualNetwork.resource_type: VirtualNetwork,
        AutomationAccount.resource_type: AutomationAccount,
    }
    data_sources = {
        ManagedDisk.resource_type: ManagedDisk,
        StorageAccount.resource_type: StorageAccount,
    }

    async def configure(self, d: ResourceData) -> None:
        subscription_id = d.get("subscription_id")
        if not subscription_id:
            raise ResourceError("subscription_id must be set, either in the provider block or ARM_SUBSCRIPTION_ID")

        environment = determine_environment(d.get("environment"))
        credential = build_credential(environment, d.get("tenant_id"), d.get("client_id"), d.get("client_secret"))
        partner_id = d.get("partner_id")

        client = CustomClient(
            environment.resource_manager_endpoint,
            auth=ArmTokenAuth(credential, environment.token_audience),
            timeout=self.config.http_client_timeout,
            retry_timeout=self.config.http_client_retry_timeout,
            user_agent=user_agent(partner_id),
            default_headers={"x-ms-correlation-request-id": correlation_request_id()},
            logger=self.config.logger,
        )
        await client._init_session()
        self.config.logger.debug(f"AzureRM Client User Agent: {client.user_agent}")

        arm_client = ArmClient(
            client,
            subscription_id,
            environment,
            self.config.logger,
            skip_provider_registration=d.get("skip_provider_registration"),
            require_resources_to_be_imported=d.get("require_resources_to_be_imported"),
            partner_id=partner_id,
        )
        self.config.arm_client = arm_client
        await arm_client.register_providers()

    async def close(self) -> None:
        if self.config.arm_client is not None:
            await self.config.arm_client.client._end_session()
            self.config.arm_client = None
