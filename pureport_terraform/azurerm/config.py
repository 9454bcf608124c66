# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

"""Azure Resource Manager client.

Wraps a ``CustomClient`` pointed at the environment's Resource Manager
endpoint with everything the ARM resources share: credentials from
azure-identity, the user agent, a per process correlation id, resource
provider registration, long running operation polling and the storage
account key cache.
"""

from __future__ import annotations
import asyncio
import functools
import os
import time
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from azure.identity.aio import AzureCliCredential, ClientSecretCredential

from pureport_terraform import __version__
from pureport_terraform.utils.custom_client import APIResponse, ClientAuth, error_message
from pureport_terraform.utils.resource_utils import CustomClientHTTPError, ResourceError, response_was_not_found

if TYPE_CHECKING:
    from pureport_terraform.utils.custom_client import CustomClient
    from pureport_terraform.utils.log import Log

PROVIDERS_API_VERSION = "2019-05-10"
STORAGE_API_VERSION = "2019-04-01"
REQUIRED_RESOURCE_PROVIDERS = [
    "Microsoft.Automation",
    "Microsoft.Compute",
    "Microsoft.Network",
    "Microsoft.Storage",
]
TERMINAL_SUCCEEDED = "succeeded"
TERMINAL_FAILED = ("failed", "canceled", "cancelled")


@dataclass(frozen=True)
class Environment:
    name: str
    resource_manager_endpoint: str
    authority_host: str
    token_audience: str


ENVIRONMENTS: Dict[str, Environment] = {
    "public": Environment(
        "AzurePublicCloud", "https://management.azure.com/", "login.microsoftonline.com", "https://management.azure.com/"
    ),
    "usgovernment": Environment(
        "AzureUSGovernmentCloud",
        "https://management.usgovcloudapi.net/",
        "login.microsoftonline.us",
        "https://management.usgovcloudapi.net/",
    ),
    "german": Environment(
        "AzureGermanCloud",
        "https://management.microsoftazure.de/",
        "login.microsoftonline.de",
        "https://management.microsoftazure.de/",
    ),
    "china": Environment(
        "AzureChinaCloud",
        "https://management.chinacloudapi.cn/",
        "login.chinacloudapi.cn",
        "https://management.chinacloudapi.cn/",
    ),
}


def determine_environment(name: str) -> Environment:
    key = (name or "public").lower()
    if key not in ENVIRONMENTS:
        raise ValueError(f"Unknown Azure environment {name!r}, expected one of {sorted(ENVIRONMENTS)}")
    return ENVIRONMENTS[key]


def user_agent(partner_id: str = "") -> str:
    agent = f"pureport-terraform/{__version__} terraform-provider-azurerm"
    azure_agent = os.environ.get("AZURE_HTTP_USER_AGENT", "")
    if azure_agent:
        agent = f"{agent} {azure_agent}"
    if partner_id:
        agent = f"{agent} pid-{partner_id}"
    return agent


@functools.lru_cache(maxsize=None)
def correlation_request_id() -> str:
    """One id per process, sent with every ARM request."""
    return os.environ.get("ARM_CORRELATION_REQUEST_ID") or str(uuid.uuid4())


def build_credential(
    environment: Environment, tenant_id: str = "", client_id: str = "", client_secret: str = ""
) -> Any:
    """Service principal with a client secret when fully configured, the Azure CLI login otherwise."""
    if tenant_id and client_id and client_secret:
        return ClientSecretCredential(
            tenant_id=tenant_id,
            client_id=client_id,
            client_secret=client_secret,
            authority=environment.authority_host,
        )
    if tenant_id:
        return AzureCliCredential(tenant_id=tenant_id)
    return AzureCliCredential()


class ArmTokenAuth(ClientAuth):
    """Bearer auth from an azure-identity async credential, which caches tokens itself."""

    def __init__(self, credential: Any, audience: str) -> None:
        self.credential = credential
        self.scope = audience.rstrip("/") + "/.default"

    async def headers(self) -> Dict[str, str]:
        token = await self.credential.get_token(self.scope)
        return {"Authorization": f"Bearer {token.token}"}

    async def close(self) -> None:
        await self.credential.close()


class StorageAccountKeyError(ResourceError):
    """Retrieving storage account keys failed.

    Attributes:
        account_exists: Whether the account should still be assumed to exist.
    """

    def __init__(self, message: str, account_exists: bool) -> None:
        super().__init__(message, resource_type="azurerm_storage_account")
        self.account_exists = account_exists


class ArmClient:
    """ARM operations shared by every azurerm resource.

    Args:
        client: HTTP client for the Resource Manager endpoint.
        subscription_id: Subscription every resource id is scoped to.
        environment: The Azure cloud in use.
        logger: Log instance.
        skip_provider_registration: Do not register the required resource providers.
        require_resources_to_be_imported: Refuse to create resources that already exist.
        partner_id: Partner id, appended to the user agent.
    """

    polling_duration = 180 * 60
    poll_interval = 10.0

    def __init__(
        self,
        client: CustomClient,
        subscription_id: str,
        environment: Environment,
        logger: Log,
        skip_provider_registration: bool = False,
        require_resources_to_be_imported: bool = False,
        partner_id: str = "",
    ) -> None:
        self.client = client
        self.subscription_id = subscription_id
        self.environment = environment
        self.logger = logger
        self.skip_provider_registration = skip_provider_registration
        self.require_resources_to_be_imported = require_resources_to_be_imported
        self.partner_id = partner_id
        self._storage_key_cache: Dict[str, str] = {}
        self._storage_key_lock = asyncio.Lock()

    def resource_path(self, resource_group: str, namespace: str, *segments: str) -> str:
        path = f"/subscriptions/{self.subscription_id}/resourceGroups/{resource_group}/providers/{namespace}"
        return "/".join([path, *segments])

    async def get(self, path: str, api_version: str) -> Any:
        return await self.client.get(path, params={"api-version": api_version})

    async def put(self, path: str, body: Dict, api_version: str) -> Any:
        """PUT a resource and wait for the operation to finish."""
        resp = await self.client.request("PUT", path, body=body, params={"api-version": api_version})
        await self.wait_for_completion(resp)
        return resp.body

    async def delete(self, path: str, api_version: str) -> None:
        """DELETE a resource and wait for the operation to finish."""
        resp = await self.client.request("DELETE", path, params={"api-version": api_version})
        await self.wait_for_completion(resp)

    async def wait_for_completion(self, resp: APIResponse) -> None:
        """Poll a long running operation until it reaches a terminal state.

        ``Azure-AsyncOperation`` is preferred over the ``Location`` of a 202.
        Responses carrying neither completed synchronously.

        Raises:
            ResourceError: If the operation failed, was cancelled or exceeded ``polling_duration``.
        """
        async_url = resp.header("Azure-AsyncOperation")
        location_url = resp.header("Location")
        if not async_url and not (resp.status == 202 and location_url):
            return

        deadline = time.monotonic() + self.polling_duration
        retry_after = resp.header("Retry-After")
        while True:
            await asyncio.sleep(self._poll_delay(retry_after))

            if async_url:
                poll = await self.client.request("GET", async_url)
                status = str((poll.body or {}).get("status", "")).lower() if isinstance(poll.body, dict) else ""
                if status == TERMINAL_SUCCEEDED:
                    return
                if status in TERMINAL_FAILED:
                    raise ResourceError(f"Long running operation {status}: {error_message(poll.body)}")
            else:
                poll = await self.client.request("GET", location_url)
                if poll.status != 202:
                    return

            if time.monotonic() >= deadline:
                raise ResourceError(f"Timed out after {self.polling_duration}s waiting for long running operation")
            retry_after = poll.header("Retry-After")

    def _poll_delay(self, retry_after: Optional[str]) -> float:
        if retry_after:
            try:
                return float(retry_after)
            except ValueError:
                pass
        return self.poll_interval

    async def register_providers(self, namespaces: Optional[List[str]] = None) -> None:
        """Register the resource providers the azurerm resources need."""
        if self.skip_provider_registration:
            self.logger.debug("Skipping resource provider registration")
            return

        namespaces = namespaces or REQUIRED_RESOURCE_PROVIDERS
        resp = await self.client.get(
            f"/subscriptions/{self.subscription_id}/providers", params={"api-version": PROVIDERS_API_VERSION}
        )
        states = {
            p.get("namespace", "").lower(): p.get("registrationState", "")
            for p in (resp or {}).get("value", [])
        }

        for namespace in namespaces:
            if states.get(namespace.lower(), "").lower() == "registered":
                continue
            self.logger.info(f"Registering resource provider {namespace}")
            await self.client.post(
                f"/subscriptions/{self.subscription_id}/providers/{namespace}/register",
                params={"api-version": PROVIDERS_API_VERSION},
            )

    async def get_key_for_storage_account(self, resource_group: str, name: str) -> Tuple[str, bool]:
        """Return the first access key of a storage account, cached for the process lifetime.

        Args:
            resource_group: Resource group of the account.
            name: Storage account name.

        Returns:
            A tuple of (key, account_exists). A missing account yields ("", False).

        Raises:
            StorageAccountKeyError: When the keys cannot be retrieved or are empty.
        """
        cache_index = f"{resource_group}/{name}"
        key = self._storage_key_cache.get(cache_index)
        if key is not None:
            return key, True

        async with self._storage_key_lock:
            key = self._storage_key_cache.get(cache_index)
            if key is not None:
                return key, True

            path = self.resource_path(resource_group, "Microsoft.Storage", "storageAccounts", name, "listKeys")
            try:
                resp = await self.client.post(path, params={"api-version": STORAGE_API_VERSION})
            except CustomClientHTTPError as e:
                if response_was_not_found(e):
                    return "", False
                # Any failure other than a 404 leaves the account assumed to exist.
                raise StorageAccountKeyError(
                    f"Error retrieving keys for storage account {name!r}: {e}", account_exists=True
                ) from e

            keys = (resp or {}).get("keys")
            if keys is None:
                raise StorageAccountKeyError(f"Nil key returned for storage account {name!r}", account_exists=False)
            if len(keys) == 0:
                raise StorageAccountKeyError(f"No keys returned for storage account {name!r}", account_exists=False)

            key = keys[0].get("value")
            if key is None:
                raise StorageAccountKeyError(
                    f"The first key returned is nil for storage account {name!r}", account_exists=False
                )

            self._storage_key_cache[cache_index] = key
            return key, True
