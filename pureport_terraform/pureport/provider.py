# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

from __future__ import annotations
from typing import TYPE_CHECKING, Dict

from pureport_terraform import __version__
from pureport_terraform.pureport.model.aws_connection import AWSConnection
from pureport_terraform.pureport.model.azure_connection import AzureConnection
from pureport_terraform.pureport.model.cloud_regions import CloudRegions
from pureport_terraform.pureport.model.cloud_services import CloudServices
from pureport_terraform.pureport.model.dummy_connection import DummyConnection
from pureport_terraform.pureport.model.google_cloud_connection import GoogleCloudConnection
from pureport_terraform.pureport.model.locations import Locations
from pureport_terraform.pureport.model.network import Network
from pureport_terraform.pureport.session import DEFAULT_API_URL, PureportAuth, load_profile
from pureport_terraform.utils.base_provider import BaseProvider
from pureport_terraform.utils.custom_client import BearerTokenAuth, ClientAuth, CustomClient
from pureport_terraform.utils.resource_utils import ResourceError
from pureport_terraform.utils.schema import Schema, ValueType
from pureport_terraform.utils.validation import int_between

if TYPE_CHECKING:
    from pureport_terraform.utils.resource_data import ResourceData


class PureportProvider(BaseProvider):
    """Pureport API provider.

    Credentials are taken from the provider settings (or their environment
    variables) first, then from the selected profile of the Pureport
    credentials file. A bearer ``token`` bypasses the key/secret login.
    """

    name = "pureport"
    schema = {
        "access_key": Schema(ValueType.STRING, optional=True, default="", env_default=["PUREPORT_API_KEY"]),
        "secret_key": Schema(
            ValueType.STRING, optional=True, default="", sensitive=True, env_default=["PUREPORT_API_SECRET"]
        ),
        "profile": Schema(ValueType.STRING, optional=True, default="", env_default=["PUREPORT_PROFILE"]),
        "token": Schema(ValueType.STRING, optional=True, default="", sensitive=True, env_default=["PUREPORT_TOKEN"]),
        "max_retries": Schema(ValueType.INT, optional=True, default=25, validate_func=int_between(0, 100)),
        "api_url": Schema(ValueType.STRING, optional=True, default="", env_default=["PUREPORT_ENDPOINT"]),
    }
    resources = {
        AWSConnection.resource_type: AWSConnection,
        AzureConnection.resource_type: AzureConnection,
        GoogleCloudConnection.resource_type: GoogleCloudConnection,
        DummyConnection.resource_type: DummyConnection,
        Network.resource_type: Network,
    }
    data_sources = {
        CloudRegions.resource_type: CloudRegions,
        CloudServices.resource_type: CloudServices,
        Locations.resource_type: Locations,
    }

    def build_auth(self, d: ResourceData, api_url: str, profile: Dict[str, str]) -> ClientAuth:
        token = d.get("token")
        if token:
            return BearerTokenAuth(token)

        access_key = d.get("access_key") or profile.get("api_key", "")
        secret_key = d.get("secret_key") or profile.get("api_secret", "")
        if not (access_key and secret_key):
            raise ResourceError(
                "No Pureport credentials found: set access_key and secret_key, a token, or a credentials profile"
            )
        return PureportAuth(api_url, access_key, secret_key, timeout=self.config.http_client_timeout)

    async def configure(self, d: ResourceData) -> None:
        try:
            profile = load_profile(d.get("profile"))
        except ValueError as e:
            raise ResourceError(str(e)) from e
        api_url = d.get("api_url") or profile.get("api_url") or DEFAULT_API_URL

        client = CustomClient(
            api_url,
            auth=self.build_auth(d, api_url, profile),
            timeout=self.config.http_client_timeout,
            retry_timeout=self.config.http_client_retry_timeout,
            max_retries=d.get("max_retries"),
            user_agent=f"pureport-terraform/{__version__}",
            logger=self.config.logger,
        )
        await client._init_session()
        self.config.pureport_client = client
        self.config.logger.debug(f"Pureport client configured for {api_url}")

    async def close(self) -> None:
        if self.config.pureport_client is not None:
            await self.config.pureport_client._end_session()
            self.config.pureport_client = None
