# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

"""Unit tests for the AzureRM provider."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from pureport_terraform.azurerm import provider as provider_module
from pureport_terraform.azurerm.config import ArmClient, correlation_request_id
from pureport_terraform.azurerm.provider import AzureRMProvider
from pureport_terraform.utils.custom_client import CustomClient
from pureport_terraform.utils.resource_utils import ResourceError

ENV_VARS = [
    "ARM_SUBSCRIPTION_ID",
    "ARM_CLIENT_ID",
    "ARM_CLIENT_SECRET",
    "ARM_TENANT_ID",
    "ARM_ENVIRONMENT",
    "ARM_PARTNER_ID",
    "ARM_SKIP_PROVIDER_REGISTRATION",
    "ARM_PROVIDER_STRICT",
    "AZURE_HTTP_USER_AGENT",
]
PARTNER_ID = "6f4b8c86-7d0d-4f3f-9f0b-2f8d1c7a2e11"


@pytest.fixture
def credential():
    return AsyncMock()


@pytest.fixture
def provider(config, monkeypatch, credential):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("ARM_CORRELATION_REQUEST_ID", "corr-1")
    correlation_request_id.cache_clear()
    monkeypatch.setattr(CustomClient, "_init_session", AsyncMock())
    monkeypatch.setattr(ArmClient, "register_providers", AsyncMock())
    monkeypatch.setattr(provider_module, "build_credential", MagicMock(return_value=credential))
    yield AzureRMProvider(config)
    correlation_request_id.cache_clear()


async def configure(provider, settings):
    normalized, _, errors = provider.validate(settings)
    assert errors == []
    await provider.configure(provider.provider_data(normalized))
    return provider.config.arm_client


class TestValidate:
    """Tests for provider settings validation."""

    def test_defaults(self, provider):
        """Test the default settings."""
        normalized, _, errors = provider.validate({})
        assert errors == []
        assert normalized["environment"] == "public"
        assert normalized["skip_provider_registration"] is False

    def test_invalid_partner_id(self, provider):
        """Test that the partner id must be a UUID."""
        _, _, errors = provider.validate({"partner_id": "not-a-uuid"})
        assert len(errors) == 1

    def test_invalid_environment(self, provider):
        """Test that unknown environments are rejected."""
        _, _, errors = provider.validate({"environment": "mars"})
        assert len(errors) == 1

    def test_env_bool(self, provider, monkeypatch):
        """Test that boolean settings are read from the environment."""
        monkeypatch.setenv("ARM_SKIP_PROVIDER_REGISTRATION", "true")
        normalized, _, _ = provider.validate({})
        assert normalized["skip_provider_registration"] is True


class TestConfigure:
    """Tests for building the ARM client."""

    @pytest.mark.asyncio
    async def test_missing_subscription(self, provider):
        """Test that a subscription id is required."""
        with pytest.raises(ResourceError):
            await configure(provider, {})

    @pytest.mark.asyncio
    async def test_configure(self, provider, credential):
        """Test the client built from a service principal."""
        arm = await configure(
            provider,
            {
                "subscription_id": "sub-9",
                "client_id": "client",
                "client_secret": "secret",
                "tenant_id": "tenant",
                "partner_id": PARTNER_ID,
                "environment": "china",
            },
        )

        provider_module.build_credential.assert_called_once()
        assert arm.subscription_id == "sub-9"
        assert arm.partner_id == PARTNER_ID
        assert arm.client.host == "https://management.chinacloudapi.cn"
        assert arm.client.default_headers == {"x-ms-correlation-request-id": "corr-1"}
        assert arm.client.user_agent.endswith(f"pid-{PARTNER_ID}")
        assert arm.client.auth.credential is credential
        assert arm.client.auth.scope == "https://management.chinacloudapi.cn/.default"
        ArmClient.register_providers.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_strict_mode(self, provider):
        """Test that strict import mode reaches the client."""
        arm = await configure(provider, {"subscription_id": "sub-9", "require_resources_to_be_imported": True})
        assert arm.require_resources_to_be_imported is True

    @pytest.mark.asyncio
    async def test_close(self, provider, credential):
        """Test that closing the provider closes the credential."""
        await configure(provider, {"subscription_id": "sub-9"})

        await provider.close()

        credential.close.assert_awaited_once()
        assert provider.config.arm_client is None
