# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

"""Unit tests for the Storage Account data source."""

import pytest
from unittest.mock import AsyncMock

from pureport_terraform.azurerm.model.storage_account import StorageAccount
from pureport_terraform.utils.resource_utils import ResourceError

ACCOUNT_PATH = "/subscriptions/sub-1/resourceGroups/rg1/providers/Microsoft.Storage/storageAccounts/acct1"

WIRE_ACCOUNT = {
    "id": ACCOUNT_PATH,
    "name": "acct1",
    "location": "West Europe",
    "kind": "StorageV2",
    "sku": {"name": "Standard_LRS", "tier": "Standard"},
    "properties": {"primaryEndpoints": {"blob": "https://acct1.blob.core.windows.net/"}},
}


@pytest.fixture
def account(config):
    """Create a StorageAccount instance with a mocked ARM client."""
    config.arm_client.get = AsyncMock(return_value=WIRE_ACCOUNT)
    config.arm_client.get_key_for_storage_account = AsyncMock(return_value=("secret-1", True))
    return StorageAccount(config)


def resource_data(account):
    return account.resource_data(config={"name": "acct1", "resource_group_name": "rg1"})


class TestReadResource:
    """Tests for the read_resource method."""

    @pytest.mark.asyncio
    async def test_read(self, account, config):
        """Test flattening an account with its access key."""
        d = resource_data(account)

        await account.read_resource(d)

        config.arm_client.get_key_for_storage_account.assert_awaited_once_with("rg1", "acct1")
        assert d.id == ACCOUNT_PATH
        assert d.get("location") == "westeurope"
        assert d.get("account_kind") == "StorageV2"
        assert d.get("account_tier") == "Standard"
        assert d.get("account_replication_type") == "LRS"
        assert d.get("primary_blob_endpoint") == "https://acct1.blob.core.windows.net/"
        assert d.get("primary_access_key") == "secret-1"
        assert d.get("tags") == {}

    @pytest.mark.asyncio
    async def test_not_found(self, account, config):
        """Test that a missing account is an error."""
        config.arm_client.get.return_value = None

        with pytest.raises(ResourceError) as exc:
            await account.read_resource(resource_data(account))

        assert "was not found" in str(exc.value)

    @pytest.mark.asyncio
    async def test_keys_gone(self, account, config):
        """Test that an account vanishing while reading keys is an error."""
        config.arm_client.get_key_for_storage_account.return_value = ("", False)

        with pytest.raises(ResourceError) as exc:
            await account.read_resource(resource_data(account))

        assert "disappeared" in str(exc.value)
