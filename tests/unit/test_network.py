# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

"""Unit tests for the Network resource."""

import pytest

from pureport_terraform.pureport.model.network import Network
from pureport_terraform.utils.custom_client import APIResponse
from pureport_terraform.utils.resource_utils import CustomClientHTTPError, ResourceError

WIRE_NETWORK = {
    "id": "net-1",
    "href": "/networks/net-1",
    "name": "main",
    "description": "primary",
    "account": {"id": "ac-1", "href": "/accounts/ac-1"},
}


@pytest.fixture
def network(config):
    """Create a Network instance for testing."""
    return Network(config)


class TestResourceConfig:
    """Tests for the resource configuration."""

    def test_resource_type(self, network):
        """Test that resource_type is correctly set."""
        assert network.resource_type == "pureport_network"

    def test_account_id_forces_new(self, network):
        """Test that moving a network to another account replaces it."""
        diff = network.diff({"name": "main", "account_id": "ac-1"}, {"name": "main", "account_id": "ac-2"})
        assert diff.requires_replace == ["account_id"]


class TestCreateResource:
    """Tests for the create_resource method."""

    @pytest.mark.asyncio
    async def test_create(self, network, config):
        """Test creating a network under its account."""
        client = config.pureport_client
        client.request.return_value = APIResponse(201, {"Location": "/networks/net-1"})
        client.get.return_value = WIRE_NETWORK
        d = network.resource_data(config={"name": "main", "description": "primary", "account_id": "ac-1"}, is_new=True)

        await network.create_resource(d)

        client.request.assert_awaited_once_with(
            "POST", "/accounts/ac-1/networks", body={"name": "main", "description": "primary"}
        )
        assert d.state() == {"name": "main", "description": "primary", "account_id": "ac-1", "href": "/networks/net-1"}

    @pytest.mark.asyncio
    async def test_create_error(self, network, config):
        """Test that API errors surface as resource errors."""
        config.pureport_client.request.side_effect = CustomClientHTTPError(403, "forbidden")
        d = network.resource_data(config={"name": "main", "account_id": "ac-1"}, is_new=True)

        with pytest.raises(ResourceError):
            await network.create_resource(d)


class TestReadResource:
    """Tests for the read_resource method."""

    @pytest.mark.asyncio
    async def test_read_sets_account(self, network, config):
        """Test that the account id is read from the nested account link."""
        config.pureport_client.get.return_value = WIRE_NETWORK
        d = network.resource_data(_id="net-1")

        await network.read_resource(d)

        config.pureport_client.get.assert_awaited_once_with("/networks/net-1")
        assert d.get("account_id") == "ac-1"

    @pytest.mark.asyncio
    async def test_read_not_found(self, network, config):
        """Test that a vanished network clears the id."""
        config.pureport_client.get.side_effect = CustomClientHTTPError(404, "")
        d = network.resource_data(_id="net-1")

        await network.read_resource(d)

        assert d.id == ""


class TestUpdateDeleteResource:
    """Tests for update_resource and delete_resource."""

    @pytest.mark.asyncio
    async def test_update(self, network, config):
        """Test that update puts name, description and id."""
        client = config.pureport_client
        client.get.return_value = {**WIRE_NETWORK, "name": "renamed"}
        d = network.resource_data(config={"name": "renamed", "account_id": "ac-1"}, _id="net-1")

        await network.update_resource(d)

        client.put.assert_awaited_once_with(
            "/networks/net-1", {"name": "renamed", "id": "net-1", "description": ""}
        )
        assert d.get("name") == "renamed"

    @pytest.mark.asyncio
    async def test_update_clears_removed_description(self, network, config):
        """Test that a description dropped from the configuration is cleared."""
        client = config.pureport_client
        client.get.return_value = {**WIRE_NETWORK, "description": ""}
        prior = {"name": "main", "description": "primary", "account_id": "ac-1"}
        d = network.resource_data(config={"name": "main", "account_id": "ac-1"}, prior=prior, _id="net-1")

        await network.update_resource(d)

        _, body = client.put.call_args.args
        assert body["description"] == ""
        assert d.get("description") == ""

    @pytest.mark.asyncio
    async def test_delete_not_found_ignored(self, network, config):
        """Test that deleting a missing network succeeds."""
        config.pureport_client.delete.side_effect = CustomClientHTTPError(404, "")
        d = network.resource_data(_id="net-1")

        await network.delete_resource(d)

        assert d.id == ""

    @pytest.mark.asyncio
    async def test_delete_error(self, network, config):
        """Test that other delete errors are raised."""
        config.pureport_client.delete.side_effect = CustomClientHTTPError(409, "has connections")
        d = network.resource_data(_id="net-1")

        with pytest.raises(ResourceError):
            await network.delete_resource(d)
