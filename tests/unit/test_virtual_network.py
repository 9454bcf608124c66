# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

"""Unit tests for the Virtual Network resource."""

import asyncio

import pytest
from unittest.mock import AsyncMock

from pureport_terraform.azurerm.model.ddos_protection_plan import NetworkDDoSProtectionPlan
from pureport_terraform.azurerm.model.virtual_network import VirtualNetwork
from pureport_terraform.utils.resource_utils import CustomClientHTTPError, ResourceError

VNET_PATH = "/subscriptions/sub-1/resourceGroups/rg1/providers/Microsoft.Network/virtualNetworks/vnet1"
PLAN_ID = "/subscriptions/sub-1/resourceGroups/rg1/providers/Microsoft.Network/ddosProtectionPlans/plan1"

WIRE_NETWORK = {
    "id": VNET_PATH,
    "name": "vnet1",
    "location": "westeurope",
    "tags": {},
    "properties": {
        "resourceGuid": "guid-1",
        "addressSpace": {"addressPrefixes": ["10.0.0.0/16"]},
        "dhcpOptions": {"dnsServers": ["10.0.0.4"]},
        "ddosProtectionPlan": {"id": PLAN_ID},
        "enableDdosProtection": True,
    },
}
CONFIG = {
    "name": "vnet1",
    "location": "westeurope",
    "resource_group_name": "rg1",
    "address_space": ["10.0.0.0/16"],
    "dns_servers": ["10.0.0.4"],
    "ddos_protection_plan": {"id": PLAN_ID, "enable": True},
}


@pytest.fixture
def vnet(config):
    """Create a VirtualNetwork instance with a mocked ARM client."""
    config.arm_client.get = AsyncMock(return_value=WIRE_NETWORK)
    config.arm_client.put = AsyncMock(return_value={})
    config.arm_client.delete = AsyncMock()
    return VirtualNetwork(config)


def resource_data(vnet, raw=None, **kwargs):
    normalized, _, errors = vnet.validate(raw or CONFIG)
    assert errors == []
    return vnet.resource_data(config=normalized, **kwargs)


def record_acquisitions(mutex_kv):
    order = []
    original = mutex_kv.acquire

    async def _acquire(key):
        order.append(key)
        await original(key)

    mutex_kv.acquire = _acquire
    return order


class TestValidate:
    """Tests for configuration validation."""

    def test_invalid_cidr(self, vnet):
        """Test that address_space entries must be CIDRs."""
        _, _, errors = vnet.validate({**CONFIG, "address_space": ["10.0.0.0"]})
        assert len(errors) == 1

    def test_address_space_required(self, vnet):
        """Test that at least one address space is needed."""
        _, _, errors = vnet.validate({**CONFIG, "address_space": []})
        assert len(errors) == 1


class TestCreateResource:
    """Tests for the create_resource method."""

    @pytest.mark.asyncio
    async def test_create(self, vnet, config):
        """Test the PUT body and the state read back."""
        d = resource_data(vnet, is_new=True)

        await vnet.create_resource(d)

        config.arm_client.put.assert_awaited_once_with(
            VNET_PATH,
            {
                "location": "westeurope",
                "tags": {},
                "properties": {
                    "addressSpace": {"addressPrefixes": ["10.0.0.0/16"]},
                    "dhcpOptions": {"dnsServers": ["10.0.0.4"]},
                    "ddosProtectionPlan": {"id": PLAN_ID},
                    "enableDdosProtection": True,
                },
            },
            "2018-12-01",
        )
        assert d.id == VNET_PATH
        assert d.get("guid") == "guid-1"
        assert d.get("ddos_protection_plan") == [{"id": PLAN_ID, "enable": True}]

    @pytest.mark.asyncio
    async def test_lock_order(self, vnet, config):
        """Test that the plan and network are locked in sorted order."""
        order = record_acquisitions(config.mutex_kv)

        await vnet.create_resource(resource_data(vnet, is_new=True))

        assert order == ["azurerm_ddos_protection_plan.plan1", "azurerm_virtual_network.vnet1"]
        assert not config.mutex_kv.locked("azurerm_virtual_network.vnet1")

    @pytest.mark.asyncio
    async def test_invalid_plan_id(self, vnet):
        """Test that a malformed plan id is reported before any call."""
        raw = {**CONFIG, "ddos_protection_plan": {"id": "/subscriptions/sub-1/resourceGroups/rg1", "enable": True}}

        with pytest.raises(ResourceError) as exc:
            await vnet.create_resource(resource_data(vnet, raw, is_new=True))

        assert "DDoS Protection Plan" in str(exc.value)

    @pytest.mark.asyncio
    async def test_concurrent_plan_and_network(self, vnet, config):
        """Test that a plan update and a network update touching each other both complete."""
        plan = NetworkDDoSProtectionPlan(config)
        wire_plan = {"id": PLAN_ID, "name": "plan1", "location": "westeurope", "properties": {}}

        async def _get(path, api_version):
            return wire_plan if "ddosProtectionPlans" in path else WIRE_NETWORK

        async def _put(*args):
            await asyncio.sleep(0)
            return {}

        config.arm_client.get.side_effect = _get
        config.arm_client.put.side_effect = _put
        plan_data = plan.resource_data(
            config=plan.validate({"name": "plan1", "location": "westeurope", "resource_group_name": "rg1"})[0],
            prior={"virtual_network_ids": [VNET_PATH]},
            _id=PLAN_ID,
        )
        vnet_data = resource_data(vnet, _id=VNET_PATH)

        await asyncio.wait_for(
            asyncio.gather(plan.update_resource(plan_data), vnet.update_resource(vnet_data)), timeout=5
        )

        assert config.arm_client.put.await_count == 2

    @pytest.mark.asyncio
    async def test_update_clears_removed_attributes(self, vnet, config):
        """Test that tags, DNS servers and the plan dropped from config are cleared."""
        raw = {k: v for k, v in CONFIG.items() if k not in ("dns_servers", "ddos_protection_plan")}
        prior = {**CONFIG, "tags": {"env": "prod"}, "ddos_protection_plan": [{"id": PLAN_ID, "enable": True}]}
        order = record_acquisitions(config.mutex_kv)

        await vnet.update_resource(resource_data(vnet, raw, prior=prior, _id=VNET_PATH))

        config.arm_client.put.assert_awaited_once_with(
            VNET_PATH,
            {
                "location": "westeurope",
                "tags": {},
                "properties": {
                    "addressSpace": {"addressPrefixes": ["10.0.0.0/16"]},
                    "dhcpOptions": {"dnsServers": []},
                },
            },
            "2018-12-01",
        )
        assert order == ["azurerm_virtual_network.vnet1"]


class TestReadResource:
    """Tests for the read_resource method."""

    @pytest.mark.asyncio
    async def test_read_without_plan(self, vnet, config):
        """Test reading a network without DDoS protection."""
        wire = {**WIRE_NETWORK, "properties": {"addressSpace": {"addressPrefixes": ["10.1.0.0/16"]}}}
        config.arm_client.get.return_value = wire
        d = vnet.resource_data(_id=VNET_PATH)

        await vnet.read_resource(d)

        assert d.get("address_space") == ["10.1.0.0/16"]
        assert d.get("dns_servers") == []
        assert d.get("ddos_protection_plan") == []


class TestDeleteResource:
    """Tests for the delete_resource method."""

    @pytest.mark.asyncio
    async def test_delete_not_found(self, vnet, config):
        """Test that a network already gone is treated as deleted."""
        config.arm_client.delete.side_effect = CustomClientHTTPError(404, "Error: not found")
        d = vnet.resource_data(_id=VNET_PATH)

        await vnet.delete_resource(d)

        assert d.id == ""
        assert not config.mutex_kv.locked("azurerm_virtual_network.vnet1")

    @pytest.mark.asyncio
    async def test_delete_error(self, vnet, config):
        """Test that other delete errors are raised."""
        config.arm_client.delete.side_effect = CustomClientHTTPError(409, "Error: in use")

        with pytest.raises(ResourceError):
            await vnet.delete_resource(vnet.resource_data(_id=VNET_PATH))
