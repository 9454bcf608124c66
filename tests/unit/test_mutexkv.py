# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

"""Unit tests for the named lock map."""

import asyncio

import pytest

from pureport_terraform.utils.mutexkv import MutexKV, lock_key


@pytest.fixture
def mutex_kv():
    return MutexKV()


def record_acquisitions(mutex_kv):
    order = []
    original = mutex_kv.acquire

    async def _acquire(key):
        order.append(key)
        await original(key)

    mutex_kv.acquire = _acquire
    return order


class TestLockKeys:
    """Tests for locking several keys at once."""

    @pytest.mark.asyncio
    async def test_sorted_order(self, mutex_kv):
        """Test that keys are acquired in sorted order whatever the input order."""
        order = record_acquisitions(mutex_kv)

        async with mutex_kv.lock_keys(["c", "a", "b"]) as ordered:
            assert ordered == ["a", "b", "c"]
            assert all(mutex_kv.locked(k) for k in ordered)

        assert order == ["a", "b", "c"]
        assert not any(mutex_kv.locked(k) for k in ["a", "b", "c"])

    @pytest.mark.asyncio
    async def test_duplicates_locked_once(self, mutex_kv):
        """Test that a repeated key does not deadlock."""
        async with mutex_kv.lock_keys(["a", "a"]) as ordered:
            assert ordered == ["a"]

    @pytest.mark.asyncio
    async def test_released_on_exception(self, mutex_kv):
        """Test that every lock is released when the body raises."""
        with pytest.raises(RuntimeError):
            async with mutex_kv.lock_keys(["a", "b"]):
                raise RuntimeError("boom")

        assert not mutex_kv.locked("a")
        assert not mutex_kv.locked("b")

    @pytest.mark.asyncio
    async def test_released_on_cancellation(self, mutex_kv):
        """Test that every lock is released when the holder is cancelled."""
        entered = asyncio.Event()

        async def holder():
            async with mutex_kv.lock_keys(["a", "b"]):
                entered.set()
                await asyncio.sleep(3600)

        task = asyncio.create_task(holder())
        await entered.wait()
        assert mutex_kv.locked("a")

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert not mutex_kv.locked("a")
        assert not mutex_kv.locked("b")

    @pytest.mark.asyncio
    async def test_mutual_exclusion(self, mutex_kv):
        """Test that overlapping key sets never run concurrently."""
        holders = 0
        max_holders = 0

        async def worker(keys):
            nonlocal holders, max_holders
            async with mutex_kv.lock_keys(keys):
                holders += 1
                max_holders = max(max_holders, holders)
                await asyncio.sleep(0)
                holders -= 1

        await asyncio.wait_for(
            asyncio.gather(worker(["a", "b"]), worker(["b", "a"]), worker(["b", "c"]), worker(["c", "a"])),
            timeout=5,
        )
        assert max_holders == 1


class TestLockResources:
    """Tests for locking names across resource types."""

    def test_lock_key(self):
        """Test the key format."""
        assert lock_key("plan1", "azurerm_ddos_protection_plan") == "azurerm_ddos_protection_plan.plan1"

    @pytest.mark.asyncio
    async def test_global_order_across_types(self, mutex_kv):
        """Test that names of different types are acquired in one sorted pass."""
        order = record_acquisitions(mutex_kv)

        async with mutex_kv.lock_resources(
            {"azurerm_virtual_network": ["vnet2", "vnet1"], "azurerm_ddos_protection_plan": ["plan1"]}
        ):
            pass

        assert order == [
            "azurerm_ddos_protection_plan.plan1",
            "azurerm_virtual_network.vnet1",
            "azurerm_virtual_network.vnet2",
        ]

    @pytest.mark.asyncio
    async def test_lock_by_name(self, mutex_kv):
        """Test locking a single name."""
        async with mutex_kv.lock_by_name("vnet1", "azurerm_virtual_network"):
            assert mutex_kv.locked("azurerm_virtual_network.vnet1")
        assert not mutex_kv.locked("azurerm_virtual_network.vnet1")

    @pytest.mark.asyncio
    async def test_lock_multiple_by_name_empty(self, mutex_kv):
        """Test that an empty name list locks nothing."""
        async with mutex_kv.lock_multiple_by_name([], "azurerm_virtual_network") as ordered:
            assert ordered == []
