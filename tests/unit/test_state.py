# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

"""Unit tests for the local state file."""

import json
import os

import pytest

from pureport_terraform.utils.state import State


@pytest.fixture
def state(tmp_path):
    return State(str(tmp_path / "terraform.tfstate.json"))


class TestState:
    """Tests for State."""

    def test_load_missing_file(self, state):
        """Test that a missing state file loads as empty."""
        assert state.load().addresses() == []

    def test_dump_and_load(self, state):
        """Test that entries survive a dump/load cycle."""
        state.put("pureport_network", "main", "net-1", {"name": "main"}, "pureport", ["b", "a"])
        state.dump_state()

        loaded = State(state.path).load()
        assert loaded.serial == 1
        assert loaded.get("pureport_network", "main") == {
            "id": "net-1",
            "provider": "pureport",
            "attributes": {"name": "main"},
            "depends_on": ["a", "b"],
        }

    def test_serial_increments(self, state):
        """Test that every dump bumps the serial."""
        state.dump_state()
        state.dump_state()
        with open(state.path, encoding="utf-8") as f:
            assert json.load(f)["serial"] == 2

    def test_no_temp_files_left(self, state, tmp_path):
        """Test that the atomic write leaves only the state file."""
        state.dump_state()
        assert os.listdir(tmp_path) == ["terraform.tfstate.json"]

    def test_remove(self, state):
        """Test that removing the last entry of a type drops the type."""
        state.put("pureport_network", "main", "net-1", {}, "pureport")
        state.remove("pureport_network", "main")
        state.remove("pureport_network", "missing")
        assert "pureport_network" not in state.resources

    def test_addresses_sorted(self, state):
        """Test that addresses are sorted by type then name."""
        state.put("pureport_network", "b", "2", {}, "pureport")
        state.put("azurerm_virtual_network", "a", "3", {}, "azurerm")
        state.put("pureport_network", "a", "1", {}, "pureport")
        assert state.addresses() == [
            ("azurerm_virtual_network", "a"),
            ("pureport_network", "a"),
            ("pureport_network", "b"),
        ]

    def test_unsupported_version(self, state):
        """Test that a state file of another version is refused."""
        with open(state.path, "w", encoding="utf-8") as f:
            json.dump({"version": 99, "resources": {}}, f)

        with pytest.raises(ValueError):
            state.load()
