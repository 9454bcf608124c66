# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

"""Unit tests for the plan/apply engine, run against in-memory resources."""

import copy
import itertools
import json

import pytest
from unittest.mock import AsyncMock

from pureport_terraform.utils.base_resource import BaseResource, DataSource, ResourceConfig
from pureport_terraform.utils.resource_utils import (
    UNKNOWN_VALUE,
    ConfigValidationError,
    CycleError,
    ResourceError,
)
from pureport_terraform.utils.resources_handler import (
    ActionType,
    ResourcesHandler,
    find_references,
    load_document,
    reference_address,
    split_address,
)
from pureport_terraform.utils.schema import Schema, ValueType

DOCUMENT = {
    "provider": {"pureport": {"access_key": "k", "secret_key": "s"}},
    "resource": {
        "pureport_network": {"main": {"name": "main", "account_id": "ac-1"}},
        "pureport_dummy_connection": {
            "main": {"name": "conn", "network_id": "${pureport_network.main.id}"},
        },
    },
}


class FakeResource(BaseResource):
    prefix = "res"

    def __init__(self, config, events):
        super().__init__(config)
        self.remote = {}
        self.events = events
        self.fail_on = set()
        self.counter = itertools.count(1)

    def _attributes(self, d):
        return {k: d.get(k) for k, s in self.schema.items() if not s.is_computed_only()}

    async def create_resource(self, d):
        self.events.append(("create", self.resource_type, d.get("name")))
        if d.get("name") in self.fail_on:
            raise ResourceError("boom", self.resource_type)
        _id = f"{self.prefix}-{next(self.counter)}"
        self.remote[_id] = self._attributes(d)
        d.set_id(_id)
        await self.read_resource(d)

    async def read_resource(self, d):
        item = self.remote.get(d.id)
        if item is None:
            d.set_id("")
            return
        for k, v in item.items():
            d.set(k, v)
        d.set("href", f"/{self.prefix}/{d.id}")

    async def update_resource(self, d):
        self.events.append(("update", self.resource_type, d.get("name")))
        self.remote[d.id] = self._attributes(d)
        await self.read_resource(d)

    async def delete_resource(self, d):
        self.events.append(("delete", self.resource_type, d.get("name")))
        self.remote.pop(d.id, None)
        d.set_id("")


class FakeNetwork(FakeResource):
    resource_type = "pureport_network"
    resource_config = ResourceConfig(
        schema={
            "name": Schema(ValueType.STRING, required=True),
            "account_id": Schema(ValueType.STRING, required=True, force_new=True),
            "href": Schema(ValueType.STRING, computed=True),
        }
    )
    prefix = "net"


class FakeConnection(FakeResource):
    resource_type = "pureport_dummy_connection"
    resource_config = ResourceConfig(
        schema={
            "name": Schema(ValueType.STRING, required=True),
            "network_id": Schema(ValueType.STRING, required=True, force_new=True),
            "href": Schema(ValueType.STRING, computed=True),
        }
    )
    prefix = "conn"


class FakeLocations(DataSource):
    resource_type = "pureport_locations"
    resource_config = ResourceConfig(
        schema={
            "name_regex": Schema(ValueType.STRING, optional=True),
            "locations": Schema(
                ValueType.LIST,
                computed=True,
                elem={"id": Schema(ValueType.STRING, computed=True), "name": Schema(ValueType.STRING, computed=True)},
            ),
        }
    )

    async def read_resource(self, d):
        d.set("locations", [{"id": "us-sea", "name": "Seattle"}])
        d.set_id("1234")


@pytest.fixture
def events():
    return []


@pytest.fixture
def fakes(config, events):
    networks = FakeNetwork(config, events)
    connections = FakeConnection(config, events)
    config.resources[networks.resource_type] = networks
    config.resources[connections.resource_type] = connections
    config.resources["data.pureport_locations"] = FakeLocations(config)
    config.configure_provider = AsyncMock()
    return networks, connections


def handler_for(config, document=None):
    return ResourcesHandler(config, document=copy.deepcopy(DOCUMENT if document is None else document))


class TestAddresses:
    """Tests for address and reference parsing."""

    def test_split_address(self):
        """Test resource and data source addresses."""
        assert split_address("pureport_network.main") == ("pureport_network", "main", False)
        assert split_address("data.pureport_locations.all") == ("pureport_locations", "all", True)

    def test_split_address_invalid(self):
        """Test that malformed addresses are rejected."""
        with pytest.raises(ValueError):
            split_address("pureport_network")

    def test_reference_address(self):
        """Test splitting references into address and attribute path."""
        assert reference_address("pureport_network.main.id") == ("pureport_network.main", "id")
        assert reference_address("data.pureport_locations.all.locations.0.href") == (
            "data.pureport_locations.all",
            "locations.0.href",
        )

    def test_reference_without_attribute(self):
        """Test that a reference must name an attribute."""
        with pytest.raises(ValueError):
            reference_address("pureport_network.main")

    def test_find_references(self):
        """Test that references are found at any depth."""
        value = {"network": [{"id": "${pureport_network.main.id}", "href": "x-${pureport_network.other.href}"}]}
        assert find_references(value) == {"pureport_network.main", "pureport_network.other"}


class TestParse:
    """Tests for reading the configuration document."""

    def test_declarations_and_providers(self, config, fakes):
        """Test that declarations, dependencies and provider settings are read."""
        handler = handler_for(config)

        assert sorted(handler.declarations) == ["pureport_dummy_connection.main", "pureport_network.main"]
        assert handler.declarations["pureport_dummy_connection.main"].depends_on == {"pureport_network.main"}
        assert config.provider_settings == {"pureport": {"access_key": "k", "secret_key": "s"}}

    def test_explicit_depends_on(self, config, fakes):
        """Test that depends_on is a dependency, not an attribute."""
        document = copy.deepcopy(DOCUMENT)
        document["resource"]["pureport_network"]["other"] = {
            "name": "other",
            "account_id": "ac-1",
            "depends_on": ["pureport_network.main"],
        }
        handler = handler_for(config, document)

        decl = handler.declarations["pureport_network.other"]
        assert "depends_on" not in decl.raw
        assert decl.depends_on == {"pureport_network.main"}

    def test_levels(self, config, fakes):
        """Test that dependencies come first."""
        handler = handler_for(config)
        assert handler.levels() == [["pureport_network.main"], ["pureport_dummy_connection.main"]]

    def test_cycle(self, config, fakes):
        """Test that a reference cycle is reported."""
        document = {
            "resource": {
                "pureport_network": {
                    "a": {"name": "${pureport_network.b.name}", "account_id": "ac-1"},
                    "b": {"name": "${pureport_network.a.name}", "account_id": "ac-1"},
                }
            }
        }
        handler = handler_for(config, document)

        with pytest.raises(CycleError):
            handler.levels()
        assert any("cycle" in e for e in handler.validate())

    def test_undeclared_reference(self, config, fakes):
        """Test that references to undeclared resources are reported."""
        document = {
            "resource": {"pureport_dummy_connection": {"c": {"name": "c", "network_id": "${pureport_network.x.id}"}}}
        }
        with pytest.raises(ConfigValidationError):
            handler_for(config, document).levels()

    def test_load_document_yaml(self, tmp_path):
        """Test that YAML documents are accepted."""
        path = tmp_path / "main.yaml"
        path.write_text("resource:\n  pureport_network:\n    main:\n      name: main\n")
        assert load_document(str(path)) == {"resource": {"pureport_network": {"main": {"name": "main"}}}}

    def test_load_document_json(self, tmp_path):
        """Test that JSON documents are accepted."""
        path = tmp_path / "main.tf.json"
        path.write_text(json.dumps(DOCUMENT))
        assert load_document(str(path)) == DOCUMENT

    def test_load_document_not_mapping(self, tmp_path):
        """Test that a non-mapping document is refused."""
        path = tmp_path / "main.json"
        path.write_text("[]")
        with pytest.raises(ValueError):
            load_document(str(path))


class TestValidate:
    """Tests for validate."""

    def test_valid(self, config, fakes):
        """Test that the example document validates."""
        assert handler_for(config).validate() == []

    def test_attribute_errors(self, config, fakes):
        """Test that schema errors carry the address."""
        document = {"resource": {"pureport_network": {"main": {"name": "main"}}}}
        assert handler_for(config, document).validate() == [
            "pureport_network.main: account_id: required attribute is not set"
        ]

    def test_unsupported_type(self, config, fakes):
        """Test that unsupported resource types are reported."""
        document = {"resource": {"pureport_bogus": {"main": {}}}}
        errors = handler_for(config, document).validate()
        assert len(errors) == 1
        assert "pureport_bogus" in errors[0]

    @pytest.mark.asyncio
    async def test_plan_refuses_invalid(self, config, fakes):
        """Test that plan raises on an invalid configuration."""
        document = {"resource": {"pureport_network": {"main": {"name": "main"}}}}
        with pytest.raises(ConfigValidationError):
            await handler_for(config, document).plan()


class TestInterpolate:
    """Tests for reference substitution."""

    @pytest.mark.asyncio
    async def test_known_values(self, config, fakes):
        """Test substitution of values present in state."""
        handler = handler_for(config)
        await handler.apply()

        assert handler.interpolate("${pureport_network.main.id}") == "net-1"
        assert handler.interpolate("prefix-${pureport_network.main.href}") == "prefix-/net/net-1"
        assert handler.interpolate({"a": ["${pureport_network.main.name}"]}) == {"a": ["main"]}

    def test_unknown_values(self, config, fakes):
        """Test that references to missing resources are known after apply."""
        handler = handler_for(config)
        assert handler.interpolate("${pureport_network.main.id}") == UNKNOWN_VALUE
        assert handler.interpolate("x-${pureport_network.main.id}") == UNKNOWN_VALUE

    def test_whole_reference_keeps_type(self, config, fakes):
        """Test that a whole-string reference yields the referenced value as is."""
        handler = handler_for(config)
        handler.data_values["data.pureport_locations.all"] = {
            "id": "1",
            "attributes": {"locations": [{"id": "us-sea", "name": "Seattle"}]},
        }
        assert handler.interpolate("${data.pureport_locations.all.locations}") == [{"id": "us-sea", "name": "Seattle"}]
        assert handler.interpolate("${data.pureport_locations.all.id}") == "1"


class TestPlanApply:
    """Tests for plan and apply."""

    @pytest.mark.asyncio
    async def test_create_in_dependency_order(self, config, fakes, events):
        """Test that an empty state plans creates and applies them in order."""
        handler = handler_for(config)

        actions = await handler.plan()
        assert [(a.address, a.action) for a in actions] == [
            ("pureport_network.main", ActionType.CREATE),
            ("pureport_dummy_connection.main", ActionType.CREATE),
        ]

        result = await handler.apply(actions)

        assert result.ok
        assert events == [("create", "pureport_network", "main"), ("create", "pureport_dummy_connection", "conn")]
        connection = config.state.get("pureport_dummy_connection", "main")
        assert connection["id"] == "conn-1"
        assert connection["attributes"]["network_id"] == "net-1"
        assert connection["depends_on"] == ["pureport_network.main"]
        assert connection["provider"] == "pureport"

        with open(config.state.path, encoding="utf-8") as f:
            assert "conn-1" in f.read()

    @pytest.mark.asyncio
    async def test_converged_plan_is_no_op(self, config, fakes):
        """Test that a second plan has nothing to do."""
        await handler_for(config).apply()

        actions = await handler_for(config).plan()

        assert {a.action for a in actions} == {ActionType.NO_OP}

    @pytest.mark.asyncio
    async def test_update_in_place(self, config, fakes, events):
        """Test that a non force_new change updates in place."""
        await handler_for(config).apply()
        document = copy.deepcopy(DOCUMENT)
        document["resource"]["pureport_network"]["main"]["name"] = "renamed"

        handler = handler_for(config, document)
        actions = await handler.plan()

        network = actions[0]
        assert network.action == ActionType.UPDATE
        assert network.changed == ["name"]
        assert actions[1].action == ActionType.NO_OP

        await handler.apply(actions)
        assert events[-1] == ("update", "pureport_network", "renamed")
        assert config.state.get("pureport_network", "main")["attributes"]["name"] == "renamed"

    @pytest.mark.asyncio
    async def test_replace_propagates_to_dependants(self, config, fakes, events):
        """Test that replacing a resource replaces dependants pointing at its id."""
        await handler_for(config).apply()
        document = copy.deepcopy(DOCUMENT)
        document["resource"]["pureport_network"]["main"]["account_id"] = "ac-2"

        handler = handler_for(config, document)
        actions = await handler.plan()

        assert [(a.action, a.requires_replace) for a in actions] == [
            (ActionType.REPLACE, ["account_id"]),
            (ActionType.REPLACE, ["network_id"]),
        ]

        result = await handler.apply(actions)

        assert result.ok
        network = config.state.get("pureport_network", "main")
        connection = config.state.get("pureport_dummy_connection", "main")
        assert network["id"] == "net-2"
        assert connection["attributes"]["network_id"] == "net-2"
        assert ("delete", "pureport_network", "main") in events

    @pytest.mark.asyncio
    async def test_orphans_deleted(self, config, fakes, events):
        """Test that state entries no longer declared are deleted."""
        await handler_for(config).apply()
        document = copy.deepcopy(DOCUMENT)
        del document["resource"]["pureport_dummy_connection"]

        handler = handler_for(config, document)
        actions = await handler.plan()

        assert [(a.address, a.action) for a in actions] == [
            ("pureport_network.main", ActionType.NO_OP),
            ("pureport_dummy_connection.main", ActionType.DELETE),
        ]

        await handler.apply(actions)
        assert config.state.get("pureport_dummy_connection", "main") is None
        assert events[-1] == ("delete", "pureport_dummy_connection", "conn")

    @pytest.mark.asyncio
    async def test_failed_dependency_skips_dependants(self, config, fakes, events):
        """Test that dependants of a failed action are not attempted."""
        networks, _ = fakes
        networks.fail_on = {"main"}

        result = await handler_for(config).apply()

        assert not result.ok
        assert set(result.failed) == {"pureport_network.main", "pureport_dummy_connection.main"}
        assert "skipped" in result.failed["pureport_dummy_connection.main"]
        assert events == [("create", "pureport_network", "main")]
        assert config.state.addresses() == []

    @pytest.mark.asyncio
    async def test_data_source_feeds_resource(self, config, fakes):
        """Test that data sources are read during plan and usable in references."""
        document = {
            "data": {"pureport_locations": {"all": {}}},
            "resource": {
                "pureport_network": {
                    "main": {"name": "${data.pureport_locations.all.locations.0.name}", "account_id": "ac-1"}
                }
            },
        }
        handler = handler_for(config, document)

        actions = await handler.plan()
        assert [(a.address, a.action) for a in actions] == [
            ("data.pureport_locations.all", ActionType.NO_OP),
            ("pureport_network.main", ActionType.CREATE),
        ]

        await handler.apply(actions)
        assert config.state.get("pureport_network", "main")["attributes"]["name"] == "Seattle"

    @pytest.mark.asyncio
    async def test_max_workers_is_respected(self, config, fakes):
        """Test that apply works with a single worker."""
        config.max_workers = 1
        assert (await handler_for(config).apply()).ok


class TestRefreshImportDestroy:
    """Tests for refresh, import and destroy."""

    @pytest.mark.asyncio
    async def test_refresh_drops_vanished(self, config, fakes):
        """Test that refresh removes resources that no longer exist."""
        _, connections = fakes
        await handler_for(config).apply()
        connections.remote.clear()

        result = await handler_for(config).refresh()

        assert result.ok
        assert config.state.get("pureport_dummy_connection", "main") is None
        assert config.state.get("pureport_network", "main") is not None

    @pytest.mark.asyncio
    async def test_refresh_picks_up_drift(self, config, fakes):
        """Test that refresh records remote changes."""
        networks, _ = fakes
        await handler_for(config).apply()
        networks.remote["net-1"]["name"] = "changed-remotely"

        await handler_for(config).refresh()

        assert config.state.get("pureport_network", "main")["attributes"]["name"] == "changed-remotely"

    @pytest.mark.asyncio
    async def test_import(self, config, fakes):
        """Test importing an existing remote resource."""
        networks, _ = fakes
        networks.remote["net-9"] = {"name": "imported", "account_id": "ac-1"}

        attributes = await handler_for(config).import_resource("pureport_network.main", "net-9")

        assert attributes["href"] == "/net/net-9"
        assert config.state.get("pureport_network", "main")["id"] == "net-9"

    @pytest.mark.asyncio
    async def test_import_missing(self, config, fakes):
        """Test that importing a non-existent object fails."""
        with pytest.raises(ResourceError):
            await handler_for(config).import_resource("pureport_network.main", "net-404")

    @pytest.mark.asyncio
    async def test_import_already_managed(self, config, fakes):
        """Test that an address already in state cannot be imported over."""
        await handler_for(config).apply()
        with pytest.raises(ResourceError):
            await handler_for(config).import_resource("pureport_network.main", "net-1")

    @pytest.mark.asyncio
    async def test_import_data_source(self, config, fakes):
        """Test that data sources cannot be imported."""
        with pytest.raises(ValueError):
            await handler_for(config).import_resource("data.pureport_locations.all", "1")

    @pytest.mark.asyncio
    async def test_destroy_dependants_first(self, config, fakes, events):
        """Test that destroy deletes dependants before their dependencies."""
        await handler_for(config).apply()
        events.clear()

        result = await handler_for(config).destroy()

        assert result.ok
        assert events == [("delete", "pureport_dummy_connection", "conn"), ("delete", "pureport_network", "main")]
        assert config.state.addresses() == []
