# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

"""Plan and apply declarative configuration against the providers.

The configuration uses the Terraform JSON layout (YAML is accepted too)::

    {
      "provider": {"pureport": {"profile": "prod"}},
      "resource": {
        "pureport_network": {"main": {"name": "main", "account_id": "ac-1"}},
        "pureport_azure_connection": {
          "main": {
            "name": "to-azure",
            "network": {"id": "${pureport_network.main.id}", "href": "${pureport_network.main.href}"},
            ...
          }
        }
      },
      "data": {"pureport_locations": {"all": {}}}
    }

References between declarations define the dependency graph. Actions run one
dependency level at a time, concurrently within a level up to ``max_workers``.
"""

from __future__ import annotations
import asyncio
import copy
import json
import os
import re
from dataclasses import dataclass, field
from enum import Enum
from graphlib import CycleError as GraphCycleError
from graphlib import TopologicalSorter
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Set, Tuple

import yaml

from pureport_terraform.providers import provider_name_for
from pureport_terraform.utils.resource_utils import (
    INTERPOLATION_RE,
    UNKNOWN_VALUE,
    ConfigValidationError,
    CycleError,
    ResourceError,
    find_attr,
    is_interpolated,
)

if TYPE_CHECKING:
    from pureport_terraform.utils.base_resource import BaseResource, DataSource
    from pureport_terraform.utils.configuration import Configuration

DATA_PREFIX = "data."
META_ARGUMENTS = ("depends_on",)
WHOLE_REFERENCE_RE = re.compile(r"^\$\{([^}]+)\}$")


class ActionType(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    REPLACE = "replace"
    DELETE = "delete"
    READ = "read"
    NO_OP = "no-op"


@dataclass
class Declaration:
    resource_type: str
    name: str
    raw: Dict
    is_data_source: bool = False
    depends_on: Set[str] = field(default_factory=set)

    @property
    def address(self) -> str:
        address = f"{self.resource_type}.{self.name}"
        return f"{DATA_PREFIX}{address}" if self.is_data_source else address


@dataclass
class PlanAction:
    action: ActionType
    address: str
    resource_type: str
    name: str
    changed: List[str] = field(default_factory=list)
    requires_replace: List[str] = field(default_factory=list)
    is_data_source: bool = False


@dataclass
class ApplyResult:
    succeeded: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


def split_address(address: str) -> Tuple[str, str, bool]:
    """Split ``type.name`` or ``data.type.name`` into (type, name, is_data_source)."""
    is_data = address.startswith(DATA_PREFIX)
    if is_data:
        address = address[len(DATA_PREFIX) :]
    parts = address.split(".")
    if len(parts) != 2 or not all(parts):
        raise ValueError(f"Invalid resource address {address!r}, expected <type>.<name>")
    return parts[0], parts[1], is_data


def reference_address(reference: str) -> Tuple[str, str]:
    """Split a reference body into the referenced address and the attribute path."""
    parts = reference.strip().split(".")
    size = 3 if parts[0] == "data" else 2
    if len(parts) <= size:
        raise ValueError(f"Invalid reference ${{{reference}}}, expected <type>.<name>.<attribute>")
    return ".".join(parts[:size]), ".".join(parts[size:])


def find_references(value: Any) -> Set[str]:
    """Collect the addresses referenced anywhere inside a configuration value."""
    found: Set[str] = set()
    if isinstance(value, str):
        for match in INTERPOLATION_RE.finditer(value):
            found.add(reference_address(match.group(1))[0])
    elif isinstance(value, dict):
        for v in value.values():
            found |= find_references(v)
    elif isinstance(value, list):
        for v in value:
            found |= find_references(v)
    return found


def contains_unknown(value: Any) -> bool:
    if isinstance(value, dict):
        return any(contains_unknown(v) for v in value.values())
    if isinstance(value, list):
        return any(contains_unknown(v) for v in value)
    return is_interpolated(value)


def load_document(path: str) -> Dict:
    """Read a configuration file, JSON or YAML depending on its extension."""
    with open(path, "r", encoding="utf-8") as f:
        if os.path.splitext(path)[1].lower() in (".yml", ".yaml"):
            document = yaml.safe_load(f) or {}
        else:
            document = json.load(f)

    if not isinstance(document, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    return document


class ResourcesHandler:
    def __init__(self, config: Configuration, document: Optional[Dict] = None) -> None:
        self.config = config
        self.declarations: Dict[str, Declaration] = {}
        self.data_values: Dict[str, Dict] = {}
        self._failed: Set[str] = set()
        # Addresses planned for replacement; their current attributes are stale.
        self._pending_replace: Set[str] = set()

        if document is None and config.config_path:
            document = load_document(config.config_path)
        self._parse(document or {})

    def _parse(self, document: Dict) -> None:
        providers = document.get("provider") or {}
        if isinstance(providers, list):
            merged: Dict[str, Dict] = {}
            for item in providers:
                merged.update(item)
            providers = merged
        self.config.provider_settings = {name: settings or {} for name, settings in providers.items()}

        for section, is_data in (("resource", False), ("data", True)):
            for resource_type, entries in (document.get(section) or {}).items():
                for name, raw in (entries or {}).items():
                    raw = dict(raw or {})
                    explicit = raw.pop("depends_on", None) or []
                    decl = Declaration(resource_type, name, raw, is_data_source=is_data)
                    decl.depends_on = find_references(raw) | set(explicit)
                    self.declarations[decl.address] = decl

    # Graph

    def levels(self) -> List[List[str]]:
        """Group declared addresses into dependency levels.

        Raises:
            CycleError: If the declarations reference each other in a cycle.
            ConfigValidationError: If a declaration references an undeclared address.
        """
        graph: Dict[str, Set[str]] = {}
        for address, decl in self.declarations.items():
            missing = sorted(dep for dep in decl.depends_on if dep not in self.declarations)
            if missing:
                raise ConfigValidationError(address, [f"reference to undeclared resource {m!r}" for m in missing])
            graph[address] = set(decl.depends_on)
        return _levels(graph)

    def _state_levels(self) -> List[List[str]]:
        graph: Dict[str, Set[str]] = {}
        addresses = {f"{t}.{n}" for t, n in self.config.state.addresses()}
        for t, n in self.config.state.addresses():
            entry = self.config.state.get(t, n) or {}
            graph[f"{t}.{n}"] = {dep for dep in entry.get("depends_on", []) if dep in addresses}
        return _levels(graph)

    # Interpolation

    def _lookup(self, reference: str) -> Any:
        address, path = reference_address(reference)
        if address.startswith(DATA_PREFIX):
            entry = self.data_values.get(address)
        else:
            resource_type, name, _ = split_address(address)
            entry = self.config.state.get(resource_type, name)
            if entry is not None and address in self._pending_replace:
                entry = None

        if entry is None:
            return UNKNOWN_VALUE

        attributes = dict(entry.get("attributes") or {})
        attributes.setdefault("id", entry.get("id", ""))
        value = find_attr(path, attributes)
        return UNKNOWN_VALUE if value is None else value

    def interpolate(self, value: Any) -> Any:
        """Substitute references with known values, or mark them as known after apply."""
        if isinstance(value, str):
            whole = WHOLE_REFERENCE_RE.match(value)
            if whole:
                return copy.deepcopy(self._lookup(whole.group(1)))

            unknown = False

            def _replace(match: re.Match) -> str:
                nonlocal unknown
                resolved = self._lookup(match.group(1))
                if resolved == UNKNOWN_VALUE:
                    unknown = True
                return str(resolved)

            result = INTERPOLATION_RE.sub(_replace, value)
            return UNKNOWN_VALUE if unknown else result
        if isinstance(value, dict):
            return {k: self.interpolate(v) for k, v in value.items()}
        if isinstance(value, list):
            return [self.interpolate(v) for v in value]
        return value

    # Validation

    def validate(self) -> List[str]:
        """Validate provider settings and every declaration. Returns error strings."""
        errors: List[str] = []
        for name in sorted(self.config.provider_settings):
            try:
                provider = self.config.get_provider(name)
            except KeyError as e:
                errors.append(f"provider.{name}: {e.args[0]}")
                continue
            _, warnings, provider_errors = provider.validate(self.config.provider_settings[name])
            self._log_warnings(f"provider.{name}", warnings)
            errors.extend(f"provider.{name}: {e}" for e in provider_errors)

        for address in sorted(self.declarations):
            decl = self.declarations[address]
            try:
                resource = self.config.get_resource(decl.resource_type, data_source=decl.is_data_source)
            except KeyError as e:
                errors.append(f"{address}: {e.args[0]}")
                continue
            _, warnings, resource_errors = resource.validate(decl.raw)
            self._log_warnings(address, warnings)
            errors.extend(f"{address}: {e}" for e in resource_errors)

        try:
            self.levels()
        except (CycleError, ConfigValidationError) as e:
            errors.append(str(e))

        return errors

    def _log_warnings(self, address: str, warnings: List[str]) -> None:
        for warning in warnings:
            self.config.logger.warning(warning, address)

    def _desired(self, decl: Declaration, resource: Any) -> Dict:
        normalized, warnings, errors = resource.validate(self.interpolate(decl.raw))
        if errors:
            raise ConfigValidationError(decl.address, errors)
        return normalized

    async def _resource(self, resource_type: str, data_source: bool = False) -> Any:
        await self.config.configure_provider(provider_name_for(resource_type))
        return self.config.get_resource(resource_type, data_source=data_source)

    # Refresh

    async def refresh(self, persist: bool = True) -> ApplyResult:
        """Re-read every resource in state; resources gone remotely are dropped."""
        result = ApplyResult()
        semaphore = asyncio.Semaphore(self.config.max_workers)

        async def _refresh(resource_type: str, name: str) -> None:
            address = f"{resource_type}.{name}"
            async with semaphore:
                try:
                    await self._refresh_one(resource_type, name)
                    result.succeeded.append(address)
                except Exception as e:
                    self.config.logger.error(f"Error while refreshing: {e}", address)
                    result.failed[address] = str(e)

        await asyncio.gather(*[_refresh(t, n) for t, n in self.config.state.addresses()])
        if persist:
            self.config.state.dump_state()
        return result

    async def _refresh_one(self, resource_type: str, name: str) -> None:
        entry = self.config.state.get(resource_type, name)
        if entry is None:
            return

        resource = await self._resource(resource_type)
        d = resource.resource_data(prior=entry.get("attributes"), _id=entry["id"])
        await resource.read_resource(d)
        attributes = d.state()
        if attributes is None:
            self.config.logger.warning("Resource no longer exists, removing it from state", resource_type, entry["id"])
            self.config.state.remove(resource_type, name)
            return

        self.config.state.put(resource_type, name, d.id, attributes, entry.get("provider", ""), entry.get("depends_on"))

    async def read_data_source(self, decl: Declaration) -> None:
        data_source: DataSource = await self._resource(decl.resource_type, data_source=True)
        d = data_source.resource_data(config=self._desired(decl, data_source))
        await data_source.read_resource(d)
        attributes = d.state()
        if attributes is None:
            raise ResourceError(f"{decl.address} did not return any data", decl.resource_type)
        self.data_values[decl.address] = {"id": d.id, "attributes": attributes}

    # Plan

    async def plan(self) -> List[PlanAction]:
        """Compute the actions needed to converge state onto the configuration."""
        errors = self.validate()
        if errors:
            raise ConfigValidationError("configuration", errors)

        if self.config.refresh:
            refreshed = await self.refresh(persist=False)
            if not refreshed.ok:
                raise ResourceError(f"Refresh failed for {', '.join(sorted(refreshed.failed))}")

        self._pending_replace = set()
        actions: List[PlanAction] = []
        for level in self.levels():
            for address in level:
                decl = self.declarations[address]
                if decl.is_data_source:
                    action = await self._plan_data_source(decl)
                else:
                    action = await self._plan_resource(decl)
                actions.append(action)

        declared = {a for a, d in self.declarations.items() if not d.is_data_source}
        for level in reversed(self._state_levels()):
            for address in level:
                if address not in declared:
                    resource_type, name, _ = split_address(address)
                    actions.append(PlanAction(ActionType.DELETE, address, resource_type, name))

        return actions

    async def _plan_data_source(self, decl: Declaration) -> PlanAction:
        action = PlanAction(ActionType.READ, decl.address, decl.resource_type, decl.name, is_data_source=True)
        if contains_unknown(self.interpolate(decl.raw)):
            # Deferred until the referenced resources exist.
            return action
        await self.read_data_source(decl)
        action.action = ActionType.NO_OP
        return action

    async def _plan_resource(self, decl: Declaration) -> PlanAction:
        resource: BaseResource = await self._resource(decl.resource_type)
        desired = self._desired(decl, resource)
        entry = self.config.state.get(decl.resource_type, decl.name)
        action = PlanAction(ActionType.CREATE, decl.address, decl.resource_type, decl.name)
        if entry is None:
            return action

        diff = resource.diff(entry.get("attributes"), desired)
        action.changed = sorted(diff.changed)
        action.requires_replace = sorted(diff.requires_replace)
        if action.requires_replace:
            action.action = ActionType.REPLACE
            self._pending_replace.add(decl.address)
        elif action.changed:
            action.action = ActionType.UPDATE
        else:
            action.action = ActionType.NO_OP
        return action

    # Apply

    async def apply(self, actions: Optional[List[PlanAction]] = None) -> ApplyResult:
        """Execute planned actions level by level, persisting state after each success."""
        if actions is None:
            actions = await self.plan()

        by_address = {a.address: a for a in actions}
        result = ApplyResult()
        semaphore = asyncio.Semaphore(self.config.max_workers)
        self._failed = set()

        for level in self.levels():
            pending = [by_address[a] for a in level if a in by_address and by_address[a].action != ActionType.NO_OP]
            await asyncio.gather(*[self._run_action(action, semaphore, result) for action in pending])

        deletes = [a for a in actions if a.action == ActionType.DELETE]
        for level in reversed(self._state_levels()):
            pending = [a for a in deletes if a.address in level]
            await asyncio.gather(*[self._run_action(action, semaphore, result) for action in pending])

        if result.failed:
            self.config.logger.error(f"Apply finished with {len(result.failed)} error(s): {sorted(result.failed)}")
        else:
            self.config.logger.info(f"Apply finished: {len(result.succeeded)} action(s) applied")
        return result

    async def _run_action(self, action: PlanAction, semaphore: asyncio.Semaphore, result: ApplyResult) -> None:
        decl = self.declarations.get(action.address)
        if decl is not None and action.action != ActionType.DELETE:
            failed_deps = sorted(dep for dep in decl.depends_on if dep in self._failed)
            if failed_deps:
                self._failed.add(action.address)
                result.failed[action.address] = f"skipped, dependencies failed: {', '.join(failed_deps)}"
                self.config.logger.warning(result.failed[action.address], action.address)
                return

        async with semaphore:
            try:
                await self._apply_action(action)
            except Exception as e:
                self._failed.add(action.address)
                result.failed[action.address] = str(e)
                self.config.logger.error(f"Error while applying {action.action.value}: {e}", action.address)
                return

        self.config.logger.info(f"{action.action.value} complete", action.address)
        result.succeeded.append(action.address)

    async def _apply_action(self, action: PlanAction) -> None:
        if action.is_data_source:
            await self.read_data_source(self.declarations[action.address])
            return

        if action.action == ActionType.DELETE:
            await self._delete(action.resource_type, action.name)
            return

        decl = self.declarations[action.address]
        resource: BaseResource = await self._resource(decl.resource_type)
        if action.action == ActionType.REPLACE:
            await self._delete(decl.resource_type, decl.name)
            self._pending_replace.discard(action.address)

        desired = self._desired(decl, resource)
        entry = self.config.state.get(decl.resource_type, decl.name)
        if entry is None:
            d = resource.resource_data(config=desired, is_new=True)
            await resource.create_resource(d)
        else:
            d = resource.resource_data(config=desired, prior=entry.get("attributes"), _id=entry["id"])
            await resource.update_resource(d)

        attributes = d.state()
        if attributes is None:
            self.config.state.remove(decl.resource_type, decl.name)
            self.config.state.dump_state()
            raise ResourceError("Resource disappeared while being applied", decl.resource_type)

        provider = provider_name_for(decl.resource_type)
        self.config.state.put(decl.resource_type, decl.name, d.id, attributes, provider, sorted(decl.depends_on))
        self.config.state.dump_state()

    async def _delete(self, resource_type: str, name: str) -> None:
        entry = self.config.state.get(resource_type, name)
        if entry is None:
            return

        resource: BaseResource = await self._resource(resource_type)
        d = resource.resource_data(prior=entry.get("attributes"), _id=entry["id"])
        await resource.delete_resource(d)
        self.config.state.remove(resource_type, name)
        self.config.state.dump_state()

    # Import / destroy

    async def import_resource(self, address: str, _id: str) -> Dict:
        """Bring an existing remote resource under management."""
        resource_type, name, is_data = split_address(address)
        if is_data:
            raise ValueError("Data sources cannot be imported")
        if self.config.state.get(resource_type, name) is not None:
            raise ResourceError(f"{address} is already managed, remove it from state first", resource_type, _id)

        resource: BaseResource = await self._resource(resource_type)
        resource_id, attributes = await resource.import_resource(_id)
        if attributes is None:
            raise ResourceError("Cannot import non-existent remote object", resource_type, _id)

        decl = self.declarations.get(address)
        depends_on = sorted(decl.depends_on) if decl else []
        self.config.state.put(resource_type, name, resource_id, attributes, provider_name_for(resource_type), depends_on)
        self.config.state.dump_state()
        self.config.logger.info("Import successful", resource_type, resource_id)
        return attributes

    async def destroy(self) -> ApplyResult:
        """Delete every resource in state, dependants first."""
        result = ApplyResult()
        semaphore = asyncio.Semaphore(self.config.max_workers)
        self._failed = set()
        for level in reversed(self._state_levels()):
            pending = []
            for address in level:
                resource_type, name, _ = split_address(address)
                pending.append(PlanAction(ActionType.DELETE, address, resource_type, name))
            await asyncio.gather(*[self._run_action(action, semaphore, result) for action in pending])
        return result


def _levels(graph: Dict[str, Set[str]]) -> List[List[str]]:
    sorter = TopologicalSorter(graph)
    try:
        sorter.prepare()
    except GraphCycleError as e:
        raise CycleError(f"Dependency cycle between: {' -> '.join(e.args[1])}") from e

    levels = []
    while sorter.is_active():
        ready = sorted(sorter.get_ready())
        levels.append(ready)
        sorter.done(*ready)
    return levels
