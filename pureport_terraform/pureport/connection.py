# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

"""Schema and CRUD shared by every Pureport connection type.

A connection joins a Pureport network to a cloud or data-centre location. The
concrete connection classes only add their provider specific fields through
``expand_provider_fields`` and ``flatten_provider_fields``.
"""

from __future__ import annotations
import asyncio
import time
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from pureport_terraform.utils.base_resource import BaseResource
from pureport_terraform.utils.resource_utils import (
    CustomClientHTTPError,
    ResourceError,
    id_from_location,
    response_was_not_found,
)
from pureport_terraform.utils.schema import Schema, ValueType, suppress_case_difference
from pureport_terraform.utils.validation import (
    int_in_slice,
    string_in_slice,
    string_is_not_empty,
    validate_cidr,
)

if TYPE_CHECKING:
    from pureport_terraform.utils.resource_data import ResourceData

CONNECTION_SPEEDS = [50, 100, 200, 300, 400, 500, 1000, 10000]
BILLING_TERMS = ["HOURLY", "MONTHLY"]
PEERING_TYPES = ["PRIVATE", "PUBLIC"]
DELETED_STATES = ("DELETED",)


def link_schema(required: bool = True, force_new: bool = False) -> Schema:
    return Schema(
        ValueType.LIST,
        required=required,
        optional=not required,
        force_new=force_new,
        max_items=1,
        min_items=1 if required else 0,
        elem={
            "id": Schema(ValueType.STRING, required=True),
            "href": Schema(ValueType.STRING, required=True),
        },
    )


def peering_schema() -> Schema:
    return Schema(
        ValueType.STRING,
        optional=True,
        default="PRIVATE",
        force_new=True,
        validate_func=string_in_slice(PEERING_TYPES, ignore_case=True),
        diff_suppress_func=suppress_case_difference,
    )


def get_base_connection_schema() -> Dict[str, Schema]:
    """Return a fresh copy of the attributes every connection type declares."""
    return {
        "name": Schema(ValueType.STRING, required=True, validate_func=string_is_not_empty),
        "description": Schema(ValueType.STRING, optional=True),
        "speed": Schema(ValueType.INT, required=True, force_new=True, validate_func=int_in_slice(CONNECTION_SPEEDS)),
        "high_availability": Schema(ValueType.BOOL, optional=True, default=False),
        "location": link_schema(),
        "network": link_schema(force_new=True),
        "billing_term": Schema(
            ValueType.STRING,
            required=True,
            validate_func=string_in_slice(BILLING_TERMS, ignore_case=True),
            diff_suppress_func=suppress_case_difference,
        ),
        "customer_networks": Schema(
            ValueType.LIST,
            optional=True,
            elem={
                "name": Schema(ValueType.STRING, required=True),
                "address": Schema(ValueType.STRING, required=True, validate_func=validate_cidr),
            },
        ),
        "nat_config": Schema(
            ValueType.LIST,
            optional=True,
            computed=True,
            max_items=1,
            elem={
                "enabled": Schema(ValueType.BOOL, required=True),
                "mappings": Schema(
                    ValueType.LIST,
                    optional=True,
                    elem={"native_cidr": Schema(ValueType.STRING, required=True, validate_func=validate_cidr)},
                ),
            },
        ),
        "href": Schema(ValueType.STRING, computed=True),
        "state": Schema(ValueType.STRING, computed=True),
    }


def expand_link(d: ResourceData, key: str) -> Optional[Dict[str, str]]:
    links = d.get(key)
    if not links:
        return None
    return {"id": links[0]["id"], "href": links[0]["href"]}


def flatten_link(link: Optional[Dict]) -> List[Dict[str, str]]:
    if not link:
        return []
    return [{"id": link.get("id", ""), "href": link.get("href", "")}]


def add_customer_networks(d: ResourceData) -> List[Dict[str, str]]:
    return [{"name": n["name"], "address": n["address"]} for n in d.get("customer_networks") or []]


def flatten_customer_networks(networks: Optional[List[Dict]]) -> List[Dict[str, str]]:
    return [{"name": n.get("name", ""), "address": n.get("address", "")} for n in networks or []]


def add_nat_configuration(d: ResourceData) -> Optional[Dict[str, Any]]:
    nat_config = d.get("nat_config")
    if not nat_config:
        return None

    nat = nat_config[0]
    return {
        "enabled": nat.get("enabled", False),
        "mappings": [{"nativeCidr": m["native_cidr"]} for m in nat.get("mappings") or []],
    }


def flatten_nat_configuration(nat: Optional[Dict]) -> List[Dict[str, Any]]:
    if not nat:
        return []
    return [
        {
            "enabled": nat.get("enabled", False),
            "mappings": [{"native_cidr": m.get("nativeCidr", "")} for m in nat.get("mappings") or []],
        }
    ]


def add_peering_type(d: ResourceData) -> Dict[str, str]:
    return {"type": (d.get("peering") or "PRIVATE").upper()}


def flatten_peering_type(peering: Optional[Dict]) -> str:
    return ((peering or {}).get("type") or "PRIVATE").upper()


class BaseConnection(BaseResource):
    """CRUD for ``/networks/{network_id}/connections`` and ``/connections/{id}``.

    Attributes:
        connection_type: Wire value of the ``type`` field.
        display_name: Human readable name used in error messages.
        delete_timeout: Seconds to wait for a deleted connection to disappear.
        delete_poll_interval: Seconds between polls while waiting.
    """

    connection_type: str
    display_name: str = "Connection"
    delete_timeout: float = 1200
    delete_poll_interval: float = 10

    def expand_provider_fields(self, d: ResourceData) -> Dict[str, Any]:
        return {}

    def flatten_provider_fields(self, d: ResourceData, connection: Dict) -> None:
        pass

    def expand_connection(self, d: ResourceData) -> Dict[str, Any]:
        connection: Dict[str, Any] = {
            "type": self.connection_type,
            "name": d.get("name"),
            "speed": d.get("speed"),
            "highAvailability": d.get("high_availability"),
            "location": expand_link(d, "location"),
            "network": expand_link(d, "network"),
            "billingTerm": d.get("billing_term").upper(),
            "customerNetworks": add_customer_networks(d),
        }

        description, ok = d.get_ok("description")
        if ok:
            connection["description"] = description

        nat = add_nat_configuration(d)
        if nat is not None:
            connection["nat"] = nat

        connection.update(self.expand_provider_fields(d))
        return connection

    async def create_resource(self, d: ResourceData) -> None:
        client = self.config.pureport_client
        connection = self.expand_connection(d)
        if connection["network"] is None:
            raise ResourceError(f"Error creating new {self.display_name}: network is required", self.resource_type)

        path = f"/networks/{connection['network']['id']}/connections"
        try:
            resp = await client.request("POST", path, body=connection)
        except CustomClientHTTPError as e:
            raise ResourceError(f"Error creating new {self.display_name}: {e}", self.resource_type) from e

        _id = id_from_location(resp.header("Location"))
        if not _id:
            raise ResourceError(
                f"Error when decoding location header while creating new {self.display_name}", self.resource_type
            )

        d.set_id(_id)
        self.config.logger.info(f"Created new {self.display_name}", self.resource_type, _id)
        await self.read_resource(d)

    async def read_resource(self, d: ResourceData) -> None:
        client = self.config.pureport_client
        try:
            connection = await client.get(f"/connections/{d.id}")
        except CustomClientHTTPError as e:
            if response_was_not_found(e):
                self.config.logger.warning(
                    f"{self.display_name} not found, removing from state", self.resource_type, d.id
                )
                d.set_id("")
                return
            raise ResourceError(f"Error reading data for {self.display_name}: {e}", self.resource_type, d.id) from e

        d.set("name", connection.get("name"))
        d.set("description", connection.get("description"))
        d.set("speed", connection.get("speed"))
        d.set("high_availability", connection.get("highAvailability", False))
        d.set("billing_term", connection.get("billingTerm"))
        d.set("location", flatten_link(connection.get("location")))
        d.set("network", flatten_link(connection.get("network")))
        d.set("customer_networks", flatten_customer_networks(connection.get("customerNetworks")))
        d.set("nat_config", flatten_nat_configuration(connection.get("nat")))
        d.set("href", connection.get("href"))
        d.set("state", connection.get("state"))
        self.flatten_provider_fields(d, connection)

    async def update_resource(self, d: ResourceData) -> None:
        client = self.config.pureport_client
        connection = self.expand_connection(d)
        connection["id"] = d.id
        # an empty description clears the one stored remotely
        connection["description"] = d.get("description")
        try:
            await client.put(f"/connections/{d.id}", connection)
        except CustomClientHTTPError as e:
            raise ResourceError(f"Error updating {self.display_name}: {e}", self.resource_type, d.id) from e

        await self.read_resource(d)

    async def delete_resource(self, d: ResourceData) -> None:
        await delete_connection(self, d.id)
        d.set_id("")


async def delete_connection(resource: BaseConnection, _id: str) -> None:
    """Delete a connection and wait until the API no longer reports it."""
    client = resource.config.pureport_client
    logger = resource.config.logger
    try:
        await client.delete(f"/connections/{_id}")
    except CustomClientHTTPError as e:
        if response_was_not_found(e):
            return
        raise ResourceError(f"Error deleting {resource.display_name}: {e}", resource.resource_type, _id) from e

    deadline = time.monotonic() + resource.delete_timeout
    while True:
        try:
            connection = await client.get(f"/connections/{_id}")
        except CustomClientHTTPError as e:
            if response_was_not_found(e):
                break
            raise ResourceError(
                f"Error waiting for {resource.display_name} deletion: {e}", resource.resource_type, _id
            ) from e

        state = (connection or {}).get("state", "")
        if state in DELETED_STATES:
            break
        if time.monotonic() >= deadline:
            raise ResourceError(
                f"Timed out waiting for {resource.display_name} deletion, last state {state!r}",
                resource.resource_type,
                _id,
            )

        logger.debug(f"Waiting for deletion, current state {state!r}", resource.resource_type, _id)
        await asyncio.sleep(resource.delete_poll_interval)

    logger.info(f"Deleted {resource.display_name}", resource.resource_type, _id)
