# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

"""Pureport network resource.

A network belongs to an account and is the parent of every connection.
"""

from __future__ import annotations
from typing import TYPE_CHECKING, Dict

from pureport_terraform.utils.base_resource import BaseResource, ResourceConfig
from pureport_terraform.utils.resource_utils import (
    CustomClientHTTPError,
    ResourceError,
    id_from_location,
    response_was_not_found,
)
from pureport_terraform.utils.schema import Schema, ValueType
from pureport_terraform.utils.validation import string_is_not_empty

if TYPE_CHECKING:
    from pureport_terraform.utils.resource_data import ResourceData


class Network(BaseResource):
    resource_type = "pureport_network"
    resource_config = ResourceConfig(
        schema={
            "name": Schema(ValueType.STRING, required=True, validate_func=string_is_not_empty),
            "description": Schema(ValueType.STRING, optional=True),
            "account_id": Schema(ValueType.STRING, required=True, force_new=True, validate_func=string_is_not_empty),
            "href": Schema(ValueType.STRING, computed=True),
        },
        base_path="/networks",
    )

    def _expand(self, d: ResourceData) -> Dict:
        network = {"name": d.get("name")}
        description, ok = d.get_ok("description")
        if ok:
            network["description"] = description
        return network

    async def create_resource(self, d: ResourceData) -> None:
        """Create the network under its account.

        The API answers with an empty body and the new network in the
        Location header.
        """
        client = self.config.pureport_client
        account_id = d.get("account_id")
        try:
            resp = await client.request("POST", f"/accounts/{account_id}/networks", body=self._expand(d))
        except CustomClientHTTPError as e:
            raise ResourceError(f"Error creating new network: {e}", self.resource_type) from e

        _id = id_from_location(resp.header("Location"))
        if not _id:
            raise ResourceError("Error when decoding location header while creating new network", self.resource_type)

        d.set_id(_id)
        self.config.logger.info("Created new network", self.resource_type, _id)
        await self.read_resource(d)

    async def read_resource(self, d: ResourceData) -> None:
        client = self.config.pureport_client
        try:
            network = await client.get(f"{self.resource_config.base_path}/{d.id}")
        except CustomClientHTTPError as e:
            if response_was_not_found(e):
                self.config.logger.warning("Network not found, removing from state", self.resource_type, d.id)
                d.set_id("")
                return
            raise ResourceError(f"Error reading network: {e}", self.resource_type, d.id) from e

        d.set("name", network.get("name"))
        d.set("description", network.get("description"))
        d.set("href", network.get("href"))
        account = network.get("account") or {}
        if account.get("id"):
            d.set("account_id", account["id"])

    async def update_resource(self, d: ResourceData) -> None:
        client = self.config.pureport_client
        network = self._expand(d)
        network["id"] = d.id
        network["description"] = d.get("description")
        try:
            await client.put(f"{self.resource_config.base_path}/{d.id}", network)
        except CustomClientHTTPError as e:
            raise ResourceError(f"Error updating network: {e}", self.resource_type, d.id) from e

        await self.read_resource(d)

    async def delete_resource(self, d: ResourceData) -> None:
        client = self.config.pureport_client
        try:
            await client.delete(f"{self.resource_config.base_path}/{d.id}")
        except CustomClientHTTPError as e:
            if not response_was_not_found(e):
                raise ResourceError(f"Error deleting network: {e}", self.resource_type, d.id) from e

        d.set_id("")
