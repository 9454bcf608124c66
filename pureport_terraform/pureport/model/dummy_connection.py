# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

from __future__ import annotations
from typing import TYPE_CHECKING, Any, Dict

from pureport_terraform.pureport.connection import (
    BaseConnection,
    add_peering_type,
    flatten_peering_type,
    get_base_connection_schema,
    peering_schema,
)
from pureport_terraform.utils.base_resource import ResourceConfig

if TYPE_CHECKING:
    from pureport_terraform.utils.resource_data import ResourceData


class DummyConnection(BaseConnection):
    """Connection type without a cloud side, used for testing network plumbing."""

    resource_type = "pureport_dummy_connection"
    resource_config = ResourceConfig(
        schema={**get_base_connection_schema(), "peering": peering_schema()},
        base_path="/connections",
    )
    connection_type = "DUMMY"
    display_name = "Dummy Connection"

    def expand_provider_fields(self, d: ResourceData) -> Dict[str, Any]:
        return {"peering": add_peering_type(d)}

    def flatten_provider_fields(self, d: ResourceData, connection: Dict) -> None:
        d.set("peering", flatten_peering_type(connection.get("peering")))
