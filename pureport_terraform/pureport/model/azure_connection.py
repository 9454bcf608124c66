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
from pureport_terraform.utils.schema import Schema, ValueType
from pureport_terraform.utils.validation import string_is_not_empty

if TYPE_CHECKING:
    from pureport_terraform.utils.resource_data import ResourceData


class AzureConnection(BaseConnection):
    """ExpressRoute connection, identified on the Azure side by its service key."""

    resource_type = "pureport_azure_connection"
    resource_config = ResourceConfig(
        schema={
            **get_base_connection_schema(),
            "service_key": Schema(ValueType.STRING, required=True, force_new=True, validate_func=string_is_not_empty),
            "peering": peering_schema(),
        },
        base_path="/connections",
    )
    connection_type = "AZURE_EXPRESS_ROUTE"
    display_name = "Azure Cloud Connection"

    def expand_provider_fields(self, d: ResourceData) -> Dict[str, Any]:
        return {"serviceKey": d.get("service_key"), "peering": add_peering_type(d)}

    def flatten_provider_fields(self, d: ResourceData, connection: Dict) -> None:
        d.set("service_key", connection.get("serviceKey"))
        d.set("peering", flatten_peering_type(connection.get("peering")))
