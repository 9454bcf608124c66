# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

from __future__ import annotations
from typing import TYPE_CHECKING, Any, Dict

from pureport_terraform.pureport.connection import BaseConnection, get_base_connection_schema
from pureport_terraform.utils.base_resource import ResourceConfig
from pureport_terraform.utils.schema import Schema, ValueType
from pureport_terraform.utils.validation import string_is_not_empty

if TYPE_CHECKING:
    from pureport_terraform.utils.resource_data import ResourceData


class GoogleCloudConnection(BaseConnection):
    resource_type = "pureport_google_cloud_connection"
    resource_config = ResourceConfig(
        schema={
            **get_base_connection_schema(),
            "primary_pairing_key": Schema(
                ValueType.STRING, required=True, force_new=True, validate_func=string_is_not_empty
            ),
            "secondary_pairing_key": Schema(ValueType.STRING, optional=True, force_new=True),
        },
        base_path="/connections",
    )
    connection_type = "GOOGLE_CLOUD_INTERCONNECT"
    display_name = "Google Cloud Connection"

    def expand_provider_fields(self, d: ResourceData) -> Dict[str, Any]:
        fields = {"primaryPairingKey": d.get("primary_pairing_key")}
        secondary, ok = d.get_ok("secondary_pairing_key")
        if ok:
            fields["secondaryPairingKey"] = secondary
        return fields

    def flatten_provider_fields(self, d: ResourceData, connection: Dict) -> None:
        d.set("primary_pairing_key", connection.get("primaryPairingKey"))
        d.set("secondary_pairing_key", connection.get("secondaryPairingKey"))
