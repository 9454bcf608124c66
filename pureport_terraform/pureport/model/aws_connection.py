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
from pureport_terraform.utils.validation import string_match

if TYPE_CHECKING:
    from pureport_terraform.utils.resource_data import ResourceData


class AWSConnection(BaseConnection):
    """Direct Connect connection into an AWS account and region.

    Public peering connections may additionally reach a set of AWS cloud
    services, referenced by href.
    """

    resource_type = "pureport_aws_connection"
    resource_config = ResourceConfig(
        schema={
            **get_base_connection_schema(),
            "aws_account_id": Schema(
                ValueType.STRING,
                required=True,
                force_new=True,
                validate_func=string_match(r"^[0-9]{12}$", "must be a 12 digit AWS account id"),
            ),
            "aws_region": Schema(ValueType.STRING, required=True, force_new=True),
            "cloud_service_hrefs": Schema(
                ValueType.SET, optional=True, elem=Schema(ValueType.STRING), description="Cloud services to connect to"
            ),
            "peering": peering_schema(),
        },
        base_path="/connections",
    )
    connection_type = "AWS_DIRECT_CONNECT"
    display_name = "AWS Cloud Connection"

    def expand_provider_fields(self, d: ResourceData) -> Dict[str, Any]:
        return {
            "awsAccountId": d.get("aws_account_id"),
            "awsRegion": d.get("aws_region"),
            "cloudServices": [{"href": href} for href in sorted(d.get("cloud_service_hrefs") or [])],
            "peering": add_peering_type(d),
        }

    def flatten_provider_fields(self, d: ResourceData, connection: Dict) -> None:
        d.set("aws_account_id", connection.get("awsAccountId"))
        d.set("aws_region", connection.get("awsRegion"))
        d.set("cloud_service_hrefs", sorted(s.get("href", "") for s in connection.get("cloudServices") or []))
        d.set("peering", flatten_peering_type(connection.get("peering")))
