# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

from __future__ import annotations
from typing import TYPE_CHECKING, Dict, Optional, Tuple

from pureport_terraform.azurerm.helpers import parse_azure_resource_id
from pureport_terraform.utils.base_resource import BaseResource, DataSource
from pureport_terraform.utils.resource_utils import (
    CustomClientHTTPError,
    ImportAsExistsError,
    ResourceError,
    response_was_not_found,
)

if TYPE_CHECKING:
    from pureport_terraform.azurerm.config import ArmClient
    from pureport_terraform.utils.resource_data import ResourceData


class ArmMixin:
    """Addressing of one ARM resource type.

    Attributes:
        namespace: Resource provider namespace, e.g. ``Microsoft.Network``.
        type_segment: Resource type segment of the id, e.g. ``virtualNetworks``.
        display_name: Human readable name used in messages.
    """

    namespace: str
    type_segment: str
    display_name: str

    @property
    def arm(self) -> ArmClient:
        return self.config.arm_client

    @property
    def api_version(self) -> str:
        return self.resource_config.api_version

    def path_for(self, resource_group: str, name: str) -> str:
        return self.arm.resource_path(resource_group, self.namespace, self.type_segment, name)

    def describe(self, resource_group: str, name: str) -> str:
        return f"{self.display_name} {name!r} (Resource Group {resource_group!r})"

    def parse_id(self, _id: str) -> Tuple[str, str]:
        """Return (resource_group, name) from a resource id."""
        try:
            resource_id = parse_azure_resource_id(_id)
        except ValueError as e:
            raise ResourceError(str(e), self.resource_type, _id) from e

        name = resource_id.path.get(self.type_segment)
        if not name:
            raise ResourceError(f"ID does not contain a {self.type_segment!r} segment", self.resource_type, _id)
        return resource_id.resource_group, name

    async def get_existing(self, resource_group: str, name: str) -> Optional[Dict]:
        """GET the resource, returning None when it does not exist."""
        try:
            return await self.arm.get(self.path_for(resource_group, name), self.api_version)
        except CustomClientHTTPError as e:
            if response_was_not_found(e):
                return None
            raise ResourceError(
                f"Error retrieving {self.describe(resource_group, name)}: {e}", self.resource_type
            ) from e


class ArmResource(ArmMixin, BaseResource):
    async def check_import_as_exists(self, d: ResourceData, resource_group: str, name: str) -> None:
        if not (self.arm.require_resources_to_be_imported and d.is_new_resource()):
            return

        existing = await self.get_existing(resource_group, name)
        if existing and existing.get("id"):
            raise ImportAsExistsError(self.resource_type, existing["id"])

    async def get_for_read(self, d: ResourceData) -> Optional[Tuple[str, str, Dict]]:
        """GET the resource behind ``d.id``; a 404 clears the id and returns None."""
        resource_group, name = self.parse_id(d.id)
        existing = await self.get_existing(resource_group, name)
        if existing is None:
            self.config.logger.debug(
                f"{self.describe(resource_group, name)} was not found, removing from state", self.resource_type, d.id
            )
            d.set_id("")
            return None
        return resource_group, name, existing


class ArmDataSource(ArmMixin, DataSource):
    pass
