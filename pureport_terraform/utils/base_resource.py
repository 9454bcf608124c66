# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

from __future__ import annotations
import abc
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from pureport_terraform.utils.resource_data import ResourceData
from pureport_terraform.utils.schema import AttributeDiff, Schema, diff_attributes, normalize_config, validate_config

if TYPE_CHECKING:
    from pureport_terraform.utils.configuration import Configuration


@dataclass
class ResourceConfig:
    """Static description of a resource type.

    Attributes:
        schema: Attribute declarations.
        base_path: API path the resource lives under.
        api_version: API version query parameter, for APIs that need one.
        excluded_attributes: Dotted attribute paths ignored when diffing; rewritten
            into deepdiff paths and extended with every computed-only attribute.
        deprecation_message: Warning emitted whenever the resource type is used.
    """

    schema: Dict[str, Schema]
    base_path: str = ""
    api_version: Optional[str] = None
    excluded_attributes: List[str] = field(default_factory=list)
    deprecation_message: str = ""

    def __post_init__(self) -> None:
        self.build_excluded_attributes()

    def build_excluded_attributes(self) -> None:
        attributes = list(self.excluded_attributes)
        attributes.extend(key for key, schema in self.schema.items() if schema.is_computed_only())

        excluded: List[str] = []
        for attr in attributes:
            path = attr if attr.startswith("root[") else "root" + "".join(f"['{v}']" for v in attr.split("."))
            if path not in excluded:
                excluded.append(path)
        self.excluded_attributes = excluded


class SchemaResource(abc.ABC):
    """Behaviour shared by managed resources and data sources."""

    resource_type: str
    resource_config: ResourceConfig
    is_data_source: bool = False

    def __init__(self, config: Configuration) -> None:
        self.config = config

    @property
    def schema(self) -> Dict[str, Schema]:
        return self.resource_config.schema

    def resource_data(
        self, config: Optional[Dict] = None, prior: Optional[Dict] = None, _id: str = "", is_new: bool = False
    ) -> ResourceData:
        return ResourceData(self.schema, config=config, prior=prior, _id=_id, is_new=is_new)

    def validate(self, raw: Optional[Dict]) -> Tuple[Dict, List[str], List[str]]:
        """Normalise and validate a raw configuration block.

        Returns:
            A tuple of (normalised_config, warnings, errors).
        """
        normalized = normalize_config(self.schema, raw)
        warnings, errors = validate_config(self.schema, normalized)
        if self.resource_config.deprecation_message:
            warnings.append(self.resource_config.deprecation_message)
        return normalized, warnings, errors

    @abc.abstractmethod
    async def read_resource(self, d: ResourceData) -> None:
        pass


class BaseResource(SchemaResource):
    """A managed resource: schema plus Create/Read/Update/Delete against a vendor API."""

    def diff(self, prior: Optional[Dict], desired: Optional[Dict]) -> AttributeDiff:
        return diff_attributes(self.schema, prior, desired, set(self.resource_config.excluded_attributes))

    @abc.abstractmethod
    async def create_resource(self, d: ResourceData) -> None:
        pass

    @abc.abstractmethod
    async def update_resource(self, d: ResourceData) -> None:
        pass

    @abc.abstractmethod
    async def delete_resource(self, d: ResourceData) -> None:
        pass

    async def import_resource(self, _id: str) -> Tuple[str, Optional[Dict]]:
        """Import an existing remote resource by id.

        Args:
            _id: The remote id of the resource.

        Returns:
            A tuple of (resource_id, attributes). Attributes are None when the
            resource does not exist.
        """
        d = self.resource_data(_id=_id)
        await self.read_resource(d)
        return d.id, d.state()


class DataSource(SchemaResource):
    """A read-only lookup exposing remote data to the configuration."""

    is_data_source = True
