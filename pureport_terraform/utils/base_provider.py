# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

from __future__ import annotations
import abc
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple, Type

from pureport_terraform.utils.resource_data import ResourceData
from pureport_terraform.utils.schema import Schema, normalize_config, validate_config

if TYPE_CHECKING:
    from pureport_terraform.utils.base_resource import BaseResource, DataSource
    from pureport_terraform.utils.configuration import Configuration


class BaseProvider(abc.ABC):
    """A set of resource types implemented against one vendor API.

    Attributes:
        name: Provider name, also the prefix of every resource type it serves.
        schema: Provider settings declarations.
        resources: Managed resource classes keyed by resource type.
        data_sources: Data source classes keyed by data source type.
    """

    name: str
    schema: Dict[str, Schema]
    resources: Dict[str, Type[BaseResource]]
    data_sources: Dict[str, Type[DataSource]]

    def __init__(self, config: Configuration) -> None:
        self.config = config

    def validate(self, raw: Optional[Dict]) -> Tuple[Dict, List[str], List[str]]:
        normalized = normalize_config(self.schema, raw)
        warnings, errors = validate_config(self.schema, normalized)
        return normalized, warnings, errors

    def provider_data(self, normalized: Dict) -> ResourceData:
        return ResourceData(self.schema, config=normalized)

    @abc.abstractmethod
    async def configure(self, d: ResourceData) -> None:
        """Build the authenticated API client and attach it to the configuration."""

    async def close(self) -> None:
        pass
