# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

from __future__ import annotations
from typing import TYPE_CHECKING, Dict, Type

from pureport_terraform.azurerm.provider import AzureRMProvider
from pureport_terraform.pureport.provider import PureportProvider

if TYPE_CHECKING:
    from pureport_terraform.utils.base_provider import BaseProvider

PROVIDERS: Dict[str, Type[BaseProvider]] = {
    PureportProvider.name: PureportProvider,
    AzureRMProvider.name: AzureRMProvider,
}


def provider_name_for(resource_type: str) -> str:
    """Resource types are prefixed with the name of the provider serving them."""
    name = resource_type.split("_", 1)[0]
    if name not in PROVIDERS:
        raise KeyError(f"No provider serves resource type {resource_type!r}")
    return name


def get_provider_class(name: str) -> Type[BaseProvider]:
    if name not in PROVIDERS:
        raise KeyError(f"Unknown provider {name!r}, expected one of {sorted(PROVIDERS)}")
    return PROVIDERS[name]
