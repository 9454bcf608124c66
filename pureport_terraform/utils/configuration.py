# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

from __future__ import annotations
import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional, Set

from pureport_terraform.providers import get_provider_class, provider_name_for
from pureport_terraform.utils.log import Log
from pureport_terraform.utils.mutexkv import MutexKV
from pureport_terraform.utils.resource_utils import ConfigValidationError
from pureport_terraform.utils.state import DEFAULT_STATE_PATH, State

if TYPE_CHECKING:
    from pureport_terraform.azurerm.config import ArmClient
    from pureport_terraform.utils.base_provider import BaseProvider
    from pureport_terraform.utils.base_resource import SchemaResource
    from pureport_terraform.utils.custom_client import CustomClient


class Command(Enum):
    VALIDATE = "validate"
    PLAN = "plan"
    APPLY = "apply"
    REFRESH = "refresh"
    IMPORT = "import"
    DESTROY = "destroy"


@dataclass
class Configuration:
    """Everything a command run shares: logging, state, locks and provider clients.

    Provider clients are configured lazily, the first time a resource of that
    provider is touched, so commands that never reach a provider never need
    its credentials.
    """

    logger: Log
    state: State
    mutex_kv: MutexKV
    config_path: str
    command: Optional[Command] = None
    max_workers: int = 10
    refresh: bool = True
    http_client_timeout: int = 60
    http_client_retry_timeout: int = 300
    provider_settings: Dict[str, Dict] = field(default_factory=dict)
    pureport_client: Optional[CustomClient] = None
    arm_client: Optional[ArmClient] = None
    providers: Dict[str, BaseProvider] = field(default_factory=dict)
    resources: Dict[str, SchemaResource] = field(default_factory=dict)
    _configured: Set[str] = field(default_factory=set, repr=False)
    _configure_lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    def get_provider(self, name: str) -> BaseProvider:
        if name not in self.providers:
            self.providers[name] = get_provider_class(name)(self)
        return self.providers[name]

    def get_resource(self, resource_type: str, data_source: bool = False) -> SchemaResource:
        """Return the (cached) resource or data source instance for a type.

        Raises:
            KeyError: If no provider serves the type.
        """
        cache_key = f"data.{resource_type}" if data_source else resource_type
        if cache_key not in self.resources:
            provider = self.get_provider(provider_name_for(resource_type))
            classes = provider.data_sources if data_source else provider.resources
            if resource_type not in classes:
                kind = "data source" if data_source else "resource"
                raise KeyError(f"Provider {provider.name!r} does not support {kind} {resource_type!r}")
            self.resources[cache_key] = classes[resource_type](self)
        return self.resources[cache_key]

    async def configure_provider(self, name: str) -> None:
        """Validate the provider settings and build its client, once per run."""
        async with self._configure_lock:
            if name in self._configured:
                return

            provider = self.get_provider(name)
            normalized, warnings, errors = provider.validate(self.provider_settings.get(name))
            for warning in warnings:
                self.logger.warning(warning, f"provider.{name}")
            if errors:
                raise ConfigValidationError(f"provider.{name}", errors)

            await provider.configure(provider.provider_data(normalized))
            self._configured.add(name)
            self.logger.debug(f"Configured provider {name!r}")

    async def exit_async(self) -> None:
        for name in sorted(self._configured):
            await self.providers[name].close()
        self._configured.clear()


def build_config(cmd: Command, **kwargs: Any) -> Configuration:
    """Build the run configuration from the click options of a command."""
    logger = Log(kwargs.get("verbose", False))
    state = State(kwargs.get("state") or DEFAULT_STATE_PATH).load()

    max_workers = kwargs.get("max_workers")
    if max_workers is None:
        max_workers = 10
    if max_workers < 1:
        raise ValueError("max_workers must be at least 1")

    return Configuration(
        logger=logger,
        state=state,
        mutex_kv=MutexKV(logger),
        config_path=kwargs.get("config") or "",
        command=cmd,
        max_workers=max_workers,
        refresh=kwargs.get("refresh", True),
        http_client_timeout=kwargs.get("http_client_timeout") or 60,
        http_client_retry_timeout=kwargs.get("http_client_retry_timeout") or 300,
    )
