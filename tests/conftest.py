# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

import pytest
from unittest.mock import AsyncMock

from pureport_terraform.azurerm.config import ENVIRONMENTS, ArmClient
from pureport_terraform.utils.configuration import Configuration
from pureport_terraform.utils.log import Log
from pureport_terraform.utils.mutexkv import MutexKV
from pureport_terraform.utils.state import State


@pytest.fixture
def config(tmp_path):
    """Configuration with mocked API clients and a state file under tmp_path."""
    logger = Log()
    cfg = Configuration(
        logger=logger,
        state=State(str(tmp_path / "terraform.tfstate.json")),
        mutex_kv=MutexKV(logger),
        config_path="",
    )
    cfg.pureport_client = AsyncMock()

    arm = ArmClient(AsyncMock(), "sub-1", ENVIRONMENTS["public"], logger)
    arm.poll_interval = 0
    cfg.arm_client = arm
    return cfg
