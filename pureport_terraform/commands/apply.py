# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

from click import command

from pureport_terraform.commands.shared.options import common_options, concurrency_options
from pureport_terraform.commands.shared.utils import run_cmd
from pureport_terraform.utils.configuration import Command


@command("apply", short_help="Create, update and delete resources so they match the configuration.")
@common_options
@concurrency_options
def apply(**kwargs):
    """Create, update and delete resources so they match the configuration."""
    run_cmd(Command.APPLY, **kwargs)
