# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

from click import command

from pureport_terraform.commands.shared.options import common_options, concurrency_options
from pureport_terraform.commands.shared.utils import run_cmd
from pureport_terraform.utils.configuration import Command


@command("plan", short_help="Show the changes required to converge remote resources onto the configuration.")
@common_options
@concurrency_options
def plan(**kwargs):
    """Show the changes required to converge remote resources onto the configuration."""
    run_cmd(Command.PLAN, **kwargs)
