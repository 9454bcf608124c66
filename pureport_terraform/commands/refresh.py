# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

from click import command

from pureport_terraform.commands.shared.options import common_options, concurrency_options
from pureport_terraform.commands.shared.utils import run_cmd
from pureport_terraform.utils.configuration import Command


@command("refresh", short_help="Update the state file from the remote APIs.")
@common_options
@concurrency_options
def refresh(**kwargs):
    """Update the state file from the remote APIs."""
    run_cmd(Command.REFRESH, **kwargs)
