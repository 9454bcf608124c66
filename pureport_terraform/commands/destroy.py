# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

from click import command

from pureport_terraform.commands.shared.options import common_options, concurrency_options
from pureport_terraform.commands.shared.utils import run_cmd
from pureport_terraform.utils.configuration import Command


@command("destroy", short_help="Delete every resource recorded in the state file.")
@common_options
@concurrency_options
def destroy(**kwargs):
    """Delete every resource recorded in the state file."""
    run_cmd(Command.DESTROY, **kwargs)
