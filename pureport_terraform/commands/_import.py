# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

from click import argument, command

from pureport_terraform.commands.shared.options import common_options
from pureport_terraform.commands.shared.utils import run_cmd
from pureport_terraform.utils.configuration import Command


@command("import", short_help="Bring an existing remote resource under management.")
@argument("address")
@argument("resource_id")
@common_options
def _import(**kwargs):
    """Import the remote resource RESOURCE_ID into the state as ADDRESS (<type>.<name>)."""
    run_cmd(Command.IMPORT, **kwargs)
