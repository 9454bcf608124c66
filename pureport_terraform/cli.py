# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

import click

from pureport_terraform import __version__
from pureport_terraform.commands._import import _import
from pureport_terraform.commands.apply import apply
from pureport_terraform.commands.destroy import destroy
from pureport_terraform.commands.plan import plan
from pureport_terraform.commands.refresh import refresh
from pureport_terraform.commands.validate import validate


@click.group()
@click.version_option(__version__, prog_name="pureport-terraform")
def cli():
    """Manage Pureport and Azure resources from declarative configuration."""


cli.add_command(validate)
cli.add_command(plan)
cli.add_command(apply)
cli.add_command(refresh)
cli.add_command(_import)
cli.add_command(destroy)


if __name__ == "__main__":
    cli()
