# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

from __future__ import annotations
import asyncio
import sys
from typing import Any, List

import click

from pureport_terraform.utils.configuration import Command, Configuration, build_config
from pureport_terraform.utils.resource_utils import ConfigValidationError, CycleError, ResourceError
from pureport_terraform.utils.resources_handler import ActionType, PlanAction, ResourcesHandler

ACTION_SYMBOLS = {
    ActionType.CREATE: "+",
    ActionType.UPDATE: "~",
    ActionType.REPLACE: "-/+",
    ActionType.DELETE: "-",
    ActionType.READ: "<=",
}


def format_plan(actions: List[PlanAction]) -> List[str]:
    lines = []
    counts = {ActionType.CREATE: 0, ActionType.UPDATE: 0, ActionType.REPLACE: 0, ActionType.DELETE: 0}
    for action in actions:
        if action.action == ActionType.NO_OP:
            continue
        line = f"  {ACTION_SYMBOLS[action.action]} {action.address}"
        if action.requires_replace:
            line += f" (forces replacement: {', '.join(action.requires_replace)})"
        elif action.changed:
            line += f" (changed: {', '.join(action.changed)})"
        lines.append(line)
        if action.action in counts:
            counts[action.action] += 1

    if not lines:
        return ["No changes. Infrastructure is up-to-date."]

    lines.append(
        f"Plan: {counts[ActionType.CREATE] + counts[ActionType.REPLACE]} to add, "
        f"{counts[ActionType.UPDATE]} to change, "
        f"{counts[ActionType.DELETE] + counts[ActionType.REPLACE]} to destroy."
    )
    return lines


def run_cmd(cmd: Command, **kwargs: Any) -> None:
    """Build the configuration, run the command and exit non-zero on failure."""
    try:
        cfg = build_config(cmd, **kwargs)
        handler = ResourcesHandler(cfg)
    except (OSError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    try:
        ok = asyncio.run(run_cmd_async(cfg, handler, cmd, **kwargs))
    except (ConfigValidationError, CycleError, ResourceError, KeyError, ValueError) as e:
        cfg.logger.error(str(e))
        sys.exit(1)

    if not ok:
        sys.exit(1)


async def run_cmd_async(cfg: Configuration, handler: ResourcesHandler, cmd: Command, **kwargs: Any) -> bool:
    try:
        if cmd == Command.VALIDATE:
            errors = handler.validate()
            for error in errors:
                click.echo(f"Error: {error}", err=True)
            if not errors:
                click.echo("Success! The configuration is valid.")
            return not errors

        if cmd == Command.PLAN:
            for line in format_plan(await handler.plan()):
                click.echo(line)
            return True

        if cmd == Command.APPLY:
            actions = await handler.plan()
            for line in format_plan(actions):
                click.echo(line)
            return (await handler.apply(actions)).ok

        if cmd == Command.REFRESH:
            return (await handler.refresh()).ok

        if cmd == Command.IMPORT:
            await handler.import_resource(kwargs["address"], kwargs["resource_id"])
            click.echo(f"{kwargs['address']}: Import prepared!")
            return True

        if cmd == Command.DESTROY:
            return (await handler.destroy()).ok

        raise ValueError(f"Command {cmd.value} not found")
    finally:
        await cfg.exit_async()
