# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

from typing import Callable, List

import click
from click import Option

from pureport_terraform.utils.state import DEFAULT_STATE_PATH


class CustomOptionClass(Option):
    """Option whose default may also come from a PUREPORT_TERRAFORM_* environment variable."""

    def __init__(self, *args, **kwargs):
        kwargs.setdefault("show_envvar", True)
        super().__init__(*args, **kwargs)


_common_options: List[Callable] = [
    click.option(
        "--config",
        "-c",
        envvar="PUREPORT_TERRAFORM_CONFIG",
        required=True,
        type=click.Path(exists=True, dir_okay=False),
        help="Configuration file (.tf.json, .json, .yaml or .yml).",
        cls=CustomOptionClass,
    ),
    click.option(
        "--state",
        envvar="PUREPORT_TERRAFORM_STATE",
        default=DEFAULT_STATE_PATH,
        show_default=True,
        help="Path of the state file.",
        cls=CustomOptionClass,
    ),
    click.option(
        "--verbose",
        "-v",
        is_flag=True,
        default=False,
        help="Enable debug logging. TF_LOG=DEBUG does the same.",
    ),
    click.option(
        "--http-client-timeout",
        envvar="PUREPORT_TERRAFORM_HTTP_CLIENT_TIMEOUT",
        type=int,
        default=60,
        show_default=True,
        help="Timeout in seconds of a single API request.",
        cls=CustomOptionClass,
    ),
    click.option(
        "--http-client-retry-timeout",
        envvar="PUREPORT_TERRAFORM_HTTP_CLIENT_RETRY_TIMEOUT",
        type=int,
        default=300,
        show_default=True,
        help="Time budget in seconds for retrying a failed API request.",
        cls=CustomOptionClass,
    ),
]

_concurrency_options: List[Callable] = [
    click.option(
        "--max-workers",
        envvar="PUREPORT_TERRAFORM_MAX_WORKERS",
        type=click.IntRange(min=1),
        default=10,
        show_default=True,
        help="Maximum number of resource operations running concurrently.",
        cls=CustomOptionClass,
    ),
    click.option(
        "--refresh/--no-refresh",
        default=True,
        show_default=True,
        help="Refresh state from the remote APIs before planning.",
    ),
]


def _add_options(options: List[Callable], func: Callable) -> Callable:
    for option in reversed(options):
        func = option(func)
    return func


def common_options(func: Callable) -> Callable:
    return _add_options(_common_options, func)


def concurrency_options(func: Callable) -> Callable:
    return _add_options(_concurrency_options, func)
