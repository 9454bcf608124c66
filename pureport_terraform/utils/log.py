# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

from __future__ import annotations
import logging
import os
import sys
from typing import Optional

LOGGER_NAME = "pureport_terraform"
DEBUG_LEVELS = ("DEBUG", "TRACE")


class Log:
    """Thin wrapper over the package logger that prefixes resource context."""

    def __init__(self, verbose: bool = False) -> None:
        if os.environ.get("TF_LOG", "").upper() in DEBUG_LEVELS:
            verbose = True

        self.logger = logging.getLogger(LOGGER_NAME)
        self.logger.setLevel(logging.DEBUG if verbose else logging.INFO)
        self.logger.propagate = False

        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s - %(message)s"))
            self.logger.addHandler(handler)

    def debug(self, msg: str, resource_type: Optional[str] = None, _id: Optional[str] = None) -> None:
        self.logger.debug(self._format(msg, resource_type, _id))

    def info(self, msg: str, resource_type: Optional[str] = None, _id: Optional[str] = None) -> None:
        self.logger.info(self._format(msg, resource_type, _id))

    def warning(self, msg: str, resource_type: Optional[str] = None, _id: Optional[str] = None) -> None:
        self.logger.warning(self._format(msg, resource_type, _id))

    def error(self, msg: str, resource_type: Optional[str] = None, _id: Optional[str] = None) -> None:
        self.logger.error(self._format(msg, resource_type, _id))

    def exception(self, msg: str, resource_type: Optional[str] = None, _id: Optional[str] = None) -> None:
        self.logger.exception(self._format(msg, resource_type, _id))

    @staticmethod
    def _format(msg: str, resource_type: Optional[str], _id: Optional[str]) -> str:
        parts = []
        if resource_type:
            parts.append(resource_type)
        if _id:
            parts.append(_id)
        parts.append(msg)
        return " - ".join(parts)
