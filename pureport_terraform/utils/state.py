# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

from __future__ import annotations
import json
import os
import tempfile
from collections import defaultdict
from typing import Dict, List, Optional, Tuple

STATE_VERSION = 1
DEFAULT_STATE_PATH = "terraform.tfstate.json"


class State:
    """Local JSON state: one entry per managed resource, keyed by type then name.

    Each entry holds ``id``, ``provider``, ``attributes`` and ``depends_on``.
    """

    def __init__(self, path: str = DEFAULT_STATE_PATH) -> None:
        self.path = path
        self.serial = 0
        self.resources: Dict[str, Dict[str, Dict]] = defaultdict(dict)

    def load(self) -> "State":
        if not os.path.exists(self.path):
            return self

        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)

        version = data.get("version", STATE_VERSION)
        if version != STATE_VERSION:
            raise ValueError(f"Unsupported state version {version} in {self.path}")

        self.serial = data.get("serial", 0)
        self.resources = defaultdict(dict)
        for resource_type, entries in data.get("resources", {}).items():
            self.resources[resource_type].update(entries)

        return self

    def get(self, resource_type: str, name: str) -> Optional[Dict]:
        return self.resources.get(resource_type, {}).get(name)

    def put(
        self,
        resource_type: str,
        name: str,
        _id: str,
        attributes: Dict,
        provider: str,
        depends_on: Optional[List[str]] = None,
    ) -> None:
        self.resources[resource_type][name] = {
            "id": _id,
            "provider": provider,
            "attributes": attributes,
            "depends_on": sorted(depends_on or []),
        }

    def remove(self, resource_type: str, name: str) -> None:
        entries = self.resources.get(resource_type, {})
        entries.pop(name, None)
        if not entries:
            self.resources.pop(resource_type, None)

    def addresses(self) -> List[Tuple[str, str]]:
        return sorted((t, n) for t, entries in self.resources.items() for n in entries)

    def dump_state(self) -> None:
        """Write the state atomically, bumping the serial."""
        self.serial += 1
        data = {
            "version": STATE_VERSION,
            "serial": self.serial,
            "resources": {t: dict(sorted(e.items())) for t, e in sorted(self.resources.items()) if e},
        }

        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".tfstate-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, sort_keys=False)
                f.write("\n")
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
