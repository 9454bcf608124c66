# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

"""Credential resolution and login for the Pureport API."""

from __future__ import annotations
import asyncio
import os
from typing import Dict, Optional

import yaml

from pureport_terraform.utils.custom_client import ClientAuth, CustomClient
from pureport_terraform.utils.resource_utils import CustomClientHTTPError

DEFAULT_API_URL = "https://api.pureport.com"
CREDENTIALS_PATH = os.path.join("~", ".pureport", "credentials.yml")
LOGIN_PATH = "/login"


def load_profile(profile: str = "", path: str = CREDENTIALS_PATH) -> Dict[str, str]:
    """Read one profile from the Pureport credentials file.

    The file is YAML with a ``current_profile`` name and a ``profiles`` map of
    ``api_url``, ``api_key`` and ``api_secret`` entries.

    Args:
        profile: Profile name. Falls back to ``current_profile``, then ``default``.
        path: Location of the credentials file.

    Returns:
        The profile settings, empty when the file does not exist.

    Raises:
        ValueError: If a profile was named explicitly but is not in the file.
    """
    path = os.path.expanduser(path)
    if not os.path.exists(path):
        if profile:
            raise ValueError(f"Pureport profile {profile!r} requested but {path} does not exist")
        return {}

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    profiles = data.get("profiles") or {}
    name = profile or data.get("current_profile") or "default"
    if name not in profiles:
        if profile:
            raise ValueError(f"Pureport profile {profile!r} not found in {path}")
        return {}

    return profiles[name] or {}


class PureportAuth(ClientAuth):
    """Exchanges an API key and secret for a bearer token, renewing it after a 401."""

    def __init__(self, api_url: str, access_key: str, secret_key: str, timeout: int = 60) -> None:
        self.access_key = access_key
        self.secret_key = secret_key
        self._token: Optional[str] = None
        self._lock = asyncio.Lock()
        self._login_client = CustomClient(api_url, timeout=timeout, max_retries=3)

    async def headers(self) -> Dict[str, str]:
        if self._token is None:
            await self._login()
        return {"Authorization": f"Bearer {self._token}"}

    async def refresh(self) -> bool:
        self._token = None
        await self._login()
        return True

    async def _login(self) -> None:
        async with self._lock:
            if self._token is not None:
                return

            resp = await self._login_client.post(LOGIN_PATH, {"key": self.access_key, "secret": self.secret_key})
            token = resp.get("access_token") if isinstance(resp, dict) else None
            if not token:
                raise CustomClientHTTPError(401, "Login response did not contain an access token")
            self._token = token

    async def close(self) -> None:
        await self._login_client._end_session()
