# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

from __future__ import annotations
import asyncio
import json
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Optional

import aiohttp

from pureport_terraform.utils.resource_utils import CustomClientHTTPError

if TYPE_CHECKING:
    from pureport_terraform.utils.log import Log


@dataclass
class APIResponse:
    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None

    def __post_init__(self) -> None:
        self.headers = {k.lower(): v for k, v in (self.headers or {}).items()}

    def header(self, name: str) -> Optional[str]:
        return self.headers.get(name.lower())


class ClientAuth:
    """Supplies per-request auth headers. The default sends none."""

    async def headers(self) -> Dict[str, str]:
        return {}

    async def refresh(self) -> bool:
        """Called after a 401. Returns True when the request is worth retrying."""
        return False

    async def close(self) -> None:
        pass


class BearerTokenAuth(ClientAuth):
    def __init__(self, token: str) -> None:
        self.token = token

    async def headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


def error_message(body: Any) -> str:
    if isinstance(body, dict):
        if isinstance(body.get("error"), dict):
            error = body["error"]
            return f"{error.get('code', '')}: {error.get('message', '')}".strip(": ")
        for key in ("message", "error", "errors"):
            if body.get(key):
                return str(body[key])
    if body is None:
        return ""
    return str(body)


class CustomClient:
    """aiohttp backed JSON client with auth, retries and back-off.

    Args:
        host: Base URL every relative path is joined to.
        auth: Strategy providing auth headers.
        timeout: Per request timeout in seconds.
        retry_timeout: Overall time budget in seconds for retrying a request.
        max_retries: Maximum number of retries for one request.
        user_agent: User-Agent header value.
        default_headers: Headers sent with every request.
        default_params: Query parameters sent with every request.
        logger: Log instance used for request tracing.
    """

    backoff_base = 1.0
    backoff_max = 30.0

    def __init__(
        self,
        host: str,
        auth: Optional[ClientAuth] = None,
        timeout: int = 60,
        retry_timeout: int = 300,
        max_retries: int = 5,
        user_agent: Optional[str] = None,
        default_headers: Optional[Dict[str, str]] = None,
        default_params: Optional[Dict[str, str]] = None,
        logger: Optional[Log] = None,
    ) -> None:
        self.host = host.rstrip("/")
        self.auth = auth or ClientAuth()
        self.timeout = timeout
        self.retry_timeout = retry_timeout
        self.max_retries = max_retries
        self.user_agent = user_agent
        self.default_headers = dict(default_headers or {})
        self.default_params = dict(default_params or {})
        self.logger = logger
        self.session: Optional[aiohttp.ClientSession] = None

    async def _init_session(self) -> None:
        if self.session is None or self.session.closed:
            headers = {"Accept": "application/json", "Content-Type": "application/json"}
            if self.user_agent:
                headers["User-Agent"] = self.user_agent
            self.session = aiohttp.ClientSession(headers=headers)

    async def _end_session(self) -> None:
        await self.auth.close()
        if self.session is not None and not self.session.closed:
            await self.session.close()
        self.session = None

    def url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.host}/{path.lstrip('/')}"

    def _backoff(self, attempt: int, retry_after: Optional[str]) -> float:
        if retry_after:
            try:
                return min(float(retry_after), self.backoff_max)
            except ValueError:
                pass
        return min(self.backoff_base * (2**attempt), self.backoff_max)

    async def _send(
        self, method: str, url: str, body: Any, params: Dict[str, str], headers: Dict[str, str]
    ) -> APIResponse:
        await self._init_session()
        assert self.session is not None
        async with self.session.request(
            method,
            url,
            json=body,
            params=params or None,
            headers=headers,
            timeout=aiohttp.ClientTimeout(total=self.timeout),
        ) as resp:
            text = await resp.text()
            try:
                payload = json.loads(text) if text else None
            except ValueError:
                payload = text
            return APIResponse(resp.status, dict(resp.headers), payload)

    async def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> APIResponse:
        """Send a request, retrying on throttling, server errors and connection errors.

        POST requests are only retried on 429.

        Raises:
            CustomClientHTTPError: For 4xx responses and when retries are exhausted.
        """
        url = self.url(path)
        query = {k: str(v) for k, v in {**self.default_params, **(params or {})}.items() if v is not None}
        deadline = time.monotonic() + self.retry_timeout
        attempt = 0
        refreshed = False
        idempotent = method.upper() != "POST"

        while True:
            req_headers = {**self.default_headers, **(await self.auth.headers()), **(headers or {})}
            if self.logger:
                self.logger.debug(f"{method} {url}")

            try:
                resp = await self._send(method, url, body, query, req_headers)
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                if not idempotent or attempt >= self.max_retries or time.monotonic() >= deadline:
                    raise CustomClientHTTPError(0, f"{method} {url} failed: {e}") from e
                if self.logger:
                    self.logger.warning(f"{method} {url} failed, retrying: {e}")
                await asyncio.sleep(self._backoff(attempt, None))
                attempt += 1
                continue

            if resp.status == 401 and not refreshed and await self.auth.refresh():
                refreshed = True
                continue

            if resp.status == 429 or (idempotent and resp.status >= 500):
                if attempt < self.max_retries and time.monotonic() < deadline:
                    if self.logger:
                        self.logger.warning(f"{method} {url} returned {resp.status}, retrying")
                    await asyncio.sleep(self._backoff(attempt, resp.header("Retry-After")))
                    attempt += 1
                    continue

            if resp.status >= 400:
                raise CustomClientHTTPError(resp.status, error_message(resp.body))

            return resp

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None, **kwargs: Any) -> Any:
        return (await self.request("GET", path, params=params, **kwargs)).body

    async def post(self, path: str, body: Any = None, params: Optional[Dict[str, Any]] = None, **kwargs: Any) -> Any:
        return (await self.request("POST", path, body=body, params=params, **kwargs)).body

    async def put(self, path: str, body: Any = None, params: Optional[Dict[str, Any]] = None, **kwargs: Any) -> Any:
        return (await self.request("PUT", path, body=body, params=params, **kwargs)).body

    async def patch(self, path: str, body: Any = None, params: Optional[Dict[str, Any]] = None, **kwargs: Any) -> Any:
        return (await self.request("PATCH", path, body=body, params=params, **kwargs)).body

    async def delete(self, path: str, body: Any = None, params: Optional[Dict[str, Any]] = None, **kwargs: Any) -> Any:
        return (await self.request("DELETE", path, body=body, params=params, **kwargs)).body
