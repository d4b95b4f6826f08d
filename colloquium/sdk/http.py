# FilePath: "/colloquium/sdk/http.py"
# Project: Colloquium Bot Framework
# Description: aiohttp transport for bot-side API calls. Every request carries the
#              X-Bot-Token header; non-2xx responses raise BotApiError.
# Author: "Colloquium Contributors"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

import logging
from typing import Any, Dict, Optional

import aiohttp

logger = logging.getLogger(__name__)

BOT_TOKEN_HEADER = "X-Bot-Token"


class BotApiError(Exception):
    """Uniform error for failed bot API requests."""

    def __init__(self, status: int, reason: str, body: str = ""):
        super().__init__(f"Bot API request failed: {status} {reason}")
        self.status = status
        self.reason = reason
        self.body = body


class BotHttpClient:
    def __init__(
        self,
        api_url: str,
        service_token: str,
        timeout: float = 30.0,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.service_token = service_token
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._session and self._owns_session and not self._session.closed:
            await self._session.close()

    def _url(self, path: str) -> str:
        return path if path.startswith("http") else f"{self.api_url}{path}"

    async def request(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
        as_text: bool = False,
    ) -> Any:
        headers = {BOT_TOKEN_HEADER: self.service_token}
        async with self.session.request(method, self._url(path), json=json, params=params, headers=headers) as response:
            if response.status >= 400:
                body = await response.text()
                logger.debug(f"{method} {path} -> {response.status}")
                raise BotApiError(response.status, response.reason or "", body)
            if as_text:
                return await response.text()
            if response.status == 204 or response.content_length == 0:
                return None
            return await response.json(content_type=None)

    async def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("GET", path, params=params)

    async def get_text(self, path: str) -> str:
        return await self.request("GET", path, as_text=True)

    async def post_json(self, path: str, data: Any) -> Any:
        return await self.request("POST", path, json=data)

    async def put_json(self, path: str, data: Any) -> Any:
        return await self.request("PUT", path, json=data)

    async def delete(self, path: str) -> None:
        await self.request("DELETE", path)
