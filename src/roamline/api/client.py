"""Async HTTP client for the remote graph API.

Three endpoints, all POST with a JSON body:

- /pull   {"eid": ..., "selector": ...}  -> {"result": {...}}
- /q      {"query": ..., "args": [...]}  -> {"result": [[...], ...]}
- /write  {"action": ..., ...}           -> {} on success

Non-2xx responses raise ApiError; anything that prevents a usable response
(connection failure, timeout, invalid JSON) raises TransportError.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

import httpx

from roamline.api.types import WriteAction
from roamline.errors import ApiError, TransportError


logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.roamresearch.com/api/graph"
DEFAULT_TIMEOUT = 30.0


class RoamClient:
    def __init__(
        self,
        graph_name: str,
        token: str,
        *,
        base_url: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.graph_name = graph_name
        self.base_url = base_url or f"{DEFAULT_BASE_URL}/{graph_name}"
        self._token = token
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={
                    "X-Authorization": f"Bearer {self._token}",
                    "Content-Type": "application/json",
                },
                timeout=httpx.Timeout(self._timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "RoamClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Endpoints
    # -------------------------------------------------------------------------

    async def pull(self, eid: str, selector: str) -> Optional[dict[str, Any]]:
        body = await self._post("/pull", {"eid": eid, "selector": selector})
        return body.get("result")

    async def query(self, query: str, args: Sequence[Any] = ()) -> list[Any]:
        body = await self._post("/q", {"query": query, "args": list(args)})
        return body.get("result") or []

    async def write(self, action: WriteAction) -> None:
        await self._post("/write", action.to_payload(), expect_json=False)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _post(
        self, path: str, payload: dict[str, Any], *, expect_json: bool = True
    ) -> dict[str, Any]:
        try:
            response = await self.client.post(path, json=payload)
        except httpx.HTTPError as err:
            logger.debug("POST %s failed: %s", path, err)
            raise TransportError(f"{type(err).__name__}: {err}") from err

        if response.is_error:
            logger.debug("POST %s -> %s", path, response.status_code)
            raise ApiError(response.status_code, response.text)

        if not expect_json or not response.content:
            return {}
        try:
            body = response.json()
        except ValueError as err:
            raise TransportError("Invalid response format from API") from err
        if not isinstance(body, dict):
            raise TransportError("Invalid response format from API")
        return body
