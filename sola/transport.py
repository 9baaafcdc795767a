"""HTTP transport to the Sola service. One call, one request/response exchange."""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

log = logging.getLogger(__name__)


class TransportError(Exception):
    """A failed exchange with the service.

    ``status_code`` is the HTTP status of the response, or ``None`` when no
    response was received at all (connection refused, timeout, ...). It is
    the only structured detail; the request line only appears in the message.
    """

    def __init__(self, status_code: Optional[int], method: str = "", path: str = "") -> None:
        self.status_code = status_code
        message = f"API error: {status_code if status_code is not None else 'no response'}"
        if method:
            message += f" ({method} {path})"
        super().__init__(message)


class Transport:
    """Thin async JSON client.

    ``request`` returns the decoded JSON payload, ``None`` for an empty
    success, and raises ``TransportError`` for any non-success status.
    There is no retry and no backoff.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers={"Content-Type": "application/json"},
        )

    async def __aenter__(self) -> Transport:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        params: Optional[dict[str, str]] = None,
    ) -> Any:
        """Perform one exchange and normalise its outcome."""
        log.debug("%s %s params=%s", method, path, params)
        try:
            response = await self._client.request(method, path, json=body, params=params)
        except httpx.RequestError as exc:
            log.warning("%s %s failed: %s", method, path, exc)
            raise TransportError(None, method, path) from exc

        if not response.is_success:
            log.warning("%s %s -> %d", method, path, response.status_code)
            raise TransportError(response.status_code, method, path)
        if response.status_code == httpx.codes.NO_CONTENT or not response.content:
            return None
        return response.json()

    async def get(self, path: str, params: Optional[dict[str, str]] = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, body: Any = None) -> Any:
        return await self.request("POST", path, body=body)

    async def put(self, path: str, body: Any = None) -> Any:
        return await self.request("PUT", path, body=body)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)
