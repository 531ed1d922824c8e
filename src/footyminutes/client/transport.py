"""Async HTTP transport for the fixture and roster API."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Sequence

import httpx

from footyminutes.errors import RemoteRequestError, RemoteUnavailableError


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = httpx.Timeout(15.0, connect=5.0)


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(payload, dict):
        for key in ("detail", "error", "message"):
            if payload.get(key):
                return str(payload[key])
    return response.reason_phrase


class ApiTransport:
    """Thin wrapper over :class:`httpx.AsyncClient` returning the ``data`` envelope.

    Any network failure, non-2xx status or malformed envelope raises
    :class:`RemoteUnavailableError` (``RemoteRequestError`` for HTTP errors).
    Timeouts are the client's concern; nothing is retried here.
    """

    def __init__(
        self,
        base_url: str,
        *,
        session_secret: Optional[str] = None,
        actor_roles: Sequence[str] = (),
        client: httpx.AsyncClient | None = None,
        timeout: httpx.Timeout | float = DEFAULT_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self._session_secret = session_secret
        self._actor_roles = tuple(actor_roles)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> "ApiTransport":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _headers(self, actor_id: Optional[str]) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._session_secret:
            headers["X-Session-Secret"] = self._session_secret
        if self._actor_roles:
            headers["X-Actor-Roles"] = ",".join(self._actor_roles)
        if actor_id:
            headers["X-Actor-Id"] = actor_id
        return headers

    async def request(
        self,
        path: str,
        *,
        method: str = "GET",
        body: Any = None,
        query: Mapping[str, Any] | None = None,
        actor_id: Optional[str] = None,
    ) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"
        params = {key: value for key, value in (query or {}).items() if value is not None}
        try:
            response = await self._client.request(
                method,
                url,
                json=body,
                params=params or None,
                headers=self._headers(actor_id),
            )
        except httpx.HTTPError as exc:
            raise RemoteUnavailableError(f"{method} {path} failed: {exc}") from exc

        if response.status_code < 200 or response.status_code >= 300:
            raise RemoteRequestError(
                response.status_code,
                _error_message(response),
                method=method,
                path=path,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise RemoteUnavailableError(f"{method} {path} returned invalid JSON") from exc
        if not isinstance(payload, dict) or "data" not in payload:
            raise RemoteUnavailableError(f"{method} {path} returned no data envelope")
        logger.debug("%s %s -> %s", method, path, response.status_code)
        return payload["data"]
