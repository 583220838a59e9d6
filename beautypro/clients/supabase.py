from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx

from beautypro.services.exceptions import DownstreamServiceError

logger = logging.getLogger(__name__)


class SupabaseClient:
    """Async HTTP client for the hosted database (PostgREST) and auth (GoTrue) endpoints."""

    def __init__(
        self,
        base_url: str | None,
        *,
        api_key: str | None = None,
        timeout: float | None = None,
        use_mock_data: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = str(base_url).rstrip("/") if base_url else None
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport
        self.use_mock_data = use_mock_data or not self._base_url
        self._headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if api_key:
            self._headers.update({"apikey": api_key, "Authorization": f"Bearer {api_key}"})
        self._client: Optional[httpx.AsyncClient] = None
        if not self.use_mock_data and self._base_url:
            self._client = self._build_client()

    @property
    def base_url(self) -> str | None:
        return self._base_url

    @property
    def api_key(self) -> str | None:
        return self._api_key

    def _build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            headers=self._headers,
            transport=self._transport,
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self.use_mock_data or not self._base_url:
            raise RuntimeError("HTTP client requested while running in mock mode")
        if self._client is None:
            self._client = self._build_client()
        return self._client

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Dict[str, Any] | None = None,
        payload: Dict[str, Any] | None = None,
        access_token: str | None = None,
    ) -> Any:
        if self.use_mock_data:
            raise RuntimeError("Real HTTP call requested while mock mode is enabled")
        client = await self._ensure_client()
        headers = {"Authorization": f"Bearer {access_token}"} if access_token else None
        try:
            response = await client.request(
                method, path, params=params, json=payload, headers=headers
            )
            response.raise_for_status()
            if response.status_code == 204 or not response.content:
                return None
            return response.json()
        except httpx.HTTPStatusError as exc:
            logger.exception("Supabase returned error %s for %s", exc.response.status_code, path)
            raise DownstreamServiceError(
                "Supabase returned an error response",
                status_code=exc.response.status_code,
                cause=exc,
            ) from exc
        except httpx.RequestError as exc:
            logger.exception("Unable to reach Supabase: %s", exc)
            raise DownstreamServiceError(
                "Unable to reach Supabase", status_code=None, cause=exc
            ) from exc

    async def select(
        self,
        table: str,
        *,
        columns: str = "*",
        filters: Dict[str, Any] | None = None,
        order: str | None = None,
        ascending: bool = True,
        access_token: str | None = None,
    ) -> List[Dict[str, Any]]:
        """Read rows from ``table`` through PostgREST.

        ``filters`` are equality filters (``column=eq.value``). Embedded
        resources are expressed in ``columns`` using PostgREST syntax, e.g.
        ``"*,client:client_id(full_name)"``.
        """

        params: Dict[str, Any] = {"select": _compact_columns(columns)}
        for column, value in (filters or {}).items():
            params[column] = f"eq.{_format_filter_value(value)}"
        if order:
            params["order"] = f"{order}.{'asc' if ascending else 'desc'}"
        data = await self._request(
            "GET", f"/rest/v1/{table}", params=params, access_token=access_token
        )
        return list(data or [])

    async def sign_in_with_password(self, email: str, password: str) -> Dict[str, Any]:
        return await self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            payload={"email": email, "password": password},
        )

    async def sign_out(self, access_token: str) -> None:
        await self._request("POST", "/auth/v1/logout", access_token=access_token)

    async def get_user(self, access_token: str) -> Dict[str, Any]:
        return await self._request("GET", "/auth/v1/user", access_token=access_token)

    async def simulate_latency(self) -> None:
        """Allow services to await for latency even when mocking responses."""

        await asyncio.sleep(0)


def _compact_columns(columns: str) -> str:
    return "".join(columns.split())


def _format_filter_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
