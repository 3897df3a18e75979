"""
HTTP client for the station feed.

Every failure a display should ride out (connection errors, timeouts,
non-2xx answers, undecodable bodies) is raised as TransientFeedFailure.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

import httpx
from pydantic import ValidationError as SchemaError

from kds_shared.config.settings import settings
from kds_shared.config.logging import feed_logger as logger
from kds_shared.infrastructure.correlation import STATION_HEADER
from kds_shared.utils.kitchen_schemas import KitchenTicketFeed, TicketDotsResponse


class TransientFeedFailure(Exception):
    """A poll failed; the caller keeps its last good snapshot and retries later."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class TicketFeedClient:
    """
    Thin async wrapper around the KDS API.

    Usage:
        async with TicketFeedClient(token=token) as client:
            feed = await client.fetch_tickets("BAR")
    """

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.kds_api_base_url,
            headers=headers,
            timeout=timeout or settings.kds_request_timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> "TicketFeedClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get_json(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        try:
            response = await self._client.get(path, params=params, headers=headers)
        except httpx.HTTPError as e:
            raise TransientFeedFailure(f"{type(e).__name__}: {e}") from e

        if response.status_code >= 400:
            raise TransientFeedFailure(
                f"GET {path} returned {response.status_code}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise TransientFeedFailure(f"GET {path} returned invalid JSON") from e

    async def fetch_tickets(
        self,
        station: str,
        updated_after: datetime | None = None,
        status_in: list[str] | None = None,
        limit: int | None = None,
    ) -> KitchenTicketFeed:
        params: dict[str, Any] = {"station": station}
        if updated_after is not None:
            params["updated_after"] = updated_after.isoformat()
        if status_in:
            params["status_in"] = status_in
        if limit:
            params["limit"] = limit

        data = await self._get_json(
            "/api/kds/tickets", params, headers={STATION_HEADER: station}
        )
        try:
            return KitchenTicketFeed.model_validate(data)
        except SchemaError as e:
            logger.warning("Feed payload failed validation", station=station, errors=e.error_count())
            raise TransientFeedFailure("Feed payload failed validation") from e

    async def fetch_order_dots(self, order_id: int) -> TicketDotsResponse:
        data = await self._get_json(f"/api/orders/{order_id}/ticket-dots")
        try:
            return TicketDotsResponse.model_validate(data)
        except SchemaError as e:
            raise TransientFeedFailure("Dots payload failed validation") from e

    async def health(self) -> dict[str, Any]:
        return await self._get_json("/api/health")
