from __future__ import annotations

import logging
from typing import List

from beautypro.clients.supabase import SupabaseClient
from beautypro.schemas.catalog import Service, Stylist
from beautypro.services.exceptions import ServiceError
from beautypro.services.mock_store import (
    ProfileRepository,
    ServiceRepository,
    get_mock_store,
)

logger = logging.getLogger(__name__)


class CatalogService:
    """Reads the salon's service menu and stylist roster."""

    def __init__(
        self,
        client: SupabaseClient,
        *,
        services: ServiceRepository | None = None,
        profiles: ProfileRepository | None = None,
    ) -> None:
        self._client = client
        self._services = services
        self._profiles = profiles
        if self._client.use_mock_data:
            store = get_mock_store()
            self._services = services or store.services
            self._profiles = profiles or store.profiles

    async def fetch_services(self) -> List[Service]:
        logger.info("Fetching active services")
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            if not self._services:
                raise RuntimeError("Mock service repository not configured")

        try:
            if self._client.use_mock_data:
                rows = await self._services.list(active=True)
            else:
                rows = await self._client.select(
                    "services", filters={"active": True}, order="name"
                )
            return [Service(**row) for row in rows]
        except ServiceError:
            raise
        except Exception as exc:
            logger.exception("Unexpected error while fetching services")
            raise ServiceError("Failed to fetch services", cause=exc)

    async def fetch_stylists(self) -> List[Stylist]:
        logger.info("Fetching stylists")
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            if not self._profiles:
                raise RuntimeError("Mock profile repository not configured")

        try:
            if self._client.use_mock_data:
                rows = await self._profiles.list(role="stylist")
            else:
                rows = await self._client.select(
                    "profiles", filters={"role": "stylist"}, order="full_name"
                )
            return [Stylist(**row) for row in rows]
        except ServiceError:
            raise
        except Exception as exc:
            logger.exception("Unexpected error while fetching stylists")
            raise ServiceError("Failed to fetch stylists", cause=exc)
