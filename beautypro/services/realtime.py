from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Protocol, Set

from beautypro.clients.realtime import RealtimeClient
from beautypro.clients.supabase import SupabaseClient
from beautypro.schemas.appointment import ChangeEvent
from beautypro.services.mock_store import AppointmentRepository, get_mock_store

logger = logging.getLogger(__name__)

CHANNEL_NAME = "appointments_changes"

ChangeCallback = Callable[[ChangeEvent], None]


class Subscription(Protocol):
    async def unsubscribe(self) -> None:
        ...


class _RepositorySubscription:
    def __init__(self, remove: Callable[[], None]) -> None:
        self._remove = remove

    async def unsubscribe(self) -> None:
        self._remove()


class AppointmentChangeFeed:
    """Change notifications for the ``appointments`` table."""

    def __init__(
        self,
        client: SupabaseClient,
        realtime: RealtimeClient | None = None,
        *,
        repository: AppointmentRepository | None = None,
    ) -> None:
        self._client = client
        self._realtime = realtime
        self._repository = repository
        if self._client.use_mock_data:
            self._repository = repository or get_mock_store().appointments

    async def subscribe(self, callback: ChangeCallback) -> Subscription:
        if self._client.use_mock_data:
            if not self._repository:
                raise RuntimeError("Mock appointment repository not configured")
            return _RepositorySubscription(self._repository.subscribe(callback))

        if self._realtime is None:
            raise RuntimeError("Realtime client not configured")
        channel = self._realtime.channel(CHANNEL_NAME).on_postgres_changes(
            "*", schema="public", table="appointments", callback=callback
        )
        return await channel.subscribe()


class AppointmentChangeListener:
    """Re-fetches appointments once per change event while subscribed.

    Re-fetches are scheduled as independent tasks: bursts are neither
    debounced nor coalesced, and stopping the listener leaves in-flight
    re-fetches running.
    """

    def __init__(
        self,
        feed: AppointmentChangeFeed,
        on_change: Callable[[], Awaitable[None]],
    ) -> None:
        self._feed = feed
        self._on_change = on_change
        self._subscription: Optional[Subscription] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def active(self) -> bool:
        return self._subscription is not None

    async def start(self) -> None:
        if self._subscription is not None:
            return
        self._subscription = await self._feed.subscribe(self._handle_change)

    async def stop(self) -> None:
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            await subscription.unsubscribe()

    async def wait_idle(self) -> None:
        """Wait for every scheduled re-fetch to finish."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _handle_change(self, event: ChangeEvent) -> None:
        row_id = event.record.get("id") or event.old_record.get("id")
        logger.info("Appointment updated: %s %s", event.event_type, row_id)
        task = asyncio.get_running_loop().create_task(self._on_change())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
