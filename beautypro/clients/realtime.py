from __future__ import annotations

import asyncio
import contextlib
import itertools
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence
from urllib.parse import urlencode, urlsplit, urlunsplit

import websockets
from websockets.exceptions import WebSocketException

from beautypro.schemas.appointment import ChangeEvent

logger = logging.getLogger(__name__)

PHOENIX_TOPIC = "phoenix"
RECONNECT_DELAYS = (1.0, 2.0, 5.0, 10.0)

ChangeCallback = Callable[[ChangeEvent], None]


def build_socket_url(base_url: str, api_key: str) -> str:
    """Translate the project URL into the Realtime websocket endpoint."""

    parts = urlsplit(str(base_url))
    scheme = "wss" if parts.scheme == "https" else "ws"
    path = parts.path.rstrip("/") + "/realtime/v1/websocket"
    query = urlencode({"apikey": api_key, "vsn": "1.0.0"})
    return urlunsplit((scheme, parts.netloc, path, query, ""))


@dataclass
class _PostgresBinding:
    event: str
    schema: str
    table: str
    callback: ChangeCallback

    def matches(self, change: ChangeEvent) -> bool:
        if self.event != "*" and self.event != change.event_type:
            return False
        return self.schema == change.schema_name and self.table == change.table


class RealtimeChannel:
    """A Phoenix channel carrying ``postgres_changes`` notifications."""

    def __init__(self, client: "RealtimeClient", name: str) -> None:
        self._client = client
        self.name = name
        self.topic = f"realtime:{name}"
        self.state = "closed"
        self.join_ref: Optional[str] = None
        self._bindings: List[_PostgresBinding] = []

    def on_postgres_changes(
        self,
        event: str,
        *,
        table: str,
        callback: ChangeCallback,
        schema: str = "public",
    ) -> "RealtimeChannel":
        self._bindings.append(_PostgresBinding(event.upper(), schema, table, callback))
        return self

    def join_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "config": {
                "broadcast": {"ack": False, "self": False},
                "presence": {"key": ""},
                "postgres_changes": [
                    {"event": binding.event, "schema": binding.schema, "table": binding.table}
                    for binding in self._bindings
                ],
                "private": False,
            }
        }
        if self._client.access_token:
            payload["access_token"] = self._client.access_token
        return payload

    async def subscribe(self) -> "RealtimeChannel":
        await self._client.add_channel(self)
        return self

    async def unsubscribe(self) -> None:
        await self._client.remove_channel(self)

    def handle(self, message: Dict[str, Any]) -> None:
        event = message.get("event")
        payload = message.get("payload") or {}
        if event == "phx_reply":
            if message.get("ref") != self.join_ref:
                return
            status = payload.get("status")
            if status == "ok":
                self.state = "joined"
                logger.info("Subscribed to realtime channel %s", self.name)
            else:
                self.state = "errored"
                logger.warning("Realtime channel %s join failed: %s", self.name, payload.get("response"))
        elif event == "postgres_changes":
            self._dispatch_change(payload.get("data") or {})
        elif event == "phx_error":
            self.state = "errored"
            logger.warning("Realtime channel %s errored", self.name)
        elif event == "phx_close":
            self.state = "closed"
        else:
            logger.debug("Ignoring realtime event %s on %s", event, self.topic)

    def _dispatch_change(self, data: Dict[str, Any]) -> None:
        try:
            change = ChangeEvent(
                event_type=data["type"],
                schema_name=data.get("schema", "public"),
                table=data["table"],
                record=data.get("record") or {},
                old_record=data.get("old_record") or {},
                commit_timestamp=data.get("commit_timestamp"),
            )
        except (KeyError, ValueError):
            logger.warning("Malformed postgres_changes payload on %s: %s", self.topic, data)
            return
        for binding in self._bindings:
            if not binding.matches(change):
                continue
            try:
                binding.callback(change)
            except Exception:
                logger.exception("Realtime callback failed on %s", self.topic)


class RealtimeClient:
    """Websocket client for the hosted Realtime service.

    The socket is opened on the first subscription and kept open, with a
    heartbeat, until ``close``. Dropped connections are retried after the
    delays in ``reconnect_delays`` (the last one repeats) and every
    registered channel is joined again.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        access_token: str | None = None,
        heartbeat_interval: float = 25.0,
        reconnect_delays: Sequence[float] = RECONNECT_DELAYS,
        connect: Callable[[str], Any] | None = None,
    ) -> None:
        self.endpoint = build_socket_url(base_url, api_key)
        self.access_token = access_token or api_key
        self._heartbeat_interval = heartbeat_interval
        self._reconnect_delays = tuple(reconnect_delays) or RECONNECT_DELAYS
        self._connect = connect or websockets.connect
        self._channels: Dict[str, RealtimeChannel] = {}
        self._refs = itertools.count(1)
        self._socket: Any = None
        self._runner: Optional[asyncio.Task] = None
        self._closing = False

    @property
    def is_connected(self) -> bool:
        return self._socket is not None

    def channel(self, name: str) -> RealtimeChannel:
        return RealtimeChannel(self, name)

    def _next_ref(self) -> str:
        return str(next(self._refs))

    def _ensure_running(self) -> None:
        if self._runner is None or self._runner.done():
            self._closing = False
            self._runner = asyncio.get_running_loop().create_task(self._run())

    async def add_channel(self, channel: RealtimeChannel) -> None:
        self._channels[channel.topic] = channel
        self._ensure_running()
        if self._socket is not None:
            await self._join(channel)

    async def remove_channel(self, channel: RealtimeChannel) -> None:
        if self._channels.pop(channel.topic, None) is None:
            return
        if self._socket is not None and channel.state in ("joining", "joined"):
            await self._push(
                {
                    "topic": channel.topic,
                    "event": "phx_leave",
                    "payload": {},
                    "ref": self._next_ref(),
                    "join_ref": channel.join_ref,
                }
            )
        channel.state = "closed"
        logger.info("Left realtime channel %s", channel.name)

    async def close(self) -> None:
        self._closing = True
        runner = self._runner
        self._runner = None
        if runner is not None and not runner.done():
            runner.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await runner
        self._socket = None

    async def _join(self, channel: RealtimeChannel) -> None:
        ref = self._next_ref()
        channel.join_ref = ref
        channel.state = "joining"
        await self._push(
            {
                "topic": channel.topic,
                "event": "phx_join",
                "payload": channel.join_payload(),
                "ref": ref,
                "join_ref": ref,
            }
        )

    async def _push(self, message: Dict[str, Any]) -> None:
        socket = self._socket
        if socket is None:
            logger.debug("Dropping realtime message while disconnected: %s", message.get("event"))
            return
        await socket.send(json.dumps(message))

    async def _heartbeat(self) -> None:
        while True:
            await asyncio.sleep(self._heartbeat_interval)
            await self._push(
                {"topic": PHOENIX_TOPIC, "event": "heartbeat", "payload": {}, "ref": self._next_ref()}
            )

    async def _run(self) -> None:
        attempt = 0
        while not self._closing:
            try:
                async with self._connect(self.endpoint) as socket:
                    self._socket = socket
                    attempt = 0
                    logger.info("Realtime socket connected")
                    for channel in list(self._channels.values()):
                        await self._join(channel)
                    heartbeat = asyncio.create_task(self._heartbeat())
                    try:
                        async for raw in socket:
                            self._dispatch(raw)
                    finally:
                        heartbeat.cancel()
                        (outcome,) = await asyncio.gather(heartbeat, return_exceptions=True)
                        if isinstance(outcome, Exception):
                            logger.warning("Realtime heartbeat failed: %s", outcome)
            except (OSError, asyncio.TimeoutError, WebSocketException) as exc:
                logger.warning("Realtime socket error: %s", exc)
            finally:
                self._socket = None
                for channel in self._channels.values():
                    channel.state = "closed"

            if self._closing:
                break
            delay = self._reconnect_delays[min(attempt, len(self._reconnect_delays) - 1)]
            attempt += 1
            logger.info("Reconnecting realtime socket in %.0fs", delay)
            await asyncio.sleep(delay)

    def _dispatch(self, raw: str | bytes) -> None:
        try:
            message = json.loads(raw)
        except ValueError:
            logger.warning("Discarding non-JSON realtime frame")
            return
        if not isinstance(message, dict):
            logger.warning("Discarding realtime frame that is not an object")
            return
        topic = message.get("topic")
        if topic == PHOENIX_TOPIC:
            return
        channel = self._channels.get(topic)
        if channel is None:
            logger.debug("Realtime message for unknown topic %s", topic)
            return
        channel.handle(message)
