import asyncio
import json
import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from beautypro.clients.realtime import RealtimeClient, build_socket_url


class FakeSocket:
    """In-memory stand-in for a websocket connection."""

    def __init__(self) -> None:
        self.sent = []
        self.incoming: asyncio.Queue = asyncio.Queue()
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self.closed = True

    async def send(self, data: str) -> None:
        self.sent.append(json.loads(data))

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self.incoming.get()
        if item is None:
            raise StopAsyncIteration
        return item

    def feed(self, message: dict) -> None:
        self.incoming.put_nowait(json.dumps(message))


async def _until(predicate, attempts: int = 200) -> None:
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


def _change(table: str, change_type: str, record: dict) -> dict:
    return {
        "topic": "realtime:appointments_changes",
        "event": "postgres_changes",
        "payload": {
            "data": {
                "type": change_type,
                "schema": "public",
                "table": table,
                "record": record,
                "old_record": {},
                "commit_timestamp": "2025-03-05T09:00:00Z",
            },
            "ids": [1],
        },
        "ref": None,
    }


def test_build_socket_url_uses_websocket_scheme() -> None:
    assert build_socket_url("https://project.supabase.co", "anon") == (
        "wss://project.supabase.co/realtime/v1/websocket?apikey=anon&vsn=1.0.0"
    )
    assert build_socket_url("http://localhost:54321/", "anon").startswith(
        "ws://localhost:54321/realtime/v1/websocket"
    )


def test_channel_joins_dispatches_changes_and_leaves() -> None:
    async def scenario():
        socket = FakeSocket()
        client = RealtimeClient(
            "https://project.supabase.co",
            "anon-key",
            heartbeat_interval=3600,
            connect=lambda url: socket,
        )
        received = []
        channel = client.channel("appointments_changes").on_postgres_changes(
            "*", table="appointments", callback=received.append
        )
        await channel.subscribe()
        await _until(lambda: socket.sent)

        join = socket.sent[0]
        assert join["event"] == "phx_join"
        assert join["topic"] == "realtime:appointments_changes"
        assert join["payload"]["config"]["postgres_changes"] == [
            {"event": "*", "schema": "public", "table": "appointments"}
        ]
        assert join["payload"]["access_token"] == "anon-key"

        socket.feed(
            {
                "topic": "realtime:appointments_changes",
                "event": "phx_reply",
                "payload": {"status": "ok", "response": {}},
                "ref": join["ref"],
            }
        )
        socket.feed(_change("appointments", "UPDATE", {"id": "a1", "status": "confirmed"}))
        socket.feed(_change("services", "INSERT", {"id": "s1"}))
        await _until(lambda: socket.incoming.empty())
        await asyncio.sleep(0)

        assert channel.state == "joined"
        assert len(received) == 1
        assert received[0].event_type == "UPDATE"
        assert received[0].record["status"] == "confirmed"

        await channel.unsubscribe()
        assert socket.sent[-1]["event"] == "phx_leave"
        assert socket.sent[-1]["join_ref"] == join["ref"]
        await client.close()
        assert client.is_connected is False

    asyncio.run(scenario())


def test_callback_errors_do_not_stop_dispatch() -> None:
    async def scenario():
        socket = FakeSocket()
        client = RealtimeClient(
            "https://project.supabase.co", "anon-key", heartbeat_interval=3600, connect=lambda url: socket
        )
        received = []

        def failing(change):
            raise ValueError("handler bug")

        channel = (
            client.channel("appointments_changes")
            .on_postgres_changes("*", table="appointments", callback=failing)
            .on_postgres_changes("INSERT", table="appointments", callback=received.append)
        )
        await channel.subscribe()
        await _until(lambda: socket.sent)

        socket.feed(_change("appointments", "DELETE", {}))
        socket.feed(_change("appointments", "INSERT", {"id": "a2"}))
        await _until(lambda: received)

        assert [change.event_type for change in received] == ["INSERT"]
        await client.close()

    asyncio.run(scenario())


def test_reconnect_rejoins_registered_channels() -> None:
    async def scenario():
        sockets = [FakeSocket(), FakeSocket()]
        attempts = []

        def connect(url):
            attempts.append(url)
            if len(attempts) == 1:
                raise OSError("network down")
            return sockets[len(attempts) - 2]

        client = RealtimeClient(
            "https://project.supabase.co",
            "anon-key",
            heartbeat_interval=3600,
            reconnect_delays=(0,),
            connect=connect,
        )
        channel = client.channel("appointments_changes").on_postgres_changes(
            "*", table="appointments", callback=lambda change: None
        )
        await channel.subscribe()
        await _until(lambda: sockets[0].sent)
        assert sockets[0].sent[0]["event"] == "phx_join"

        # Server closes the first connection; the client reconnects and joins again.
        sockets[0].incoming.put_nowait(None)
        await _until(lambda: sockets[1].sent)
        assert sockets[1].sent[0]["event"] == "phx_join"
        assert len(attempts) == 3

        await client.close()

    asyncio.run(scenario())


def test_non_object_frames_are_skipped() -> None:
    async def scenario():
        socket = FakeSocket()
        client = RealtimeClient(
            "https://project.supabase.co", "anon-key", heartbeat_interval=3600, connect=lambda url: socket
        )
        received = []
        channel = client.channel("appointments_changes").on_postgres_changes(
            "*", table="appointments", callback=received.append
        )
        await channel.subscribe()
        await _until(lambda: socket.sent)

        socket.incoming.put_nowait("[1, 2, 3]")
        socket.incoming.put_nowait("null")
        socket.incoming.put_nowait("not json")
        socket.feed(_change("appointments", "INSERT", {"id": "a3"}))
        await _until(lambda: received)

        assert received[0].record["id"] == "a3"
        assert client.is_connected
        await client.close()

    asyncio.run(scenario())


def test_connect_timeout_is_retried() -> None:
    async def scenario():
        socket = FakeSocket()
        attempts = []

        def connect(url):
            attempts.append(url)
            if len(attempts) == 1:
                raise asyncio.TimeoutError()
            return socket

        client = RealtimeClient(
            "https://project.supabase.co",
            "anon-key",
            heartbeat_interval=3600,
            reconnect_delays=(0,),
            connect=connect,
        )
        await client.channel("appointments_changes").on_postgres_changes(
            "*", table="appointments", callback=lambda change: None
        ).subscribe()
        await _until(lambda: socket.sent)

        assert len(attempts) == 2
        assert socket.sent[0]["event"] == "phx_join"
        await client.close()

    asyncio.run(scenario())


class BrokenSendSocket(FakeSocket):
    async def send(self, data: str) -> None:
        message = json.loads(data)
        if message["event"] == "heartbeat":
            raise ConnectionResetError("peer gone")
        await super().send(data)


def test_failed_heartbeat_is_collected_on_disconnect() -> None:
    async def scenario():
        sockets = [BrokenSendSocket(), FakeSocket()]
        client = RealtimeClient(
            "https://project.supabase.co",
            "anon-key",
            heartbeat_interval=0,
            reconnect_delays=(0,),
            connect=lambda url: sockets.pop(0),
        )
        first = sockets[0]
        second = sockets[1]
        await client.channel("appointments_changes").on_postgres_changes(
            "*", table="appointments", callback=lambda change: None
        ).subscribe()
        await _until(lambda: first.sent)
        for _ in range(5):
            await asyncio.sleep(0)

        first.incoming.put_nowait(None)
        await _until(lambda: second.sent)

        assert second.sent[0]["event"] == "phx_join"
        await client.close()

    asyncio.run(scenario())
