import asyncio
import json

import pytest
from fastapi import WebSocketDisconnect

from directory import RoomDirectory
from peer import Peer
from schemas.messages import PeerName

_DISCONNECT = object()


class FakeWebSocket:
    """In-memory stand-in for a FastAPI WebSocket."""

    def __init__(self):
        self.sent = []
        self.closed = False
        self._inbox = asyncio.Queue()

    async def send_json(self, data):
        if self.closed:
            raise RuntimeError("Cannot send once the connection is closed")
        self.sent.append(data)

    async def receive_text(self):
        item = await self._inbox.get()
        if item is _DISCONNECT:
            raise WebSocketDisconnect(code=1000)
        return item

    async def close(self, code: int = 1000):
        self.closed = True
        self._inbox.put_nowait(_DISCONNECT)

    def feed(self, message):
        self._inbox.put_nowait(message if isinstance(message, str) else json.dumps(message))

    def disconnect(self):
        self._inbox.put_nowait(_DISCONNECT)

    def of_type(self, message_type):
        return [m for m in self.sent if m.get("type") == message_type]


class YieldingWebSocket(FakeWebSocket):
    """Gives up the event loop on every send so concurrent tasks interleave."""

    async def send_json(self, data):
        await asyncio.sleep(0)
        await super().send_json(data)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def directory():
    return RoomDirectory()


@pytest.fixture
def make_peer():
    def _make_peer(peer_id, bucket="192.168.0.0", rtc_supported=False, clock=None, yielding=False):
        kwargs = {"clock": clock} if clock is not None else {}
        return Peer(
            YieldingWebSocket() if yielding else FakeWebSocket(),
            peer_id=peer_id,
            network_bucket=bucket,
            rtc_supported=rtc_supported,
            name=PeerName(os="Linux", device_name="Linux", display_name=f"Peer {peer_id}"),
            **kwargs,
        )

    return _make_peer
