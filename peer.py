import asyncio
import json
import time
from typing import Any, Callable, Optional, Union

from fastapi import WebSocket

from logging_config import get_logger
from schemas.messages import PeerInfo, PeerName, ServerEvent

logger = get_logger(__name__)


class Peer:
    """One live signaling connection.

    Outbound frames go through ``send``, which holds a per-peer lock so a
    room broadcast and a directed forward never interleave on the wire.
    ``stop`` is the peer's cancellation token: it flips ``alive`` exactly
    once and wakes anything waiting in ``wait_stopped``.
    """

    def __init__(
        self,
        websocket: WebSocket,
        peer_id: str,
        network_bucket: str,
        rtc_supported: bool = False,
        name: Optional[PeerName] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.websocket = websocket
        self.id = peer_id
        self.network_bucket = network_bucket
        self.rtc_supported = rtc_supported
        self.name = name or PeerName()
        self._clock = clock
        self.last_heartbeat = clock()
        self.keepalive_task: Optional[asyncio.Task] = None
        self._send_lock = asyncio.Lock()
        self._stopped = asyncio.Event()
        self._closed = False

    def __repr__(self) -> str:
        return f"<Peer id={self.id} bucket={self.network_bucket} rtcSupported={self.rtc_supported}>"

    @property
    def alive(self) -> bool:
        return not self._stopped.is_set()

    def info(self) -> PeerInfo:
        return PeerInfo(id=self.id, name=self.name, rtc_supported=self.rtc_supported)

    def heartbeat(self) -> None:
        self.last_heartbeat = self._clock()

    def heartbeat_age(self) -> float:
        return self._clock() - self.last_heartbeat

    def stop(self) -> bool:
        """Mark the peer as no longer alive. Returns False if it already was stopped."""
        if self._stopped.is_set():
            return False
        self._stopped.set()
        return True

    async def wait_stopped(self, timeout: float) -> bool:
        try:
            await asyncio.wait_for(self._stopped.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True

    async def send(self, message: Union[ServerEvent, dict]) -> bool:
        if self._closed:
            return False
        payload = message.to_wire() if isinstance(message, ServerEvent) else message
        async with self._send_lock:
            try:
                await self.websocket.send_json(payload)
            except Exception as e:
                logger.warning(f"Error sending {payload.get('type')} to peer {self.id}: {e}")
                return False
        logger.debug(f"Sent {payload.get('type')} to peer {self.id}")
        return True

    async def receive(self) -> Any:
        """Read one text frame and decode it as JSON.

        Raises WebSocketDisconnect when the client goes away and ValueError
        for frames that are not valid JSON.
        """
        data = await self.websocket.receive_text()
        return json.loads(data)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self.websocket.close()
        except Exception as e:
            logger.debug(f"Error closing WebSocket for peer {self.id}: {e}")
