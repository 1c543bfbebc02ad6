import asyncio

from constants import KEEPALIVE_INTERVAL
from directory import RoomDirectory
from logging_config import get_logger
from peer import Peer
from schemas.messages import PingEvent

logger = get_logger(__name__)


class KeepaliveSupervisor:
    """Pings one peer every ``interval`` seconds and evicts it once it has
    gone two intervals without a pong.

    The loop waits on the peer's stop token rather than sleeping, so it ends
    as soon as the peer leaves its room.
    """

    def __init__(self, peer: Peer, directory: RoomDirectory, interval: float = KEEPALIVE_INTERVAL):
        self.peer = peer
        self.directory = directory
        self.interval = interval

    @property
    def timeout(self) -> float:
        return 2 * self.interval

    def start(self) -> asyncio.Task:
        task = asyncio.create_task(self.run(), name=f"keepalive-{self.peer.id}")
        self.peer.keepalive_task = task
        return task

    async def run(self) -> None:
        peer = self.peer
        logger.debug(f"Keepalive started for peer {peer.id} (interval {self.interval}s)")
        try:
            while peer.alive:
                if peer.heartbeat_age() >= self.timeout:
                    logger.info(f"Peer {peer.id} missed heartbeats for {peer.heartbeat_age():.1f}s, evicting")
                    await self.directory.leave(peer)
                    break
                await peer.send(PingEvent())
                if await peer.wait_stopped(self.interval):
                    break
        except asyncio.CancelledError:
            logger.debug(f"Keepalive task cancelled for peer {peer.id}")
            raise
        finally:
            logger.debug(f"Keepalive stopped for peer {peer.id}")
