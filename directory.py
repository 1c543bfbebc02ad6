import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, List, Optional

from logging_config import get_logger
from peer import Peer
from schemas.messages import PeerJoinedEvent, PeerLeftEvent, PeersEvent

logger = get_logger(__name__)


@dataclass
class _BucketLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class RoomDirectory:
    """Process-wide mapping of network bucket -> room -> peer.

    Join, leave and their broadcasts for one bucket run under that bucket's
    lock, so two peers' membership changes in the same room never interleave.
    Rooms in different buckets proceed independently.
    """

    def __init__(self):
        # Format: {bucket: {peer_id: Peer}}
        self.rooms: Dict[str, Dict[str, Peer]] = {}
        self._locks: Dict[str, _BucketLock] = {}
        logger.info("Initializing RoomDirectory")

    @asynccontextmanager
    async def _locked(self, bucket: str) -> AsyncIterator[None]:
        entry = self._locks.get(bucket)
        if entry is None:
            entry = self._locks[bucket] = _BucketLock()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                self._locks.pop(bucket, None)

    def room_members(self, bucket: str) -> List[Peer]:
        return list(self.rooms.get(bucket, {}).values())

    def find_peer(self, bucket: str, peer_id: str) -> Optional[Peer]:
        room = self.rooms.get(bucket)
        if room is None:
            return None
        return room.get(peer_id)

    def is_member(self, peer: Peer) -> bool:
        return self.find_peer(peer.network_bucket, peer.id) is peer

    async def join(self, peer: Peer) -> None:
        bucket = peer.network_bucket
        async with self._locked(bucket):
            room = self.rooms.setdefault(bucket, {})

            previous = room.get(peer.id)
            if previous is not None and previous is not peer:
                # Same id reconnecting: drop the stale connection quietly
                logger.info(f"Peer {peer.id} rejoined room {bucket}, disconnecting previous connection")
                previous.stop()
                del room[peer.id]
                await previous.close()

            others = list(room.values())
            joined = PeerJoinedEvent(peer=peer.info())
            for other in others:
                await other.send(joined)

            await peer.send(PeersEvent(peers=[other.info() for other in others]))

            room[peer.id] = peer
            logger.info(f"Peer {peer.id} joined room {bucket} ({len(room)} peers)")

    async def leave(self, peer: Peer) -> bool:
        """Remove a peer from its room. Returns False if it was not a member."""
        bucket = peer.network_bucket
        async with self._locked(bucket):
            room = self.rooms.get(bucket)
            if room is None or room.get(peer.id) is not peer:
                logger.debug(f"Peer {peer.id} is not in room {bucket}, nothing to leave")
                return False

            peer.stop()
            del room[peer.id]
            await peer.close()

            if not room:
                del self.rooms[bucket]
                logger.info(f"Peer {peer.id} left room {bucket}, room is now empty and removed")
                return True

            logger.info(f"Peer {peer.id} left room {bucket} ({len(room)} peers remain)")
            left = PeerLeftEvent(peer_id=peer.id)
            for other in list(room.values()):
                await other.send(left)
            return True

    async def close_all(self) -> None:
        peers = [peer for room in self.rooms.values() for peer in room.values()]
        logger.info(f"Evicting {len(peers)} peers from {len(self.rooms)} rooms")
        for peer in peers:
            await self.leave(peer)

    def stats(self) -> dict:
        return {
            "rooms": len(self.rooms),
            "peers": sum(len(room) for room in self.rooms.values()),
        }


room_directory = RoomDirectory()
