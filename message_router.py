import json

from fastapi import WebSocketDisconnect

from directory import RoomDirectory
from logging_config import get_logger
from peer import Peer
from schemas.messages import ClientMessage, DisconnectMessage, PongMessage, parse_client_message

logger = get_logger(__name__)


class MessageRouter:
    def __init__(self, directory: RoomDirectory):
        self.directory = directory

    async def dispatch(self, peer: Peer, message: ClientMessage) -> bool:
        """Handle one client message. Returns False once the peer has left."""
        if isinstance(message, DisconnectMessage):
            logger.info(f"Peer {peer.id} requested disconnect")
            await self.directory.leave(peer)
            if message.to is not None:
                await self.forward(peer, message)
            return False

        if isinstance(message, PongMessage):
            peer.heartbeat()

        if message.to is not None:
            await self.forward(peer, message)
        return True

    async def forward(self, sender: Peer, message: ClientMessage) -> bool:
        recipient = self.directory.find_peer(sender.network_bucket, message.to)
        if recipient is None:
            logger.debug(f"Dropping {message.type} from {sender.id}: no peer {message.to} in room {sender.network_bucket}")
            return False
        return await recipient.send(message.relay_payload(sender.id))

    async def run(self, peer: Peer) -> None:
        """Consume the peer's inbound frames until the connection ends, then leave."""
        message_count = 0
        try:
            while peer.alive:
                try:
                    data = await peer.receive()
                except WebSocketDisconnect as e:
                    logger.info(f"WebSocket disconnected for peer {peer.id} (code {e.code})")
                    break
                except (json.JSONDecodeError, KeyError, RuntimeError) as e:
                    logger.warning(f"Unreadable frame from peer {peer.id}, closing: {e}")
                    break

                message_count += 1
                message = parse_client_message(data)
                if message is None:
                    logger.debug(f"Ignoring message #{message_count} without type from peer {peer.id}")
                    continue
                logger.debug(f"Received {message.type} (#{message_count}) from peer {peer.id}")
                if not await self.dispatch(peer, message):
                    break
        finally:
            await self.directory.leave(peer)
