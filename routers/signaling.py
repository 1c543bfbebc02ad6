import uuid
from http.cookies import SimpleCookie

from fastapi import APIRouter, WebSocket

import constants
from constants import PEER_ID_COOKIE, PEER_ID_HEADER, SIGNALING_PREFIX
from directory import room_directory
from identity import resolve_peer
from keepalive import KeepaliveSupervisor
from logging_config import get_logger
from message_router import MessageRouter
from schemas.messages import DisplayName, DisplayNameEvent

logger = get_logger(__name__)

signaling_router = APIRouter(prefix=SIGNALING_PREFIX, tags=["signaling"])
message_router = MessageRouter(room_directory)


def peer_id_cookie(peer_id: str) -> str:
    cookie = SimpleCookie()
    cookie[PEER_ID_COOKIE] = peer_id
    cookie[PEER_ID_COOKIE]["secure"] = True
    cookie[PEER_ID_COOKIE]["samesite"] = "Strict"
    return cookie[PEER_ID_COOKIE].OutputString()


@signaling_router.websocket("/{path:path}")
async def signaling_endpoint(websocket: WebSocket, path: str):
    """Signaling WebSocket.

    - First contact without a ``peerid`` cookie gets a fresh id via Set-Cookie.
    - A ``webrtc`` segment in the path marks the peer as RTC capable.
    """
    headers = dict(websocket.headers.items())
    response_headers = []
    if PEER_ID_COOKIE not in websocket.cookies:
        new_id = str(uuid.uuid4())
        # The minted id must match the cookie the client reconnects with
        headers[PEER_ID_HEADER] = new_id
        response_headers.append((b"set-cookie", peer_id_cookie(new_id).encode("latin-1")))
        logger.debug(f"Issued new peer id {new_id}")

    remote_host = websocket.client.host if websocket.client else None
    try:
        await websocket.accept(headers=response_headers)
    except Exception as e:
        logger.error(f"WebSocket upgrade failed for {remote_host}: {e}", exc_info=True)
        return

    peer = resolve_peer(websocket, headers, websocket.cookies, websocket.url.path, remote_host)
    logger.info(f"WebSocket connection accepted for {peer!r}")

    try:
        await room_directory.join(peer)
        KeepaliveSupervisor(peer, room_directory, interval=constants.KEEPALIVE_INTERVAL).start()
        await peer.send(DisplayNameEvent(
            message=DisplayName(display_name=peer.name.display_name, device_name=peer.name.device_name)
        ))
        await message_router.run(peer)
    except Exception as e:
        logger.error(f"WebSocket error for peer {peer.id}: {e}", exc_info=True)
    finally:
        await room_directory.leave(peer)
