"""Derive a peer's identity, network bucket and display info from its request.

Apart from the random display name, everything here depends only on request
metadata, so the connection handler can build a Peer without touching shared
state.
"""
from typing import Mapping, Optional

import ua_parser
from unique_names_generator import get_random_name
from unique_names_generator.data import ANIMALS, COLORS

from constants import FORWARDED_FOR_HEADER, PEER_ID_COOKIE, PEER_ID_HEADER, RTC_PATH_MARKER
from logging_config import get_logger
from peer import Peer
from schemas.messages import PeerName

logger = get_logger(__name__)

LOOPBACK_ADDRESSES = ("::1", "::ffff:127.0.0.1")
TABLET_MARKERS = ("ipad", "tablet")
MOBILE_MARKERS = ("mobile",)
UNKNOWN_DEVICE = "Unknown Device"

# Load the UA rules now so a broken install fails at startup, not per request
ua_parser.parse("Mozilla/5.0 (X11; Linux x86_64)")
logger.debug("User-Agent rules loaded")


def resolve_peer_id(headers: Mapping[str, str], cookies: Mapping[str, str]) -> str:
    header_value = (headers.get(PEER_ID_HEADER) or "").strip()
    if header_value:
        return header_value
    cookie_value = cookies.get(PEER_ID_COOKIE)
    if cookie_value is None:
        return ""
    return cookie_value.strip()


def client_address(headers: Mapping[str, str], remote_host: Optional[str]) -> str:
    forwarded = headers.get(FORWARDED_FOR_HEADER) or ""
    if forwarded.strip():
        return forwarded.split(",")[0].strip()
    return (remote_host or "").strip()


def normalize_bucket(address: str) -> str:
    """Collapse an address to the key of the room its owner should join.

    Loopback forms fold to 127.0.0.1 and private IPv4 ranges collapse to
    their network so every host behind the same NAT shares a room.
    """
    address = address.strip()
    if address in LOOPBACK_ADDRESSES:
        address = "127.0.0.1"

    octets = address.split(".")
    if octets[0] == "10":
        return "10.0.0.0"
    if octets[0] == "172" and len(octets) > 1:
        try:
            second = int(octets[1])
        except ValueError:
            return address
        if 16 <= second <= 31:
            return f"172.{octets[1]}.0.0"
        return address
    if octets[0] == "192" and len(octets) > 1 and octets[1] == "168":
        return "192.168.0.0"
    return address


def resolve_bucket(headers: Mapping[str, str], remote_host: Optional[str]) -> str:
    return normalize_bucket(client_address(headers, remote_host))


def is_rtc_capable(path: str) -> bool:
    return RTC_PATH_MARKER in path


def device_type(user_agent: str) -> str:
    lowered = user_agent.lower()
    if any(marker in lowered for marker in TABLET_MARKERS):
        return "tablet"
    if any(marker in lowered for marker in MOBILE_MARKERS):
        return "mobile"
    return "desktop"


def generate_display_name() -> str:
    """Two capitalized words, e.g. "Olive Penguin". Not unique across peers."""
    return get_random_name(combo=[COLORS, ANIMALS], separator=" ", style="capital")


def classify_user_agent(user_agent: Optional[str]) -> PeerName:
    user_agent = user_agent or ""
    result = ua_parser.parse(user_agent)
    os_family = result.os.family if result.os else ""
    device_family = result.device.family if result.device else ""

    device_name = " ".join(part for part in (os_family, device_family) if part)
    return PeerName(
        model=device_family,
        os=os_family,
        browser=device_family,
        type=device_type(user_agent),
        device_name=device_name or UNKNOWN_DEVICE,
        display_name=generate_display_name(),
    )


def resolve_peer(
    websocket,
    headers: Mapping[str, str],
    cookies: Mapping[str, str],
    path: str,
    remote_host: Optional[str],
) -> Peer:
    """Build a ready-to-join Peer from the upgrade request's metadata."""
    peer = Peer(
        websocket,
        peer_id=resolve_peer_id(headers, cookies),
        network_bucket=resolve_bucket(headers, remote_host),
        rtc_supported=is_rtc_capable(path),
        name=classify_user_agent(headers.get("user-agent")),
    )
    logger.debug(f"Resolved {peer!r} from address {client_address(headers, remote_host)!r}")
    return peer
