from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Public peer description ---

class PeerName(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    model: str = ""
    os: str = ""
    browser: str = ""
    type: str = "desktop"
    device_name: str = Field("Unknown Device", alias="deviceName")
    display_name: str = Field("", alias="displayName")


class PeerInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: PeerName
    rtc_supported: bool = Field(False, alias="rtcSupported")


# --- Server -> client events ---

class ServerEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: str

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


class DisplayName(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    display_name: str = Field(alias="displayName")
    device_name: str = Field(alias="deviceName")


class DisplayNameEvent(ServerEvent):
    type: Literal["display-name"] = "display-name"
    message: DisplayName


class PeersEvent(ServerEvent):
    type: Literal["peers"] = "peers"
    peers: list[PeerInfo]


class PeerJoinedEvent(ServerEvent):
    type: Literal["peer-joined"] = "peer-joined"
    peer: PeerInfo


class PeerLeftEvent(ServerEvent):
    type: Literal["peer-left"] = "peer-left"
    peer_id: str = Field(alias="peerId")


class PingEvent(ServerEvent):
    type: Literal["ping"] = "ping"


# --- Client -> server messages ---

class ClientMessage(BaseModel):
    """A decoded client frame.

    Fields other than ``type`` and ``to`` are kept as extras and relayed
    untouched when the message is addressed to another peer.
    """

    model_config = ConfigDict(extra="allow")

    # Any non-null JSON value; only "disconnect" and "pong" are interpreted
    type: Any
    to: Optional[str] = None

    def relay_payload(self, sender_id: str) -> dict:
        payload = self.model_dump(exclude={"to"})
        payload["sender"] = sender_id
        return payload


class DisconnectMessage(ClientMessage):
    type: Literal["disconnect"] = "disconnect"


class PongMessage(ClientMessage):
    type: Literal["pong"] = "pong"


class RelayMessage(ClientMessage):
    pass


_CLIENT_MESSAGE_TYPES: dict[str, type[ClientMessage]] = {
    "disconnect": DisconnectMessage,
    "pong": PongMessage,
}


def parse_client_message(data: Any) -> Optional[ClientMessage]:
    """Turn a decoded JSON value into a typed client message.

    Returns None for anything without a non-null ``type``; a ``to`` that
    is not a string is treated as absent.
    """
    if not isinstance(data, dict):
        return None
    message_type = data.get("type")
    if message_type is None:
        return None

    fields = dict(data)
    if not isinstance(fields.get("to"), str):
        fields.pop("to", None)

    model = RelayMessage
    if isinstance(message_type, str):
        model = _CLIENT_MESSAGE_TYPES.get(message_type, RelayMessage)
    return model.model_validate(fields)
