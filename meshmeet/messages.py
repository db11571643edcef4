"""Wire messages exchanged over the signaling WebSocket.

Every frame is a JSON object tagged by ``type``. Field names travel in
camelCase (``roomId``, ``linkId``) and are snake_case on the Python side.
The sets below are closed: a frame with an unknown ``type`` fails to parse.
"""
from datetime import datetime, timezone
from typing import Annotated, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

__all__ = [
    "ClientMessage",
    "ErrorNotice",
    "InvalidMessage",
    "JoinRoom",
    "ParticipantInfo",
    "ReceiveMessage",
    "RoomState",
    "SendMessage",
    "ServerMessage",
    "UserConnected",
    "UserDisconnected",
    "encode",
    "parse_client_message",
    "parse_server_message",
]


class InvalidMessage(ValueError):
    """Raised when a frame is not valid JSON or not a known message."""


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# --- client -> server ---

class JoinRoom(WireModel):
    type: Literal["join-room"] = "join-room"
    room_id: str = Field(min_length=1)
    link_id: str = Field(min_length=1)
    name: str = ""


class SendMessage(WireModel):
    type: Literal["send-message"] = "send-message"
    room_id: str = Field(min_length=1)
    text: str
    name: str = ""


# --- server -> client ---

class ParticipantInfo(WireModel):
    link_id: str
    name: str


class RoomState(WireModel):
    type: Literal["room-state"] = "room-state"
    room_id: str
    participants: List[ParticipantInfo]


class UserConnected(WireModel):
    type: Literal["user-connected"] = "user-connected"
    link_id: str
    name: str


class UserDisconnected(WireModel):
    type: Literal["user-disconnected"] = "user-disconnected"
    link_id: str
    name: str


class ReceiveMessage(WireModel):
    type: Literal["receive-message"] = "receive-message"
    sender_conn_id: str
    name: str
    text: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ErrorNotice(WireModel):
    type: Literal["error"] = "error"
    detail: str


ClientMessage = Annotated[Union[JoinRoom, SendMessage], Field(discriminator="type")]
ServerMessage = Annotated[
    Union[RoomState, UserConnected, UserDisconnected, ReceiveMessage, ErrorNotice],
    Field(discriminator="type"),
]

_client_adapter = TypeAdapter(ClientMessage)
_server_adapter = TypeAdapter(ServerMessage)


def _parse(adapter, raw):
    try:
        return adapter.validate_json(raw)
    except ValidationError as e:
        raise InvalidMessage(str(e)) from e


def parse_client_message(raw):
    return _parse(_client_adapter, raw)


def parse_server_message(raw):
    return _parse(_server_adapter, raw)


def encode(message: WireModel) -> dict:
    """JSON-ready dict with wire (camelCase) field names."""
    return message.model_dump(mode="json", by_alias=True)
