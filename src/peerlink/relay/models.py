"""
Pydantic models for the signaling relay.

Covers:
- WebSocket envelopes (join, offer, answer, candidate, ping/pong, notifications)
- REST API response schemas
"""

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

Role = Literal["initiator", "responder"]

ROLES: tuple[str, str] = ("initiator", "responder")


def opposite(role: str) -> str:
    """Return the other role of a session."""
    return "responder" if role == "initiator" else "initiator"


# ─── WebSocket Envelopes ─────────────────────────────────────────────


class JoinMessage(BaseModel):
    """Client → Server: bind this connection to a session slot."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["join"] = "join"
    session_id: str = Field(alias="sessionId", min_length=1)
    role: Role


class OfferMessage(BaseModel):
    """Client → Server → peer: session description offer."""

    model_config = ConfigDict(extra="allow")

    type: Literal["offer"] = "offer"
    sdp: Any


class AnswerMessage(BaseModel):
    """Client → Server → peer: session description answer."""

    model_config = ConfigDict(extra="allow")

    type: Literal["answer"] = "answer"
    sdp: Any


class CandidateMessage(BaseModel):
    """Client → Server → peer: connectivity candidate."""

    model_config = ConfigDict(extra="allow")

    type: Literal["candidate"] = "candidate"
    candidate: Any


class PingMessage(BaseModel):
    """Liveness probe (either direction)."""

    type: Literal["ping"] = "ping"


class PongMessage(BaseModel):
    """Liveness probe answer (either direction)."""

    type: Literal["pong"] = "pong"


class PeerConnectedMessage(BaseModel):
    """Server → Client: both slots of the session are occupied."""

    type: Literal["peer-connected"] = "peer-connected"
    message: str


class PeerLeftMessage(BaseModel):
    """Server → Client: the opposite slot was vacated."""

    type: Literal["peer-left"] = "peer-left"
    message: str


NegotiationMessage = Union[OfferMessage, AnswerMessage, CandidateMessage]

InboundEnvelope = Annotated[
    Union[
        JoinMessage,
        OfferMessage,
        AnswerMessage,
        CandidateMessage,
        PingMessage,
        PongMessage,
    ],
    Field(discriminator="type"),
]

_inbound_adapter = TypeAdapter(InboundEnvelope)

NEGOTIATION_TYPES = (OfferMessage, AnswerMessage, CandidateMessage)

PEER_CONNECTED_TEXT = {
    "initiator": "Responder connected",
    "responder": "Connected to initiator",
}

PEER_LEFT_TEXT = {
    "initiator": "Responder left",
    "responder": "Initiator left",
}


def parse_envelope(raw: str | bytes) -> Optional[InboundEnvelope]:
    """
    Parse a raw frame into a typed envelope.

    Returns None for anything that is not a well-formed, recognized envelope:
    invalid JSON, an unknown ``type``, or missing/invalid fields.
    """
    try:
        return _inbound_adapter.validate_json(raw)
    except ValidationError:
        return None


# ─── REST API Models ─────────────────────────────────────────────────


class SessionStatus(BaseModel):
    """GET /sessions/{session_id}/status response."""

    model_config = ConfigDict(populate_by_name=True)

    initiator_present: bool = Field(alias="initiatorPresent")
    responder_present: bool = Field(alias="responderPresent")


class SessionInfo(BaseModel):
    """One entry of GET /sessions."""

    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(alias="sessionId")
    initiator_present: bool = Field(alias="initiatorPresent")
    responder_present: bool = Field(alias="responderPresent")
    created_at: str = Field(alias="createdAt")


class SessionListResponse(BaseModel):
    """GET /sessions response."""

    sessions: list[SessionInfo]
    count: int


class ErrorResponse(BaseModel):
    """Error body for REST endpoints."""

    error: str
