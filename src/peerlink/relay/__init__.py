"""
Signaling relay core.

Connections join one of the two slots (initiator, responder) of a named
session over WebSocket; negotiation messages are forwarded verbatim to the
opposite slot. The liveness monitor reaps connections that stop answering
probes.
"""

from peerlink.relay.connection import PeerConnection
from peerlink.relay.dispatcher import RelayDispatcher
from peerlink.relay.liveness import LivenessMonitor
from peerlink.relay.models import (
    AnswerMessage,
    CandidateMessage,
    JoinMessage,
    OfferMessage,
    PeerConnectedMessage,
    PeerLeftMessage,
    SessionInfo,
    SessionStatus,
    parse_envelope,
)
from peerlink.relay.registry import SessionRegistry
from peerlink.relay.session import Session

__all__ = [
    "PeerConnection",
    "RelayDispatcher",
    "LivenessMonitor",
    "SessionRegistry",
    "Session",
    "AnswerMessage",
    "CandidateMessage",
    "JoinMessage",
    "OfferMessage",
    "PeerConnectedMessage",
    "PeerLeftMessage",
    "SessionInfo",
    "SessionStatus",
    "parse_envelope",
]
