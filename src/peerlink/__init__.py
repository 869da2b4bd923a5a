"""peerlink: a two-party WebRTC signaling relay."""

__version__ = "0.1.0"
