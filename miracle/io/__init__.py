"""
Wire-level protocol implementation.

This module contains the lowest-level communication components:
- Frame codec and the IpcType tags
- StreamReassembler - frames from an arbitrarily chunked byte stream
- RequestCorrelator - matching replies to outstanding requests
- EventBus - broadcasting events to subscribers
- MiracleConnection - the Unix socket and its read loop
"""

from .frame import Frame, FrameConst, IpcType, encode_frame, try_decode_frame, is_event_type
from .stream import StreamReassembler
from .correlator import RequestCorrelator, PendingRequest
from .bus import EventBus, Subscription
from .connection import MiracleConnection, ConnectionState

__all__ = [
    "Frame",
    "FrameConst",
    "IpcType",
    "encode_frame",
    "try_decode_frame",
    "is_event_type",
    "StreamReassembler",
    "RequestCorrelator",
    "PendingRequest",
    "EventBus",
    "Subscription",
    "MiracleConnection",
    "ConnectionState",
]
