"""
Miracle IPC Python Library

A Python library for querying and controlling the Miracle window manager over
its i3-compatible IPC socket.

This library provides two layers of abstraction:

1. **miracle.io**: Wire-level protocol implementation (framing, reassembly,
   request correlation, event fan-out, the Unix socket connection)
2. **miracle.api**: Typed requests, replies, window tree and events using miracle.io

Example usage:
    import miracle

    async with miracle.MiracleProtocol() as ipc:
        await ipc.command("workspace 2")
        tree = await ipc.get_tree()
        print(tree)

        await ipc.subscribe([miracle.SubscriptionType.WORKSPACE])
        async for event in ipc.events():
            print(event.change, event.current.name)
"""

# API level (recommended for most users)
from .api import (
    MiracleProtocol,
    BaseNode, RootNode, OutputNode, WorkspaceNode, ContainerNode, decode_node, decode_tree,
    Event, WorkspaceEvent, decode_event,
    Rect, OutputMode, CommandResult, SubscribeResult, WorkspaceResult,
    VersionResult, BindingStateResult, TickResult, SyncResult,
    NodeType, OutputTransform, BorderType, ContainerLayout, WorkspaceChange, SubscriptionType,
)

# Wire level (for advanced users)
from .io import (
    MiracleConnection, ConnectionState, Frame, IpcType, encode_frame, try_decode_frame,
    StreamReassembler, RequestCorrelator, EventBus, Subscription,
)

# Configuration and exceptions
from .config import MiracleConfig
from .exceptions import (
    MiracleError, MiracleConfigurationError, MiracleConnectionError,
    MiracleProtocolError, MiracleDecodeError,
)

# Utilities
from .utils import run_with_keyboard_interrupt

__version__ = "0.1.0"

# Public API - these are the main classes users should import
__all__ = [
    # API level
    "MiracleProtocol",
    "BaseNode",
    "RootNode",
    "OutputNode",
    "WorkspaceNode",
    "ContainerNode",
    "decode_node",
    "decode_tree",
    "Event",
    "WorkspaceEvent",
    "decode_event",
    "Rect",
    "OutputMode",
    "CommandResult",
    "SubscribeResult",
    "WorkspaceResult",
    "VersionResult",
    "BindingStateResult",
    "TickResult",
    "SyncResult",
    "NodeType",
    "OutputTransform",
    "BorderType",
    "ContainerLayout",
    "WorkspaceChange",
    "SubscriptionType",

    # Wire level
    "MiracleConnection",
    "ConnectionState",
    "Frame",
    "IpcType",
    "encode_frame",
    "try_decode_frame",
    "StreamReassembler",
    "RequestCorrelator",
    "EventBus",
    "Subscription",

    # Configuration and exceptions
    "MiracleConfig",
    "MiracleError",
    "MiracleConfigurationError",
    "MiracleConnectionError",
    "MiracleProtocolError",
    "MiracleDecodeError",

    # Utilities
    "run_with_keyboard_interrupt",
]
