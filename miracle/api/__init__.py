"""
API-level models and protocol implementation.

This module contains models and types that belong to the API layer:
- MiracleProtocol (implements the IPC requests)
- Window tree nodes and the tree decoder
- Events and the event decoder
- Reply models and the enums used by them
"""

from .models import (
    Rect, OutputMode, CommandResult, SubscribeResult, WorkspaceResult,
    VersionResult, BindingStateResult, TickResult, SyncResult,
)
from .tree import BaseNode, RootNode, OutputNode, WorkspaceNode, ContainerNode, decode_node, decode_tree
from .events import Event, WorkspaceEvent, decode_event
from .protocol import MiracleProtocol
from .types import NodeType, OutputTransform, BorderType, ContainerLayout, WorkspaceChange, SubscriptionType

__all__ = [
    # Protocol
    "MiracleProtocol",

    # Tree
    "BaseNode",
    "RootNode",
    "OutputNode",
    "WorkspaceNode",
    "ContainerNode",
    "decode_node",
    "decode_tree",

    # Events
    "Event",
    "WorkspaceEvent",
    "decode_event",

    # Replies
    "Rect",
    "OutputMode",
    "CommandResult",
    "SubscribeResult",
    "WorkspaceResult",
    "VersionResult",
    "BindingStateResult",
    "TickResult",
    "SyncResult",

    # Types
    "NodeType",
    "OutputTransform",
    "BorderType",
    "ContainerLayout",
    "WorkspaceChange",
    "SubscriptionType",
]
