"""
API-level type definitions.

This module contains the enums used by the API layer:
- Node discriminators and the layout/border/transform values found in the tree
- Workspace event change kinds
- Event names accepted by the subscribe request
"""

from enum import Enum
from typing import Optional, Self


class _StrEnum(Enum):

    @classmethod
    def from_string(cls, value: str) -> Optional[Self]:
        """Return the member with this wire value, or None"""
        for member in cls:
            if member.value == value:
                return member
        return None


class NodeType(_StrEnum):
    ROOT = "root"
    OUTPUT = "output"
    WORKSPACE = "workspace"
    CONTAINER = "con"
    FLOATING_CONTAINER = "floating_con"


class OutputTransform(_StrEnum):
    NORMAL = "normal"
    NINETY = "90"
    ONE_EIGHTY = "180"
    TWO_SEVENTY = "270"
    FLIPPED = "flipped"
    FLIPPED_NINETY = "flipped-90"
    FLIPPED_ONE_EIGHTY = "flipped-180"
    FLIPPED_TWO_SEVENTY = "flipped-270"


class BorderType(_StrEnum):
    NONE = "none"
    NORMAL = "normal"
    PIXEL = "pixel"
    CSD = "csd"


class ContainerLayout(_StrEnum):
    SPLITH = "splith"
    SPLITV = "splitv"
    STACKED = "stacked"
    STACKING = "stacking"
    TABBED = "tabbed"
    OUTPUT = "output"
    NONE = "none"


class WorkspaceChange(_StrEnum):
    INIT = "init"
    EMPTY = "empty"
    FOCUS = "focus"
    RENAME = "rename"


class SubscriptionType(_StrEnum):
    WORKSPACE = "workspace"
    OUTPUT = "output"
    MODE = "mode"
    WINDOW = "window"
    BINDING = "binding"
    SHUTDOWN = "shutdown"
    TICK = "tick"
    INPUT = "input"
