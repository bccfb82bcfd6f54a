"""
Event decoding.

Event frames are told apart from replies by the high bit of the type tag; the
remaining bits select the event kind. Only workspace events are decoded. Any
other event tag raises MiracleDecodeError so that a monitoring client notices
it is missing events instead of silently losing them.
"""

from dataclasses import dataclass
from typing import Any, Optional

from ..exceptions import MiracleDecodeError
from ..io import Frame, IpcType
from .models import expect_object, load_json, require_enum
from .tree import WorkspaceNode, decode_workspace
from .types import WorkspaceChange


@dataclass
class Event:
    type: IpcType


@dataclass
class WorkspaceEvent(Event):
    change: WorkspaceChange
    old: Optional[WorkspaceNode]
    current: WorkspaceNode

    @classmethod
    def from_json(cls, value: Any) -> "WorkspaceEvent":
        where = "workspace event"
        obj = expect_object(value, where)
        old = obj.get("old")
        return cls(
            type=IpcType.EVENT_WORKSPACE,
            change=require_enum(obj, "change", WorkspaceChange, where),
            old=decode_workspace(old, f"{where}.old") if old is not None else None,
            current=decode_workspace(obj.get("current"), f"{where}.current"),
        )


_EVENT_CLASSES = {
    IpcType.EVENT_WORKSPACE: WorkspaceEvent,
}


def decode_event(frame: Frame) -> Event:
    """Decode an event frame into its Event variant"""
    if not frame.is_event:
        raise MiracleDecodeError(f"Frame {frame.type_name()} is a reply, not an event")
    event_class = _EVENT_CLASSES.get(frame.ipc_type)
    if event_class is None:
        raise MiracleDecodeError(f"Unsupported event of type {frame.type_name()}")
    return event_class.from_json(load_json(frame.payload))
