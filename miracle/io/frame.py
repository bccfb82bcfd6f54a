"""
Miracle IPC wire-level frame codec.

Every message in either direction is one frame:

    | offset | size   | field                                  |
    |--------|--------|----------------------------------------|
    | 0      | 6      | magic "i3-ipc"                         |
    | 6      | 4      | payload length (native byte order)     |
    | 10     | 4      | type tag (native byte order)           |
    | 14     | length | UTF-8 JSON payload                     |

Integers are in host byte order, not network order, so a frame is only
portable between processes on the same machine.

Example usage:
    wire = encode_frame(IpcType.GET_TREE, b"")
    decoded = try_decode_frame(wire)
    if decoded is not None:
        frame, consumed = decoded
"""

import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

from ..exceptions import MiracleProtocolError


# Constants
class FrameConst:
    """Constants for the frame codec"""
    MAGIC = b"i3-ipc"
    HEADER = struct.Struct("=6sII")  # native byte order, standard sizes, no padding
    HEADER_SIZE = HEADER.size  # 14
    EVENT_FLAG = 0x80000000
    MAX_TAG = 0xFFFFFFFF


class IpcType(IntEnum):
    """Known type tags. Events have the highest bit set."""
    # i3 compatible request/reply types
    COMMAND = 0
    GET_WORKSPACES = 1
    SUBSCRIBE = 2
    GET_OUTPUTS = 3
    GET_TREE = 4
    GET_MARKS = 5
    GET_BAR_CONFIG = 6  # unused
    GET_VERSION = 7
    GET_BINDING_MODES = 8
    GET_CONFIG = 9  # unused
    SEND_TICK = 10
    SYNC = 11
    GET_BINDING_STATE = 12
    # sway specific request/reply types
    GET_INPUTS = 100  # unused
    GET_SEATS = 101  # unused

    # Events
    EVENT_WORKSPACE = 0x80000000 | 0
    EVENT_OUTPUT = 0x80000000 | 1
    EVENT_MODE = 0x80000000 | 2
    EVENT_WINDOW = 0x80000000 | 3
    EVENT_BARCONFIG_UPDATE = 0x80000000 | 4  # unused
    EVENT_BINDING = 0x80000000 | 5
    EVENT_SHUTDOWN = 0x80000000 | 6
    EVENT_TICK = 0x80000000 | 7
    EVENT_BAR_STATE_UPDATE = 0x80000000 | 20  # unused
    EVENT_INPUT = 0x80000000 | 21  # unused

    @classmethod
    def from_value(cls, value: int) -> Optional["IpcType"]:
        """Return the matching IpcType, or None for a tag this library does not know"""
        return cls._value2member_map_.get(value)


def is_event_type(type_tag: int) -> bool:
    """True if the type tag has the event bit set, whatever its low bits are"""
    return (type_tag & FrameConst.EVENT_FLAG) != 0


@dataclass(frozen=True)
class Frame:
    """One complete protocol message"""
    type_tag: int
    payload: bytes = b""

    @property
    def is_event(self) -> bool:
        return is_event_type(self.type_tag)

    @property
    def ipc_type(self) -> Optional[IpcType]:
        return IpcType.from_value(self.type_tag)

    def type_name(self) -> str:
        ipc_type = self.ipc_type
        return ipc_type.name if ipc_type is not None else f"0x{self.type_tag:08X}"

    def to_bytes(self) -> bytes:
        return encode_frame(self.type_tag, self.payload)


def encode_frame(type_tag: int, payload: bytes | str = b"") -> bytes:
    """Convert a type tag and payload to wire format"""
    if isinstance(payload, str):
        payload = payload.encode("utf-8")
    if not 0 <= type_tag <= FrameConst.MAX_TAG:
        raise ValueError(f"Type tag must be between 0 and 0x{FrameConst.MAX_TAG:08X}, got {type_tag}")
    return FrameConst.HEADER.pack(FrameConst.MAGIC, len(payload), int(type_tag)) + bytes(payload)


def try_decode_frame(buffer: bytes | bytearray, offset: int = 0) -> Optional[tuple[Frame, int]]:
    """
    Decode the frame starting at buffer[offset].

    Returns (frame, consumed_byte_count), or None if the buffer does not yet hold
    a whole frame. Nothing is consumed in the None case.

    Raises MiracleProtocolError if the bytes at offset are not the magic. The
    stream cannot be resynchronised after that, so the caller should drop the
    whole buffer.
    """
    available = len(buffer) - offset
    if available < FrameConst.HEADER_SIZE:
        return None

    magic, length, type_tag = FrameConst.HEADER.unpack_from(buffer, offset)
    if magic != FrameConst.MAGIC:
        raise MiracleProtocolError(f"Invalid magic string: {magic!r}")

    total = FrameConst.HEADER_SIZE + length
    if available < total:
        return None

    start = offset + FrameConst.HEADER_SIZE
    payload = bytes(buffer[start:offset + total])
    return Frame(type_tag=type_tag, payload=payload), total
