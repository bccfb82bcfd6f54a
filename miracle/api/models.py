"""
Miracle IPC API-level models.

This module contains the typed replies of the API layer:
- Rect and OutputMode, shared with the tree nodes
- One result class per JSON reply shape (command, subscribe, workspaces,
  version, binding state, tick, sync)
- The JSON field readers used by every decoder in this package. A required
  field that is missing or has the wrong JSON type raises MiracleDecodeError;
  an optional field that is missing (or null) reads as None.
"""

import json
from dataclasses import dataclass
from typing import Any, Optional, Self

from ..exceptions import MiracleDecodeError


# ============================
# JSON FIELD READERS
# ============================

_JSON_TYPE_NAMES = {int: "integer", float: "number", bool: "boolean", str: "string", list: "array", dict: "object"}


def load_json(payload: bytes | str) -> Any:
    """Parse a UTF-8 JSON payload"""
    try:
        if isinstance(payload, (bytes, bytearray)):
            payload = payload.decode("utf-8")
        return json.loads(payload)
    except UnicodeDecodeError as e:
        raise MiracleDecodeError(f"Payload is not valid UTF-8: {e}") from e
    except json.JSONDecodeError as e:
        raise MiracleDecodeError(f"Payload is not valid JSON: {e}") from e
    except RecursionError as e:
        raise MiracleDecodeError("Payload is nested too deeply to parse") from e


def _convert(value: Any, expected: type, where: str) -> Any:
    # bool is an int subclass in Python but not in JSON
    if expected is int and isinstance(value, int) and not isinstance(value, bool):
        return value
    if expected is float and isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    if expected not in (int, float) and isinstance(value, expected):
        return value
    raise MiracleDecodeError(f"{where}: expected {_JSON_TYPE_NAMES.get(expected, expected.__name__)}, got {type(value).__name__}")


def expect_object(value: Any, where: str) -> dict:
    return _convert(value, dict, where)


def require(obj: dict, key: str, expected: type, where: str) -> Any:
    """Read a field that must be present and non-null"""
    value = obj.get(key)
    if value is None:
        raise MiracleDecodeError(f"{where}: missing required field '{key}'")
    return _convert(value, expected, f"{where}.{key}")


def optional(obj: dict, key: str, expected: type, where: str) -> Optional[Any]:
    """Read a field that may be absent or null"""
    value = obj.get(key)
    if value is None:
        return None
    return _convert(value, expected, f"{where}.{key}")


def optional_list(obj: dict, key: str, expected: type, where: str) -> list:
    """Read an array of scalars; absent or null reads as an empty list"""
    values = optional(obj, key, list, where) or []
    return [_convert(v, expected, f"{where}.{key}[{i}]") for i, v in enumerate(values)]


def require_enum(obj: dict, key: str, enum_type, where: str):
    raw = require(obj, key, str, where)
    member = enum_type.from_string(raw)
    if member is None:
        raise MiracleDecodeError(f"{where}.{key}: unknown {enum_type.__name__} '{raw}'")
    return member


def optional_enum(obj: dict, key: str, enum_type, where: str):
    raw = optional(obj, key, str, where)
    if raw is None:
        return None
    member = enum_type.from_string(raw)
    if member is None:
        raise MiracleDecodeError(f"{where}.{key}: unknown {enum_type.__name__} '{raw}'")
    return member


# ============================
# SHARED VALUES
# ============================

@dataclass(frozen=True)
class Rect:
    """A generic rectangle"""
    x: int
    y: int
    width: int
    height: int

    @classmethod
    def from_json(cls, value: Any, where: str = "rect") -> Self:
        obj = expect_object(value, where)
        return cls(
            x=require(obj, "x", int, where),
            y=require(obj, "y", int, where),
            width=require(obj, "width", int, where),
            height=require(obj, "height", int, where),
        )

    def __str__(self) -> str:
        return f"({self.x}, {self.y}, {self.width}x{self.height})"


@dataclass(frozen=True)
class OutputMode:
    """A display mode; refresh is in mHz"""
    width: int
    height: int
    refresh: float

    @classmethod
    def from_json(cls, value: Any, where: str = "mode") -> Self:
        obj = expect_object(value, where)
        return cls(
            width=require(obj, "width", int, where),
            height=require(obj, "height", int, where),
            refresh=require(obj, "refresh", float, where),
        )


# ============================
# REPLIES
# ============================

@dataclass
class CommandResult:
    """
    One entry of a command reply. A command string may hold several
    commands separated by commas or semicolons; each gets its own result.
    """
    success: bool
    parse_error: Optional[bool] = None
    error: Optional[str] = None

    @classmethod
    def from_json(cls, value: Any) -> Self:
        obj = expect_object(value, "command result")
        return cls(
            success=optional(obj, "success", bool, "command result") or False,
            parse_error=optional(obj, "parse_error", bool, "command result"),
            error=optional(obj, "error", str, "command result"),
        )


@dataclass
class SubscribeResult:
    success: bool
    error: Optional[str] = None

    @classmethod
    def from_json(cls, value: Any) -> Self:
        obj = expect_object(value, "subscribe result")
        return cls(
            success=optional(obj, "success", bool, "subscribe result") or False,
            error=optional(obj, "error", str, "subscribe result"),
        )


@dataclass
class WorkspaceResult:
    """One entry of the get_workspaces reply"""
    num: Optional[int]
    name: Optional[str]
    visible: bool
    focused: bool
    urgent: bool
    output: str
    rect: Rect

    @classmethod
    def from_json(cls, value: Any) -> Self:
        where = "workspace"
        obj = expect_object(value, where)
        return cls(
            num=optional(obj, "num", int, where),
            name=optional(obj, "name", str, where),
            visible=require(obj, "visible", bool, where),
            focused=require(obj, "focused", bool, where),
            urgent=require(obj, "urgent", bool, where),
            output=require(obj, "output", str, where),
            rect=Rect.from_json(obj.get("rect"), f"{where}.rect"),
        )


@dataclass
class VersionResult:
    major: int
    minor: int
    patch: int
    human_readable: str
    loaded_config_file_name: str

    @classmethod
    def from_json(cls, value: Any) -> Self:
        where = "version"
        obj = expect_object(value, where)
        return cls(
            major=require(obj, "major", int, where),
            minor=require(obj, "minor", int, where),
            patch=require(obj, "patch", int, where),
            human_readable=require(obj, "human_readable", str, where),
            loaded_config_file_name=require(obj, "loaded_config_file_name", str, where),
        )


@dataclass
class BindingStateResult:
    """The current binding mode; one of the names returned by get_binding_modes"""
    name: str

    @classmethod
    def from_json(cls, value: Any) -> Self:
        return cls(name=require(expect_object(value, "binding state"), "name", str, "binding state"))


@dataclass
class TickResult:
    success: bool

    @classmethod
    def from_json(cls, value: Any) -> Self:
        return cls(success=require(expect_object(value, "tick"), "success", bool, "tick"))


@dataclass
class SyncResult:
    """Miracle always replies with the name "default" """
    name: str

    @classmethod
    def from_json(cls, value: Any) -> Self:
        return cls(name=require(expect_object(value, "sync"), "name", str, "sync"))
