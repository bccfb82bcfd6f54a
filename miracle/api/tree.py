"""
Window tree nodes and their decoder.

The get_tree reply is one recursive JSON object. Its "type" field selects the
node variant:

    root       -> RootNode       (exactly one, the top of the tree)
    output     -> OutputNode     (children of the root)
    workspace  -> WorkspaceNode  (children of an output)
    con        -> ContainerNode  (windows and split containers)

"floating_con" is also accepted and decodes as a ContainerNode. Children in
"nodes" and "floating_nodes" are decoded with the same dispatcher; a missing
or null array decodes to an empty list.
"""

from dataclasses import dataclass, field
from typing import Any, Iterator, Optional, Self

from ..exceptions import MiracleDecodeError
from .models import (
    OutputMode, Rect, expect_object, load_json, optional, optional_enum,
    optional_list, require, require_enum,
)
from .types import BorderType, ContainerLayout, NodeType, OutputTransform


@dataclass(kw_only=True)
class BaseNode:
    id: int
    name: Optional[str]
    rect: Rect
    type: NodeType
    nodes: list["BaseNode"] = field(default_factory=list)

    @property
    def children(self) -> list["BaseNode"]:
        """Tiled children followed by floating children"""
        return self.nodes + getattr(self, "floating_nodes", [])

    def walk(self) -> Iterator["BaseNode"]:
        """Yield this node and all its descendants, depth first"""
        yield self
        for child in self.children:
            yield from child.walk()

    def _describe(self) -> str:
        return f'[{self.type.name}] id={self.id}, name="{self.name}"'

    def tree_string(self, depth: int = 0) -> str:
        indent = "  " * depth
        lines = [f"{indent}{self._describe()}, rect={self.rect}\n"]
        floating = getattr(self, "floating_nodes", [])
        if floating:
            lines.append(f"{indent}  Floating nodes:\n")
            for child in floating:
                lines.append(child.tree_string(depth + 2))
        for child in self.nodes:
            lines.append(child.tree_string(depth + 1))
        return "".join(lines)

    def __str__(self) -> str:
        return self.tree_string(0)


@dataclass(kw_only=True)
class RootNode(BaseNode):
    """The topmost node of the tree; its children are OutputNodes"""

    @classmethod
    def from_json(cls, obj: dict, where: str) -> Self:
        return cls(
            id=require(obj, "id", int, where),
            name=require(obj, "name", str, where),
            rect=Rect.from_json(obj.get("rect"), f"{where}.rect"),
            type=NodeType.ROOT,
            nodes=_decode_children(obj, "nodes", where),
        )


@dataclass(kw_only=True)
class OutputNode(BaseNode):
    """
    A physical or virtual display. Its children are WorkspaceNodes.

    Scale, make, model and the other display properties are only reported for
    real outputs, so they may be None.
    """
    active: bool
    focused: bool
    urgent: bool
    dpms: Optional[bool] = None
    scale: Optional[float] = None
    scale_filter: Optional[str] = None
    adaptive_sync_status: Optional[bool] = None
    make: Optional[str] = None
    model: Optional[str] = None
    serial: Optional[str] = None
    transform: Optional[OutputTransform] = None
    layout: Optional[str] = None
    orientation: Optional[str] = None
    visible: Optional[bool] = None
    border: Optional[BorderType] = None
    current_border_width: Optional[int] = None
    window_rect: Optional[Rect] = None
    deco_rect: Optional[Rect] = None
    geometry: Optional[Rect] = None
    modes: list[OutputMode] = field(default_factory=list)
    current_mode: Optional[OutputMode] = None

    @classmethod
    def from_json(cls, obj: dict, where: str) -> Self:
        modes = optional(obj, "modes", list, where) or []
        # Older Miracle releases spell the DPMS flag "dpkms"
        dpms_key = "dpms" if "dpms" in obj else "dpkms"
        return cls(
            id=require(obj, "id", int, where),
            name=require(obj, "name", str, where),
            rect=Rect.from_json(obj.get("rect"), f"{where}.rect"),
            type=NodeType.OUTPUT,
            active=require(obj, "active", bool, where),
            focused=require(obj, "focused", bool, where),
            urgent=require(obj, "urgent", bool, where),
            dpms=optional(obj, dpms_key, bool, where),
            scale=optional(obj, "scale", float, where),
            scale_filter=optional(obj, "scale_filter", str, where),
            adaptive_sync_status=optional(obj, "adaptive_sync_status", bool, where),
            make=optional(obj, "make", str, where),
            model=optional(obj, "model", str, where),
            serial=optional(obj, "serial", str, where),
            transform=optional_enum(obj, "transform", OutputTransform, where),
            layout=optional(obj, "layout", str, where),
            orientation=optional(obj, "orientation", str, where),
            visible=optional(obj, "visible", bool, where),
            border=optional_enum(obj, "border", BorderType, where),
            current_border_width=optional(obj, "current_border_width", int, where),
            window_rect=_optional_rect(obj, "window_rect", where),
            deco_rect=_optional_rect(obj, "deco_rect", where),
            geometry=_optional_rect(obj, "geometry", where),
            modes=[OutputMode.from_json(m, f"{where}.modes[{i}]") for i, m in enumerate(modes)],
            current_mode=OutputMode.from_json(obj["current_mode"], f"{where}.current_mode") if obj.get("current_mode") is not None else None,
            nodes=_decode_children(obj, "nodes", where),
        )

    def _describe(self) -> str:
        return f"{super()._describe()}, active={self.active}, scale={self.scale}"


@dataclass(kw_only=True)
class WorkspaceNode(BaseNode):
    """A workspace on an output. Tiled windows are in nodes, floating ones in floating_nodes."""
    num: int
    visible: bool
    focused: bool
    urgent: bool
    output: str
    layout: ContainerLayout
    border: Optional[BorderType] = None
    current_border_width: Optional[int] = None
    orientation: Optional[str] = None
    window_rect: Optional[Rect] = None
    deco_rect: Optional[Rect] = None
    geometry: Optional[Rect] = None
    floating_nodes: list[BaseNode] = field(default_factory=list)

    @classmethod
    def from_json(cls, obj: dict, where: str) -> Self:
        return cls(
            id=require(obj, "id", int, where),
            name=require(obj, "name", str, where),
            rect=Rect.from_json(obj.get("rect"), f"{where}.rect"),
            type=NodeType.WORKSPACE,
            num=require(obj, "num", int, where),
            visible=require(obj, "visible", bool, where),
            focused=require(obj, "focused", bool, where),
            urgent=require(obj, "urgent", bool, where),
            output=require(obj, "output", str, where),
            layout=require_enum(obj, "layout", ContainerLayout, where),
            border=optional_enum(obj, "border", BorderType, where),
            current_border_width=optional(obj, "current_border_width", int, where),
            orientation=optional(obj, "orientation", str, where),
            window_rect=_optional_rect(obj, "window_rect", where),
            deco_rect=_optional_rect(obj, "deco_rect", where),
            geometry=_optional_rect(obj, "geometry", where),
            floating_nodes=_decode_children(obj, "floating_nodes", where),
            nodes=_decode_children(obj, "nodes", where),
        )

    def _describe(self) -> str:
        return (f"{super()._describe()}, num={self.num}, layout={self.layout.value}, "
                f"focused={self.focused}, visible={self.visible}, output={self.output}")


@dataclass(kw_only=True)
class ContainerNode(BaseNode):
    """
    A window or a split container.

    Split containers have no window, pid or app_id, and usually no name.
    window is the X11 window id and is only set for Xwayland clients.
    """
    focused: bool
    urgent: bool
    layout: ContainerLayout
    focus: list[int] = field(default_factory=list)
    border: Optional[BorderType] = None
    current_border_width: Optional[int] = None
    orientation: Optional[str] = None
    percent: Optional[float] = None
    window_rect: Optional[Rect] = None
    deco_rect: Optional[Rect] = None
    geometry: Optional[Rect] = None
    window: Optional[int] = None
    sticky: Optional[bool] = None
    fullscreen_mode: Optional[int] = None
    pid: Optional[int] = None
    app_id: Optional[str] = None
    visible: Optional[bool] = None
    shell: Optional[str] = None
    inhibit_idle: Optional[bool] = None
    idle_inhibitors: Optional[Any] = None
    window_properties: Optional[dict] = None
    scratchpad_state: Optional[str] = None
    floating_nodes: list[BaseNode] = field(default_factory=list)

    @classmethod
    def from_json(cls, obj: dict, where: str) -> Self:
        node_type = NodeType.from_string(obj["type"])
        return cls(
            id=require(obj, "id", int, where),
            name=optional(obj, "name", str, where),
            rect=Rect.from_json(obj.get("rect"), f"{where}.rect"),
            type=node_type,
            focused=require(obj, "focused", bool, where),
            urgent=require(obj, "urgent", bool, where),
            layout=require_enum(obj, "layout", ContainerLayout, where),
            focus=optional_list(obj, "focus", int, where),
            border=optional_enum(obj, "border", BorderType, where),
            current_border_width=optional(obj, "current_border_width", int, where),
            orientation=optional(obj, "orientation", str, where),
            percent=optional(obj, "percent", float, where),
            window_rect=_optional_rect(obj, "window_rect", where),
            deco_rect=_optional_rect(obj, "deco_rect", where),
            geometry=_optional_rect(obj, "geometry", where),
            window=optional(obj, "window", int, where),
            sticky=optional(obj, "sticky", bool, where),
            fullscreen_mode=optional(obj, "fullscreen_mode", int, where),
            pid=optional(obj, "pid", int, where),
            app_id=optional(obj, "app_id", str, where),
            visible=optional(obj, "visible", bool, where),
            shell=optional(obj, "shell", str, where),
            inhibit_idle=optional(obj, "inhibit_idle", bool, where),
            idle_inhibitors=obj.get("idle_inhibitors"),
            window_properties=optional(obj, "window_properties", dict, where),
            scratchpad_state=optional(obj, "scratchpad_state", str, where),
            floating_nodes=_decode_children(obj, "floating_nodes", where),
            nodes=_decode_children(obj, "nodes", where),
        )

    def _describe(self) -> str:
        extra = ""
        if self.window is not None: extra += f", window={self.window}"
        if self.pid is not None: extra += f", pid={self.pid}"
        if self.app_id is not None: extra += f', app_id="{self.app_id}"'
        return f"{super()._describe()}, layout={self.layout.value}, focused={self.focused}{extra}"


_NODE_CLASSES: dict[NodeType, type[BaseNode]] = {
    NodeType.ROOT: RootNode,
    NodeType.OUTPUT: OutputNode,
    NodeType.WORKSPACE: WorkspaceNode,
    NodeType.CONTAINER: ContainerNode,
    NodeType.FLOATING_CONTAINER: ContainerNode,
}


def _optional_rect(obj: dict, key: str, where: str) -> Optional[Rect]:
    value = obj.get(key)
    return Rect.from_json(value, f"{where}.{key}") if value is not None else None


def _decode_children(obj: dict, key: str, where: str) -> list[BaseNode]:
    children = optional(obj, key, list, where) or []
    return [_decode_node(child, f"{where}.{key}[{i}]") for i, child in enumerate(children)]


def decode_node(value: Any, where: str = "node") -> BaseNode:
    """Decode one node object, and recursively its children"""
    try:
        return _decode_node(value, where)
    except RecursionError as e:
        raise MiracleDecodeError(f"{where}: tree is nested too deeply to decode") from e


def _decode_node(value: Any, where: str) -> BaseNode:
    obj = expect_object(value, where)
    if "type" not in obj:
        raise MiracleDecodeError(f"{where}: node has no 'type' discriminator")
    node_type = require_enum(obj, "type", NodeType, where)
    return _NODE_CLASSES[node_type].from_json(obj, f"{where}<{node_type.value}>")


def decode_tree(payload: bytes | str) -> BaseNode:
    """Decode a get_tree reply payload"""
    return decode_node(load_json(payload), "tree")


def decode_workspace(value: Any, where: str = "workspace") -> WorkspaceNode:
    node = decode_node(value, where)
    if not isinstance(node, WorkspaceNode):
        raise MiracleDecodeError(f"{where}: expected a workspace node, got '{node.type.value}'")
    return node
