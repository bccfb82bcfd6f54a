"""
JSON builders for window tree fixtures and a fake Miracle IPC server.
"""

import asyncio
import json

from miracle.io import Frame, StreamReassembler, encode_frame


def rect(x=0, y=0, width=100, height=100):
    return {"x": x, "y": y, "width": width, "height": height}


def container_json(**overrides):
    node = {
        "type": "con",
        "id": 10,
        "name": "Terminal",
        "rect": rect(0, 0, 50, 100),
        "focused": True,
        "focus": [],
        "border": "normal",
        "current_border_width": 2,
        "layout": "none",
        "orientation": "none",
        "percent": 0.5,
        "window_rect": rect(2, 2, 46, 96),
        "deco_rect": rect(0, 0, 0, 0),
        "geometry": rect(0, 0, 640, 480),
        "window": None,
        "urgent": False,
        "floating_nodes": [],
        "sticky": False,
        "fullscreen_mode": 0,
        "pid": 1234,
        "app_id": "foot",
        "visible": True,
        "shell": "xdg_shell",
        "inhibit_idle": False,
        "idle_inhibitors": {"user": "none", "application": "none"},
        "window_properties": {},
        "nodes": [],
    }
    node.update(overrides)
    return node


def workspace_json(**overrides):
    node = {
        "type": "workspace",
        "id": 1,
        "name": "1",
        "rect": rect(),
        "num": 1,
        "visible": True,
        "focused": True,
        "urgent": False,
        "output": "eDP-1",
        "border": "none",
        "current_border_width": 0,
        "layout": "splith",
        "orientation": "horizontal",
        "window_rect": rect(0, 0, 0, 0),
        "deco_rect": rect(0, 0, 0, 0),
        "geometry": rect(0, 0, 0, 0),
        "floating_nodes": [],
        "nodes": [],
    }
    node.update(overrides)
    return node


def output_json(**overrides):
    node = {
        "type": "output",
        "id": 3,
        "name": "eDP-1",
        "rect": rect(0, 0, 1920, 1080),
        "active": True,
        "dpms": True,
        "scale": 1.5,
        "scale_filter": "linear",
        "adaptive_sync_status": False,
        "make": "BOE",
        "model": "0x0BCA",
        "serial": "Unknown",
        "transform": "normal",
        "layout": "output",
        "orientation": "none",
        "visible": True,
        "focused": True,
        "urgent": False,
        "border": "none",
        "current_border_width": 0,
        "window_rect": rect(0, 0, 0, 0),
        "deco_rect": rect(0, 0, 0, 0),
        "geometry": rect(0, 0, 1920, 1080),
        "modes": [{"width": 1920, "height": 1080, "refresh": 60000}],
        "current_mode": {"width": 1920, "height": 1080, "refresh": 60000},
        "nodes": [],
    }
    node.update(overrides)
    return node


def root_json(**overrides):
    node = {"type": "root", "id": 0, "name": "root", "rect": rect(0, 0, 1920, 1080), "nodes": []}
    node.update(overrides)
    return node


def tree_json():
    """root -> output -> workspace -> (tiled split -> two windows, one floating window)"""
    left = container_json(id=11, name="left", focused=False, pid=100)
    right = container_json(id=12, name="right", pid=101, app_id="firefox")
    split = container_json(id=13, name=None, focused=False, layout="splitv", pid=None, app_id=None,
                           shell=None, nodes=[left, right], focus=[12, 11])
    floating = container_json(type="floating_con", id=14, name="popup", focused=False, pid=102)
    workspace = workspace_json(id=4, nodes=[split], floating_nodes=[floating])
    return root_json(nodes=[output_json(nodes=[workspace])])


def nested_containers(depth):
    """A container holding a chain of depth single-child containers"""
    node = container_json(id=1000)
    for i in range(depth):
        node = container_json(id=1001 + i, nodes=[node])
    return node


def workspace_event_json(change="focus", old=True):
    return {
        "change": change,
        "old": workspace_json(id=5, name="2", num=2, focused=False) if old else None,
        "current": workspace_json(),
    }


def dumps(value) -> bytes:
    return json.dumps(value).encode("utf-8")


class FakeMiracleServer:
    """
    A Unix socket server standing in for Miracle.

    Replies to each request with replies[type_tag], if set and hold_replies is
    False. Every request frame received is recorded in requests.
    """

    def __init__(self, path: str):
        self.path = path
        self.replies: dict[int, bytes] = {}
        self.requests: list[Frame] = []
        self.hold_replies = False
        self.chunk_size = None
        self.connected = asyncio.Event()
        self._server = None
        self._writers: list[asyncio.StreamWriter] = []

    async def __aenter__(self):
        self._server = await asyncio.start_unix_server(self._handle, path=self.path)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.close_clients()
        self._server.close()
        await self._server.wait_closed()

    async def _handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        self._writers.append(writer)
        self.connected.set()

        def on_frame(frame: Frame):
            self.requests.append(frame)
            if not self.hold_replies and frame.type_tag in self.replies:
                self._write(writer, encode_frame(frame.type_tag, self.replies[frame.type_tag]))

        reassembler = StreamReassembler(on_frame)
        try:
            while data := await reader.read(4096):
                reassembler.feed(data)
        except OSError:
            pass
        finally:
            if writer in self._writers:
                self._writers.remove(writer)
            writer.close()

    def _write(self, writer: asyncio.StreamWriter, data: bytes):
        if self.chunk_size is None:
            writer.write(data)
            return
        for i in range(0, len(data), self.chunk_size):
            writer.write(data[i:i + self.chunk_size])

    async def send_raw(self, data: bytes):
        await asyncio.wait_for(self.connected.wait(), timeout=2)
        for writer in list(self._writers):
            if writer.is_closing():
                continue
            self._write(writer, data)
            await writer.drain()

    async def send_frame(self, type_tag: int, payload: bytes | str = b""):
        await self.send_raw(encode_frame(type_tag, payload))

    async def wait_for_requests(self, count: int, timeout: float = 2.0):
        async def poll():
            while len(self.requests) < count:
                await asyncio.sleep(0.005)
        await asyncio.wait_for(poll(), timeout=timeout)

    def close_clients(self):
        for writer in self._writers:
            writer.close()
        self._writers.clear()
