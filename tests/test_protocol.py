import asyncio
import json

import pytest

from miracle import (
    BindingStateResult, CommandResult, IpcType, MiracleConfig, MiracleDecodeError, MiracleProtocol,
    SubscriptionType, SyncResult, TickResult, VersionResult, WorkspaceChange,
    WorkspaceEvent, WorkspaceNode, WorkspaceResult,
)

from helpers import FakeMiracleServer, dumps, output_json, rect, tree_json, workspace_event_json


VERSION = {
    "major": 0, "minor": 4, "patch": 1,
    "human_readable": "miracle-wm 0.4.1",
    "loaded_config_file_name": "/home/user/.config/miracle-wm.yaml",
}


@pytest.mark.asyncio
async def test_command(config, caplog):
    async with FakeMiracleServer(config.socket_path) as server:
        server.replies[IpcType.COMMAND] = dumps([
            {"success": True},
            {"success": False, "parse_error": True, "error": "Unknown command 'frobnicate'"},
        ])
        async with MiracleProtocol(config) as ipc:
            results = await ipc.command("workspace 2; frobnicate")

    assert results == [
        CommandResult(success=True),
        CommandResult(success=False, parse_error=True, error="Unknown command 'frobnicate'"),
    ]
    assert server.requests[0].payload == b"workspace 2; frobnicate"
    assert "frobnicate" in caplog.text


@pytest.mark.asyncio
async def test_get_workspaces(config):
    async with FakeMiracleServer(config.socket_path) as server:
        server.replies[IpcType.GET_WORKSPACES] = dumps([
            {"num": 1, "name": "1", "visible": True, "focused": True, "urgent": False,
             "output": "eDP-1", "rect": rect(0, 0, 1920, 1080)},
            {"num": None, "name": "mail", "visible": False, "focused": False, "urgent": True,
             "output": "HDMI-A-1", "rect": rect(1920, 0, 1280, 1024)},
        ])
        async with MiracleProtocol(config) as ipc:
            workspaces = await ipc.get_workspaces()

    assert [w.num for w in workspaces] == [1, None]
    assert isinstance(workspaces[1], WorkspaceResult)
    assert workspaces[1].urgent
    assert str(workspaces[1].rect) == "(1920, 0, 1280x1024)"


@pytest.mark.asyncio
async def test_subscribe(config):
    async with FakeMiracleServer(config.socket_path) as server:
        server.replies[IpcType.SUBSCRIBE] = b'{"success": true}'
        async with MiracleProtocol(config) as ipc:
            result = await ipc.subscribe([SubscriptionType.WORKSPACE, SubscriptionType.WINDOW])

    assert result.success
    assert json.loads(server.requests[0].payload) == ["workspace", "window"]


@pytest.mark.asyncio
async def test_subscribe_failure(config):
    async with FakeMiracleServer(config.socket_path) as server:
        server.replies[IpcType.SUBSCRIBE] = b'{"success": false, "error": "unknown event"}'
        async with MiracleProtocol(config) as ipc:
            result = await ipc.subscribe([SubscriptionType.INPUT])
    assert not result.success
    assert result.error == "unknown event"


@pytest.mark.asyncio
async def test_get_outputs_returns_raw_objects(config):
    async with FakeMiracleServer(config.socket_path) as server:
        server.replies[IpcType.GET_OUTPUTS] = dumps([output_json(nodes=[])])
        async with MiracleProtocol(config) as ipc:
            outputs = await ipc.get_outputs()
    assert outputs[0]["name"] == "eDP-1"


@pytest.mark.asyncio
async def test_get_tree(config):
    async with FakeMiracleServer(config.socket_path) as server:
        server.replies[IpcType.GET_TREE] = dumps(tree_json())
        async with MiracleProtocol(config) as ipc:
            first = await ipc.get_tree()
            second = await ipc.get_tree()

    assert first == second
    assert first is not second
    assert len(server.requests) == 2
    workspace = first.nodes[0].nodes[0]
    assert isinstance(workspace, WorkspaceNode)


@pytest.mark.asyncio
async def test_simple_requests(config):
    async with FakeMiracleServer(config.socket_path) as server:
        server.replies.update({
            IpcType.GET_MARKS: b'["mail", "music"]',
            IpcType.GET_VERSION: dumps(VERSION),
            IpcType.GET_BINDING_MODES: b'["default", "resize"]',
            IpcType.GET_BINDING_STATE: b'{"name": "resize"}',
            IpcType.SEND_TICK: b'{"success": true}',
            IpcType.SYNC: b'{"name": "default"}',
        })
        async with MiracleProtocol(config) as ipc:
            assert await ipc.get_marks() == ["mail", "music"]
            assert await ipc.get_version() == VersionResult(**VERSION)
            assert await ipc.get_binding_modes() == ["default", "resize"]
            assert await ipc.get_binding_state() == BindingStateResult("resize")
            assert await ipc.send_tick("hello") == TickResult(True)
            assert await ipc.sync() == SyncResult("default")

    tick = next(frame for frame in server.requests if frame.type_tag == IpcType.SEND_TICK)
    assert tick.payload == b"hello"


@pytest.mark.asyncio
@pytest.mark.parametrize("tag,method,reply", [
    (IpcType.GET_MARKS, "get_marks", b'{"marks": []}'),
    (IpcType.GET_MARKS, "get_marks", b'[1, 2]'),
    (IpcType.GET_VERSION, "get_version", b'{"major": "0"}'),
    (IpcType.GET_WORKSPACES, "get_workspaces", b'{}'),
    (IpcType.SYNC, "sync", b'not json'),
])
async def test_malformed_replies(config, tag, method, reply):
    async with FakeMiracleServer(config.socket_path) as server:
        server.replies[tag] = reply
        async with MiracleProtocol(config) as ipc:
            with pytest.raises(MiracleDecodeError):
                await getattr(ipc, method)()
            # The connection is still usable after a bad reply
            server.replies[IpcType.SYNC] = b'{"name": "default"}'
            assert (await ipc.sync()).name == "default"


@pytest.mark.asyncio
async def test_events(config):
    async with FakeMiracleServer(config.socket_path) as server:
        server.replies[IpcType.SUBSCRIBE] = b'{"success": true}'
        async with MiracleProtocol(config) as ipc:
            subscription = ipc.subscribe_events()
            await ipc.subscribe([SubscriptionType.WORKSPACE])
            await server.send_frame(IpcType.EVENT_WORKSPACE, dumps(workspace_event_json()))

            event = await subscription.get(timeout=2)

    assert isinstance(event, WorkspaceEvent)
    assert event.change == WorkspaceChange.FOCUS
    assert event.current.name == "1"


@pytest.mark.asyncio
async def test_events_generator_ends_on_disconnect(config):
    async with FakeMiracleServer(config.socket_path) as server:
        ipc = MiracleProtocol(config)
        await ipc.connect()
        received = []

        async def consume():
            async for event in ipc.events():
                received.append(event)

        consumer = asyncio.create_task(consume())
        # Let the generator subscribe before anything is published
        await asyncio.sleep(0.05)
        await server.send_frame(IpcType.EVENT_WORKSPACE, dumps(workspace_event_json(change="init", old=False)))
        await asyncio.sleep(0.05)
        server.close_clients()
        await asyncio.wait_for(consumer, 2)

    assert [event.change for event in received] == [WorkspaceChange.INIT]
    assert not ipc.is_connected()


@pytest.mark.asyncio
async def test_unsupported_event_is_raised_to_subscribers(config):
    async with FakeMiracleServer(config.socket_path) as server:
        async with MiracleProtocol(config) as ipc:
            subscription = ipc.subscribe_events()
            await server.send_frame(IpcType.EVENT_WINDOW, b'{"change": "new"}')
            await server.send_frame(IpcType.EVENT_WORKSPACE, dumps(workspace_event_json()))

            with pytest.raises(MiracleDecodeError, match="Unsupported event"):
                await asyncio.wait_for(anext(subscription), 2)
            assert isinstance(await subscription.get(timeout=2), WorkspaceEvent)


@pytest.mark.asyncio
async def test_event_listener(config):
    received = asyncio.Queue()

    async def on_event(event):
        await received.put(event)

    async with FakeMiracleServer(config.socket_path) as server:
        async with MiracleProtocol(config) as ipc:
            ipc.add_event_listener(on_event)
            await server.send_frame(IpcType.EVENT_WORKSPACE, dumps(workspace_event_json()))
            event = await asyncio.wait_for(received.get(), 2)
            ipc.remove_event_listener(on_event)

    assert isinstance(event, WorkspaceEvent)


@pytest.mark.asyncio
async def test_print_traffic(config, capsys):
    async with FakeMiracleServer(config.socket_path) as server:
        server.replies[IpcType.GET_VERSION] = dumps(VERSION)
        server.replies[IpcType.GET_TREE] = dumps(tree_json())
        async with MiracleProtocol(config, print_traffic=True) as ipc:
            await ipc.get_version()
            await ipc.get_tree()

    out = capsys.readouterr().out
    assert "REQUEST: GET_VERSION" in out
    assert "miracle-wm 0.4.1" in out
    assert "REQUEST: GET_TREE" in out
    assert "bytes" in out


@pytest.mark.asyncio
async def test_print_traffic_from_config(socket_path, capsys):
    config = MiracleConfig(socket_path, print_traffic=True)
    async with FakeMiracleServer(socket_path) as server:
        server.replies[IpcType.SYNC] = b'{"name": "default"}'
        async with MiracleProtocol(config) as ipc:
            await ipc.sync()
    assert "REQUEST: SYNC" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_async_socket_done_callback(config):
    closed = asyncio.Event()

    async def on_done():
        closed.set()

    async with FakeMiracleServer(config.socket_path) as server:
        ipc = MiracleProtocol(config, on_socket_done=on_done)
        await ipc.connect()
        await asyncio.wait_for(server.connected.wait(), 2)
        server.close_clients()
        await asyncio.wait_for(closed.wait(), 2)
    assert not ipc.is_connected()
