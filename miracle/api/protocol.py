import json
import logging
import time
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

from colorama import Fore, Style

from ..config import MiracleConfig
from ..exceptions import MiracleDecodeError
from ..io import IpcType, MiracleConnection, Subscription
from .events import Event, decode_event
from .models import (
    BindingStateResult, CommandResult, SubscribeResult, SyncResult, TickResult,
    VersionResult, WorkspaceResult, load_json,
)
from .tree import BaseNode, decode_tree
from .types import SubscriptionType

"""
===================================================================================
This module implements the Miracle IPC requests on top of MiracleConnection.
===================================================================================
"""


class MiracleProtocol:

    def __init__(self,
                 config: Optional[MiracleConfig] = None,
                 logger: Optional[logging.Logger] = None,
                 print_traffic: Optional[bool] = None,
                 on_socket_error: Optional[Callable[[BaseException], Any]] = None,
                 on_socket_done: Optional[Callable[[], Any]] = None):
        """
        on_socket_error(exc) is called when reading from the socket fails;
        on_socket_done() each time an open socket closes, including on disconnect().
        Either may be a coroutine function.
        """
        self.logger = logger or logging.getLogger(__name__)
        self.config = config
        if print_traffic is None:
            print_traffic = config.print_traffic if config else False
        self.print_traffic = print_traffic
        self.connection = MiracleConnection(config=config, event_decoder=decode_event, logger=self.logger,
                                            on_socket_error=on_socket_error, on_socket_done=on_socket_done)

    async def __aenter__(self):
        """Async context manager entry"""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit"""
        await self.disconnect()

    async def connect(self):
        await self.connection.connect()

    async def disconnect(self):
        await self.connection.disconnect()

    def is_connected(self) -> bool:
        return self.connection.is_connected()

    # ============================
    # PACKET SENDING
    # ============================

    async def _request(self, ipc_type: IpcType, payload: str = "") -> Any:
        """Send a request, wait for the reply and parse its JSON"""
        sent = time.time()
        reply = await self.connection.send_request(ipc_type, payload)

        if self.print_traffic:
            rtt_ms = (time.time() - sent) * 1000
            print(Fore.MAGENTA + f"REQUEST: {ipc_type.name} {payload!r}  "
                + Fore.WHITE + Style.DIM + f"RTT: {rtt_ms:.0f}ms".ljust(10)
                + Style.BRIGHT + Fore.CYAN + f"  RESPONSE: {reply[:200]!r}{'...' if len(reply) > 200 else ''}"
                + Style.RESET_ALL)

        return load_json(reply)

    @staticmethod
    def _expect_list(value: Any, what: str) -> list:
        if not isinstance(value, list):
            raise MiracleDecodeError(f"{what} reply must be an array, got {type(value).__name__}")
        return value

    @staticmethod
    def _string_list(value: Any, what: str) -> list[str]:
        items = MiracleProtocol._expect_list(value, what)
        if not all(isinstance(item, str) for item in items):
            raise MiracleDecodeError(f"{what} reply must be an array of strings")
        return items

    # ============================
    # EVENT LISTENING
    # ============================

    def subscribe_events(self) -> Subscription:
        """
        Receive decoded events published from now on.

        Events only arrive for kinds requested with subscribe(). Iterating the
        subscription raises MiracleDecodeError for an event that could not be
        decoded, and stops when the connection closes.
        """
        return self.connection.subscribe()

    async def events(self) -> AsyncIterator[Event]:
        """Async generator yielding events as they arrive"""
        async with self.connection.subscribe() as subscription:
            async for event in subscription:
                yield event

    def add_event_listener(self, callback: Callable[[Event], Optional[Awaitable[None]]]):
        self.connection.add_listener(callback)

    def remove_event_listener(self, callback: Callable[[Event], Optional[Awaitable[None]]]):
        self.connection.remove_listener(callback)

    # ============================
    # API COMMANDS
    # ============================

    async def command(self, command: str) -> list[CommandResult]:
        """Run a command string; one result per command it contains"""
        reply = self._expect_list(await self._request(IpcType.COMMAND, command), "command")
        results = [CommandResult.from_json(item) for item in reply]
        for result in results:
            if not result.success:
                self.logger.warning(f"Command '{command}' failed: {result.error}")
        return results

    async def get_workspaces(self) -> list[WorkspaceResult]:
        reply = self._expect_list(await self._request(IpcType.GET_WORKSPACES), "get_workspaces")
        return [WorkspaceResult.from_json(item) for item in reply]

    async def subscribe(self, events: list[SubscriptionType]) -> SubscribeResult:
        """Ask Miracle to send the given event kinds to this connection"""
        payload = json.dumps([SubscriptionType(e).value for e in events])
        result = SubscribeResult.from_json(await self._request(IpcType.SUBSCRIBE, payload))
        if not result.success:
            self.logger.error(f"Subscribe to {payload} failed: {result.error}")
        return result

    async def get_outputs(self) -> list[dict]:
        """Outputs as raw JSON objects"""
        return self._expect_list(await self._request(IpcType.GET_OUTPUTS), "get_outputs")

    async def get_tree(self) -> BaseNode:
        """The whole window tree, decoded fresh on each call"""
        sent = time.time()
        reply = await self.connection.send_request(IpcType.GET_TREE)
        if self.print_traffic:
            rtt_ms = (time.time() - sent) * 1000
            print(Fore.MAGENTA + "REQUEST: GET_TREE  "
                + Fore.WHITE + Style.DIM + f"RTT: {rtt_ms:.0f}ms".ljust(10)
                + Style.BRIGHT + Fore.CYAN + f"  RESPONSE: {len(reply)} bytes"
                + Style.RESET_ALL)
        return decode_tree(reply)

    async def get_marks(self) -> list[str]:
        return self._string_list(await self._request(IpcType.GET_MARKS), "get_marks")

    async def get_version(self) -> VersionResult:
        return VersionResult.from_json(await self._request(IpcType.GET_VERSION))

    async def get_binding_modes(self) -> list[str]:
        return self._string_list(await self._request(IpcType.GET_BINDING_MODES), "get_binding_modes")

    async def get_binding_state(self) -> BindingStateResult:
        return BindingStateResult.from_json(await self._request(IpcType.GET_BINDING_STATE))

    async def send_tick(self, payload: str = "") -> TickResult:
        """Broadcast a tick event carrying payload to subscribers"""
        return TickResult.from_json(await self._request(IpcType.SEND_TICK, payload))

    async def sync(self) -> SyncResult:
        return SyncResult.from_json(await self._request(IpcType.SYNC))
