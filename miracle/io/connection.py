"""
Miracle IPC connection.

This module owns the Unix socket to the compositor. A single read task feeds
every inbound chunk through a StreamReassembler; each complete frame is then
routed either to the RequestCorrelator (replies) or the EventBus (events).

Terms:
- Request = A frame sent by the client
- Reply = A non-event frame whose type tag matches an outstanding request
- Event = An unsolicited frame with the high bit of its type tag set

Example usage:
async def main():
    conn = MiracleConnection()
    async with conn:
        payload = await conn.send_request(IpcType.GET_VERSION)
        print(payload.decode())

asyncio.run(main())
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Any, Callable, Optional

from ..config import MiracleConfig
from ..exceptions import MiracleConnectionError, MiracleError, MiracleProtocolError
from .bus import EventBus, Subscription, invoke_callback
from .correlator import RequestCorrelator
from .frame import Frame, encode_frame
from .stream import StreamReassembler


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class MiracleConnection:
    """
    Request:  [magic "i3-ipc", length, type, payload]
    Reply:    same framing, same type as the request
    Event:    same framing, type has bit 31 set
      - replies are matched to requests by type only (see correlator.py)
      - there is no timeout; wrap calls in asyncio.wait_for if you need one
      - event frames go through event_decoder, if one is given, before publication
      - on_socket_error(exc) is called when reading from the socket fails
      - on_socket_done() is called each time an open socket closes, whatever the cause
    """

    def __init__(self,
                 config: Optional[MiracleConfig] = None,
                 event_decoder: Optional[Callable[[Frame], Any]] = None,
                 logger: Optional[logging.Logger] = None,
                 on_socket_error: Optional[Callable[[BaseException], Any]] = None,
                 on_socket_done: Optional[Callable[[], Any]] = None):
        self.config = config
        self.event_decoder = event_decoder
        self.logger = logger or logging.getLogger(__name__)
        self.on_socket_error = on_socket_error
        self.on_socket_done = on_socket_done
        self.state = ConnectionState.DISCONNECTED
        self.socket_path: Optional[str] = None

        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._read_task: Optional[asyncio.Task] = None
        self._generation = 0  # bumped by every teardown
        self._tasks: set[asyncio.Task] = set()

        self._correlator = RequestCorrelator(logger=self.logger)
        self._bus = EventBus(logger=self.logger)
        self._reassembler = StreamReassembler(self._dispatch, logger=self.logger)

    # ============================
    # CONNECTION LIFECYCLE
    # ============================

    def is_connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED

    @property
    def pending_requests(self) -> int:
        return len(self._correlator)

    async def connect(self):
        """Open the socket and start reading. Raises MiracleConfigurationError if no socket path is configured."""
        if self.state != ConnectionState.DISCONNECTED:
            raise MiracleConnectionError(f"Cannot connect while {self.state.value}")

        config = self.config or MiracleConfig.from_env()
        self.socket_path = config.socket_path

        self.state = ConnectionState.CONNECTING
        generation = self._generation
        try:
            reader, writer = await asyncio.open_unix_connection(config.socket_path)
        except OSError as e:
            if generation == self._generation:
                self.state = ConnectionState.DISCONNECTED
            self.logger.error(f"Failed to connect to Miracle at {config.socket_path}: {e}")
            raise MiracleConnectionError(f"Cannot connect to {config.socket_path}: {e}") from e

        # disconnect() was called while the socket was opening
        if generation != self._generation:
            writer.close()
            raise MiracleConnectionError(f"Disconnected while connecting to {config.socket_path}")

        self._reader, self._writer = reader, writer
        if self._bus.closed:
            self._bus = self._bus.renew()
        self._read_task = asyncio.create_task(self._read_loop(config.read_chunk_size))
        self.state = ConnectionState.CONNECTED
        self.logger.info(f"Connected to Miracle at {config.socket_path}")

    async def disconnect(self):
        """Stop reading, close the socket and end event subscriptions. Pending requests fail with MiracleConnectionError."""
        task, self._read_task = self._read_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        writer = self._writer
        self._teardown("Disconnected")
        if writer is not None:
            try:
                await writer.wait_closed()
            except OSError as e:
                self.logger.debug(f"Error while closing socket: {e}")

    async def close(self):
        """Alias for disconnect, for symmetry with other async resources"""
        await self.disconnect()

    def _teardown(self, reason: str):
        was_connected = self.state != ConnectionState.DISCONNECTED
        socket_open = self._writer is not None
        if socket_open:
            self._writer.close()
        self._reader = None
        self._writer = None
        self._generation += 1
        self.state = ConnectionState.DISCONNECTED
        self._reassembler.clear()
        self._bus.close()
        failed = self._correlator.fail_all(MiracleConnectionError(f"{reason} before a reply arrived"))
        if failed:
            self.logger.warning(f"Failed {failed} pending request(s): {reason.lower()}")
        if was_connected:
            self.logger.info(f"{reason} from Miracle at {self.socket_path}")
        if socket_open:
            self._notify(self.on_socket_done)

    def _notify(self, callback: Optional[Callable[..., Any]], *args):
        if callback is not None:
            invoke_callback(callback, args, self.logger, self._tasks)

    async def __aenter__(self):
        if self.state == ConnectionState.DISCONNECTED:
            await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()

    # ============================
    # RECEIVING
    # ============================

    async def _read_loop(self, chunk_size: int):
        reader = self._reader
        try:
            while True:
                data = await reader.read(chunk_size)
                if not data:
                    break
                try:
                    self._reassembler.feed(data)
                except MiracleProtocolError as e:
                    # Buffer already dropped; keep reading in case the peer resyncs
                    self._bus.publish_error(e)
                except Exception as e:
                    self.logger.exception(f"Error while handling data from Miracle: {e}")
                    self._bus.publish_error(e)
        except OSError as e:
            self.logger.error(f"Connection to Miracle lost: {e}")
            error = MiracleConnectionError(f"Connection to Miracle lost: {e}")
            error.__cause__ = e
            self._bus.publish_error(error)
            self._notify(self.on_socket_error, e)
        finally:
            if self._read_task is asyncio.current_task():
                self._read_task = None
                self._teardown("Connection closed by peer")

    def _dispatch(self, frame: Frame):
        self.logger.debug(f"Received {frame.type_name()} ({len(frame.payload)} bytes)")
        if EventBus.classify(frame):
            self._publish_event(frame)
            return
        if not self._correlator.resolve(frame):
            self.logger.warning(f"Discarding unsolicited reply {frame.type_name()}")

    def _publish_event(self, frame: Frame):
        if self.event_decoder is None:
            self._bus.publish(frame)
            return
        try:
            event = self.event_decoder(frame)
        except MiracleError as e:
            self.logger.error(f"Failed to decode event {frame.type_name()}: {e}")
            self._bus.publish_error(e)
            return
        except Exception as e:
            self.logger.exception(f"Event decoder raised on {frame.type_name()}: {e}")
            self._bus.publish_error(e)
            return
        self._bus.publish(event)

    # ============================
    # EVENTS
    # ============================

    def subscribe(self) -> Subscription:
        """Receive the events published from now on"""
        return self._bus.subscribe()

    def add_listener(self, callback: Callable[[Any], Any]):
        """Call callback(event) for every event. Listeners stay registered across disconnect and connect."""
        self._bus.add_listener(callback)

    def remove_listener(self, callback: Callable[[Any], Any]):
        self._bus.remove_listener(callback)

    # ============================
    # SENDING
    # ============================

    def _require_connected(self):
        if self.state != ConnectionState.CONNECTED or self._writer is None:
            raise MiracleConnectionError("Not connected")

    async def send(self, type_tag: int, payload: bytes | str = b""):
        """Send a frame without waiting for a reply"""
        self._require_connected()
        wire = encode_frame(type_tag, payload)
        self.logger.debug(f"Sending {Frame(type_tag).type_name()} ({len(wire)} bytes)")
        try:
            self._writer.write(wire)
            await self._writer.drain()
        except OSError as e:
            raise MiracleConnectionError(f"Failed to send: {e}") from e

    async def send_request(self, type_tag: int, payload: bytes | str = b"", reply_type: Optional[int] = None) -> bytes:
        """
        Send a request and wait for the reply payload.

        reply_type defaults to the request's own type tag. The pending entry is
        registered before the write so a fast reply cannot be missed.
        """
        self._require_connected()
        expected = type_tag if reply_type is None else reply_type
        pending = self._correlator.submit(expected)
        try:
            await self.send(type_tag, payload)
            payload = await pending.future
            self.logger.debug(f"Reply after {(time.time() - pending.timestamp) * 1000:.1f}ms")
            return payload
        finally:
            self._correlator.discard(pending)
