"""
Reassembly of frames from a byte stream.

A Unix socket delivers bytes in whatever chunks the kernel hands over, so a
read may hold half a frame, exactly one, or several. StreamReassembler keeps
the unconsumed remainder between reads and hands each complete frame to a
handler in the order it was assembled.
"""

import logging
from typing import Callable, Optional

from ..exceptions import MiracleProtocolError
from .frame import Frame, try_decode_frame


class StreamReassembler:

    def __init__(self, frame_handler: Callable[[Frame], None], logger: Optional[logging.Logger] = None):
        self.frame_handler = frame_handler
        self.logger = logger or logging.getLogger(__name__)
        self._buffer = bytearray()

    @property
    def pending(self) -> int:
        """Number of buffered bytes not yet part of a complete frame"""
        return len(self._buffer)

    def feed(self, data: bytes) -> int:
        """
        Append a chunk and deliver every frame that is now complete.

        Returns the number of frames delivered. If the buffer turns out to be
        corrupt, frames decoded before the corruption are still delivered, then
        the whole buffer is dropped and MiracleProtocolError is raised.
        """
        self._buffer += data
        delivered = 0
        offset = 0
        try:
            while True:
                try:
                    decoded = try_decode_frame(self._buffer, offset)
                except MiracleProtocolError:
                    dropped = len(self._buffer) - offset
                    self._buffer.clear()
                    offset = 0
                    self.logger.error(f"Dropping {dropped} buffered bytes after invalid frame header")
                    raise
                if decoded is None:
                    break
                frame, consumed = decoded
                offset += consumed
                self.frame_handler(frame)
                delivered += 1
        finally:
            if offset:
                del self._buffer[:offset]
        return delivered

    def clear(self):
        self._buffer.clear()
