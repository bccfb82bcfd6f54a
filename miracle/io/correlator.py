"""
Request/reply correlation.

The protocol carries no request id. A reply is recognised only by having the
same type tag as the request, so an outstanding request is keyed by the reply
type it expects.

A reply resolves every outstanding request expecting its type, not just the
oldest one. Two concurrent requests of the same type therefore both receive
the first reply of that type; callers that need their own reply must not
overlap same-type requests.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Optional

from .frame import Frame


@dataclass(eq=False)
class PendingRequest:
    """A request waiting for its reply"""
    expected_type: int
    future: asyncio.Future
    timestamp: float = field(default_factory=time.time)


class RequestCorrelator:

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self._pending: list[PendingRequest] = []

    def __len__(self) -> int:
        return len(self._pending)

    def submit(self, expected_type: int) -> PendingRequest:
        """Register a request expecting a reply of the given type. Must be called from the event loop."""
        loop = asyncio.get_running_loop()
        pending = PendingRequest(expected_type=int(expected_type), future=loop.create_future())
        self._pending.append(pending)
        return pending

    def resolve(self, frame: Frame) -> int:
        """Resolve all requests expecting frame.type_tag with its payload. Returns how many were matched."""
        matched = [p for p in self._pending if p.expected_type == frame.type_tag]
        if not matched:
            return 0
        self._pending = [p for p in self._pending if p.expected_type != frame.type_tag]
        for pending in matched:
            if not pending.future.done():
                pending.future.set_result(frame.payload)
        if len(matched) > 1:
            self.logger.debug(f"Reply {frame.type_name()} resolved {len(matched)} outstanding requests")
        return len(matched)

    def discard(self, pending: PendingRequest):
        """Forget a request, e.g. because its caller went away. No-op if already resolved."""
        try:
            self._pending.remove(pending)
        except ValueError:
            pass
        if not pending.future.done():
            pending.future.cancel()

    def fail_all(self, exc: BaseException) -> int:
        """Fail and forget every outstanding request. Returns how many there were."""
        pending, self._pending = self._pending, []
        for p in pending:
            if not p.future.done():
                p.future.set_exception(exc)
        return len(pending)
