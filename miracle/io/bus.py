"""
Event fan-out.

Events are broadcast: each subscriber gets its own queue, created when it
subscribes, so a subscriber only sees events published after it joined.
Callback listeners are also supported; a listener that raises is logged and
does not stop delivery to anyone else.

Example usage:
    async with bus.subscribe() as subscription:
        async for event in subscription:
            print(event)
"""

import asyncio
import copy
import inspect
import logging
from typing import Any, AsyncIterator, Callable, Optional

from .frame import Frame, is_event_type


class _Closed:
    pass


_CLOSED = _Closed()


def _copy_error(exc: BaseException) -> BaseException:
    try:
        clone = copy.copy(exc)
    except TypeError:
        # Constructor signature does not round-trip through args
        return exc
    clone.__cause__ = exc
    return clone


def invoke_callback(callback: Callable[..., Any], args: tuple, logger: logging.Logger, tasks: set[asyncio.Task]):
    """
    Call callback(*args), logging anything it raises.

    If it returns an awaitable (a coroutine function was registered), the
    awaitable is scheduled as a task held in tasks until it finishes.
    """
    try:
        result = callback(*args)
    except Exception as e:
        logger.error(f"Callback {callback!r} raised: {e}")
        return
    if inspect.isawaitable(result):
        task = asyncio.ensure_future(result)
        tasks.add(task)

        def done(task: asyncio.Task):
            tasks.discard(task)
            if not task.cancelled() and task.exception() is not None:
                logger.error(f"Callback task {callback!r} raised: {task.exception()}")

        task.add_done_callback(done)


class Subscription:
    """An async iterator over the events published after it was created"""

    def __init__(self, bus: "EventBus"):
        self._bus = bus
        self._queue: asyncio.Queue = asyncio.Queue()
        self.closed = False

    def _put(self, item):
        self._queue.put_nowait(item)

    def __aiter__(self) -> AsyncIterator[Any]:
        return self

    async def __anext__(self) -> Any:
        if self.closed and self._queue.empty():
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED:
            self.closed = True
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            raise item
        return item

    async def get(self, timeout: Optional[float] = None) -> Optional[Any]:
        """Get the next event, or None on timeout or once the bus is closed"""
        try:
            return await asyncio.wait_for(self.__anext__(), timeout=timeout)
        except (asyncio.TimeoutError, StopAsyncIteration):
            return None

    def close(self):
        """Stop receiving events. Already queued events can still be read."""
        if not self.closed:
            self._bus._remove(self)
            self.closed = True
            self._put(_CLOSED)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.close()


class EventBus:

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self._subscriptions: list[Subscription] = []
        self._listeners: list[Callable[[Any], Any]] = []
        self._tasks: set[asyncio.Task] = set()
        self.closed = False

    @staticmethod
    def classify(frame: Frame) -> bool:
        """True if the frame is an event rather than a reply"""
        return is_event_type(frame.type_tag)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions) + len(self._listeners)

    def subscribe(self) -> Subscription:
        subscription = Subscription(self)
        if self.closed:
            subscription.close()
        else:
            self._subscriptions.append(subscription)
        return subscription

    def add_listener(self, callback: Callable[[Any], Any]):
        """Call callback(event) for every published event. Coroutine functions are scheduled as tasks."""
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[Any], Any]):
        try:
            self._listeners.remove(callback)
        except ValueError:
            pass

    def _remove(self, subscription: Subscription):
        try:
            self._subscriptions.remove(subscription)
        except ValueError:
            pass

    def publish(self, event: Any):
        """Deliver event to every current subscriber and listener"""
        if self.closed:
            self.logger.warning(f"Dropping event published after close: {event!r}")
            return
        for subscription in list(self._subscriptions):
            subscription._put(event)
        for callback in list(self._listeners):
            self._call_listener(callback, event)

    def publish_error(self, exc: BaseException):
        """
        Deliver an error to subscription iterators, which raise it when they reach it.

        Each subscription gets its own copy of exc, chained to it as __cause__,
        so tracebacks added while raising are not shared between subscribers.
        """
        if self.closed:
            return
        for subscription in list(self._subscriptions):
            subscription._put(_copy_error(exc))

    def _call_listener(self, callback: Callable[[Any], Any], event: Any):
        invoke_callback(callback, (event,), self.logger, self._tasks)

    def close(self):
        """End every subscription. Later publishes are dropped; listeners are kept for renew()."""
        if self.closed:
            return
        self.closed = True
        subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            subscription.closed = True
            subscription._put(_CLOSED)

    def renew(self) -> "EventBus":
        """An open bus with the same listeners. Subscriptions are not carried over."""
        bus = EventBus(logger=self.logger)
        bus._listeners = list(self._listeners)
        return bus
