"""A single-threaded reactor: polls channels, runs queued calls and timers."""

from __future__ import annotations

import logging
import struct
import threading
import time
from collections import deque
from typing import Callable

from .channel import EVENT_READ, EVENT_WRITE, Channel, Event
from .pipe_event import PipeEvent
from .poller import Poller
from .timing_wheel import Entry, TimingWheel

logger = logging.getLogger(__name__)

POLL_TIMEOUT_MS = 1000

_current = threading.local()
_WAKEUP = struct.pack("=q", 1)


class EventLoop:
    """An event loop bound to the thread that creates it.

    A thread may own one loop at a time. Calls made from other threads are
    queued with :meth:`run_in_loop` and run by the owning thread.
    """

    def __init__(self):
        if getattr(_current, "loop", None) is not None:
            raise RuntimeError("this thread already has an event loop")
        self._poller = Poller()
        self._wheel = TimingWheel()
        self._pending: deque[Callable[[], None]] = deque()
        self._lock = threading.Lock()
        self._looping = False
        self._quit = False
        self._closed = False
        _current.loop = self
        self._pipe = PipeEvent(self)
        self.add_channel(self._pipe)

    @property
    def looping(self) -> bool:
        return self._looping

    def loop(self) -> None:
        """Dispatch events until :meth:`quit` is called.

        A quit requested before the loop starts makes it return after one pass.
        """
        self._looping = True
        try:
            while not self._quit:
                for channel in self._poller.poll(POLL_TIMEOUT_MS):
                    channel.handle_event()
                self._run_functions()
                self._wheel.on_timer(int(time.time() * 1000))
        finally:
            self._looping = False
            self._quit = False

    def quit(self) -> None:
        """Ask the loop to stop after its current pass."""
        self._quit = True
        if not self.is_in_loop_thread():
            self._wake_up()

    def add_channel(self, channel: Channel) -> None:
        channel.events |= EVENT_READ
        self._poller.add_channel(channel)

    def del_channel(self, channel: Channel) -> None:
        self._poller.remove_channel(channel)

    def _update(self, channel: Channel) -> bool:
        try:
            self._poller.update_channel(channel)
        except KeyError:
            logger.error("can't find event fd: %s", channel.fileno())
            return False
        return True

    def enable_channel_writing(self, channel: Channel, enable: bool) -> bool:
        """Switch write interest; False if the channel is not registered."""
        if enable:
            channel.events = Event(int(channel.events) | int(EVENT_WRITE))
        else:
            channel.events = Event(int(channel.events) & ~int(EVENT_WRITE))
        return self._update(channel)

    def enable_channel_reading(self, channel: Channel, enable: bool) -> bool:
        """Switch read interest; False if the channel is not registered."""
        if enable:
            channel.events = Event(int(channel.events) | int(EVENT_READ))
        else:
            channel.events = Event(int(channel.events) & ~int(EVENT_READ))
        return self._update(channel)

    def assert_in_loop_thread(self) -> None:
        if not self.is_in_loop_thread():
            raise RuntimeError("the event loop must only be used from its own thread")

    def is_in_loop_thread(self) -> bool:
        return getattr(_current, "loop", None) is self

    def run_in_loop(self, fn: Callable[[], None]) -> None:
        """Call ``fn`` now if in the loop thread, otherwise queue it for the loop."""
        if self.is_in_loop_thread():
            fn()
            return
        with self._lock:
            self._pending.append(fn)
        self._wake_up()

    def _run_functions(self) -> None:
        with self._lock:
            pending, self._pending = self._pending, deque()
        for fn in pending:
            fn()

    def _wake_up(self) -> None:
        if self._closed:
            return
        try:
            self._pipe.write(_WAKEUP)
        except OSError as exc:
            logger.debug("wakeup failed: %s", exc)

    def insert_entry(self, delay, entry: Entry) -> None:
        """Hold ``entry`` in the timing wheel for ``delay`` seconds."""
        if self.is_in_loop_thread():
            self._wheel.insert_entry(delay, entry)
        else:
            self.run_in_loop(lambda: self._wheel.insert_entry(delay, entry))

    def run_after(self, delay, callback: Callable[[], None]) -> None:
        if self.is_in_loop_thread():
            self._wheel.run_after(delay, callback)
        else:
            self.run_in_loop(lambda: self._wheel.run_after(delay, callback))

    def run_every(self, interval, callback: Callable[[], None]) -> None:
        if self.is_in_loop_thread():
            self._wheel.run_every(interval, callback)
        else:
            self.run_in_loop(lambda: self._wheel.run_every(interval, callback))

    def close(self) -> None:
        """Stop, release the poller and wakeup pipe, and free the thread's slot."""
        if self._closed:
            return
        self._quit = True
        self._closed = True
        self._poller.remove_channel(self._pipe)
        self._pipe.close()
        self._poller.close()
        if getattr(_current, "loop", None) is self:
            _current.loop = None

    def __enter__(self) -> "EventLoop":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()