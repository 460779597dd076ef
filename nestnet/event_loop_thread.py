"""Event loops running on their own threads, singly or as a pool."""

from __future__ import annotations

import logging
import os
import threading
from typing import Optional

from .event_loop import EventLoop

logger = logging.getLogger(__name__)


class EventLoopThread:
    """A thread that owns an event loop, started on the first :meth:`run`."""

    def __init__(self):
        self._loop: Optional[EventLoop] = None
        self._condition = threading.Condition()
        self._running = False
        self._ready = threading.Event()
        self._once = threading.Lock()
        self._started = False
        self.thread = threading.Thread(target=self._start_event_loop, name="event-loop", daemon=True)
        self.thread.start()

    def _start_event_loop(self) -> None:
        try:
            with EventLoop() as loop:
                with self._condition:
                    self._condition.wait_for(lambda: self._running)
                    self._loop = loop
                self._ready.set()
                try:
                    loop.loop()
                finally:
                    self._loop = None
        finally:
            self._ready.set()

    @property
    def loop(self) -> Optional[EventLoop]:
        """The running loop, or None before :meth:`run` and after it stops."""
        return self._loop

    def run(self) -> None:
        """Let the loop start; returns once the loop is available. Runs once."""
        with self._once:
            if self._started:
                return
            self._started = True
            with self._condition:
                self._running = True
                self._condition.notify_all()
            self._ready.wait()

    def close(self) -> None:
        """Stop the loop and wait for the thread to end."""
        self.run()
        loop = self._loop
        if loop is not None:
            loop.quit()
        self.thread.join()

    def __enter__(self) -> "EventLoopThread":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def _bind_cpu(thread: threading.Thread, cpu: int) -> None:
    if not hasattr(os, "sched_setaffinity") or thread.native_id is None:
        return
    try:
        os.sched_setaffinity(thread.native_id, {cpu})
    except OSError as exc:
        logger.debug("cannot bind thread %s to cpu %d: %s", thread.name, cpu, exc)


class EventLoopThreadPool:
    """A fixed set of loop threads handed out round-robin.

    With ``cpus`` above zero, thread ``i`` is pinned to cpu ``(start + i) % cpus``
    where the platform allows it.
    """

    def __init__(self, thread_num: int, start: int = 0, cpus: int = 4):
        thread_num = max(thread_num, 1)
        self._threads = [EventLoopThread() for _ in range(thread_num)]
        if cpus > 0:
            for offset, loop_thread in enumerate(self._threads):
                _bind_cpu(loop_thread.thread, (start + offset) % cpus)
        self._index = 0
        self._index_lock = threading.Lock()

    def get_loops(self) -> list[Optional[EventLoop]]:
        return [loop_thread.loop for loop_thread in self._threads]

    def get_next_loop(self) -> Optional[EventLoop]:
        with self._index_lock:
            index = self._index
            self._index += 1
        return self._threads[index % len(self._threads)].loop

    def __len__(self) -> int:
        return len(self._threads)

    def start(self) -> None:
        for loop_thread in self._threads:
            loop_thread.run()

    def close(self) -> None:
        for loop_thread in self._threads:
            loop_thread.close()

    def __enter__(self) -> "EventLoopThreadPool":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()