"""A hierarchical timing wheel with second, minute, hour and day rings."""

from __future__ import annotations

from collections import deque
from typing import Callable, Optional, Protocol

SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 60 * 60
SECONDS_PER_DAY = 60 * 60 * 24
MAX_DAYS = 30

_SECOND, _MINUTE, _HOUR, _DAY = range(4)
_WHEEL_SIZES = (60, 60, 24, 30)


class Entry(Protocol):
    def fire(self) -> None: ...


class CallbackEntry:
    """An entry that runs its callback once when the wheel lets go of it."""

    __slots__ = ("_callback",)

    def __init__(self, callback: Optional[Callable[[], None]] = None):
        self._callback = callback

    def fire(self) -> None:
        callback, self._callback = self._callback, None
        if callback is not None:
            callback()


class TimingWheel:
    """Entries fire when the last wheel slot that holds them expires.

    An entry inserted again before it expires is held by several slots and
    fires only when the latest of them expires, which makes idle timeouts
    easy to extend.
    """

    def __init__(self):
        self._wheels: list[deque[dict[int, Entry]]] = [
            deque({} for _ in range(size)) for size in _WHEEL_SIZES
        ]
        self._refs: dict[int, list] = {}
        self._last_ts = 0
        self._tick = 0

    @property
    def tick(self) -> int:
        return self._tick

    def _retain(self, entry: Entry) -> None:
        held = self._refs.get(id(entry))
        if held is None:
            self._refs[id(entry)] = [entry, 1]
        else:
            held[1] += 1

    def _release(self, entry: Entry) -> None:
        held = self._refs.get(id(entry))
        if held is None:
            entry.fire()
            return
        held[1] -= 1
        if held[1] == 0:
            del self._refs[id(entry)]
            entry.fire()

    def _add(self, wheel: int, slot: int, entry: Entry) -> None:
        bucket = self._wheels[wheel][slot]
        if id(entry) not in bucket:
            bucket[id(entry)] = entry
            self._retain(entry)

    def _add_deferred(self, wheel: int, count: int, remainder: int, entry: Entry) -> None:
        self._retain(entry)

        def reinsert() -> None:
            self.insert_entry(remainder, entry)
            self._release(entry)

        self._add(wheel, count - 1, CallbackEntry(reinsert))

    def insert_entry(self, delay, entry: Entry) -> None:
        """Hold ``entry`` for ``delay`` whole seconds.

        A delay below one second releases the entry at once. Delays longer
        than thirty days raise ValueError.
        """
        delay = int(delay)
        if delay <= 0:
            if id(entry) not in self._refs:
                entry.fire()
            return
        if delay < SECONDS_PER_MINUTE:
            self._add(_SECOND, delay - 1, entry)
        elif delay < SECONDS_PER_HOUR:
            self._add_deferred(_MINUTE, delay // SECONDS_PER_MINUTE, delay % SECONDS_PER_MINUTE, entry)
        elif delay < SECONDS_PER_DAY:
            self._add_deferred(_HOUR, delay // SECONDS_PER_HOUR, delay % SECONDS_PER_HOUR, entry)
        else:
            days = delay // SECONDS_PER_DAY
            if days > MAX_DAYS:
                raise ValueError(f"delays over {MAX_DAYS} days are not supported: {delay}s")
            self._add_deferred(_DAY, days, delay % SECONDS_PER_DAY, entry)

    def on_timer(self, now: int) -> None:
        """Advance the wheel by one tick when a second has passed since the last.

        ``now`` is a timestamp in milliseconds.
        """
        if self._last_ts == 0:
            self._last_ts = now
        if now - self._last_ts < 1000:
            return
        self._last_ts = now
        self._tick += 1
        self._pop(_SECOND)
        if self._tick % SECONDS_PER_MINUTE == 0:
            self._pop(_MINUTE)
        elif self._tick % SECONDS_PER_HOUR == 0:
            self._pop(_HOUR)
        elif self._tick % SECONDS_PER_DAY == 0:
            self._pop(_DAY)

    def _pop(self, wheel: int) -> None:
        ring = self._wheels[wheel]
        expired = ring.popleft()
        ring.append({})
        for entry in expired.values():
            self._release(entry)

    def run_after(self, delay, callback: Callable[[], None]) -> None:
        """Run ``callback`` once after ``delay`` seconds."""
        self.insert_entry(delay, CallbackEntry(callback))

    def run_every(self, interval, callback: Callable[[], None]) -> None:
        """Run ``callback`` every ``interval`` seconds."""
        if int(interval) <= 0:
            raise ValueError(f"interval must be at least one second: {interval}")

        def repeat() -> None:
            callback()
            self.run_every(interval, callback)

        self.insert_entry(interval, CallbackEntry(repeat))