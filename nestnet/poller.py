"""Edge-capable readiness polling of channels over epoll."""

from __future__ import annotations

import select

from .channel import Channel, Event


class Poller:
    """Keeps channels by descriptor and reports the ready ones."""

    def __init__(self, max_events: int = 1024):
        self._epoll = select.epoll()
        self._max_events = max_events
        self._channels: dict[int, Channel] = {}

    @property
    def max_events(self) -> int:
        return self._max_events

    def poll(self, timeout_ms: int = -1) -> list[Channel]:
        """Wait up to ``timeout_ms`` (forever if negative) for ready channels.

        Each returned channel has ``revents`` set. When the batch was full the
        batch size doubles for the next call.
        """
        timeout = -1 if timeout_ms < 0 else timeout_ms / 1000
        ready = self._epoll.poll(timeout, self._max_events)
        channels = []
        for fd, mask in ready:
            if fd < 0:
                continue
            channel = self._channels.get(fd)
            if channel is None:
                continue
            channel.revents = Event(mask)
            channels.append(channel)
        if len(ready) == self._max_events:
            self._max_events *= 2
        return channels

    def add_channel(self, channel: Channel) -> None:
        """Register a channel with its current interest set; repeats are ignored."""
        fd = channel.fileno()
        if fd in self._channels:
            return
        self._channels[fd] = channel
        try:
            self._epoll.register(fd, int(channel.events))
        except OSError:
            del self._channels[fd]
            raise

    def remove_channel(self, channel: Channel) -> None:
        """Unregister a channel; unknown channels are ignored."""
        fd = channel.fileno()
        if self._channels.pop(fd, None) is None:
            return
        self._epoll.unregister(fd)

    def update_channel(self, channel: Channel) -> None:
        """Apply a changed interest set; raises KeyError for unknown channels."""
        fd = channel.fileno()
        if fd not in self._channels:
            raise KeyError(f"channel fd {fd} is not registered")
        self._epoll.modify(fd, int(channel.events))

    def close(self) -> None:
        self._epoll.close()

    def __enter__(self) -> "Poller":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()