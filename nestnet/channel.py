"""A file descriptor registered with an event loop, and its event flags."""

from __future__ import annotations

import enum
import os
import socket


class Event(enum.IntFlag):
    """Readiness flags, bit-compatible with the Linux epoll constants."""

    NONE = 0
    IN = 0x001
    PRI = 0x002
    OUT = 0x004
    ERR = 0x008
    HUP = 0x010
    ET = 1 << 31


EVENT_READ = Event.IN | Event.PRI | Event.ET
EVENT_WRITE = Event.OUT | Event.ET


def _socket_error(fd: int) -> int:
    """Pending SO_ERROR of a socket descriptor, 0 if it has none or is no socket."""
    if fd < 0:
        return 0
    try:
        sock = socket.socket(fileno=fd)
    except OSError:
        return 0
    try:
        return sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
    except OSError:
        return 0
    finally:
        sock.detach()


class Channel:
    """Binds a descriptor to a loop and dispatches readiness to handlers.

    ``events`` is the interest set kept by the loop; ``revents`` is what the
    poller last reported.
    """

    def __init__(self, loop, fd: int = -1):
        self.loop = loop
        self.fd = fd
        self.events = Event.NONE
        self.revents = Event.NONE

    def on_read(self) -> None:
        pass

    def on_write(self) -> None:
        pass

    def on_close(self) -> None:
        pass

    def on_error(self, msg: str) -> None:
        pass

    def enable_writing(self, enable: bool) -> bool:
        return self.loop.enable_channel_writing(self, enable)

    def enable_reading(self, enable: bool) -> bool:
        return self.loop.enable_channel_reading(self, enable)

    def fileno(self) -> int:
        return self.fd

    def close(self) -> None:
        if self.fd > 0:
            os.close(self.fd)
            self.fd = -1

    def handle_event(self) -> None:
        """Call the handler that matches ``revents``; errors take precedence."""
        revents = self.revents
        if revents & Event.ERR:
            self.on_error(os.strerror(_socket_error(self.fd)))
        elif revents & Event.HUP and not revents & Event.IN:
            self.on_close()
        elif revents & (Event.IN | Event.PRI):
            self.on_read()
        elif revents & Event.OUT:
            self.on_write()