"""Common state of stream and datagram connections on an event loop."""

from __future__ import annotations

import abc
import enum
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .channel import Channel
from .inet_address import InetAddress


class ContextType(enum.IntEnum):
    """Slots for protocol state attached to a connection."""

    NORMAL = 0
    RTMP = 1
    HTTP = 2
    USER = 3
    FLV = 4


@dataclass
class BufferNode:
    """A chunk of outgoing data."""

    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


class Connection(Channel, abc.ABC):
    """A channel with local and peer addresses, contexts and activity tracking."""

    def __init__(
        self,
        loop,
        fd: int = -1,
        local_addr: Optional[InetAddress] = None,
        peer_addr: Optional[InetAddress] = None,
    ):
        super().__init__(loop, fd)
        self.local_addr = local_addr if local_addr is not None else InetAddress()
        self.peer_addr = peer_addr if peer_addr is not None else InetAddress()
        self.active_callback: Optional[Callable[["Connection"], None]] = None
        self._contexts: dict[int, Any] = {}
        self._active = False

    @property
    def is_active(self) -> bool:
        return self._active

    def set_context(self, kind: int, context: Any) -> None:
        self._contexts[kind] = context

    def get_context(self, kind: int) -> Any:
        """The context stored under ``kind``, or None."""
        return self._contexts.get(kind)

    def clear_context(self, kind: int) -> None:
        self._contexts.pop(kind, None)

    def clear_contexts(self) -> None:
        self._contexts.clear()

    def active(self) -> None:
        """Mark the connection active in its loop and call the active callback."""
        if self._active:
            return

        def activate() -> None:
            self._active = True
            if self.active_callback is not None:
                self.active_callback(self)

        self.loop.run_in_loop(activate)

    def deactive(self) -> None:
        self._active = False

    @abc.abstractmethod
    def force_close(self) -> None:
        """Close the connection from any thread."""