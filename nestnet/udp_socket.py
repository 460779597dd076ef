"""A UDP socket driven by an event loop, with queued datagrams and timeouts."""

from __future__ import annotations

import logging
import socket
import weakref
from collections import deque
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Union

from .connection import BufferNode, Connection
from .inet_address import InetAddress
from .msg_buffer import MsgBuffer
from .sockets import address_from_sockaddr

logger = logging.getLogger(__name__)

MESSAGE_BUFFER_SIZE = 65535
DEFAULT_MAX_IDLE_TIME = 30

Target = Union[InetAddress, tuple]

UdpSocketMessageCallback = Callable[[InetAddress, MsgBuffer], None]
UdpSocketCloseCallback = Callable[["UdpSocket"], None]
UdpSocketWriteCompleteCallback = Callable[["UdpSocket"], None]
UdpSocketTimeoutCallback = Callable[["UdpSocket"], None]


def _sockaddr(target: Target) -> tuple:
    if isinstance(target, InetAddress):
        return target.sockaddr()
    return target


@dataclass
class UdpBufferNode(BufferNode):
    """A datagram with the address it is sent to."""

    addr: Target


class UdpTimeoutEntry:
    """A timing-wheel entry that times out its socket when it expires.

    It holds the socket weakly, so a socket that is gone is left alone.
    """

    def __init__(self, conn: "UdpSocket"):
        self._conn = weakref.ref(conn)

    def fire(self) -> None:
        conn = self._conn()
        if conn is not None:
            conn.on_timeout()


class UdpSocket(Connection):
    """A non-blocking UDP socket registered with an event loop.

    Every received datagram is placed in ``message_buffer`` and handed to
    ``message_callback`` with the sender's address; the buffer is emptied
    afterwards. Datagrams that cannot be sent at once are queued.
    """

    def __init__(
        self,
        loop,
        sock: Optional[socket.socket] = None,
        local_addr: Optional[InetAddress] = None,
        peer_addr: Optional[InetAddress] = None,
    ):
        super().__init__(loop, sock.fileno() if sock is not None else -1, local_addr, peer_addr)
        self._sock = sock
        self.message_buffer = MsgBuffer(MESSAGE_BUFFER_SIZE)
        self.close_callback: Optional[UdpSocketCloseCallback] = None
        self.message_callback: Optional[UdpSocketMessageCallback] = None
        self.write_complete_callback: Optional[UdpSocketWriteCompleteCallback] = None
        self.max_idle_time = DEFAULT_MAX_IDLE_TIME
        self._closed = False
        self._pending: deque[UdpBufferNode] = deque()
        self._timeout_entry: Optional[weakref.ref] = None

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def pending_count(self) -> int:
        """Datagrams queued for sending."""
        return len(self._pending)

    def close(self) -> None:
        if self._sock is not None:
            self._sock.close()
            self._sock = None
        self.fd = -1

    def set_timeout_callback(self, timeout, callback: UdpSocketTimeoutCallback) -> None:
        """Call ``callback`` with this socket after ``timeout`` seconds."""
        self.loop.run_after(timeout, lambda: callback(self))

    def on_timeout(self) -> None:
        logger.debug("host: %s timeout and close it", self.peer_addr.to_ip_port())
        self.on_close()

    def on_error(self, msg: str) -> None:
        logger.debug("host: %s error: %s", self.peer_addr.to_ip_port(), msg)
        self.on_close()

    def on_read(self) -> None:
        if self._closed:
            logger.warning("host: %s has closed", self.peer_addr.to_ip_port())
            return
        self._extend_life()
        while self._sock is not None:
            sock = self._sock
            try:
                with self.message_buffer.writable_view() as view:
                    count, sockaddr = sock.recvfrom_into(view)
            except (BlockingIOError, InterruptedError):
                break
            except OSError as exc:
                logger.error("host: %s error: %s", self.peer_addr.to_ip_port(), exc)
                self.on_close()
                return
            if count <= 0:
                continue
            self.message_buffer.has_written(count)
            peer = address_from_sockaddr(sock.family, sockaddr)
            if self.message_callback is not None:
                self.message_callback(peer, self.message_buffer)
            self.message_buffer.retrieve_all()

    def on_write(self) -> None:
        if self._closed:
            logger.warning("host: %s had closed", self.peer_addr.to_ip_port())
            return
        self._extend_life()
        while self._pending:
            if self._sock is None:
                return
            node = self._pending[0]
            try:
                self._sock.sendto(node.data, _sockaddr(node.addr))
            except (BlockingIOError, InterruptedError):
                return
            except OSError as exc:
                logger.error("host: %s error: %s", self.peer_addr.to_ip_port(), exc)
                self.on_close()
                return
            self._pending.popleft()
        if self.write_complete_callback is not None:
            self.write_complete_callback(self)

    def on_close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self.close_callback is not None:
            self.close_callback(self)
        self.close()

    def enable_check_idle_timeout(self, max_time: int) -> None:
        """Time the socket out after ``max_time`` seconds."""
        entry = UdpTimeoutEntry(self)
        self.max_idle_time = max_time
        self._timeout_entry = weakref.ref(entry)
        self.loop.insert_entry(max_time, entry)

    def _extend_life(self) -> None:
        """Datagram sockets are not kept alive by traffic."""

    def send_buffers(self, nodes: Iterable[UdpBufferNode]) -> None:
        """Queue datagrams and send them when the socket is writable."""
        queued = list(nodes)
        self.loop.run_in_loop(lambda: self._send_buffers_in_loop(queued))

    def send(self, data, addr: Target) -> None:
        """Send one datagram to ``addr``, queueing it if it cannot go at once."""
        payload = bytes(data)
        self.loop.run_in_loop(lambda: self._send_in_loop(payload, addr))

    def force_close(self) -> None:
        self.loop.run_in_loop(self.on_close)

    def _send_buffers_in_loop(self, nodes: list[UdpBufferNode]) -> None:
        self._pending.extend(nodes)
        if self._pending:
            self.enable_writing(True)

    def _send_in_loop(self, data: bytes, addr: Target) -> None:
        if not self._pending and self._sock is not None:
            try:
                sent = self._sock.sendto(data, _sockaddr(addr))
            except OSError as exc:
                logger.debug("host: %s send deferred: %s", self.peer_addr.to_ip_port(), exc)
                sent = 0
            if sent > 0:
                return
        self._pending.append(UdpBufferNode(data, addr))
        self.enable_writing(True)