"""A TCP connection driven by an event loop, with queued writes and idle timeouts."""

from __future__ import annotations

import itertools
import logging
import os
import socket
import weakref
from collections import deque
from typing import Callable, Iterable, Optional

from .connection import BufferNode, Connection
from .inet_address import InetAddress
from .msg_buffer import MsgBuffer

logger = logging.getLogger(__name__)

DEFAULT_MAX_IDLE_TIME = 30
_IOV_MAX = 1024

CloseConnectionCallback = Callable[["TcpConnection"], None]
MessageCallback = Callable[["TcpConnection", MsgBuffer], None]
WriteCompleteCallback = Callable[["TcpConnection"], None]
TimeoutCallback = Callable[["TcpConnection"], None]


class TimeoutEntry:
    """A timing-wheel entry that times out its connection when it expires.

    It holds the connection weakly, so a connection that is gone is left alone.
    """

    def __init__(self, conn: "TcpConnection"):
        self._conn = weakref.ref(conn)

    def fire(self) -> None:
        conn = self._conn()
        if conn is not None:
            conn.on_timeout()


class TcpConnection(Connection):
    """A connected, non-blocking TCP socket registered with an event loop.

    Incoming data is collected in ``buffer`` and handed to
    ``message_callback``. Data that cannot be written at once is queued and
    flushed when the socket becomes writable.
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
        self.close_callback: Optional[CloseConnectionCallback] = None
        self.message_callback: Optional[MessageCallback] = None
        self.write_complete_callback: Optional[WriteCompleteCallback] = None
        self.buffer = MsgBuffer()
        self.max_idle_time = DEFAULT_MAX_IDLE_TIME
        self._closed = False
        self._pending: deque[memoryview] = deque()
        self._timeout_entry: Optional[weakref.ref] = None

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def pending_bytes(self) -> int:
        """Bytes queued for writing."""
        return sum(len(view) for view in self._pending)

    def close(self) -> None:
        if self._sock is not None:
            self._sock.close()
            self._sock = None
        self.fd = -1

    def on_close(self) -> None:
        self.loop.assert_in_loop_thread()
        if self._closed:
            return
        self._closed = True
        if self.close_callback is not None:
            self.close_callback(self)
        self.close()

    def force_close(self) -> None:
        self.loop.run_in_loop(self.on_close)

    def set_timeout_callback(self, timeout, callback: TimeoutCallback) -> None:
        """Call ``callback`` with this connection after ``timeout`` seconds."""
        self.loop.run_after(timeout, lambda: callback(self))

    def _write_completed(self) -> None:
        if self.write_complete_callback is not None:
            self.write_complete_callback(self)

    def on_read(self) -> None:
        if self._closed:
            logger.debug("host: %s had closed", self.peer_addr.to_ip_port())
            return
        self._extend_life()
        while True:
            try:
                count = self.buffer.read_fd(self.fd)
            except (BlockingIOError, InterruptedError):
                break
            except OSError as exc:
                logger.error("read err: %s", exc)
                self.on_close()
                break
            if count == 0:
                self.on_close()
                break
            if self.message_callback is not None:
                self.message_callback(self, self.buffer)

    def on_error(self, msg: str) -> None:
        logger.error("host: %s error msg: %s", self.peer_addr.to_ip_port(), msg)
        self.on_close()

    def _consume(self, sent: int) -> None:
        while sent > 0:
            head = self._pending[0]
            if len(head) > sent:
                self._pending[0] = head[sent:]
                return
            sent -= len(head)
            self._pending.popleft()

    def on_write(self) -> None:
        if self._closed:
            logger.debug("host: %s had closed", self.peer_addr.to_ip_port())
            return
        self._extend_life()
        while self._pending:
            try:
                sent = os.writev(self.fd, list(itertools.islice(self._pending, _IOV_MAX)))
            except (BlockingIOError, InterruptedError):
                return
            except OSError as exc:
                logger.error("host: %s write err: %s", self.peer_addr.to_ip_port(), exc)
                self.on_close()
                return
            self._consume(sent)
        self.enable_writing(False)
        self._write_completed()

    def send(self, data) -> None:
        """Send bytes, writing at once where possible and queueing the rest."""
        payload = bytes(data)
        self.loop.run_in_loop(lambda: self._send_in_loop(payload))

    def send_buffers(self, nodes: Iterable[BufferNode]) -> None:
        """Queue several chunks and send them when the socket is writable."""
        chunks = [memoryview(node.data) for node in nodes]
        self.loop.run_in_loop(lambda: self._send_buffers_in_loop(chunks))

    def _send_in_loop(self, data: bytes) -> None:
        if self._closed:
            logger.debug("host: %s had closed", self.peer_addr.to_ip_port())
            return
        view = memoryview(data)
        if not self._pending:
            try:
                written = os.write(self.fd, view)
            except (BlockingIOError, InterruptedError):
                written = 0
            except OSError as exc:
                logger.error("host: %s write err: %s", self.peer_addr.to_ip_port(), exc)
                self.on_close()
                return
            view = view[written:]
            if not view:
                self._write_completed()
                return
        if view:
            self._pending.append(view)
            self.enable_writing(True)

    def _send_buffers_in_loop(self, chunks: list[memoryview]) -> None:
        if self._closed:
            logger.debug("host: %s had closed", self.peer_addr.to_ip_port())
            return
        self._pending.extend(chunks)
        if self._pending:
            self.enable_writing(True)

    def on_timeout(self) -> None:
        logger.error("host: %s timeout and close it", self.peer_addr.to_ip_port())
        self.on_close()

    def enable_check_idle_timeout(self, max_time: int) -> None:
        """Close the connection after ``max_time`` seconds without reads or writes."""
        entry = TimeoutEntry(self)
        self.max_idle_time = max_time
        self._timeout_entry = weakref.ref(entry)
        self.loop.insert_entry(max_time, entry)

    def _extend_life(self) -> None:
        if self._timeout_entry is None:
            return
        entry = self._timeout_entry()
        if entry is not None:
            self.loop.insert_entry(self.max_idle_time, entry)