"""A listening TCP channel that hands accepted sockets to a callback."""

from __future__ import annotations

import logging
import socket
from typing import Callable, Optional

from .channel import Channel
from .inet_address import InetAddress
from .sockets import Socket, create_nonblocking_tcp_socket

logger = logging.getLogger(__name__)

AcceptCallback = Callable[[socket.socket, InetAddress], None]


class Acceptor(Channel):
    """Listens on ``addr`` and reopens the listener after an error.

    Accepted sockets are non-blocking and belong to ``accept_callback``;
    without a callback they are closed at once.
    """

    def __init__(self, loop, addr: InetAddress):
        super().__init__(loop)
        self.addr = addr
        self.accept_callback: Optional[AcceptCallback] = None
        self._sock: Optional[socket.socket] = None
        self._socket: Optional[Socket] = None

    def _release_socket(self) -> None:
        if self._sock is not None:
            self._sock.close()
        self._sock = None
        self._socket = None
        self.fd = -1

    def _open(self) -> None:
        if self._sock is not None:
            self.loop.del_channel(self)
            self._release_socket()
        self._sock = create_nonblocking_tcp_socket(self.addr.family)
        self.fd = self._sock.fileno()
        self.loop.add_channel(self)
        self._socket = Socket(self._sock, self.addr.is_ipv6)
        self._socket.set_reuse_addr(True)
        self._socket.set_reuse_port(True)
        self._socket.bind_address(self.addr)
        self._socket.listen()

    def start(self) -> None:
        self.loop.run_in_loop(self._open)

    def stop(self) -> None:
        self.loop.del_channel(self)

    def on_read(self) -> None:
        if self._socket is None:
            return
        while True:
            try:
                conn, peer = self._socket.accept()
            except BlockingIOError:
                break
            except OSError as exc:
                logger.error("acceptor error: %s", exc)
                self.on_close()
                break
            if self.accept_callback is not None:
                self.accept_callback(conn, peer)
            else:
                conn.close()

    def on_error(self, msg: str) -> None:
        logger.error("acceptor error: %s", msg)
        self.on_close()

    def on_close(self) -> None:
        self.stop()
        self._open()

    def close(self) -> None:
        """Stop listening and release the socket."""
        self.stop()
        self._release_socket()