"""An outgoing TCP connection that connects without blocking the loop."""

from __future__ import annotations

import enum
import logging
import socket
from typing import Callable, Iterable, Optional

from .connection import BufferNode
from .inet_address import InetAddress
from .sockets import Socket, create_nonblocking_tcp_socket
from .tcp_connection import TcpConnection

logger = logging.getLogger(__name__)

CLIENT_CONNECT_TIMEOUT = 3

ConnectCallback = Callable[[TcpConnection, bool], None]


class TcpStatus(enum.IntEnum):
    INIT = 0
    CONNECTING = 1
    CONNECTED = 2
    DISCONNECTED = 3


class TcpClient(TcpConnection):
    """Connects to ``server`` and then behaves as a TcpConnection.

    ``connect_callback`` is called once the connection is established.
    Sending before that is ignored.
    """

    def __init__(self, loop, server: InetAddress):
        super().__init__(loop, None, InetAddress(), server)
        self.server_addr = server
        self.connect_callback: Optional[ConnectCallback] = None
        self.status = TcpStatus.INIT

    def connect(self) -> None:
        self.loop.run_in_loop(self._connect_in_loop)

    def _connect_in_loop(self) -> None:
        self.loop.assert_in_loop_thread()
        try:
            sock = create_nonblocking_tcp_socket(self.server_addr.family)
        except OSError as exc:
            logger.error("socket failed: %s", exc)
            self.on_close()
            return
        self._sock = sock
        self.fd = sock.fileno()
        self.status = TcpStatus.CONNECTING
        self.loop.add_channel(self)
        self.enable_writing(True)
        self.enable_check_idle_timeout(CLIENT_CONNECT_TIMEOUT)
        try:
            connected = Socket(sock).connect(self.server_addr)
        except OSError as exc:
            logger.error("connect to server: %s error: %s", self.server_addr.to_ip_port(), exc)
            self.on_close()
            return
        if connected:
            self._update_connection_status()

    def _update_connection_status(self) -> None:
        self.status = TcpStatus.CONNECTED
        if self.connect_callback is not None:
            self.connect_callback(self, True)

    def _check_error(self) -> bool:
        if self._sock is None:
            return True
        return self._sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR) != 0

    def _finish_connecting(self) -> None:
        if self._check_error():
            logger.error("connect to server: %s failed", self.server_addr.to_ip_port())
            self.on_close()
            return
        self._update_connection_status()

    def on_read(self) -> None:
        if self.status == TcpStatus.CONNECTING:
            self._finish_connecting()
        elif self.status == TcpStatus.CONNECTED:
            super().on_read()

    def on_write(self) -> None:
        if self.status == TcpStatus.CONNECTING:
            self._finish_connecting()
        elif self.status == TcpStatus.CONNECTED:
            super().on_write()

    def on_close(self) -> None:
        if self.status in (TcpStatus.CONNECTING, TcpStatus.CONNECTED):
            self.loop.del_channel(self)
        self.status = TcpStatus.DISCONNECTED
        super().on_close()

    def send(self, data) -> None:
        if self.status == TcpStatus.CONNECTED:
            super().send(data)

    def send_buffers(self, nodes: Iterable[BufferNode]) -> None:
        if self.status == TcpStatus.CONNECTED:
            super().send_buffers(nodes)