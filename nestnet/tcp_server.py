"""A TCP server that accepts connections on one event loop and tracks them."""

from __future__ import annotations

import logging
import socket
from typing import Callable, Optional

from .acceptor import Acceptor
from .connection import Connection
from .inet_address import InetAddress
from .msg_buffer import MsgBuffer
from .tcp_connection import TcpConnection

logger = logging.getLogger(__name__)

SERVER_IDLE_TIMEOUT = 30

ConnectionCallback = Callable[[TcpConnection], None]


class TcpServer:
    """Listens on ``addr``; every accepted socket becomes a TcpConnection.

    The callbacks set on the server are given to each new connection.
    Connections idle for thirty seconds are closed.
    """

    def __init__(self, loop, addr: InetAddress):
        self.loop = loop
        self.addr = addr
        self.acceptor = Acceptor(loop, addr)
        self.new_connection_callback: Optional[ConnectionCallback] = None
        self.destroy_connection_callback: Optional[ConnectionCallback] = None
        self.active_callback: Optional[Callable[[Connection], None]] = None
        self.write_complete_callback: Optional[ConnectionCallback] = None
        self.message_callback: Optional[Callable[[TcpConnection, MsgBuffer], None]] = None
        self.connections: set[TcpConnection] = set()

    def on_accept(self, sock: socket.socket, addr: InetAddress) -> None:
        logger.debug("new connection fd: %s host: %s", sock.fileno(), addr.to_ip_port())
        con = TcpConnection(self.loop, sock, self.addr, addr)
        con.close_callback = self.on_connection_close
        if self.write_complete_callback is not None:
            con.write_complete_callback = self.write_complete_callback
        if self.active_callback is not None:
            con.active_callback = self.active_callback
        con.message_callback = self.message_callback
        self.connections.add(con)
        self.loop.add_channel(con)
        con.enable_check_idle_timeout(SERVER_IDLE_TIMEOUT)
        if self.new_connection_callback is not None:
            self.new_connection_callback(con)

    def on_connection_close(self, con: TcpConnection) -> None:
        logger.debug("host: %s closed", con.peer_addr.to_ip_port())
        self.loop.assert_in_loop_thread()
        self.connections.discard(con)
        self.loop.del_channel(con)
        if self.destroy_connection_callback is not None:
            self.destroy_connection_callback(con)

    def start(self) -> None:
        self.acceptor.accept_callback = self.on_accept
        self.acceptor.start()

    def stop(self) -> None:
        self.acceptor.stop()

    def close(self) -> None:
        """Stop listening and close every open connection."""
        self.acceptor.close()
        for con in list(self.connections):
            con.force_close()

    def __enter__(self) -> "TcpServer":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()