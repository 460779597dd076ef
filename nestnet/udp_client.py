"""A UDP endpoint connected to one server on an event loop."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from .inet_address import InetAddress
from .sockets import Socket, create_nonblocking_udp_socket
from .udp_socket import UdpSocket

logger = logging.getLogger(__name__)

ConnectedCallback = Callable[[UdpSocket, bool], None]


class UdpClient(UdpSocket):
    """Opens a socket connected to ``server``; ``send`` goes to that server."""

    def __init__(self, loop, server: InetAddress):
        super().__init__(loop, None, InetAddress(), server)
        self.server_addr = server
        self.connect_callback: Optional[ConnectedCallback] = None
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected

    def connect(self) -> None:
        self.loop.run_in_loop(self._connect_in_loop)

    def _connect_in_loop(self) -> None:
        self.loop.assert_in_loop_thread()
        try:
            sock = create_nonblocking_udp_socket(self.server_addr.family)
        except OSError as exc:
            logger.error("socket failed: %s", exc)
            self.on_close()
            return
        self._sock = sock
        self.fd = sock.fileno()
        self._connected = True
        self.loop.add_channel(self)
        try:
            Socket(sock, self.server_addr.is_ipv6).connect(self.server_addr)
        except OSError as exc:
            logger.error("connect to %s failed: %s", self.server_addr.to_ip_port(), exc)
        if self.connect_callback is not None:
            self.connect_callback(self, True)

    def send(self, data) -> None:
        """Send one datagram to the server."""
        super().send(data, self.server_addr)

    def on_close(self) -> None:
        if not self._connected:
            return
        self.loop.del_channel(self)
        self._connected = False
        super().on_close()