"""A UDP endpoint bound to a local address on an event loop."""

from __future__ import annotations

import logging

from .inet_address import InetAddress
from .sockets import Socket, create_nonblocking_udp_socket
from .udp_socket import UdpSocket

logger = logging.getLogger(__name__)


class UdpServer(UdpSocket):
    """Binds to ``server`` when started and receives datagrams from anyone.

    After binding, ``local_addr`` holds the address actually bound, so a
    port of zero is replaced by the one the system chose.
    """

    def __init__(self, loop, server: InetAddress):
        super().__init__(loop, None, server, InetAddress())
        self.server_addr = server

    def start(self) -> None:
        self.loop.run_in_loop(self._open)

    def stop(self) -> None:
        def stop_in_loop() -> None:
            self.loop.del_channel(self)
            self.on_close()

        self.loop.run_in_loop(stop_in_loop)

    def _open(self) -> None:
        self.loop.assert_in_loop_thread()
        try:
            sock = create_nonblocking_udp_socket(self.server_addr.family)
        except OSError as exc:
            logger.error("socket failed: %s", exc)
            self.on_close()
            return
        self._sock = sock
        self.fd = sock.fileno()
        self.loop.add_channel(self)
        wrapper = Socket(sock, self.server_addr.is_ipv6)
        try:
            wrapper.bind_address(self.server_addr)
        except OSError as exc:
            logger.error("bind to %s failed: %s", self.server_addr.to_ip_port(), exc)
            self.loop.del_channel(self)
            self.on_close()
            return
        self.local_addr = wrapper.local_addr()