"""Thin helpers over ``socket`` for non-blocking TCP and UDP endpoints."""

from __future__ import annotations

import socket

from .inet_address import InetAddress


def create_nonblocking_tcp_socket(family: int) -> socket.socket:
    """A non-blocking, non-inheritable TCP socket of the given family."""
    sock = socket.socket(family, socket.SOCK_STREAM, socket.IPPROTO_TCP)
    sock.setblocking(False)
    return sock


def create_nonblocking_udp_socket(family: int) -> socket.socket:
    """A non-blocking, non-inheritable UDP socket of the given family."""
    sock = socket.socket(family, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
    sock.setblocking(False)
    return sock


def address_from_sockaddr(family: int, sockaddr) -> InetAddress:
    """Turn an address tuple from the ``socket`` module into an InetAddress.

    Families other than IPv4 and IPv6 give an empty address.
    """
    if family == socket.AF_INET:
        return InetAddress(sockaddr[0], sockaddr[1])
    if family == socket.AF_INET6:
        return InetAddress(sockaddr[0], sockaddr[1], is_ipv6=True)
    return InetAddress()


class Socket:
    """Socket operations on an existing socket object, which it does not own."""

    def __init__(self, sock: socket.socket, is_ipv6: bool = False):
        self.sock = sock
        self.is_ipv6 = is_ipv6

    def fileno(self) -> int:
        return self.sock.fileno()

    def bind_address(self, local_addr: InetAddress) -> None:
        self.sock.bind(local_addr.sockaddr())

    def listen(self) -> None:
        self.sock.listen(socket.SOMAXCONN)

    def accept(self) -> tuple[socket.socket, InetAddress]:
        """Accept one connection as a non-blocking socket with its peer address.

        Raises BlockingIOError when no connection is waiting.
        """
        conn, sockaddr = self.sock.accept()
        conn.setblocking(False)
        return conn, address_from_sockaddr(conn.family, sockaddr)

    def connect(self, addr: InetAddress) -> bool:
        """Start connecting; True if connected at once, False if in progress."""
        try:
            self.sock.connect(addr.sockaddr())
        except BlockingIOError:
            return False
        return True

    def local_addr(self) -> InetAddress:
        return address_from_sockaddr(self.sock.family, self.sock.getsockname())

    def peer_addr(self) -> InetAddress:
        return address_from_sockaddr(self.sock.family, self.sock.getpeername())

    def _set_flag(self, level: int, option: int, on: bool) -> None:
        self.sock.setsockopt(level, option, 1 if on else 0)

    def set_tcp_no_delay(self, on: bool) -> None:
        self._set_flag(socket.IPPROTO_TCP, socket.TCP_NODELAY, on)

    def set_reuse_addr(self, on: bool) -> None:
        self._set_flag(socket.SOL_SOCKET, socket.SO_REUSEADDR, on)

    def set_reuse_port(self, on: bool) -> None:
        if hasattr(socket, "SO_REUSEPORT"):
            self._set_flag(socket.SOL_SOCKET, socket.SO_REUSEPORT, on)

    def set_keep_alive(self, on: bool) -> None:
        self._set_flag(socket.SOL_SOCKET, socket.SO_KEEPALIVE, on)

    def set_non_blocking(self, on: bool) -> None:
        self.sock.setblocking(not on)