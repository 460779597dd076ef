"""Network endpoint addresses: an IP string, a port and an address family."""

from __future__ import annotations

import re
import socket
import struct

_INADDR_LOOPBACK = 0x7F000001
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")

_PRIVATE_RANGES = (
    ("10.0.0.0", "10.255.255.255"),
    ("172.16.0.0", "172.31.255.255"),
    ("192.168.0.0", "192.168.255.255"),
)


def split_host_port(host: str) -> tuple[str, str | None]:
    """Split ``"ip:port"`` at the first colon.

    Returns the IP part and the port text, or ``None`` for the port when the
    host holds no colon.
    """
    ip, sep, port = host.partition(":")
    if not sep:
        return host, None
    return ip, port


def _parse_port(text: str) -> int:
    """Read leading decimal digits the way ``atoi`` does, wrapped to 16 bits."""
    match = _LEADING_INT.match(text)
    if match is None:
        return 0
    return int(match.group(1)) & 0xFFFF


def _ipv4_to_int(ip: str) -> int:
    """Host-order integer of a dotted IPv4 address, 0 if it does not parse."""
    try:
        packed = socket.inet_pton(socket.AF_INET, ip)
    except (OSError, ValueError):
        return 0
    return struct.unpack("!I", packed)[0]


_PRIVATE_INT_RANGES = tuple(
    (_ipv4_to_int(start), _ipv4_to_int(end)) for start, end in _PRIVATE_RANGES
)


class InetAddress:
    """An IP address with a port, IPv4 unless ``is_ipv6`` is set."""

    __slots__ = ("ip", "_port", "is_ipv6")

    def __init__(self, ip: str = "", port: int | None = None, is_ipv6: bool = False):
        self.ip = ip
        self._port = ""
        self.is_ipv6 = is_ipv6
        if port is not None:
            self.port = port

    @classmethod
    def from_host(cls, host: str, is_ipv6: bool = False) -> "InetAddress":
        """Build an address from ``"ip:port"`` or a bare ``"ip"``."""
        address = cls(is_ipv6=is_ipv6)
        address.set_host(host)
        return address

    def set_host(self, host: str) -> None:
        """Take IP and port from ``"ip:port"``; a bare IP keeps the current port."""
        ip, port = split_host_port(host)
        self.ip = ip
        if port is not None:
            self._port = port

    @property
    def port(self) -> int:
        return _parse_port(self._port)

    @port.setter
    def port(self, value: int) -> None:
        if not 0 <= value <= 0xFFFF:
            raise ValueError(f"port out of range: {value}")
        self._port = str(value)

    @property
    def family(self) -> int:
        return socket.AF_INET6 if self.is_ipv6 else socket.AF_INET

    def ipv4(self) -> int:
        """The IPv4 address as a host-order integer, 0 when it does not parse."""
        return _ipv4_to_int(self.ip)

    def to_ip_port(self) -> str:
        return f"{self.ip}:{self._port}"

    def sockaddr(self) -> tuple:
        """Address tuple in the form the ``socket`` module expects."""
        if self.is_ipv6:
            return (self.ip, self.port, 0, 0)
        return (self.ip, self.port)

    def _in_private_range(self) -> bool:
        value = self.ipv4()
        return any(start <= value <= end for start, end in _PRIVATE_INT_RANGES)

    def is_wan_ip(self) -> bool:
        return not self._in_private_range() and self.ipv4() != _INADDR_LOOPBACK

    def is_lan_ip(self) -> bool:
        return self._in_private_range()

    def is_loopback_ip(self) -> bool:
        return self.ip == "127.0.0.1"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, InetAddress):
            return NotImplemented
        return (self.ip, self._port, self.is_ipv6) == (other.ip, other._port, other.is_ipv6)

    def __hash__(self) -> int:
        return hash((self.ip, self._port, self.is_ipv6))

    def __repr__(self) -> str:
        return f"InetAddress({self.ip!r}, port={self._port!r}, is_ipv6={self.is_ipv6})"

    def __str__(self) -> str:
        return self.to_ip_port()