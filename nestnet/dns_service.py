"""A background resolver that keeps the addresses of registered host names fresh."""

from __future__ import annotations

import logging
import socket
import threading
from typing import Callable, Optional

from .inet_address import InetAddress
from .sockets import address_from_sockaddr

logger = logging.getLogger(__name__)

DEFAULT_RETRY = 3
DEFAULT_SLEEP_MS = 200
DEFAULT_INTERVAL_MS = 180 * 1000

Resolver = Callable[[str], list[InetAddress]]


def resolve_host(host: str) -> list[InetAddress]:
    """All addresses ``host`` resolves to; empty when resolution fails."""
    try:
        infos = socket.getaddrinfo(
            host, None, socket.AF_UNSPEC, socket.SOCK_DGRAM, 0, socket.AI_PASSIVE
        )
    except (socket.gaierror, UnicodeError) as exc:
        logger.debug("cannot resolve %s: %s", host, exc)
        return []
    return [address_from_sockaddr(family, sockaddr) for family, _, _, _, sockaddr in infos]


class DnsService:
    """Holds resolved addresses per host and refreshes them on a thread.

    Every ``interval`` milliseconds each host is resolved again, up to
    ``retry`` attempts spaced ``sleep`` milliseconds apart; a failed refresh
    keeps the previous addresses.
    """

    def __init__(self, resolver: Optional[Resolver] = None):
        self._resolver = resolver if resolver is not None else resolve_host
        self._lock = threading.Lock()
        self._hosts: dict[str, list[InetAddress]] = {}
        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()
        self.retry = DEFAULT_RETRY
        self.sleep = DEFAULT_SLEEP_MS
        self.interval = DEFAULT_INTERVAL_MS

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def add_host(self, host: str) -> None:
        """Register a host; a host already known keeps its addresses."""
        with self._lock:
            self._hosts.setdefault(host, [])

    def get_host_addresses(self, host: str) -> list[InetAddress]:
        with self._lock:
            return list(self._hosts.get(host, ()))

    def get_host_address(self, host: str, index: int) -> Optional[InetAddress]:
        """The address at ``index`` modulo the count, or None if there is none."""
        with self._lock:
            addresses = self._hosts.get(host)
            if not addresses:
                return None
            return addresses[index % len(addresses)]

    def update_host(self, host: str, addresses) -> None:
        with self._lock:
            self._hosts[host] = list(addresses)

    def hosts(self) -> dict[str, list[InetAddress]]:
        with self._lock:
            return {host: list(addresses) for host, addresses in self._hosts.items()}

    def configure(self, interval: int, sleep: int, retry: int) -> None:
        """Set the refresh interval and retry pause in milliseconds, and the retry count."""
        self.interval = interval
        self.sleep = sleep
        self.retry = retry

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self.run, name="dns-service", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join()

    def run(self) -> None:
        """Refresh all hosts until :meth:`stop` is called."""
        while not self._stop.is_set():
            for host in self.hosts():
                for _ in range(self.retry):
                    addresses = self._resolver(host)
                    if addresses:
                        self.update_host(host, addresses)
                        break
                    if self._stop.wait(self.sleep / 1000):
                        return
            self._stop.wait(self.interval / 1000)

    def __enter__(self) -> "DnsService":
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()