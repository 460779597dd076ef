import socket
import threading
import time
from unittest import mock

from nestnet.dns_service import (
    DEFAULT_INTERVAL_MS,
    DEFAULT_RETRY,
    DEFAULT_SLEEP_MS,
    DnsService,
    resolve_host,
)
from nestnet.inet_address import InetAddress


def test_resolve_numeric_ipv4():
    addresses = resolve_host("127.0.0.1")
    assert addresses
    assert all(addr.ip == "127.0.0.1" for addr in addresses)
    assert all(not addr.is_ipv6 for addr in addresses)


def test_resolve_failure_gives_empty_list():
    with mock.patch("socket.getaddrinfo", side_effect=socket.gaierror("no such host")):
        assert resolve_host("host.invalid") == []


def test_resolve_marks_ipv6_results():
    result = [(socket.AF_INET6, socket.SOCK_DGRAM, 17, "", ("::1", 0, 0, 0))]
    with mock.patch("socket.getaddrinfo", return_value=result):
        addresses = resolve_host("localhost")
    assert addresses == [InetAddress("::1", 0, is_ipv6=True)]


def test_defaults():
    service = DnsService()
    assert (service.retry, service.sleep, service.interval) == (
        DEFAULT_RETRY,
        DEFAULT_SLEEP_MS,
        DEFAULT_INTERVAL_MS,
    )


def test_added_host_starts_empty():
    service = DnsService()
    service.add_host("example.com")
    assert service.hosts() == {"example.com": []}
    assert service.get_host_addresses("example.com") == []
    assert service.get_host_address("example.com", 0) is None


def test_unknown_host():
    service = DnsService()
    assert service.get_host_addresses("example.com") == []
    assert service.get_host_address("example.com", 3) is None


def test_add_host_keeps_existing_addresses():
    service = DnsService()
    addresses = [InetAddress("192.0.2.1", 0)]
    service.update_host("example.com", addresses)
    service.add_host("example.com")
    assert service.get_host_addresses("example.com") == addresses


def test_get_host_address_wraps_index():
    service = DnsService()
    first, second = InetAddress("192.0.2.1", 0), InetAddress("192.0.2.2", 0)
    service.update_host("example.com", [first, second])
    assert service.get_host_address("example.com", 0) == first
    assert service.get_host_address("example.com", 1) == second
    assert service.get_host_address("example.com", 2) == first


def test_hosts_returns_a_copy():
    service = DnsService()
    service.update_host("example.com", [InetAddress("192.0.2.1", 0)])
    snapshot = service.hosts()
    snapshot["example.com"].clear()
    snapshot["other.example.com"] = []
    assert len(service.get_host_addresses("example.com")) == 1
    assert "other.example.com" not in service.hosts()


def test_configure_sets_parameters():
    service = DnsService()
    service.configure(1000, 50, 5)
    assert (service.interval, service.sleep, service.retry) == (1000, 50, 5)


def test_background_refresh_updates_hosts():
    resolved = [InetAddress("192.0.2.7", 0)]
    done = threading.Event()

    def resolver(host):
        done.set()
        return resolved

    service = DnsService(resolver)
    service.add_host("example.com")
    service.configure(10000, 1, 3)
    service.start()
    try:
        assert done.wait(2.0)
        deadline = time.monotonic() + 2.0
        while not service.get_host_addresses("example.com") and time.monotonic() < deadline:
            time.sleep(0.01)
    finally:
        service.stop()
    assert service.get_host_addresses("example.com") == resolved
    assert not service.running


def test_retries_then_waits_for_interval():
    calls = []
    service = DnsService(lambda host: calls.append(host) or [])
    service.add_host("example.com")
    service.configure(10000, 1, 3)
    service.start()
    try:
        deadline = time.monotonic() + 2.0
        while len(calls) < 3 and time.monotonic() < deadline:
            time.sleep(0.01)
        time.sleep(0.05)
    finally:
        service.stop()
    assert calls == ["example.com"] * 3
    assert service.get_host_addresses("example.com") == []