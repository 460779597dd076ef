import select
import socket

import pytest

from nestnet.event_loop import EventLoop
from nestnet.inet_address import InetAddress
from nestnet.udp_client import UdpClient


@pytest.fixture
def loop():
    with EventLoop() as event_loop:
        yield event_loop


@pytest.fixture
def peer():
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    sock.settimeout(2.0)
    yield sock
    sock.close()


@pytest.fixture
def client(loop, peer):
    udp_client = UdpClient(loop, InetAddress("127.0.0.1", peer.getsockname()[1]))
    yield udp_client
    udp_client.on_close()


def test_connect_calls_callback(client):
    calls = []
    client.connect_callback = lambda conn, ok: calls.append((conn, ok))
    client.connect()
    assert calls == [(client, True)]
    assert client.connected
    assert client.fileno() > 0


def test_send_reaches_server(client, peer):
    client.connect()
    assert client.connected is True
    assert client.peer_addr == InetAddress("127.0.0.1", peer.getsockname()[1])
    client.send(b"ping")
    data, _ = peer.recvfrom(100)
    assert data == b"ping"


def test_reply_is_delivered_to_message_callback(client, peer):
    client.connect()
    received = []
    client.message_callback = lambda addr, buf: received.append((addr.port, buf.peek()))
    client.send(b"ping")
    _, client_addr = peer.recvfrom(100)
    peer.sendto(b"pong", client_addr)
    ready, _, _ = select.select([client.fileno()], [], [], 2.0)
    assert ready
    client.on_read()
    assert received == [(peer.getsockname()[1], b"pong")]


def test_on_close_before_connect_does_nothing(client):
    closed = []
    client.close_callback = closed.append
    client.on_close()
    assert closed == []
    assert not client.is_closed


def test_on_close_after_connect_closes_once(client):
    closed = []
    client.close_callback = closed.append
    client.connect()
    client.on_close()
    client.on_close()
    assert closed == [client]
    assert not client.connected
    assert client.fileno() == -1