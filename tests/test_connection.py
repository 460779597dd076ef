import threading

import pytest

from nestnet.connection import BufferNode, Connection, ContextType
from nestnet.event_loop import EventLoop
from nestnet.inet_address import InetAddress


class _Conn(Connection):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.force_closed = 0

    def force_close(self):
        self.force_closed += 1


@pytest.fixture
def loop():
    event_loop = EventLoop()
    try:
        yield event_loop
    finally:
        event_loop.close()


def test_context_type_values_address_contexts(loop):
    conn = _Conn(loop)
    conn.set_context(0, "normal")
    conn.set_context(4, "flv")
    assert conn.get_context(ContextType.NORMAL) == "normal"
    assert conn.get_context(ContextType.FLV) == "flv"


def test_connection_is_abstract(loop):
    with pytest.raises(TypeError):
        Connection(loop)


def test_buffer_node_size_is_data_length():
    node = BufferNode(b"hello")
    assert node.size == len(b"hello")


def test_addresses_kept(loop):
    local = InetAddress("127.0.0.1", 80)
    peer = InetAddress("10.0.0.2", 5000)
    conn = _Conn(loop, -1, local, peer)
    assert conn.local_addr == local
    assert conn.peer_addr == peer


def test_default_addresses_are_empty(loop):
    conn = _Conn(loop)
    assert conn.local_addr == InetAddress()
    assert conn.peer_addr == InetAddress()


def test_set_and_get_context(loop):
    conn = _Conn(loop)
    state = {"stage": "handshake"}
    conn.set_context(ContextType.HTTP, state)
    assert conn.get_context(ContextType.HTTP) is state
    assert conn.get_context(ContextType.RTMP) is None


def test_clear_context_removes_one(loop):
    conn = _Conn(loop)
    conn.set_context(ContextType.HTTP, "a")
    conn.set_context(ContextType.USER, "b")
    conn.clear_context(ContextType.HTTP)
    assert conn.get_context(ContextType.HTTP) is None
    assert conn.get_context(ContextType.USER) == "b"


def test_clear_contexts_removes_all(loop):
    conn = _Conn(loop)
    conn.set_context(ContextType.HTTP, "a")
    conn.set_context(ContextType.USER, "b")
    conn.clear_contexts()
    assert [conn.get_context(kind) for kind in ContextType] == [None] * len(ContextType)


def test_active_calls_callback_once(loop):
    conn = _Conn(loop)
    calls = []
    conn.active_callback = calls.append
    conn.active()
    conn.active()
    assert calls == [conn]
    assert conn.is_active is True


def test_deactive_allows_reactivation(loop):
    conn = _Conn(loop)
    calls = []
    conn.active_callback = calls.append
    conn.active()
    conn.deactive()
    assert conn.is_active is False
    conn.active()
    assert calls == [conn, conn]


def test_active_from_other_thread_runs_in_loop(loop):
    conn = _Conn(loop)
    calls = []
    conn.active_callback = lambda c: calls.append(loop.is_in_loop_thread())

    def other():
        conn.active()
        loop.run_in_loop(loop.quit)

    thread = threading.Thread(target=other)
    thread.start()
    thread.join(5)
    assert calls == []
    assert conn.is_active is False
    loop.loop()
    assert calls == [True]
    assert conn.is_active is True


def test_force_close_dispatches_to_subclass(loop):
    conn = _Conn(loop)
    conn.force_close()
    assert conn.force_closed == 1