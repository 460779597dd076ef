import os
import select
import socket

import pytest

from nestnet.channel import EVENT_READ, EVENT_WRITE, Channel, Event


class RecordingLoop:
    def __init__(self):
        self.calls = []

    def enable_channel_writing(self, channel, enable):
        self.calls.append(("write", channel, enable))
        return True

    def enable_channel_reading(self, channel, enable):
        self.calls.append(("read", channel, enable))
        return True


class RecordingChannel(Channel):
    def __init__(self, loop, fd=-1):
        super().__init__(loop, fd)
        self.seen = []

    def on_read(self):
        self.seen.append("read")

    def on_write(self):
        self.seen.append("write")

    def on_close(self):
        self.seen.append("close")

    def on_error(self, msg):
        self.seen.append(("error", msg))


def _dispatch(channel, revents):
    channel.revents = revents
    Channel.handle_event(channel)
    return list(channel.seen)


@pytest.fixture
def pipe():
    read_fd, write_fd = os.pipe()
    yield read_fd, write_fd
    for fd in (read_fd, write_fd):
        try:
            os.close(fd)
        except OSError:
            pass


def test_read_mask_reports_readable_pipe(pipe):
    read_fd, write_fd = pipe
    channel = Channel(RecordingLoop(), read_fd)
    os.write(write_fd, b"x")
    with select.epoll() as ep:
        ep.register(channel.fileno(), EVENT_READ)
        events = ep.poll(1)
    assert events == [(read_fd, Event.IN)]


def test_write_mask_reports_writable_pipe(pipe):
    _, write_fd = pipe
    channel = Channel(RecordingLoop(), write_fd)
    with select.epoll() as ep:
        ep.register(channel.fileno(), EVENT_WRITE)
        events = ep.poll(1)
    assert events == [(write_fd, Event.OUT)]


@pytest.mark.parametrize(
    "revents, expected",
    [
        (Event.HUP, ["close"]),
        (Event.HUP | Event.IN, ["read"]),
        (Event.IN, ["read"]),
        (Event.PRI, ["read"]),
        (Event.OUT, ["write"]),
        (Event.IN | Event.OUT, ["read"]),
        (Event.NONE, []),
    ],
)
def test_handle_event_dispatch(revents, expected):
    channel = RecordingChannel(RecordingLoop())
    assert _dispatch(channel, revents) == expected
    assert Channel.fileno(channel) == -1


def test_error_on_non_socket_reports_no_error(pipe):
    channel = RecordingChannel(RecordingLoop(), pipe[0])
    assert _dispatch(channel, Event.ERR | Event.IN) == [("error", os.strerror(0))]
    assert Channel.fileno(channel) == pipe[0]


def test_error_on_socket_keeps_descriptor_open():
    a, b = socket.socketpair()
    with a, b:
        channel = RecordingChannel(RecordingLoop(), a.fileno())
        assert _dispatch(channel, Event.ERR) == [("error", os.strerror(0))]
        assert Channel.fileno(channel) == a.fileno()
        b.sendall(b"hi")
        assert a.recv(2) == b"hi"


def test_enable_calls_go_to_loop():
    loop = RecordingLoop()
    channel = Channel(loop, 5)
    assert channel.enable_writing(True) is True
    assert channel.enable_reading(False) is True
    assert loop.calls == [("write", channel, True), ("read", channel, False)]


def test_close_closes_descriptor(pipe):
    read_fd, _ = pipe
    channel = Channel(RecordingLoop(), read_fd)
    assert channel.fileno() == read_fd
    channel.close()
    assert channel.fileno() == -1
    with pytest.raises(OSError):
        os.fstat(read_fd)


def test_close_leaves_descriptor_zero_alone():
    channel = Channel(RecordingLoop(), 0)
    channel.close()
    assert channel.fileno() == 0