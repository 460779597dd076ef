# nestnet

A small reactor-style networking library for Linux (it polls with
`select.epoll`). It needs nothing outside the standard library.

Modules:

- `nestnet.event_loop` – `EventLoop`: a single-threaded loop that polls
  channels, runs queued functions and drives a timing wheel.
- `nestnet.event_loop_thread` – `EventLoopThread` and `EventLoopThreadPool`:
  loops on their own threads, handed out round-robin.
- `nestnet.tcp_server`, `nestnet.tcp_client`, `nestnet.tcp_connection` –
  non-blocking TCP with idle timeouts.
- `nestnet.udp_server`, `nestnet.udp_client`, `nestnet.udp_socket` –
  non-blocking UDP.
- `nestnet.msg_buffer` – `MsgBuffer`: a growable byte buffer with
  network-order integer helpers.
- `nestnet.inet_address` – `InetAddress`: an address value with
  LAN/WAN/loopback checks.
- `nestnet.timing_wheel` – `TimingWheel`: second/minute/hour/day wheels for
  delayed and repeating callbacks.
- `nestnet.dns_service` – `DnsService`: a background thread that keeps a
  table of resolved hosts fresh.
- Lower layers: `nestnet.channel` (`Channel`, `Event`), `nestnet.poller`
  (`Poller`), `nestnet.pipe_event` (`PipeEvent`), `nestnet.sockets`
  (`Socket` and socket helpers), `nestnet.acceptor` (`Acceptor`),
  `nestnet.connection` (`Connection`, `ContextType`, `BufferNode`).

## Installing

```
pip install .
```

For the tests:

```
pip install ".[test]"
pytest
```

## Byte buffers

`MsgBuffer` keeps its readable data between a read and a write position,
with eight spare bytes in front so short headers can be prepended cheaply.
Integers are written and read in network byte order.

```python
from nestnet.msg_buffer import MsgBuffer

buf = MsgBuffer()
buf.append(b"hello\r\n")
buf.append_int32(0x01020304)
buf.add_in_front_int16(9)

assert buf.read_int16() == 9
line_end = buf.find_crlf()
assert buf.read(line_end) == b"hello"
buf.retrieve(2)
assert buf.read_int32() == 0x01020304
assert buf.readable_bytes() == 0
```

`read` never returns more than is readable. `retrieve_all` empties the
buffer and, when it has grown past twice its initial capacity, shrinks it
back. Peeking or reading an integer with too few bytes raises `ValueError`,
as does appending a value that does not fit its width.

## Addresses

```python
from nestnet.inet_address import InetAddress, split_host_port

assert split_host_port("10.0.0.5:8080") == ("10.0.0.5", "8080")

addr = InetAddress.from_host("192.168.1.20:1935", False)
assert addr.to_ip_port() == "192.168.1.20:1935"
assert addr.is_lan_ip()
assert not addr.is_wan_ip()
```

`sockaddr()` gives the tuple the `socket` module expects for the address's
family.

## Timers

`TimingWheel.on_timer(now)` takes a timestamp in milliseconds. The first call
only records it; after that, each call made at least 1000 ms after the last
accepted one advances the wheel by one tick. Callbacks scheduled with
`run_after` fire once; those scheduled with `run_every` reschedule themselves
after firing. A delay under one second fires at once, an interval under one
second for `run_every` and delays beyond 30 days raise `ValueError`.

```python
from nestnet.timing_wheel import TimingWheel

wheel = TimingWheel()
fired = []
wheel.run_after(2, lambda: fired.append("done"))
wheel.on_timer(1_000)
wheel.on_timer(2_000)
wheel.on_timer(3_000)
assert fired == ["done"]
```

An `EventLoop` owns a wheel and offers the same `run_after`, `run_every` and
`insert_entry`. They may be called from any thread: calls from other threads
are queued with `run_in_loop` and the loop is woken through a pipe. A thread
may own only one loop at a time; creating a second raises `RuntimeError`.
Use the loop as a context manager, or call `close()`, to release it.

## Loops on threads

```python
from nestnet.event_loop_thread import EventLoopThreadPool

pool = EventLoopThreadPool(2)
pool.start()
loop = pool.get_next_loop()
loop.run_in_loop(lambda: print("inside the loop"))
pool.close()
```

Where the platform allows it, pool threads are pinned to cpus
`(start + i) % cpus`.

## TCP

```python
from nestnet.event_loop import EventLoop
from nestnet.inet_address import InetAddress
from nestnet.tcp_server import TcpServer


def echo(con, buf):
    con.send(buf.read(buf.readable_bytes()))


with EventLoop() as loop:
    server = TcpServer(loop, InetAddress("127.0.0.1", 9000))
    server.message_callback = echo
    server.start()
    loop.loop()
```

`TcpServer` hands its `message_callback`, `write_complete_callback` and
`active_callback` to every accepted `TcpConnection`, and calls
`new_connection_callback` and `destroy_connection_callback` as connections
come and go. Connections idle for 30 seconds are closed.

`TcpClient(loop, server_addr).connect()` connects without blocking and calls
`connect_callback(client, True)` once connected; sends before that are
ignored. An attempt still pending after about three seconds is closed.

## UDP

`UdpServer.start()` binds a datagram socket; afterwards `local_addr` holds the
bound address. Each datagram goes to `message_callback(sender, buffer)`.
`UdpClient.connect()` opens a socket connected to its server, calls
`connect_callback(client, True)`, and `send(data)` sends to that server.

## DNS

`DnsService` keeps addresses per host name. Add hosts with `add_host`, tune
the refresh with `configure(interval, sleep, retry)` (milliseconds and a
count), and call `start` / `stop` to run the refresher thread. A failed
refresh keeps the previous addresses. `get_host_address(host, index)` picks
an address by index modulo the count, or returns `None`. A custom resolver
can be passed to the constructor; the default is `resolve_host`.

## What it does not do

There is no command-line program, no TLS, and no application protocol:
connections deliver and accept raw bytes. `ContextType` only names slots
where your own protocol state can be attached to a connection.