"""Reactor-style networking on Linux: epoll event loops, a timing wheel, TCP/UDP endpoints, byte buffers and a DNS refresher."""

__version__ = "0.1.0"