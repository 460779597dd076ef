"""A self-pipe channel used to wake an event loop from other threads."""

from __future__ import annotations

import logging
import os

from .channel import Channel

logger = logging.getLogger(__name__)

_WAKEUP_SIZE = 8


class PipeEvent(Channel):
    """Reads from the pipe's read end; ``write`` pokes the write end."""

    def __init__(self, loop):
        read_fd, write_fd = os.pipe()
        os.set_blocking(read_fd, False)
        os.set_blocking(write_fd, False)
        super().__init__(loop, read_fd)
        self.write_fd = write_fd

    def on_read(self) -> None:
        try:
            os.read(self.fd, _WAKEUP_SIZE)
        except OSError as exc:
            logger.error("pipe read error: %s", exc)

    def on_close(self) -> None:
        if self.write_fd > 0:
            os.close(self.write_fd)
            self.write_fd = -1

    def on_error(self, msg: str) -> None:
        logger.error("error: %s", msg)

    def write(self, data: bytes) -> None:
        """Write to the pipe; a full pipe already means a wakeup is pending."""
        try:
            os.write(self.write_fd, data)
        except BlockingIOError:
            pass

    def close(self) -> None:
        self.on_close()
        super().close()