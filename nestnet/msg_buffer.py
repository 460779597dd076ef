"""A growable byte buffer with a reserved prepend area for network I/O."""

from __future__ import annotations

import os
import struct
from typing import Union

DEFAULT_BUFFER_LENGTH = 2048
CRLF = b"\r\n"

_BUFFER_OFFSET = 8
_EXTRA_READ_SIZE = 8192

_INT_FORMATS = {1: "!B", 2: "!H", 4: "!I", 8: "!Q"}

BytesLike = Union[bytes, bytearray, memoryview, str, "MsgBuffer"]


def _pack(value: int, size: int) -> bytes:
    if not 0 <= value < (1 << (8 * size)):
        raise ValueError(f"value {value} does not fit in {size} unsigned byte(s)")
    return struct.pack(_INT_FORMATS[size], value)


def _as_bytes(data: BytesLike) -> bytes:
    if isinstance(data, MsgBuffer):
        return data.peek()
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


class MsgBuffer:
    """Readable bytes live between a head and a tail index of one bytearray.

    Eight bytes are kept in front of the head so that small headers can be
    prepended without moving data. Integers are stored in network byte order.
    """

    def __init__(self, length: int = DEFAULT_BUFFER_LENGTH):
        self._head = _BUFFER_OFFSET
        self._init_cap = length
        self._buffer = bytearray(length + _BUFFER_OFFSET)
        self._tail = self._head

    # -- inspection -------------------------------------------------------

    def readable_bytes(self) -> int:
        return self._tail - self._head

    def writable_bytes(self) -> int:
        return len(self._buffer) - self._tail

    def __len__(self) -> int:
        return self.readable_bytes()

    def __getitem__(self, offset: int) -> int:
        if not 0 <= offset < self.readable_bytes():
            raise IndexError(f"offset {offset} outside readable data")
        return self._buffer[self._head + offset]

    def peek(self) -> bytes:
        """A copy of the readable data."""
        return bytes(self._buffer[self._head:self._tail])

    def _peek_int(self, size: int) -> int:
        if self.readable_bytes() < size:
            raise ValueError(f"need {size} readable byte(s), have {self.readable_bytes()}")
        return struct.unpack_from(_INT_FORMATS[size], self._buffer, self._head)[0]

    def peek_int8(self) -> int:
        return self._peek_int(1)

    def peek_int16(self) -> int:
        return self._peek_int(2)

    def peek_int32(self) -> int:
        return self._peek_int(4)

    def peek_int64(self) -> int:
        return self._peek_int(8)

    def find_crlf(self) -> int | None:
        """Offset of the first CRLF in the readable data, or None."""
        pos = self._buffer.find(CRLF, self._head, self._tail)
        return None if pos < 0 else pos - self._head

    # -- consuming --------------------------------------------------------

    def retrieve(self, length: int) -> None:
        """Drop ``length`` bytes from the front; dropping everything resets."""
        if length >= self.readable_bytes():
            self.retrieve_all()
            return
        self._head += length

    def retrieve_all(self) -> None:
        if len(self._buffer) > self._init_cap * 2:
            del self._buffer[self._init_cap:]
        self._head = self._tail = _BUFFER_OFFSET

    def retrieve_until(self, end: int) -> None:
        """Drop the readable bytes before offset ``end``."""
        if not 0 <= end <= self.readable_bytes():
            raise ValueError(f"offset {end} outside readable data")
        self.retrieve(end)

    def read(self, length: int) -> bytes:
        """Take up to ``length`` bytes from the front."""
        length = min(length, self.readable_bytes())
        data = bytes(self._buffer[self._head:self._head + length])
        self.retrieve(length)
        return data

    def _read_int(self, size: int) -> int:
        value = self._peek_int(size)
        self.retrieve(size)
        return value

    def read_int8(self) -> int:
        return self._read_int(1)

    def read_int16(self) -> int:
        return self._read_int(2)

    def read_int32(self) -> int:
        return self._read_int(4)

    def read_int64(self) -> int:
        return self._read_int(8)

    # -- writing ----------------------------------------------------------

    def swap(self, other: "MsgBuffer") -> None:
        self._buffer, other._buffer = other._buffer, self._buffer
        self._head, other._head = other._head, self._head
        self._tail, other._tail = other._tail, self._tail
        self._init_cap, other._init_cap = other._init_cap, self._init_cap

    def ensure_writable_bytes(self, length: int) -> None:
        """Make room for ``length`` more bytes, compacting or growing."""
        if self.writable_bytes() >= length:
            return
        readable = self.readable_bytes()
        if self._head + self.writable_bytes() >= length + _BUFFER_OFFSET:
            self._buffer[_BUFFER_OFFSET:_BUFFER_OFFSET + readable] = self._buffer[self._head:self._tail]
            self._head = _BUFFER_OFFSET
            self._tail = _BUFFER_OFFSET + readable
            return
        doubled = len(self._buffer) * 2
        needed = _BUFFER_OFFSET + readable + length
        grown = MsgBuffer(doubled if doubled > needed else needed)
        grown.append(self)
        self.swap(grown)

    def append(self, data: BytesLike) -> None:
        """Append bytes, text (as UTF-8) or another buffer's readable data."""
        raw = _as_bytes(data)
        self.ensure_writable_bytes(len(raw))
        self._buffer[self._tail:self._tail + len(raw)] = raw
        self._tail += len(raw)

    def append_int8(self, value: int) -> None:
        self.append(_pack(value, 1))

    def append_int16(self, value: int) -> None:
        self.append(_pack(value, 2))

    def append_int32(self, value: int) -> None:
        self.append(_pack(value, 4))

    def append_int64(self, value: int) -> None:
        self.append(_pack(value, 8))

    def add_in_front(self, data: BytesLike) -> None:
        """Put bytes before the readable data."""
        raw = _as_bytes(data)
        length = len(raw)
        if self._head >= length:
            self._buffer[self._head - length:self._head] = raw
            self._head -= length
            return
        if length <= self.writable_bytes():
            self._buffer[self._head + length:self._tail + length] = self._buffer[self._head:self._tail]
            self._buffer[self._head:self._head + length] = raw
            self._tail += length
            return
        total = length + self.readable_bytes()
        grown = MsgBuffer(self._init_cap if total < self._init_cap else total)
        grown.append(raw)
        grown.append(self)
        self.swap(grown)

    def add_in_front_int8(self, value: int) -> None:
        self.add_in_front(_pack(value, 1))

    def add_in_front_int16(self, value: int) -> None:
        self.add_in_front(_pack(value, 2))

    def add_in_front_int32(self, value: int) -> None:
        self.add_in_front(_pack(value, 4))

    def add_in_front_int64(self, value: int) -> None:
        self.add_in_front(_pack(value, 8))

    def writable_view(self) -> memoryview:
        """A view of the free space after the data.

        Fill it, call :meth:`has_written`, and release the view before the
        buffer is written to again.
        """
        return memoryview(self._buffer)[self._tail:]

    def has_written(self, length: int) -> None:
        if length > self.writable_bytes():
            raise ValueError(f"cannot mark {length} bytes written, only {self.writable_bytes()} free")
        self._tail += length

    def unwrite(self, offset: int) -> None:
        """Drop ``offset`` bytes from the end of the readable data."""
        if offset > self.readable_bytes():
            raise ValueError(f"cannot unwrite {offset} bytes, only {self.readable_bytes()} readable")
        self._tail -= offset

    def read_fd(self, fd: int) -> int:
        """Read once from ``fd`` into the buffer; returns the byte count.

        Raises OSError when the read fails.
        """
        writable = self.writable_bytes()
        extra = bytearray(_EXTRA_READ_SIZE)
        with memoryview(self._buffer) as whole:
            with whole[self._tail:] as free:
                targets = [free, extra] if writable < _EXTRA_READ_SIZE else [free]
                count = os.readv(fd, targets)
        if count <= writable:
            self._tail += count
        else:
            self._tail = len(self._buffer)
            self.append(extra[:count - writable])
        return count

    def __repr__(self) -> str:
        return f"MsgBuffer(readable={self.readable_bytes()}, writable={self.writable_bytes()})"