"""Unbounded in-memory byte channel.

A ByteChannel sits between background pumps and the reader handed to the
caller. Writes never block, so a pump feeding a channel keeps the OS pipe
behind it drained no matter how slowly the caller reads.
"""

from __future__ import annotations

import io
import threading

__all__ = ["ByteChannel", "ChannelReader"]


class ByteChannel:
    """Thread-safe, unbounded byte buffer with one or more writers.

    The channel reaches end-of-stream once every writer has called close().
    If the reading side is discarded, later writes are accepted and dropped.

    Attributes:
        writers: number of writers that must close before EOF
    """

    def __init__(self, writers: int = 1) -> None:
        if writers < 1:
            raise ValueError(f"writers must be positive, got {writers}")
        self.writers = writers
        self._open_writers = writers
        self._buffer = bytearray()
        self._discarded = False
        self._cond = threading.Condition()

    def write(self, data: bytes | bytearray | memoryview) -> int:
        size = len(data)
        if not size:
            return 0
        with self._cond:
            if self._open_writers == 0:
                raise ValueError("write to a closed channel")
            if not self._discarded:
                self._buffer += data
                self._cond.notify_all()
        return size

    def flush(self) -> None:
        pass

    def close(self) -> None:
        """Close one writer."""
        with self._cond:
            if self._open_writers > 0:
                self._open_writers -= 1
            self._cond.notify_all()

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._open_writers == 0

    def read(self, size: int = -1) -> bytes:
        """Block until data is available or every writer has closed.

        Returns:
            Up to ``size`` bytes (everything buffered when size < 0),
            b"" at end-of-stream
        """
        if size == 0:
            return b""
        with self._cond:
            while not self._buffer and self._open_writers > 0 and not self._discarded:
                self._cond.wait()
            if size is None or size < 0:
                size = len(self._buffer)
            data = bytes(self._buffer[:size])
            del self._buffer[:size]
            return data

    def discard(self) -> None:
        """Drop buffered data and everything written from now on."""
        with self._cond:
            self._discarded = True
            self._buffer.clear()
            self._cond.notify_all()

    def __len__(self) -> int:
        with self._cond:
            return len(self._buffer)


class ChannelReader(io.RawIOBase):
    """Raw binary reader over a ByteChannel.

    Closing the reader discards the channel; upstream pumps keep draining
    their sources.
    """

    def __init__(self, channel: ByteChannel) -> None:
        super().__init__()
        self._channel = channel

    @property
    def channel(self) -> ByteChannel:
        return self._channel

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        data = self._channel.read(len(buffer))
        size = len(data)
        buffer[:size] = data
        return size

    def close(self) -> None:
        if not self.closed:
            self._channel.discard()
        super().close()
