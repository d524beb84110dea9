"""Write-tee and read-tee.

The secondary side of a tee is best-effort: its failures are logged and the
secondary is dropped, the primary path carries on untouched.
"""

from __future__ import annotations

import io
import logging
import queue
import threading
import time
from typing import Any

from .channel import ByteChannel, ChannelReader
from .pump import Pump, pipe_async, write_fully

__all__ = ["SerializedWriter", "TeeWriter", "MirrorWriter", "TeeReader"]

logger = logging.getLogger(__name__)


class SerializedWriter(io.RawIOBase):
    """Lock-guarded writer so several threads can share one raw sink.

    With ``close_sink=False`` closing the writer leaves the sink open, for
    sinks owned by the caller.
    """

    def __init__(self, sink: Any, *, close_sink: bool = True) -> None:
        super().__init__()
        self._sink = sink
        self._close_sink = close_sink
        self._lock = threading.Lock()

    def writable(self) -> bool:
        return True

    def write(self, data) -> int:
        if self.closed:
            raise ValueError("write to closed file")
        with self._lock:
            write_fully(self._sink, data)
        return len(data)

    def flush(self) -> None:
        if self.closed:
            return
        flush = getattr(self._sink, "flush", None)
        if flush is not None:
            with self._lock:
                flush()

    def close(self) -> None:
        if self.closed:
            return
        with self._lock:
            try:
                if self._close_sink:
                    self._sink.close()
            finally:
                super().close()


class TeeWriter(io.RawIOBase):
    """Sink that forwards every write to a primary and a secondary sink.

    The primary write happens first and its errors propagate. The secondary
    write happens only after the primary succeeded and is flushed right away;
    a secondary failure is logged and the secondary is dropped.

    close() closes the primary, and the secondary only when
    ``close_secondary`` is set.
    """

    def __init__(
        self,
        primary: Any,
        secondary: Any | None,
        *,
        close_secondary: bool = False,
    ) -> None:
        super().__init__()
        self._primary = primary
        self._secondary = secondary
        self._close_secondary = close_secondary

    @property
    def secondary(self) -> Any | None:
        """The secondary sink, None once it has failed."""
        return self._secondary

    def writable(self) -> bool:
        return True

    def write(self, data) -> int:
        if self.closed:
            raise ValueError("write to closed file")
        write_fully(self._primary, data)
        secondary = self._secondary
        if secondary is not None:
            try:
                write_fully(secondary, data)
                flush = getattr(secondary, "flush", None)
                if flush is not None:
                    flush()
            except (OSError, ValueError) as e:
                logger.warning(f"Tee secondary write failed, dropping secondary: {e!r}")
                self._secondary = None
        return len(data)

    def flush(self) -> None:
        if self.closed:
            return
        self._primary.flush()
        secondary = self._secondary
        if secondary is not None and hasattr(secondary, "flush"):
            try:
                secondary.flush()
            except (OSError, ValueError) as e:
                logger.warning(f"Tee secondary flush failed, dropping secondary: {e!r}")
                self._secondary = None

    def close(self) -> None:
        if self.closed:
            return
        try:
            super().close()
        finally:
            try:
                self._primary.close()
            finally:
                secondary = self._secondary
                if self._close_secondary and secondary is not None:
                    try:
                        secondary.close()
                    except (OSError, ValueError) as e:
                        logger.debug(f"Tee secondary close failed: {e!r}")


class MirrorWriter(io.RawIOBase):
    """Non-blocking sink that copies writes into ``sink`` on its own thread.

    write() only enqueues, so a slow or stuck ``sink`` never stalls the
    writer. After the first failure of ``sink`` further data is discarded.

    Attributes:
        error: the error that stopped mirroring, if any
        done: set once the queue has been drained after close()
    """

    def __init__(self, sink: Any, *, name: str = "mirror") -> None:
        super().__init__()
        self._sink = sink
        self._queue: queue.SimpleQueue[bytes | None] = queue.SimpleQueue()
        self.error: BaseException | None = None
        self.done = threading.Event()
        self._thread = threading.Thread(target=self._drain, name=name, daemon=True)
        self._thread.start()

    @property
    def name(self) -> str:
        return self._thread.name

    def writable(self) -> bool:
        return True

    def write(self, data) -> int:
        if self.closed:
            raise ValueError("write to closed file")
        if self.error is None:
            self._queue.put(bytes(data))
        return len(data)

    def close(self) -> None:
        if self.closed:
            return
        self._queue.put(None)
        super().close()

    def join(self, timeout: float | None = None) -> bool:
        """Wait for queued data to reach the sink after close().

        Returns:
            Whether the mirror thread has finished
        """
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def _drain(self) -> None:
        flush = getattr(self._sink, "flush", None)
        while True:
            chunk = self._queue.get()
            if chunk is None:
                break
            if self.error is not None:
                continue
            try:
                write_fully(self._sink, chunk)
                if flush is not None:
                    flush()
            except (OSError, ValueError) as e:
                self.error = e
                logger.warning(f"Mirror stopped name={self.name}: {e!r}")
        self.done.set()


class TeeReader(ChannelReader):
    """Read-tee over a raw source.

    A dedicated pump drains ``source`` into an in-memory channel (the primary,
    read through this object) and into a MirrorWriter around ``secondary``.
    Reading the primary never waits on the secondary, and the source keeps
    being drained even if nobody reads the primary.
    """

    def __init__(
        self,
        source: Any,
        secondary: Any,
        *,
        name: str = "tee",
        chunk_size: int | None = None,
    ) -> None:
        super().__init__(ByteChannel())
        self._mirror = MirrorWriter(secondary, name=f"{name}:mirror")
        self._pump = pipe_async(
            source,
            TeeWriter(self.channel, self._mirror, close_secondary=True),
            name=name,
            chunk_size=chunk_size,
            close_sink=True,
        )

    @property
    def pump(self) -> Pump:
        return self._pump

    @property
    def mirror(self) -> MirrorWriter:
        return self._mirror

    def join(self, timeout: float | None = None) -> bool:
        """Wait until the source is exhausted and the mirror has caught up."""
        deadline = None if timeout is None else time.monotonic() + timeout
        pumped = self._pump.join(timeout)
        remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
        return self._mirror.join(remaining) and pumped
