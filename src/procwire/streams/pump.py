"""Background byte pump.

A pump copies one binary source into one binary sink on its own thread until
the source reaches end-of-stream or a read error occurs. Errors are logged and
recorded on the pump; they are never raised to the thread that started it and
nothing is retried. After a sink error an output pump stops writing but keeps
draining the source, so the producer behind the source never stalls. A pump
created with ``drain_on_sink_error=False`` stops instead, leaving the rest of
the source unread for its owner.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

from ..config import get_config

__all__ = ["Pump", "pipe_async", "write_fully"]

logger = logging.getLogger(__name__)


def write_fully(sink: Any, data: bytes) -> None:
    """Write all of ``data`` to ``sink``, looping over partial raw writes."""
    written = sink.write(data)
    if written is None or written >= len(data):
        return
    view = memoryview(data)[written:]
    while view:
        written = sink.write(view)
        if written is None:
            return
        view = view[written:]


class Pump(threading.Thread):
    """Copies ``source`` into ``sink`` on a daemon thread.

    Attributes:
        source: binary readable (``read1`` is used when present)
        sink: binary writable, or None to discard what is read
        chunk_size: maximum bytes per read
        close_sink: close the sink once the source is exhausted or fails
        drain_on_sink_error: keep reading (and discarding) after a sink error
        done: set when the pump has stopped for any reason
        error: the first read or sink error, if any
        bytes_copied: bytes read from the source so far
    """

    def __init__(
        self,
        source: Any,
        sink: Any | None,
        *,
        name: str = "pump",
        chunk_size: int | None = None,
        close_sink: bool = False,
        drain_on_sink_error: bool = True,
    ) -> None:
        super().__init__(name=name, daemon=True)
        self.source = source
        self.sink = sink
        self.chunk_size = chunk_size or get_config().chunk_size
        self.close_sink = close_sink
        self.drain_on_sink_error = drain_on_sink_error
        self.done = threading.Event()
        self.error: BaseException | None = None
        self.bytes_copied = 0

    @property
    def failed(self) -> bool:
        return self.error is not None

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the pump to stop.

        Returns:
            Whether the pump has stopped
        """
        super().join(timeout)
        return not self.is_alive()

    def run(self) -> None:
        read = getattr(self.source, "read1", None) or self.source.read
        flush = getattr(self.sink, "flush", None)

        logger.debug(f"Pump started name={self.name}")
        try:
            while True:
                chunk = read(self.chunk_size)
                if not chunk:
                    break
                self.bytes_copied += len(chunk)
                if self.sink is not None and self.error is None:
                    try:
                        write_fully(self.sink, chunk)
                        if flush is not None:
                            flush()
                    except (OSError, ValueError) as e:
                        self.error = e
                        if not self.drain_on_sink_error:
                            logger.warning(f"Pump sink failed name={self.name}, stopping: {e!r}")
                            break
                        logger.warning(
                            f"Pump sink failed name={self.name}, "
                            f"discarding remaining input: {e!r}"
                        )
        except (OSError, ValueError) as e:
            # ValueError: the source was closed under us
            self.error = e
            logger.warning(
                f"Pump stopped name={self.name} "
                f"after {self.bytes_copied} bytes: {e!r}"
            )
        finally:
            if self.close_sink and self.sink is not None:
                try:
                    self.sink.close()
                except (OSError, ValueError) as e:
                    logger.debug(f"Pump sink close failed name={self.name}: {e!r}")
            self.done.set()

        logger.debug(
            f"Pump finished name={self.name} bytes={self.bytes_copied}"
        )

    def __repr__(self) -> str:
        if not self.done.is_set():
            status = "running"
        elif self.error is not None:
            status = "failed"
        else:
            status = "finished"
        return f"Pump(name={self.name}, status={status}, bytes={self.bytes_copied})"


def pipe_async(
    source: Any,
    sink: Any | None,
    *,
    name: str = "pump",
    chunk_size: int | None = None,
    close_sink: bool = False,
    drain_on_sink_error: bool = True,
) -> Pump:
    """Start a pump copying ``source`` into ``sink`` and return it.

    Args:
        source: Binary source
        sink: Binary sink, or None to drain and discard
        name: Thread name (shows up in logs)
        chunk_size: Read size, defaults to Config.chunk_size
        close_sink: Close the sink when the pump stops
        drain_on_sink_error: Keep draining the source after the sink fails;
            when False the pump stops and the source keeps its unread data

    Returns:
        The running Pump
    """
    pump = Pump(
        source,
        sink,
        name=name,
        chunk_size=chunk_size,
        close_sink=close_sink,
        drain_on_sink_error=drain_on_sink_error,
    )
    pump.start()
    return pump
