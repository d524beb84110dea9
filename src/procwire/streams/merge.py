"""Two-to-one merge of byte sources."""

from __future__ import annotations

import logging
import time
from typing import Any

from .channel import ByteChannel, ChannelReader
from .pump import Pump, pipe_async

__all__ = ["MergedReader", "merge_async"]

logger = logging.getLogger(__name__)


class MergedReader(ChannelReader):
    """Reader yielding the bytes of two sources in arrival order.

    Each upstream source is drained by its own pump into a shared channel, so
    neither can stall its producer. Chunks keep their order within one
    source; interleaving between the two sources is whatever order the pumps
    happened to deliver them in. End-of-stream is reached only once both
    sources are exhausted.
    """

    def __init__(
        self,
        first: Any,
        second: Any,
        *,
        name: str = "merge",
        chunk_size: int | None = None,
    ) -> None:
        super().__init__(ByteChannel(writers=2))
        self._pumps = tuple(
            pipe_async(
                source,
                self.channel,
                name=f"{name}:{index}",
                chunk_size=chunk_size,
                close_sink=True,
            )
            for index, source in enumerate((first, second))
        )
        logger.debug(f"Merge started name={name}")

    @property
    def pumps(self) -> tuple[Pump, ...]:
        return self._pumps

    def join(self, timeout: float | None = None) -> bool:
        """Wait for both upstream pumps to stop.

        Returns:
            Whether both pumps have finished
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        finished = True
        for pump in self._pumps:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            finished = pump.join(remaining) and finished
        return finished


def merge_async(
    first: Any,
    second: Any,
    *,
    name: str = "merge",
    chunk_size: int | None = None,
) -> MergedReader:
    """Start draining both sources and return the merged reader."""
    return MergedReader(first, second, name=name, chunk_size=chunk_size)
