"""Stream primitives used to wire child process pipes.

- Pump: drains one source into one sink on its own thread
- TeeWriter / TeeReader: duplicate a stream to a best-effort secondary
- MergedReader: fans two sources into one
- ByteChannel: unbounded in-memory pipe between pumps and readers
"""

from __future__ import annotations

from .channel import ByteChannel, ChannelReader
from .merge import MergedReader, merge_async
from .pump import Pump, pipe_async, write_fully
from .tee import MirrorWriter, SerializedWriter, TeeReader, TeeWriter

__all__ = [
    "ByteChannel",
    "ChannelReader",
    "MergedReader",
    "MirrorWriter",
    "Pump",
    "SerializedWriter",
    "TeeReader",
    "TeeWriter",
    "merge_async",
    "pipe_async",
    "write_fully",
]
