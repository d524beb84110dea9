"""Async facade over PipedProcess.

Blocking operations (waiting, reading, writing) run in worker threads via
anyio, so the facade works under asyncio and trio alike. Cancellation of the
awaiting task terminates the child:

- Graceful termination (SIGTERM -> timeout -> SIGKILL)
- Cleanup shielded from cancellation so the child never outlives the scope
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from typing import Any

import anyio

from .orchestrator import LaunchSpec, Orchestrator
from .process import PipedProcess

__all__ = ["AsyncPipedProcess", "run"]

logger = logging.getLogger(__name__)

# Default timeouts
DEFAULT_TERM_TIMEOUT = 2.0  # seconds to wait after SIGTERM
DEFAULT_KILL_TIMEOUT = 1.0  # seconds to wait after SIGKILL


class AsyncPipedProcess:
    """Awaitable wrapper around a PipedProcess.

    Example:
        async with AsyncPipedProcess(fork(["cat"])) as proc:
            await proc.write(b"hello")
            await proc.close_stdin()
            data = await proc.read()
            code = await proc.wait()
    """

    def __init__(
        self,
        process: PipedProcess,
        *,
        term_timeout: float = DEFAULT_TERM_TIMEOUT,
        kill_timeout: float = DEFAULT_KILL_TIMEOUT,
    ) -> None:
        self.process = process
        self.term_timeout = term_timeout
        self.kill_timeout = kill_timeout

    @property
    def pid(self) -> int:
        return self.process.pid

    async def wait(self) -> int:
        """Wait for the child to exit and return its exit code."""
        return await anyio.to_thread.run_sync(
            self.process.wait_for, abandon_on_cancel=True
        )

    async def wait_exit(self) -> int:
        """Wait for the child to exit, ignoring output still being drained."""
        return await anyio.to_thread.run_sync(
            self.process.wait_exit, abandon_on_cancel=True
        )

    async def read(self, size: int = -1) -> bytes:
        """Read from the wired stdout."""
        return await anyio.to_thread.run_sync(
            self.process.stdout.read, size, abandon_on_cancel=True
        )

    async def read_stderr(self, size: int = -1) -> bytes:
        """Read from the wired stderr."""
        return await anyio.to_thread.run_sync(
            self.process.stderr.read, size, abandon_on_cancel=True
        )

    async def write(self, data: bytes) -> int:
        """Write to the wired stdin."""
        return await anyio.to_thread.run_sync(self.process.stdin.write, data)

    async def close_stdin(self) -> None:
        await anyio.to_thread.run_sync(self.process.stdin.close)

    async def terminate(self) -> int | None:
        """Terminate the child gracefully, then forcefully if needed.

        Only the child's exit is awaited; output held open by its own
        children keeps draining in the background (see
        ``PipedProcess.join_drains``).

        Returns:
            The exit code, or None if the child did not exit after SIGKILL
        """
        pid = self.pid
        if not self.process.is_alive():
            return self.process.exit_value()

        logger.debug(f"Terminating subprocess pid={pid}")
        self.process.destroy()
        with anyio.move_on_after(self.term_timeout):
            returncode = await self.wait_exit()
            logger.debug(f"Subprocess terminated gracefully pid={pid} returncode={returncode}")
            return returncode

        logger.debug(f"Force killing subprocess pid={pid}")
        self.process.destroy_forcibly()
        with anyio.move_on_after(self.kill_timeout):
            returncode = await self.wait_exit()
            logger.debug(f"Subprocess killed pid={pid} returncode={returncode}")
            return returncode

        logger.warning(f"Subprocess did not exit after kill pid={pid}")
        return None

    async def __aenter__(self) -> AsyncPipedProcess:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self.process.is_alive():
            # Shield cleanup so cancellation cannot leave the child running
            with anyio.CancelScope(shield=True):
                await self.terminate()


async def run(
    args: Iterable[str | os.PathLike[str] | None],
    *,
    term_timeout: float = DEFAULT_TERM_TIMEOUT,
    kill_timeout: float = DEFAULT_KILL_TIMEOUT,
    **kwargs: Any,
) -> int:
    """Async counterpart of fork_sync().

    Output is pumped into the given sinks as in sync mode; the event loop is
    free while the child runs. Cancelling the caller terminates the child.

    Args:
        args: Command arguments; None entries are dropped
        term_timeout: Grace period after SIGTERM on cancellation
        kill_timeout: Wait after SIGKILL on cancellation
        **kwargs: stdin, stdout, stderr, redirect_error_stream, env, cwd, echo_stdin

    Returns:
        The child's exit code
    """
    fork_kwargs = {
        key: kwargs.pop(key)
        for key in ("stdin", "stdout", "stderr", "echo_stdin")
        if key in kwargs
    }
    spec = LaunchSpec.create(args, sync=True, **kwargs)
    process = Orchestrator().launch(spec, **fork_kwargs)
    async with AsyncPipedProcess(
        process, term_timeout=term_timeout, kill_timeout=kill_timeout
    ) as proc:
        return await proc.wait()
