"""Caller-facing handle for a forked child process."""

from __future__ import annotations

import logging
import subprocess
import time
from collections.abc import Sequence
from typing import Any, Protocol

from .errors import ProcessStillRunningError
from .streams import Pump

__all__ = ["PipedProcess"]

logger = logging.getLogger(__name__)


class Drain(Protocol):
    def join(self, timeout: float | None = None) -> bool: ...


class PipedProcess:
    """Handle over a child process and its wired streams.

    The stream accessors return the wired endpoints chosen by the
    orchestrator (tees, merged reader, serialized writer), never the raw pipes
    unless the wiring is a plain passthrough. Exit status and termination
    delegate to the underlying ``subprocess.Popen``.

    Exit codes follow the ``subprocess`` convention: a child killed by a
    signal reports ``-signum``.

    Example:
        process = fork(["sh", "-c", "echo hi"], stdout=sink)
        code = process.wait_for()
    """

    def __init__(
        self,
        process: subprocess.Popen,
        stdin: Any,
        stdout: Any,
        stderr: Any,
        *,
        pumps: Sequence[Pump] = (),
        drains: Sequence[Drain] = (),
        drain_timeout: float | None = None,
    ) -> None:
        self._process = process
        self._stdin = stdin
        self._stdout = stdout
        self._stderr = stderr
        self._pumps = tuple(pumps)
        self._drains = tuple(drains)
        self._drain_timeout = drain_timeout

    @property
    def stdin(self) -> Any:
        """Writable endpoint feeding the child's stdin."""
        return self._stdin

    @property
    def stdout(self) -> Any:
        """Readable endpoint for the child's stdout (merged output when redirected)."""
        return self._stdout

    @property
    def stderr(self) -> Any:
        """Readable endpoint for the child's stderr (empty when redirected)."""
        return self._stderr

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def args(self) -> Any:
        return self._process.args

    @property
    def pumps(self) -> tuple[Pump, ...]:
        """Background pumps started for this child, for status inspection."""
        return self._pumps

    @property
    def failed_pumps(self) -> tuple[Pump, ...]:
        return tuple(pump for pump in self._pumps if pump.failed)

    def wait_for(self) -> int:
        """Block until the child exits and its output drains catch up.

        Output drains are joined for at most the configured drain timeout so
        that mirrored sinks are complete on return. KeyboardInterrupt
        propagates unchanged.

        Returns:
            The child's exit code
        """
        returncode = self.wait_exit()
        if not self.join_drains(self._drain_timeout):
            logger.warning(
                f"Output drains still running after exit pid={self.pid} "
                f"timeout={self._drain_timeout}"
            )
        return returncode

    def wait_exit(self) -> int:
        """Block until the child exits, without waiting for its output drains.

        Output may still be held open by the child's own children.

        Returns:
            The child's exit code
        """
        return self._process.wait()

    def join_drains(self, timeout: float | None = None) -> bool:
        """Wait for the output drains to reach end-of-stream.

        Returns:
            Whether every drain finished within ``timeout``
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        finished = True
        for drain in self._drains:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            finished = drain.join(remaining) and finished
        return finished

    def exit_value(self) -> int:
        """Return the exit code without blocking.

        Raises:
            ProcessStillRunningError: If the child has not terminated
        """
        returncode = self._process.poll()
        if returncode is None:
            raise ProcessStillRunningError(self.pid)
        return returncode

    def is_alive(self) -> bool:
        return self._process.poll() is None

    def destroy(self) -> None:
        """Ask the child to terminate (SIGTERM, TerminateProcess on Windows).

        Streams are not closed here; pumps end on their own once the child's
        pipes close.
        """
        if self._process.poll() is None:
            logger.debug(f"Terminating pid={self.pid}")
            self._process.terminate()

    def destroy_forcibly(self) -> None:
        """Kill the child (SIGKILL)."""
        if self._process.poll() is None:
            logger.debug(f"Killing pid={self.pid}")
            self._process.kill()

    def __enter__(self) -> PipedProcess:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            self._stdin.close()
        except OSError as e:
            # BrokenPipeError when the child already exited
            logger.debug(f"Error closing stdin pid={self.pid}: {e!r}")
        if exc_type is not None:
            self.destroy()
        self.wait_for()

    def __repr__(self) -> str:
        returncode = self._process.poll()
        status = "running" if returncode is None else f"exited({returncode})"
        return f"PipedProcess(pid={self.pid}, status={status}, pumps={len(self._pumps)})"
