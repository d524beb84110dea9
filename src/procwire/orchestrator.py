"""Child process launch and stream wiring.

procwire orchestrator

Given which of stdin/stdout/stderr the caller supplied and whether stderr is
folded into stdout, the orchestrator starts the child and builds a topology of
pumps, tees and a merge that keeps every pipe of the child drained:

    redirect  sync   stdout sink   stdout wiring
    --------  -----  -----------   --------------------------------------
    no        yes    any           pump child stdout -> sink (discard if none)
    no        no     yes           read-tee, sink is the mirror
    no        no     no            raw child stdout, caller drains it
    yes       any    any           merge stdout+stderr, then wire the merged
                                   source by the rows above

stderr follows the same rows when not redirected; when redirected the merge
owns it and the handle's stderr is an empty source.

Key design points:
- Each raw pipe endpoint has exactly one owner (pump, tee or merge leg)
- Launch errors are raised; errors inside background pumps are only logged
- In sync mode fork() returns after the child exited and output drained
"""

from __future__ import annotations

import io
import logging
import os
import subprocess
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .config import get_config
from .errors import EmptyCommandError, LaunchError
from .process import PipedProcess
from .streams import MergedReader, Pump, SerializedWriter, TeeReader, TeeWriter, pipe_async

__all__ = [
    "LaunchSpec",
    "Orchestrator",
    "fork",
    "fork_async",
    "fork_sync",
]

logger = logging.getLogger(__name__)

_UNSET: Any = object()


@dataclass(frozen=True)
class LaunchSpec:
    """Request to start a child process.

    Attributes:
        argv: Command line arguments (first element is the executable)
        env: Environment for the child; replaces the inherited one when not None
        cwd: Working directory (None = inherit)
        redirect_error_stream: Fold stderr into stdout
        sync: Drain output into the sinks and wait for the child in fork()
    """

    argv: tuple[str, ...]
    env: Mapping[str, str] | None = None
    cwd: Path | None = None
    redirect_error_stream: bool = False
    sync: bool = False

    @classmethod
    def create(
        cls,
        args: Iterable[str | os.PathLike[str] | None],
        *,
        env: Mapping[str, str] | None = None,
        cwd: str | os.PathLike[str] | None = None,
        redirect_error_stream: bool = False,
        sync: bool = False,
    ) -> LaunchSpec:
        """Build a spec, dropping None entries from ``args``.

        Raises:
            EmptyCommandError: If no argument remains after filtering
        """
        argv = tuple(os.fspath(arg) for arg in args if arg is not None)
        if not argv:
            raise EmptyCommandError("argument vector is empty")
        return cls(
            argv=argv,
            env=dict(env) if env is not None else None,
            cwd=Path(cwd) if cwd is not None else None,
            redirect_error_stream=redirect_error_stream,
            sync=sync,
        )


def _binary(stream: Any) -> Any:
    """Return the binary layer of a text stream such as sys.stdout."""
    if isinstance(stream, io.TextIOBase):
        buffer = getattr(stream, "buffer", None)
        if buffer is None:
            raise TypeError(f"{stream!r} is a text stream without a binary buffer")
        stream.flush()
        return buffer
    return stream


@dataclass
class _Wiring:
    """Endpoints and background work built for one child."""

    stdin: Any = None
    stdout: Any = None
    stderr: Any = None
    pumps: list[Pump] = field(default_factory=list)
    drains: list[Any] = field(default_factory=list)


@dataclass
class Orchestrator:
    """Starts children and wires their streams.

    Example:
        orchestrator = Orchestrator(chunk_size=4096)
        spec = LaunchSpec.create(["sh", "-c", "echo hi"], sync=True)
        process = orchestrator.fork(spec, stdout=sink)
        assert process.exit_value() == 0
    """

    chunk_size: int | None = None
    drain_timeout: float | None = _UNSET

    def __post_init__(self) -> None:
        config = get_config()
        if self.chunk_size is None:
            self.chunk_size = config.chunk_size
        if self.drain_timeout is _UNSET:
            self.drain_timeout = config.drain_timeout

    def fork(
        self,
        spec: LaunchSpec,
        *,
        stdin: Any = None,
        stdout: Any = None,
        stderr: Any = None,
        echo_stdin: bool = True,
    ) -> PipedProcess:
        """Launch and wire the child; in sync mode also wait for it.

        If the wait is interrupted the child is terminated before the
        interruption propagates.

        Raises:
            LaunchError: If the child could not be created
        """
        process = self.launch(
            spec, stdin=stdin, stdout=stdout, stderr=stderr, echo_stdin=echo_stdin
        )
        if spec.sync:
            try:
                process.wait_for()
            except BaseException:
                process.destroy()
                raise
        return process

    def launch(
        self,
        spec: LaunchSpec,
        *,
        stdin: Any = None,
        stdout: Any = None,
        stderr: Any = None,
        echo_stdin: bool = True,
    ) -> PipedProcess:
        """Launch and wire the child without waiting, whatever ``spec.sync`` says.

        Args:
            spec: Launch request
            stdin: Binary source forwarded into the child's stdin
            stdout: Binary sink mirroring the child's stdout (and stderr when redirected)
            stderr: Binary sink mirroring the child's stderr
            echo_stdin: When ``stdin`` is given, copy programmatic writes to
                the handle's stdin into ``stdout`` as well

        Raises:
            LaunchError: If the child could not be created
        """
        stdin = _binary(stdin)
        stdout = _binary(stdout)
        stderr = _binary(stderr)
        if stdin is not None and echo_stdin and stdout is not None:
            # Stdin echo and the stdout pump or mirror write one sink from
            # different threads
            stdout = SerializedWriter(stdout, close_sink=False)

        process = self._popen(spec)
        tag = f"procwire:{process.pid}"
        logger.debug(
            f"Started subprocess pid={process.pid} argv={spec.argv[0]} "
            f"cwd={spec.cwd} sync={spec.sync} "
            f"redirect_error_stream={spec.redirect_error_stream}"
        )

        wiring = _Wiring()
        self._wire_stdin(process, wiring, tag, stdin, stdout if echo_stdin else None)
        if spec.redirect_error_stream:
            self._wire_merged(process, wiring, tag, stdout, spec.sync)
        else:
            wiring.stdout = self._wire_output(
                process.stdout, stdout, spec.sync, wiring, f"{tag}:stdout"
            )
            wiring.stderr = self._wire_output(
                process.stderr, stderr, spec.sync, wiring, f"{tag}:stderr"
            )

        return PipedProcess(
            process,
            wiring.stdin,
            wiring.stdout,
            wiring.stderr,
            pumps=wiring.pumps,
            drains=wiring.drains,
            drain_timeout=self.drain_timeout,
        )

    def _popen(self, spec: LaunchSpec) -> subprocess.Popen:
        try:
            return subprocess.Popen(
                list(spec.argv),
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                bufsize=0,
                cwd=spec.cwd,
                env=dict(spec.env) if spec.env is not None else None,
            )
        except OSError as e:
            logger.debug(f"Launch failed argv={spec.argv[0]}: {e!r}")
            raise LaunchError(e.errno, e.strerror, e.filename) from e

    def _wire_stdin(
        self,
        process: subprocess.Popen,
        wiring: _Wiring,
        tag: str,
        source: Any,
        echo: Any,
    ) -> None:
        if source is None:
            wiring.stdin = process.stdin
            return

        # Pump and caller share the child's stdin through one serialized owner
        child_stdin = SerializedWriter(process.stdin)
        wiring.pumps.append(
            pipe_async(
                source,
                child_stdin,
                name=f"{tag}:stdin",
                chunk_size=self.chunk_size,
                close_sink=True,
                drain_on_sink_error=False,
            )
        )
        wiring.stdin = TeeWriter(child_stdin, echo) if echo is not None else child_stdin

    def _wire_output(
        self,
        raw: Any,
        sink: Any,
        sync: bool,
        wiring: _Wiring,
        name: str,
    ) -> Any:
        if sync:
            pump = pipe_async(raw, sink, name=name, chunk_size=self.chunk_size)
            wiring.pumps.append(pump)
            wiring.drains.append(pump)
            return raw
        if sink is not None:
            tee = TeeReader(raw, sink, name=name, chunk_size=self.chunk_size)
            wiring.pumps.append(tee.pump)
            wiring.drains.append(tee)
            return tee
        return raw

    def _wire_merged(
        self,
        process: subprocess.Popen,
        wiring: _Wiring,
        tag: str,
        sink: Any,
        sync: bool,
    ) -> None:
        merged = MergedReader(
            process.stdout,
            process.stderr,
            name=f"{tag}:merge",
            chunk_size=self.chunk_size,
        )
        wiring.pumps.extend(merged.pumps)
        wiring.drains.append(merged)
        # The merged source is wired like a plain stdout: pump, tee or as-is
        wiring.stdout = self._wire_output(merged, sink, sync, wiring, f"{tag}:stdout")
        wiring.stderr = io.BytesIO()


def fork(
    args: Iterable[str | os.PathLike[str] | None],
    *,
    stdin: Any = None,
    stdout: Any = None,
    stderr: Any = None,
    redirect_error_stream: bool = False,
    sync: bool = False,
    env: Mapping[str, str] | None = None,
    cwd: str | os.PathLike[str] | None = None,
    echo_stdin: bool = True,
) -> PipedProcess:
    """Fork a child process with wired streams.

    Args:
        args: Command arguments; None entries are dropped
        stdin: Binary source forwarded into the child's stdin
        stdout: Sink mirroring the child's stdout
        stderr: Sink mirroring the child's stderr
        redirect_error_stream: Fold stderr into stdout
        sync: Return only after the child exited and its output drained
        env: Replacement environment (None = inherit)
        cwd: Working directory (None = inherit)
        echo_stdin: Copy programmatic writes to the handle's stdin into ``stdout``

    Returns:
        The process handle

    Raises:
        EmptyCommandError: If ``args`` is empty after filtering
        LaunchError: If the child could not be created
    """
    spec = LaunchSpec.create(
        args,
        env=env,
        cwd=cwd,
        redirect_error_stream=redirect_error_stream,
        sync=sync,
    )
    return Orchestrator().fork(
        spec, stdin=stdin, stdout=stdout, stderr=stderr, echo_stdin=echo_stdin
    )


def fork_async(
    args: Iterable[str | os.PathLike[str] | None],
    **kwargs: Any,
) -> PipedProcess:
    """Fork a non-blocking child. See fork() for the arguments."""
    return fork(args, sync=False, **kwargs)


def fork_sync(
    args: Iterable[str | os.PathLike[str] | None],
    **kwargs: Any,
) -> int:
    """Fork a child, wait for it and return its exit code.

    See fork() for the arguments.
    """
    return fork(args, sync=True, **kwargs).wait_for()
