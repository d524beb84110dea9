"""procwire exception types.

Launch-time failures are raised to the caller of ``fork``. Failures inside
background pumps are never raised; they are logged and recorded on the pump.
"""

from __future__ import annotations

__all__ = [
    "ProcwireError",
    "EmptyCommandError",
    "LaunchError",
    "ProcessStillRunningError",
]


class ProcwireError(Exception):
    """Base exception for procwire."""
    pass


class EmptyCommandError(ProcwireError, IndexError):
    """The argument vector was empty once ``None`` entries were removed."""
    pass


class LaunchError(ProcwireError, OSError):
    """The child process could not be created.

    Keeps ``errno``, ``strerror`` and ``filename`` of the underlying OSError.
    """
    pass


class ProcessStillRunningError(ProcwireError, RuntimeError):
    """``exit_value()`` was called before the child terminated.

    Attributes:
        pid: PID of the running child
    """

    def __init__(self, pid: int) -> None:
        self.pid = pid
        super().__init__(f"process {pid} has not exited")
