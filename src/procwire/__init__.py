"""procwire - deadlock-free child process stream wiring.

Launch a child process and get safe access to its stdin, stdout and stderr,
either blocking (sync) or non-blocking (async), with optional mirroring of
the child's output into caller supplied sinks.

Usage:
    from procwire import fork_sync
    code = fork_sync(["make", "test"], stdout=sys.stdout, stderr=sys.stderr)
"""

__version__ = "0.1.0"

from .errors import EmptyCommandError, LaunchError, ProcessStillRunningError, ProcwireError
from .orchestrator import LaunchSpec, Orchestrator, fork, fork_async, fork_sync
from .process import PipedProcess
from .relaunch import (
    build_command,
    build_environment,
    fork_python_async,
    fork_python_sync,
    get_pid,
)

__all__ = [
    "__version__",
    "EmptyCommandError",
    "LaunchError",
    "LaunchSpec",
    "Orchestrator",
    "PipedProcess",
    "ProcessStillRunningError",
    "ProcwireError",
    "build_command",
    "build_environment",
    "fork",
    "fork_async",
    "fork_python_async",
    "fork_python_sync",
    "fork_sync",
    "get_pid",
]
