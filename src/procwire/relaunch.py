"""Relaunching the current Python interpreter.

Builds command lines that start ``sys.executable`` on a module entry point
with a given import path and ``-X`` options, and forks them through the
orchestrator. ``-X`` options play the role of runtime properties: the child
sees them in ``sys._xoptions``.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Iterable, Mapping, Sequence
from types import ModuleType
from typing import Any

from .orchestrator import fork

__all__ = [
    "build_command",
    "build_environment",
    "combine_properties",
    "fork_python_async",
    "fork_python_sync",
    "get_pid",
    "runtime_properties",
]

PropertyValue = str | bool


def get_pid() -> int:
    """Return the PID of the running process, or -1 if it is unavailable."""
    try:
        return os.getpid()
    except OSError:
        return -1


def _forwardable(key: str, value: PropertyValue) -> bool:
    if not key or any(ch.isspace() for ch in key):
        return False
    if value is True:
        return True
    text = str(value).strip()
    return bool(text) and not any(ch.isspace() for ch in text)


def runtime_properties() -> dict[str, PropertyValue]:
    """Return the ``-X`` options of the running interpreter worth forwarding.

    Options whose key or value is empty or contains whitespace are skipped.
    Bare flags (``-X dev``) are kept as True.
    """
    properties: dict[str, PropertyValue] = {}
    for key, value in sys._xoptions.items():
        if not isinstance(value, bool):
            value = str(value).strip()
        if _forwardable(key, value):
            properties[key] = value
    return properties


def combine_properties(
    properties: Mapping[str, PropertyValue] | None = None,
) -> dict[str, PropertyValue]:
    """Layer explicit ``properties`` over the interpreter's own options."""
    combined = runtime_properties()
    if properties:
        combined.update(properties)
    return combined


def build_command(
    entry_point: str | ModuleType,
    args: Sequence[str] = (),
    *,
    runtime_args: Sequence[str] | None = None,
    properties: Mapping[str, PropertyValue] | None = None,
    executable: str | None = None,
) -> list[str]:
    """Build ``[python, *runtime_args, -X key=value..., -m entry_point, *args]``.

    Args:
        entry_point: Module (or module name) run with ``-m``
        args: Program arguments
        runtime_args: Interpreter arguments placed before the options
        properties: ``-X`` options layered over the current interpreter's
        executable: Interpreter path (default: sys.executable)

    Returns:
        The argument vector
    """
    module = entry_point.__name__ if isinstance(entry_point, ModuleType) else entry_point
    command = [executable or sys.executable]
    command.extend(runtime_args or ())
    for key, value in combine_properties(properties).items():
        command.extend(("-X", key if value is True else f"{key}={value}"))
    command.extend(("-m", module))
    command.extend(args)
    return command


def build_environment(
    path: Iterable[str | os.PathLike[str]] | None,
    env: Mapping[str, str] | None = None,
) -> dict[str, str] | None:
    """Return the child environment with ``PYTHONPATH`` set to ``path``.

    Returns:
        None when neither ``path`` nor ``env`` is given (inherit)
    """
    entries = [os.fspath(entry) for entry in path or ()]
    if not entries:
        return dict(env) if env is not None else None
    environment = dict(os.environ if env is None else env)
    environment["PYTHONPATH"] = os.pathsep.join(entries)
    return environment


def _fork_python(
    entry_point: str | ModuleType,
    args: Sequence[str],
    *,
    sync: bool,
    path: Iterable[str | os.PathLike[str]] | None,
    runtime_args: Sequence[str] | None,
    properties: Mapping[str, PropertyValue] | None,
    env: Mapping[str, str] | None,
    **kwargs: Any,
):
    command = build_command(
        entry_point, args, runtime_args=runtime_args, properties=properties
    )
    return fork(command, sync=sync, env=build_environment(path, env), **kwargs)


def fork_python_async(
    entry_point: str | ModuleType,
    args: Sequence[str] = (),
    *,
    path: Iterable[str | os.PathLike[str]] | None = None,
    runtime_args: Sequence[str] | None = None,
    properties: Mapping[str, PropertyValue] | None = None,
    env: Mapping[str, str] | None = None,
    **kwargs: Any,
):
    """Fork a non-blocking Python child running ``entry_point``.

    Remaining keyword arguments (stdin, stdout, stderr,
    redirect_error_stream, cwd, echo_stdin) go to fork().

    Returns:
        The PipedProcess handle
    """
    return _fork_python(
        entry_point,
        args,
        sync=False,
        path=path,
        runtime_args=runtime_args,
        properties=properties,
        env=env,
        **kwargs,
    )


def fork_python_sync(
    entry_point: str | ModuleType,
    args: Sequence[str] = (),
    *,
    path: Iterable[str | os.PathLike[str]] | None = None,
    runtime_args: Sequence[str] | None = None,
    properties: Mapping[str, PropertyValue] | None = None,
    env: Mapping[str, str] | None = None,
    **kwargs: Any,
) -> int:
    """Fork a Python child running ``entry_point`` and return its exit code."""
    process = _fork_python(
        entry_point,
        args,
        sync=True,
        path=path,
        runtime_args=runtime_args,
        properties=properties,
        env=env,
        **kwargs,
    )
    return process.wait_for()
