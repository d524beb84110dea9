"""procwire command line entry point.

Runs a command with its output mirrored to our own stdout/stderr and exits
with the child's exit code.

Usage:
    python -m procwire [--redirect-stderr] [--forward-stdin] [--cwd DIR]
                       [--env KEY=VALUE ...] [--clean-env] -- CMD [ARGS...]
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

from .config import get_config
from .errors import LaunchError
from .orchestrator import fork_sync

__all__ = ["build_parser", "main"]

logger = logging.getLogger(__name__)

# Shell convention for "command not found"
LAUNCH_FAILURE_EXIT_CODE = 127


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="procwire",
        description="Run a command with deadlock-free stdio mirroring.",
    )
    parser.add_argument(
        "--redirect-stderr",
        action="store_true",
        help="Fold the child's stderr into stdout",
    )
    parser.add_argument(
        "--forward-stdin",
        action="store_true",
        help="Forward our stdin into the child",
    )
    parser.add_argument("--cwd", default=None, help="Working directory for the child")
    parser.add_argument(
        "-e",
        "--env",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Set an environment variable for the child (repeatable)",
    )
    parser.add_argument(
        "--clean-env",
        action="store_true",
        help="Start the child from an empty environment",
    )
    parser.add_argument("command", nargs=argparse.REMAINDER, help="Command to run")
    return parser


def _build_env(assignments: list[str], clean: bool) -> dict[str, str] | None:
    if not assignments and not clean:
        return None
    env = {} if clean else dict(os.environ)
    for assignment in assignments:
        key, sep, value = assignment.partition("=")
        if not key or not sep:
            raise ValueError(f"invalid environment assignment: {assignment!r}")
        env[key] = value
    return env


def configure_logging() -> None:
    """Configure log handlers for the command line tool."""
    config = get_config()

    log_handlers: list[logging.Handler] = []

    if config.log_debug and config.log_file:
        # LOG_DEBUG mode: write to a temp file
        file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
        log_handlers.append(file_handler)
        log_level = logging.DEBUG
    else:
        # Default: stderr, which is also where the child's stderr is mirrored
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
        log_handlers.append(stderr_handler)
        log_level = logging.INFO

    # Root logger (third party libraries) at WARNING
    logging.basicConfig(
        level=logging.WARNING,
        handlers=log_handlers,
    )
    # Verbose logging only for the procwire namespace
    logging.getLogger("procwire").setLevel(log_level)


def main(argv: list[str] | None = None) -> int:
    """Entry point.

    Returns:
        The child's exit code, or 127 if it could not be launched
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    command = list(args.command)
    if command and command[0] == "--":
        command = command[1:]
    if not command:
        parser.error("no command given")

    try:
        env = _build_env(args.env, args.clean_env)
    except ValueError as e:
        parser.error(str(e))

    configure_logging()
    logger.debug(f"Running {command} with {get_config()}")

    try:
        return fork_sync(
            command,
            stdin=sys.stdin.buffer if args.forward_stdin else None,
            stdout=sys.stdout.buffer,
            stderr=sys.stderr.buffer,
            redirect_error_stream=args.redirect_stderr,
            env=env,
            cwd=args.cwd,
            echo_stdin=False,
        )
    except LaunchError as e:
        logger.error(f"Failed to launch {command[0]}: {e}")
        return LAUNCH_FAILURE_EXIT_CODE
