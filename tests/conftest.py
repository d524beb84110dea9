"""Pytest configuration and fixtures."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from unittest import mock

import pytest

# Project root
PROJECT_ROOT = Path(__file__).parent.parent

# Put src on the path for development runs
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def child_script() -> list[str]:
    """Argument prefix running the test child program."""
    return [sys.executable, str(FIXTURES_DIR / "child.py")]


@pytest.fixture
def temp_workspace(tmp_path: Path) -> Path:
    """Temporary working directory."""
    workspace = tmp_path / "workspace"
    workspace.mkdir()
    return workspace


@pytest.fixture(autouse=True)
def clean_config():
    """Load a fresh configuration without PROCWIRE_* variables from the host."""
    from procwire.config import reload_config

    env = {k: v for k, v in os.environ.items() if not k.startswith("PROCWIRE_")}
    with mock.patch.dict(os.environ, env, clear=True):
        reload_config()
        yield
    reload_config()
