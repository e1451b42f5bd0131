"""
Shared test fixtures.

Tests import ``extraction`` and ``common`` from ``src/``. When an editable
install is not picked up by the interpreter, ``src/`` is added to
``sys.path`` so the suite still runs from a plain checkout.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

SRC_DIR = Path(__file__).resolve().parents[1] / "src"

try:
    import extraction  # noqa: F401
except ModuleNotFoundError:
    sys.path.insert(0, str(SRC_DIR))

from common.config import Settings  # noqa: E402


@pytest.fixture
def make_settings(mocker):
    """
    Build `Settings` from exactly the given environment variables.

    The process environment is replaced for the duration of the test, so
    values leaking in from the developer's shell never reach the settings.
    """

    def _make(**env: str) -> Settings:
        mocker.patch.dict(os.environ, env, clear=True)
        return Settings()

    return _make
