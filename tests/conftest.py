"""
Pytest configuration.

Why this exists:

The project uses a ``src/`` layout (package code lives in ``src/ledger_format``,
``src/response_cache`` and ``src/common``). Normally, developers run tests after
installing the package (e.g. ``pip install -e .``).

On some setups editable installs in dot-prefixed virtualenv folders (like
``.venv``) produce a hidden ``.pth`` file that Python's ``site`` module skips.
When that happens, ``import ledger_format`` fails even though the source tree
is present.

This file makes tests robust in that scenario by adding ``src/`` to ``sys.path``
only when the package cannot be imported normally.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest


def _ensure_src_on_path() -> None:
    try:
        import ledger_format  # noqa: F401
        return
    except ModuleNotFoundError:
        pass

    repo_root = Path(__file__).resolve().parents[1]
    src_dir = repo_root / "src"
    sys.path.insert(0, str(src_dir))


_ensure_src_on_path()


class FakeClock:
    """Manually advanced monotonic clock for cache expiry tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def base_env(mocker):
    import os

    mocker.patch.dict(
        os.environ,
        {
            "OPENAI_API_KEY": "test_api_key",
            "AI_MODELS": "classify-primary,classify-fallback",
        },
        clear=True,
    )
