# tests/conftest.py
from __future__ import annotations

import pytest

from dbchain import runtime


@pytest.fixture(autouse=True)
def _isolated_workspace(tmp_path, monkeypatch):
    """Every test gets its own workspace and a fresh runtime."""
    monkeypatch.setenv("DBCHAIN_HOME", str(tmp_path / "dbchain-home"))
    runtime.reset()
    yield
    runtime.reset()
