"""Shared pytest fixtures for fefcalc tests."""

from __future__ import annotations

import pytest

from fefcalc.core.config import LOG_LEVEL_VAR, MAX_NESTING_DEPTH_VAR


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep settings from the caller's environment out of every test."""
    monkeypatch.delenv(MAX_NESTING_DEPTH_VAR, raising=False)
    monkeypatch.delenv(LOG_LEVEL_VAR, raising=False)
