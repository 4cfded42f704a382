"""Pytest fixtures for shared test state."""

from __future__ import annotations

import pytest

from surrogate.lifecycle import get_registry
from surrogate.settings import reset_settings
from surrogate.snapshot import reset_snapshot_warnings


@pytest.fixture(autouse=True)
def _reset_surrogate_state() -> None:
    """Reset global substitution state between tests."""
    get_registry().clear_all()
    reset_settings()
    reset_snapshot_warnings()
    yield
    get_registry().clear_all()
    reset_settings()
    reset_snapshot_warnings()
