"""pytest helper for isolating substitution state between tests.

Import the fixture into a ``conftest.py``::

    from surrogate.testing import surrogates  # noqa: F401
"""

from __future__ import annotations

from typing import Iterator

import pytest

from .lifecycle import SurrogateRegistry, get_registry


@pytest.fixture
def surrogates() -> Iterator[SurrogateRegistry]:
    """Yield the process-wide registry, cleared before and after the test."""
    registry = get_registry()
    registry.clear_all()
    yield registry
    registry.clear_all()
