"""Tests for the pytest fixture helper."""

from surrogate import FixedValue, configure, get_diagnostics, substitute_for
from surrogate.lifecycle import SurrogateRegistry, get_registry
from surrogate.testing import surrogates  # noqa: F401


class Lamp:
    def brightness(self) -> int:
        return 100


def test_fixture_yields_cleared_registry(surrogates: SurrogateRegistry) -> None:  # noqa: F811
    """Test the fixture hands out the process-wide registry in a clean state."""
    assert surrogates is get_registry()
    assert surrogates.get_diagnostics().live_receivers == 0

    lamp = substitute_for(Lamp)
    configure(Lamp.brightness, lamp, None, FixedValue(0))
    assert lamp.brightness() == 0
    assert get_diagnostics().live_receivers == 1
