"""Unit tests for argument matchers."""

from surrogate.matchers import AnyOfType, Exact, any_of, arguments_match, as_matchers


class Unequal:
    def __eq__(self, other):
        return False

    __hash__ = object.__hash__


class ExplodingEq:
    def __eq__(self, other):
        raise RuntimeError("no comparisons")

    __hash__ = object.__hash__


def test_exact_matches_equal_values() -> None:
    """Test equality matching."""
    assert Exact(5).matches(5)
    assert not Exact(5).matches(3)
    assert Exact([1, 2]).matches([1, 2])


def test_exact_matches_identical_object_even_when_unequal() -> None:
    """Test that identity always matches."""
    obj = Unequal()
    assert Exact(obj).matches(obj)
    assert not Exact(obj).matches(Unequal())


def test_exact_treats_failing_eq_as_mismatch() -> None:
    """Test that an exception in __eq__ is a mismatch, not an error."""
    assert not Exact(ExplodingEq()).matches(ExplodingEq())


def test_any_of_type() -> None:
    """Test isinstance matching."""
    assert AnyOfType(int).matches(1000)
    assert AnyOfType(int).matches(True)
    assert not AnyOfType(int).matches("x")
    assert not AnyOfType(int).matches(None)


def test_any_of_object_accepts_none() -> None:
    """Test that the object matcher accepts every value including None."""
    matcher = any_of()
    assert matcher.matches(None)
    assert matcher.matches(object())


def test_any_of_none_type_and_optional_accept_none() -> None:
    """Test that None matches NoneType and an optional type tuple."""
    assert AnyOfType(type(None)).matches(None)
    assert AnyOfType((int, type(None))).matches(None)
    assert AnyOfType((int, type(None))).matches(3)
    assert not AnyOfType((int, type(None))).matches("3")
    assert not AnyOfType(type(None)).matches(0)


def test_as_matchers_wraps_raw_values() -> None:
    """Test raw configuration values become Exact matchers."""
    matcher = AnyOfType(str)
    converted = as_matchers([1, matcher])

    assert isinstance(converted[0], Exact)
    assert converted[1] is matcher
    assert as_matchers(None) == ()


def test_arguments_match_requires_equal_length() -> None:
    """Test that length mismatches never match."""
    matchers = as_matchers([1, 2])

    assert arguments_match(matchers, (1, 2))
    assert not arguments_match(matchers, (1,))
    assert not arguments_match(matchers, (1, 2, 3))
    assert arguments_match((), ())
