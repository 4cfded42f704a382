"""Argument matchers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Sequence


class ArgumentMatcher:
    """Predicate over a single call argument."""

    def matches(self, argument: Any) -> bool:
        raise NotImplementedError


@dataclass(frozen=True, eq=False)
class Exact(ArgumentMatcher):
    """Accepts an argument equal to ``value``."""

    value: Any

    def matches(self, argument: Any) -> bool:
        if argument is self.value:
            return True
        try:
            return bool(argument == self.value)
        except Exception:  # noqa: BLE001 - a failing __eq__ is a mismatch
            return False

    def __repr__(self) -> str:
        return f"Exact({self.value!r})"


@dataclass(frozen=True, eq=False)
class AnyOfType(ArgumentMatcher):
    """Accepts any argument that is an instance of ``expected_type``."""

    expected_type: type | tuple[type, ...]

    def matches(self, argument: Any) -> bool:
        return isinstance(argument, self.expected_type)

    def __repr__(self) -> str:
        name = getattr(self.expected_type, "__name__", repr(self.expected_type))
        return f"AnyOfType({name})"


def any_of(expected_type: type | tuple[type, ...] = object) -> AnyOfType:
    """Shorthand for ``AnyOfType``; with no type it accepts every value."""
    return AnyOfType(expected_type)


def as_matchers(values: Iterable[Any] | None) -> tuple[ArgumentMatcher, ...]:
    """Wrap raw configuration values in ``Exact``, keeping explicit matchers."""
    if values is None:
        return ()
    return tuple(v if isinstance(v, ArgumentMatcher) else Exact(v) for v in values)


def arguments_match(matchers: Sequence[ArgumentMatcher], arguments: Sequence[Any]) -> bool:
    if len(matchers) != len(arguments):
        return False
    return all(matcher.matches(arg) for matcher, arg in zip(matchers, arguments))
