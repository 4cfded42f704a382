"""Unit tests for behavior strategies."""

import asyncio
import time
from datetime import timedelta

import pytest

from surrogate.behaviors import (
    Computed,
    DelayedSideEffect,
    Fault,
    FixedValue,
    SideEffect,
    SideEffectAndValue,
    ValueSequence,
    completed_awaitable,
    failed_awaitable,
)
from surrogate.exceptions import SetupError
from surrogate.members import member_of


def plain(value: int) -> int:
    return value


async def coro(value: int) -> int:
    return value


def pair(first: int, second: int) -> tuple[int, int]:
    return first, second


class NeedsMessage(Exception):
    def __init__(self, message: str) -> None:
        super().__init__(message)


def test_fixed_value() -> None:
    """Test a fixed value ignores arguments."""
    behavior = FixedValue(42)
    assert behavior.execute((1, 2)) == 42
    assert behavior.execute(()) == 42


def test_value_sequence_is_sticky_at_last() -> None:
    """Test the sequence returns values in order and then repeats the last one."""
    behavior = ValueSequence([10, 20, 30])
    results = [behavior.execute(()) for _ in range(5)]

    assert results == [10, 20, 30, 30, 30]
    assert behavior.cursor == 2


def test_value_sequence_rejects_empty() -> None:
    """Test that an empty sequence is a setup error."""
    with pytest.raises(SetupError):
        ValueSequence([])


def test_computed_uses_first_arguments() -> None:
    """Test the factory sees only as many arguments as it declares."""
    assert Computed(lambda a, b: a * b).execute((3, 4, 99)) == 12
    assert Computed(lambda: "none").execute((1, 2)) == "none"
    assert Computed(lambda *args: len(args)).execute((1, 2, 3)) == 3


def test_callback_needing_more_arguments_than_member_is_rejected() -> None:
    """Test that a callback wider than the member fails at configuration."""
    with pytest.raises(SetupError, match="requires 2 positional arguments"):
        Computed(lambda a, b: (a, b)).check_compatible(member_of(plain))
    with pytest.raises(SetupError):
        SideEffect(lambda a, b: None).check_compatible(member_of(plain))
    with pytest.raises(SetupError):
        SideEffectAndValue(lambda: None, factory=lambda a, b: a).check_compatible(member_of(plain))
    with pytest.raises(SetupError):
        DelayedSideEffect(0, lambda a, b: None).check_compatible(member_of(coro))

    Computed(lambda a, b=0: a).check_compatible(member_of(plain))
    Computed(lambda a, b: (a, b)).check_compatible(member_of(pair))
    Computed(lambda *args: args).check_compatible(member_of(plain))


def test_computed_rejects_excess_arity() -> None:
    """Test the maximum factory arity."""
    with pytest.raises(SetupError):
        Computed(lambda a, b, c, d, e: None)


def test_side_effect_runs_callback_and_returns_none() -> None:
    """Test that a side effect sees the arguments and produces no value."""
    seen = []
    behavior = SideEffect(lambda a: seen.append(a))

    assert behavior.execute((7, 8)) is None
    assert seen == [7]


def test_side_effect_rejects_excess_arity() -> None:
    """Test the maximum callback arity."""
    with pytest.raises(SetupError):
        SideEffect(lambda a, b, c, d: None)


def test_async_side_effect_returns_awaitable() -> None:
    """Test an async callback produces an awaitable that runs it."""
    seen = []

    async def callback(a):
        seen.append(a)

    behavior = SideEffect(callback)
    assert behavior.requires_async
    result = behavior.execute((5,))
    assert seen == []
    assert asyncio.run(result) is None
    assert seen == [5]


def test_side_effect_and_value() -> None:
    """Test a callback followed by a fixed or computed value."""
    seen = []
    fixed = SideEffectAndValue(lambda a: seen.append(a), value="done")
    computed = SideEffectAndValue(lambda: seen.append("x"), factory=lambda a, b: a + b)

    assert fixed.execute((1,)) == "done"
    assert computed.execute((2, 3)) == 5
    assert seen == [1, "x"]


def test_side_effect_and_value_needs_exactly_one_result() -> None:
    """Test that value and factory are mutually exclusive and one is required."""
    with pytest.raises(SetupError):
        SideEffectAndValue(lambda: None)
    with pytest.raises(SetupError):
        SideEffectAndValue(lambda: None, value=1, factory=lambda: 2)


def test_async_side_effect_and_value() -> None:
    """Test an async callback followed by a value."""
    seen = []

    async def callback(a):
        seen.append(a)

    behavior = SideEffectAndValue(callback, value=9)
    assert asyncio.run(behavior.execute((4,))) == 9
    assert seen == [4]


def test_delayed_side_effect_waits_then_runs() -> None:
    """Test that the delay elapses inside the awaitable, not in execute."""
    seen = []
    behavior = DelayedSideEffect(timedelta(milliseconds=50), lambda a: seen.append(a))

    started = time.monotonic()
    pending = behavior.execute(("x",))
    assert time.monotonic() - started < 0.05
    assert seen == []

    asyncio.run(pending)
    assert time.monotonic() - started >= 0.045
    assert seen == ["x"]


def test_delayed_side_effect_rejects_negative_delay() -> None:
    """Test negative delays are rejected."""
    with pytest.raises(SetupError):
        DelayedSideEffect(-1, lambda: None)


def test_delayed_side_effect_requires_async_member() -> None:
    """Test compatibility checks against sync and async members."""
    behavior = DelayedSideEffect(0, lambda: None)

    with pytest.raises(SetupError):
        behavior.check_compatible(member_of(plain))
    behavior.check_compatible(member_of(coro))


def test_async_callback_rejected_for_sync_member() -> None:
    """Test that an async callback cannot be configured on a sync member."""
    async def callback():
        return None

    with pytest.raises(SetupError):
        SideEffect(callback).check_compatible(member_of(plain))
    SideEffect(callback).check_compatible(member_of(coro))
    SideEffect(lambda: None).check_compatible(member_of(plain))


def test_fault_from_class_builds_fresh_instances() -> None:
    """Test that an exception class produces a new instance per call."""
    behavior = Fault(ValueError)
    first = behavior.build()
    second = behavior.build()

    assert isinstance(first, ValueError)
    assert first is not second
    with pytest.raises(ValueError):
        behavior.execute(())


def test_fault_from_instance_reraises_it() -> None:
    """Test that a prebuilt exception is raised as is."""
    error = NeedsMessage("boom")
    behavior = Fault(error)

    with pytest.raises(NeedsMessage) as exc_info:
        behavior.execute(())
    assert exc_info.value is error


def test_fault_rejects_class_needing_arguments() -> None:
    """Test that an exception class without a no-argument constructor is rejected."""
    with pytest.raises(SetupError):
        Fault(NeedsMessage)


def test_fault_rejects_non_exception() -> None:
    """Test that arbitrary values are rejected."""
    with pytest.raises(SetupError):
        Fault("not an exception")


def test_awaitable_helpers() -> None:
    """Test completed and failed awaitables."""
    assert asyncio.run(completed_awaitable(3)) == 3
    with pytest.raises(KeyError):
        asyncio.run(failed_awaitable(KeyError("k")))
