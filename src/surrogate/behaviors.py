"""Behavior strategies executed for intercepted calls.

Every behavior exposes ``execute(arguments)`` which returns the replacement
result or raises. Shaping results for ``async def`` members (wrapping bare values
in awaitables, turning raised exceptions into failed awaitables) is done by the
dispatcher, not here.
"""

from __future__ import annotations

import asyncio
import inspect
import threading
from datetime import timedelta
from typing import Any, Awaitable, Callable, Sequence

from .exceptions import SetupError
from .members import MemberIdentity

_MISSING = object()


async def completed_awaitable(value: Any = None) -> Any:
    return value


async def failed_awaitable(exc: BaseException) -> Any:
    raise exc


class Behavior:
    """Strategy producing the result or effect of one intercepted call."""

    requires_async = False

    def execute(self, arguments: Sequence[Any]) -> Any:
        raise NotImplementedError

    def check_compatible(self, member: MemberIdentity) -> None:
        """Reject configurations that could never run correctly for ``member``."""
        if self.requires_async and not member.is_async:
            raise SetupError(
                f"{type(self).__name__} with an async callback needs an async member; "
                f"{member} is synchronous"
            )
        for callback in self._callbacks():
            callback.check_fits(member)

    def _callbacks(self) -> tuple[_Callback, ...]:
        return ()


class _Callback:
    """A user callback applied to the first N call arguments."""

    def __init__(self, func: Callable[..., Any], max_arity: int, role: str) -> None:
        if not callable(func):
            raise SetupError(f"{role} must be callable, got {type(func).__name__}")
        self.func = func
        self.role = role
        self.is_async = inspect.iscoroutinefunction(func)
        self.arity, self.required = _positional_arity(func)
        if self.arity is not None and self.arity > max_arity:
            raise SetupError(
                f"{role} takes {self.arity} positional arguments; at most {max_arity} are supported"
            )

    def check_fits(self, member: MemberIdentity) -> None:
        """Raise SetupError when ``member`` supplies fewer arguments than required."""
        available = _argument_count(member)
        if available is not None and self.required > available:
            raise SetupError(
                f"{self.role} requires {self.required} positional arguments; "
                f"{member} supplies {available}"
            )

    def __call__(self, arguments: Sequence[Any]) -> Any:
        if self.arity is None:
            return self.func(*arguments)
        return self.func(*arguments[: self.arity])


def _argument_count(member: MemberIdentity) -> int | None:
    if member.parameters is None:
        return None
    count = 0
    for param in member.parameters.parameters.values():
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            return None
        if param.kind is not inspect.Parameter.VAR_KEYWORD:
            count += 1
    return count


def _positional_arity(func: Callable[..., Any]) -> tuple[int | None, int]:
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return None, 0
    arity = 0
    required = 0
    for param in signature.parameters.values():
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            return None, required
        if param.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD):
            arity += 1
            if param.default is inspect.Parameter.empty:
                required = arity
    return arity, required


class FixedValue(Behavior):
    def __init__(self, value: Any) -> None:
        self.value = value

    def execute(self, arguments: Sequence[Any]) -> Any:
        return self.value

    def __repr__(self) -> str:
        return f"FixedValue({self.value!r})"


class ValueSequence(Behavior):
    """Returns the configured values in order, repeating the last one forever."""

    def __init__(self, values: Sequence[Any]) -> None:
        self._values = tuple(values)
        if not self._values:
            raise SetupError("Value sequence cannot be empty")
        self._cursor = 0
        self._lock = threading.Lock()

    @property
    def cursor(self) -> int:
        with self._lock:
            return self._cursor

    def execute(self, arguments: Sequence[Any]) -> Any:
        with self._lock:
            index = self._cursor
            if self._cursor < len(self._values) - 1:
                self._cursor += 1
        return self._values[index]

    def __repr__(self) -> str:
        return f"ValueSequence({list(self._values)!r})"


class Computed(Behavior):
    """Computes the result from the first N call arguments (N <= 4)."""

    MAX_ARITY = 4

    def __init__(self, factory: Callable[..., Any]) -> None:
        self._factory = _Callback(factory, self.MAX_ARITY, "Result factory")
        self.requires_async = self._factory.is_async

    def execute(self, arguments: Sequence[Any]) -> Any:
        return self._factory(arguments)

    def _callbacks(self) -> tuple[_Callback, ...]:
        return (self._factory,)


class SideEffect(Behavior):
    """Runs a callback (N <= 3) and produces no value."""

    MAX_ARITY = 3

    def __init__(self, callback: Callable[..., Any]) -> None:
        self._callback = _Callback(callback, self.MAX_ARITY, "Callback")
        self.requires_async = self._callback.is_async

    def execute(self, arguments: Sequence[Any]) -> Any:
        outcome = self._callback(arguments)
        if inspect.isawaitable(outcome):
            return _discard_result(outcome)
        return None

    def _callbacks(self) -> tuple[_Callback, ...]:
        return (self._callback,)


class SideEffectAndValue(Behavior):
    """Runs a callback, then returns a fixed or computed value."""

    def __init__(
        self,
        callback: Callable[..., Any],
        value: Any = _MISSING,
        factory: Callable[..., Any] | None = None,
    ) -> None:
        if (value is _MISSING) == (factory is None):
            raise SetupError("SideEffectAndValue needs exactly one of value or factory")
        self._callback = _Callback(callback, SideEffect.MAX_ARITY, "Callback")
        self._factory = _Callback(factory, Computed.MAX_ARITY, "Result factory") if factory else None
        if self._factory is not None and self._factory.is_async:
            raise SetupError("Result factory of SideEffectAndValue must be synchronous")
        self._value = value
        self.requires_async = self._callback.is_async

    def _result(self, arguments: Sequence[Any]) -> Any:
        if self._factory is not None:
            return self._factory(arguments)
        return self._value

    def execute(self, arguments: Sequence[Any]) -> Any:
        outcome = self._callback(arguments)
        if inspect.isawaitable(outcome):
            return self._then_result(outcome, arguments)
        return self._result(arguments)

    async def _then_result(self, pending: Awaitable[Any], arguments: Sequence[Any]) -> Any:
        await pending
        return self._result(arguments)

    def _callbacks(self) -> tuple[_Callback, ...]:
        if self._factory is None:
            return (self._callback,)
        return (self._callback, self._factory)


class DelayedSideEffect(Behavior):
    """Waits at least ``delay`` inside the returned awaitable, then runs the callback."""

    requires_async = True

    def __init__(self, delay: float | timedelta, callback: Callable[..., Any]) -> None:
        seconds = delay.total_seconds() if isinstance(delay, timedelta) else float(delay)
        if seconds < 0:
            raise SetupError("Delay must be >= 0")
        self.delay = seconds
        self._callback = _Callback(callback, SideEffect.MAX_ARITY, "Callback")

    def execute(self, arguments: Sequence[Any]) -> Any:
        return self._run(tuple(arguments))

    async def _run(self, arguments: tuple[Any, ...]) -> None:
        await asyncio.sleep(self.delay)
        outcome = self._callback(arguments)
        if inspect.isawaitable(outcome):
            await outcome

    def check_compatible(self, member: MemberIdentity) -> None:
        if not member.is_async:
            raise SetupError(f"DelayedSideEffect needs an async member; {member} is synchronous")
        self._callback.check_fits(member)


class Fault(Behavior):
    """Raises an exception built from a class template, or a prebuilt instance."""

    def __init__(self, exception: type[BaseException] | BaseException) -> None:
        if isinstance(exception, type) and issubclass(exception, BaseException):
            self._template: type[BaseException] | None = exception
            self._instance: BaseException | None = None
            try:
                exception()
            except TypeError as exc:
                raise SetupError(
                    f"{exception.__name__} cannot be constructed without arguments; "
                    "pass an exception instance instead"
                ) from exc
        elif isinstance(exception, BaseException):
            self._template = None
            self._instance = exception
        else:
            raise SetupError(f"Fault needs an exception class or instance, got {exception!r}")

    def build(self) -> BaseException:
        if self._instance is not None:
            return self._instance
        return self._template()

    def execute(self, arguments: Sequence[Any]) -> Any:
        raise self.build()

    def __repr__(self) -> str:
        target = self._instance if self._instance is not None else self._template
        return f"Fault({target!r})"


async def _discard_result(pending: Awaitable[Any]) -> None:
    await pending
