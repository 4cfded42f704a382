"""Public functions operating on the process-wide registry."""

from __future__ import annotations

from typing import Any, Callable, Iterable, Union

from .behavior_store import BehaviorEntry
from .behaviors import Behavior
from .call_ledger import CallRecord
from .dispatcher import Outcome
from .lifecycle import Diagnostics, get_registry
from .members import STATIC, MemberIdentity, ReceiverId, member_of

MemberLike = Union[MemberIdentity, Callable[..., Any]]


def _resolve(member: MemberLike) -> MemberIdentity:
    if isinstance(member, MemberIdentity):
        return member
    return member_of(member)


def substitute_for(cls: type, *args: Any, **kwargs: Any) -> Any:
    """Create a substitute instance of ``cls`` constructed with the given arguments.

    Example:
        >>> calc = substitute_for(Calculator, 10)
        >>> configure(Calculator.add, calc, [5], FixedValue(10))
    """
    return get_registry().substitute_for(cls, *args, **kwargs)


def track(obj: Any) -> ReceiverId:
    """Register an ordinary object as a receiver so it can be configured and cleaned up."""
    return get_registry().track(obj)


def configure(
    member: MemberLike,
    receiver: Any,
    matchers: Iterable[Any] | None,
    behavior: Behavior,
) -> BehaviorEntry:
    """Configure ``behavior`` for calls of ``member`` on ``receiver``.

    Args:
        member: A MemberIdentity, function, or method (bound or unbound).
        receiver: The instance to configure, or STATIC for members without one.
        matchers: Argument matchers; raw values match by equality. None or an
            empty list sets the unconditional default.
        behavior: What the call does instead of running the original.

    Returns:
        The stored entry.
    """
    return get_registry().configure(_resolve(member), receiver, matchers, behavior)


def set_property(receiver: Any, owner: Any, name: str, value: Any) -> None:
    """Make ``receiver.name`` read as ``value`` until cleanup."""
    get_registry().set_property(receiver, owner, name, value)


def dispatch(member: MemberLike, receiver: Any, arguments: Iterable[Any]) -> Outcome:
    return get_registry().dispatch(_resolve(member), receiver, arguments)


def verify(
    member: MemberLike,
    receiver: Any,
    times: int,
    matchers: Iterable[Any] | None = None,
) -> None:
    """Assert ``member`` was called on ``receiver`` exactly ``times`` times.

    Raises:
        VerificationError: If the count differs.
    """
    get_registry().verify(_resolve(member), receiver, times, matchers)


def received_calls(
    member: MemberLike | None = None,
    receiver: Any = STATIC,
    matchers: Iterable[Any] | None = None,
) -> list[CallRecord]:
    resolved = None if member is None else _resolve(member)
    return get_registry().received_calls(resolved, receiver, matchers)


def cleanup(receiver: Any) -> None:
    get_registry().cleanup(receiver)


def clear_all() -> None:
    get_registry().clear_all()


def get_diagnostics() -> Diagnostics:
    return get_registry().get_diagnostics()


def ref_count(cls: type) -> int:
    return get_registry().ref_count(cls)


def clear_type_cache(cls: type) -> None:
    get_registry().clear_type_cache(cls)


def export_history(format: str = "json") -> str:
    """Export every recorded call, in call order.

    Raises:
        ValueError: If format is not supported.
    """
    return get_registry().ledger.export_history(format=format)
