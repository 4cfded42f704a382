"""Interception core shared by synthesized overrides and redirection hooks."""

from __future__ import annotations

import inspect
import threading
import weakref
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Sequence, Union

from .behavior_store import NOT_SET, BehaviorStore
from .behaviors import completed_awaitable, failed_awaitable
from .call_ledger import CallLedger
from .members import GETTER, SETTER, STATIC, MemberIdentity, ReceiverId


class _Unhandled:
    _instance: _Unhandled | None = None

    def __new__(cls) -> _Unhandled:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNHANDLED"


UNHANDLED = _Unhandled()


@dataclass(frozen=True)
class Value:
    value: Any


@dataclass(frozen=True)
class Throws:
    exception: BaseException


Outcome = Union[_Unhandled, Value, Throws]


def resolve_outcome(outcome: Outcome, run_original: Callable[[], Any]) -> Any:
    """Apply a dispatch outcome at the call site.

    ``run_original`` is only invoked for UNHANDLED, so the original body never
    runs when a behavior was selected.
    """
    if outcome is UNHANDLED:
        return run_original()
    if isinstance(outcome, Throws):
        raise outcome.exception
    return outcome.value


class Dispatcher:
    """The single decision point for every intercepted call."""

    def __init__(self, store: BehaviorStore, ledger: CallLedger) -> None:
        self.store = store
        self.ledger = ledger
        self._lock = threading.Lock()
        self._watched: dict[ReceiverId, weakref.finalize] = {}
        self._pinned: dict[ReceiverId, Any] = {}
        # Filled by finalizers, which must not take locks.
        self._dead: deque[ReceiverId] = deque()

    def receiver_of(self, obj: Any) -> ReceiverId:
        """Return the receiver id of ``obj`` and follow the object's lifetime.

        State stored under an id is dropped once its object is collected, so a
        later object that reuses the address starts with no history and no
        configuration. Objects that cannot be weakly referenced are kept alive
        until they are forgotten.
        """
        if isinstance(obj, ReceiverId):
            return obj
        self.reap()
        receiver = ReceiverId.of(obj)
        with self._lock:
            watcher = self._watched.get(receiver)
            if (watcher is not None and watcher.alive) or receiver in self._pinned:
                return receiver
            try:
                watcher = weakref.finalize(obj, self._dead.append, receiver)
            except TypeError:
                self._pinned[receiver] = obj
            else:
                watcher.atexit = False
                self._watched[receiver] = watcher
        return receiver

    def reap(self) -> None:
        """Drop the state of receivers whose objects have been collected."""
        while True:
            try:
                receiver = self._dead.popleft()
            except IndexError:
                return
            with self._lock:
                watcher = self._watched.get(receiver)
                if watcher is not None and not watcher.alive:
                    del self._watched[receiver]
                self.store.remove_receiver(receiver)
                self.ledger.remove_receiver(receiver)

    def forget(self, receiver: ReceiverId) -> None:
        """Drop one receiver's configuration and call history."""
        if receiver != STATIC:
            with self._lock:
                watcher = self._watched.pop(receiver, None)
                self._pinned.pop(receiver, None)
            if watcher is not None:
                watcher.detach()
        self.store.remove_receiver(receiver)
        self.ledger.remove_receiver(receiver)

    def clear(self) -> None:
        with self._lock:
            watchers = list(self._watched.values())
            self._watched.clear()
            self._pinned.clear()
            self._dead.clear()
        for watcher in watchers:
            watcher.detach()
        self.store.clear()
        self.ledger.clear()

    def dispatch(
        self,
        member: MemberIdentity,
        receiver: ReceiverId,
        arguments: Sequence[Any],
    ) -> Outcome:
        arguments = tuple(arguments)
        self.ledger.record(member, receiver, arguments)

        if member.is_accessor:
            outcome = self._property_outcome(member, receiver, arguments)
            if outcome is not UNHANDLED:
                return outcome

        entry = self.store.lookup(receiver, member, arguments)
        if entry is None:
            return UNHANDLED

        try:
            result = entry.behavior.execute(arguments)
        except BaseException as exc:
            if member.is_async:
                return Value(failed_awaitable(exc))
            return Throws(exc)

        if member.is_async and not inspect.isawaitable(result):
            result = completed_awaitable(result)
        return Value(result)

    def _property_outcome(
        self,
        member: MemberIdentity,
        receiver: ReceiverId,
        arguments: tuple[Any, ...],
    ) -> Outcome:
        if member.kind == GETTER:
            value = self.store.get_property(receiver, member)
            if value is not NOT_SET:
                return Value(value)
        elif member.kind == SETTER and len(arguments) == 1:
            if self.store.replace_property(receiver, member, arguments[0]):
                return Value(None)
        return UNHANDLED
