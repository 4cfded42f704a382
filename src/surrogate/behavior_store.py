"""Per-receiver behavior configuration and property cells."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from .behaviors import Behavior
from .matchers import ArgumentMatcher, arguments_match, as_matchers
from .members import MemberIdentity, ReceiverId

NOT_SET = object()


@dataclass(frozen=True)
class BehaviorEntry:
    matchers: tuple[ArgumentMatcher, ...]
    behavior: Behavior

    @property
    def is_default(self) -> bool:
        return not self.matchers


class _EntryList:
    """Guarded entries in insertion order plus one unconditional default.

    Writers swap in a new tuple under the lock; readers never lock and see
    either the previous or the next complete tuple.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._guarded: tuple[BehaviorEntry, ...] = ()
        self._default: BehaviorEntry | None = None

    def add(self, entry: BehaviorEntry) -> None:
        with self._lock:
            if entry.is_default:
                self._default = entry
            else:
                self._guarded = self._guarded + (entry,)

    def lookup(self, arguments: Sequence[Any]) -> BehaviorEntry | None:
        for entry in self._guarded:
            if arguments_match(entry.matchers, arguments):
                return entry
        return self._default

    def __len__(self) -> int:
        return len(self._guarded) + (1 if self._default is not None else 0)


class BehaviorStore:
    """Maps (receiver, member) to matcher-guarded behaviors.

    Property values live in a separate per-receiver cell map that the
    dispatcher checks before the general behavior lookup.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[ReceiverId, dict[MemberIdentity, _EntryList]] = {}
        self._properties: dict[ReceiverId, dict[tuple[str, str], Any]] = {}

    def add(
        self,
        receiver: ReceiverId,
        member: MemberIdentity,
        matchers: Iterable[Any] | None,
        behavior: Behavior,
    ) -> BehaviorEntry:
        """Append a guarded entry, or replace the default when no matchers are given."""
        entry = BehaviorEntry(as_matchers(matchers), behavior)
        with self._lock:
            per_receiver = self._entries.setdefault(receiver, {})
            entries = per_receiver.get(member)
            if entries is None:
                entries = per_receiver[member] = _EntryList()
        entries.add(entry)
        return entry

    def lookup(
        self,
        receiver: ReceiverId,
        member: MemberIdentity,
        arguments: Sequence[Any],
    ) -> BehaviorEntry | None:
        per_receiver = self._entries.get(receiver)
        if per_receiver is None:
            return None
        entries = per_receiver.get(member)
        if entries is None:
            return None
        return entries.lookup(arguments)

    def set_property(self, receiver: ReceiverId, member: MemberIdentity, value: Any) -> None:
        with self._lock:
            self._properties.setdefault(receiver, {})[_property_key(member)] = value

    def get_property(self, receiver: ReceiverId, member: MemberIdentity) -> Any:
        """Return the cell value, or NOT_SET."""
        with self._lock:
            cells = self._properties.get(receiver)
            if cells is None:
                return NOT_SET
            return cells.get(_property_key(member), NOT_SET)

    def replace_property(self, receiver: ReceiverId, member: MemberIdentity, value: Any) -> bool:
        """Overwrite an existing cell; returns False when no cell was configured."""
        key = _property_key(member)
        with self._lock:
            cells = self._properties.get(receiver)
            if cells is None or key not in cells:
                return False
            cells[key] = value
            return True

    def remove_receiver(self, receiver: ReceiverId) -> None:
        with self._lock:
            self._entries.pop(receiver, None)
            self._properties.pop(receiver, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._properties.clear()

    def configured_count(self) -> int:
        """Number of configured (receiver, member) keys and property cells."""
        with self._lock:
            members = sum(len(per_receiver) for per_receiver in self._entries.values())
            cells = sum(len(per_receiver) for per_receiver in self._properties.values())
        return members + cells

    def receivers(self) -> set[ReceiverId]:
        with self._lock:
            return set(self._entries) | set(self._properties)


def _property_key(member: MemberIdentity) -> tuple[str, str]:
    return member.owner_name, member.name
