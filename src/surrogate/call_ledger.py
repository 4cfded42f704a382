"""Call ledger module.

This module keeps an append-only history of every intercepted call and
verifies call counts against it.
"""

from __future__ import annotations

import itertools
import json
import threading
import time
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from .exceptions import VerificationError
from .matchers import arguments_match, as_matchers
from .members import MemberIdentity, ReceiverId
from .settings import snapshots_enabled
from .snapshot import snapshot_arguments


@dataclass(frozen=True)
class CallRecord:
    """One intercepted call.

    Attributes:
        member: The member that was called.
        receiver: The bound instance's identity, or STATIC.
        arguments: Normalized arguments as passed (live references).
        timestamp: Wall-clock time of the call.
        sequence: Process-wide ordering of records.
        snapshot: Dill copies of the arguments, when snapshots are enabled.
    """

    member: MemberIdentity
    receiver: ReceiverId
    arguments: tuple[Any, ...]
    timestamp: float
    sequence: int
    snapshot: Optional[tuple[Any, ...]] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "member": str(self.member),
            "owner": self.member.owner_name,
            "kind": self.member.kind,
            "receiver": str(self.receiver),
            "arguments": [repr(arg) for arg in self.arguments],
            "snapshot": None if self.snapshot is None else [repr(arg) for arg in self.snapshot],
            "timestamp": self.timestamp,
            "sequence": self.sequence,
        }


class _CallList:
    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.records: list[CallRecord] = []


class CallLedger:
    """Append-only record of intercepted calls, partitioned by receiver.

    Each receiver has its own list and lock so that unrelated tests recording
    and verifying in parallel do not contend.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._calls: dict[ReceiverId, _CallList] = {}
        self._sequence = itertools.count(1)

    def record(
        self,
        member: MemberIdentity,
        receiver: ReceiverId,
        arguments: tuple[Any, ...],
    ) -> CallRecord:
        """Append a record for one call.

        Args:
            member: The member that was called.
            receiver: Receiver identity, or STATIC.
            arguments: Normalized call arguments.

        Returns:
            The stored record.
        """
        snapshot = snapshot_arguments(arguments) if snapshots_enabled() else None
        calls = self._calls_for(receiver)
        with calls.lock:
            record = CallRecord(
                member=member,
                receiver=receiver,
                arguments=tuple(arguments),
                timestamp=time.time(),
                sequence=next(self._sequence),
                snapshot=snapshot,
            )
            calls.records.append(record)
        return record

    def calls(
        self,
        member: MemberIdentity | None,
        receiver: ReceiverId,
        matchers: Iterable[Any] | None = None,
    ) -> list[CallRecord]:
        """Return the records of ``receiver`` for ``member`` (all members if None).

        Args:
            member: Member to filter by, or None for every member.
            receiver: Receiver identity, or STATIC.
            matchers: Optional argument matchers (raw values mean exact equality).
        """
        calls = self._calls.get(receiver)
        if calls is None:
            return []
        with calls.lock:
            records = list(calls.records)
        if member is not None:
            records = [r for r in records if r.member == member]
        if matchers is not None:
            expected = as_matchers(matchers)
            records = [r for r in records if arguments_match(expected, r.arguments)]
        return records

    def call_count(
        self,
        member: MemberIdentity,
        receiver: ReceiverId,
        matchers: Iterable[Any] | None = None,
    ) -> int:
        return len(self.calls(member, receiver, matchers))

    def verify(
        self,
        member: MemberIdentity,
        receiver: ReceiverId,
        times: int,
        matchers: Iterable[Any] | None = None,
    ) -> None:
        """Assert that ``member`` was called exactly ``times`` times.

        Raises:
            VerificationError: If the recorded count differs.
            ValueError: If ``times`` is negative.
        """
        if times < 0:
            raise ValueError("times must be >= 0")
        actual = self.call_count(member, receiver, matchers)
        if actual != times:
            raise VerificationError(member, times, actual)

    def get_call_records(self) -> list[CallRecord]:
        """Get every record across all receivers, in call order."""
        with self._lock:
            lists = list(self._calls.values())
        records: list[CallRecord] = []
        for calls in lists:
            with calls.lock:
                records.extend(calls.records)
        records.sort(key=lambda r: r.sequence)
        return records

    def remove_receiver(self, receiver: ReceiverId) -> None:
        with self._lock:
            self._calls.pop(receiver, None)

    def clear(self) -> None:
        with self._lock:
            self._calls.clear()

    def receiver_count(self) -> int:
        with self._lock:
            return len(self._calls)

    def export_history(self, format: str = "json") -> str:
        """Export call history for offline analysis.

        Args:
            format: Export format. Currently only "json" is supported.

        Returns:
            Exported data as a string in the specified format.

        Raises:
            ValueError: If format is not supported.
        """
        if format != "json":
            raise ValueError(f"Unsupported export format: {format}")
        return json.dumps([r.to_dict() for r in self.get_call_records()], indent=2)

    def export_history_to_file(self, file_path: str, format: str = "json") -> None:
        """Export call history to a file.

        Args:
            file_path: Path to the output file.
            format: Export format. Currently only "json" is supported.
        """
        data = self.export_history(format=format)
        with open(file_path, "w") as f:
            f.write(data)

    def _calls_for(self, receiver: ReceiverId) -> _CallList:
        calls = self._calls.get(receiver)
        if calls is not None:
            return calls
        with self._lock:
            return self._calls.setdefault(receiver, _CallList())
