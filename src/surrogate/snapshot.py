"""Argument snapshots using dill.

Call records keep live references for matching. When snapshots are enabled a
record also keeps a dill copy of each argument, so later mutation by the code
under test does not rewrite history.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Sequence

import dill

from .exceptions import SnapshotError

DILL_PROTOCOL = 4

logger = logging.getLogger(__name__)

_warned_lock = threading.Lock()
_warned_types: set[str] = set()


@dataclass(frozen=True)
class Unsnapshotted:
    """Stands in for an argument dill could not copy."""

    type_name: str
    repr_text: str
    error: str

    def __repr__(self) -> str:
        return f"<Unsnapshotted {self.type_name} {self.repr_text} error={self.error!r}>"


def copy_value(obj: Any) -> Any:
    """Deep-copy ``obj`` through a dill round trip."""
    try:
        return dill.loads(dill.dumps(obj, protocol=DILL_PROTOCOL))
    except Exception as exc:  # noqa: BLE001 - preserve original error context
        raise SnapshotError(obj, exc) from exc


def snapshot_arguments(arguments: Sequence[Any]) -> tuple[Any, ...]:
    """Copy every argument, degrading per argument when copying fails."""
    return tuple(_snapshot_one(arg) for arg in arguments)


def reset_snapshot_warnings() -> None:
    with _warned_lock:
        _warned_types.clear()


def _snapshot_one(obj: Any) -> Any:
    try:
        return copy_value(obj)
    except SnapshotError as exc:
        type_name = f"{type(obj).__module__}.{type(obj).__qualname__}"
        _warn_once(type_name, exc)
        return Unsnapshotted(
            type_name=type_name,
            repr_text=_safe_repr(obj),
            error=str(exc.original_error),
        )


def _warn_once(type_name: str, exc: SnapshotError) -> None:
    with _warned_lock:
        if type_name in _warned_types:
            return
        _warned_types.add(type_name)
    logger.warning("Argument snapshot unavailable for %s: %s", type_name, exc.original_error)


def _safe_repr(obj: Any) -> str:
    try:
        return repr(obj)
    except Exception:  # noqa: BLE001 - repr is informational only
        return f"<{type(obj).__name__} object>"
