"""Process-wide settings for substitution behavior."""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass

_SNAPSHOT_ENV = "SURROGATE_SNAPSHOTS"


@dataclass
class _Settings:
    snapshot_arguments: bool | None = None


_settings = _Settings()
_settings_lock = threading.Lock()


def configure_surrogate(snapshot_arguments: bool | None = None) -> None:
    """Configure settings that apply to every substitute.

    Args:
        snapshot_arguments: When True, every call record also keeps a dill copy
            of its arguments as they were at call time. None leaves the current
            value (or the environment default) in place.
    """
    if snapshot_arguments is not None and not isinstance(snapshot_arguments, bool):
        raise ValueError("snapshot_arguments must be a bool")
    with _settings_lock:
        if snapshot_arguments is not None:
            _settings.snapshot_arguments = snapshot_arguments


def snapshots_enabled() -> bool:
    with _settings_lock:
        if _settings.snapshot_arguments is not None:
            return _settings.snapshot_arguments
    return _parse_switch(os.environ.get(_SNAPSHOT_ENV, "OFF"))


def reset_settings() -> None:
    with _settings_lock:
        _settings.snapshot_arguments = None


def _parse_switch(raw: str) -> bool:
    mode = raw.strip().upper()
    if mode not in {"ON", "OFF"}:
        raise ValueError(f"{_SNAPSHOT_ENV} must be 'ON' or 'OFF', got {raw!r}")
    return mode == "ON"
