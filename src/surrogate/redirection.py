"""Attribute-level redirection of members that subclassing cannot reach.

Free functions, static methods, class methods, ``@final`` methods and methods
of plain (non-synthesized) instances are intercepted by swapping the attribute
on the member's declaring owner for a hook. The hook forwards to the
dispatcher and runs the saved original when the dispatcher leaves the call
unhandled.
"""

from __future__ import annotations

import functools
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable

from .dispatcher import Dispatcher, resolve_outcome
from .exceptions import RedirectionError
from .members import (
    CLASSMETHOD,
    FUNCTION,
    GETTER,
    METHOD,
    ORIGINAL_ATTR,
    SETTER,
    STATIC,
    STATICMETHOD,
    MemberIdentity,
    normalize_arguments,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Redirection:
    """One installed hook and the raw attribute it displaced."""

    member: MemberIdentity
    owner: Any
    name: str
    previous: Any
    hook: Callable[..., Any]


class RedirectionTable:
    """Process-wide set of installed hooks, restorable in reverse install order."""

    def __init__(self, dispatcher: Dispatcher) -> None:
        self._dispatcher = dispatcher
        self._lock = threading.Lock()
        self._installed: dict[MemberIdentity, Redirection] = {}
        self._order: list[MemberIdentity] = []

    def install(self, member: MemberIdentity) -> Redirection:
        """Install the hook for ``member`` unless it is already installed.

        Raises:
            RedirectionError: If the owner refuses the attribute replacement.
        """
        existing = self._installed.get(member)
        if existing is not None:
            return existing
        with self._lock:
            existing = self._installed.get(member)
            if existing is not None:
                return existing
            redirection = self._install_locked(member)
            self._installed[member] = redirection
            self._order.append(member)
        logger.debug("Installed redirection for %s", member)
        return redirection

    def uninstall_all(self) -> None:
        """Restore every displaced attribute, newest first."""
        with self._lock:
            order = list(reversed(self._order))
            installed = dict(self._installed)
            self._order.clear()
            self._installed.clear()
            for member in order:
                redirection = installed[member]
                setattr(redirection.owner, redirection.name, redirection.previous)
                logger.debug("Removed redirection for %s", member)

    def is_installed(self, member: MemberIdentity) -> bool:
        return member in self._installed

    def installed_count(self) -> int:
        with self._lock:
            return len(self._installed)

    def original(self, member: MemberIdentity) -> Callable[..., Any] | None:
        """The function a hook wraps, or None when ``member`` is not redirected."""
        redirection = self._installed.get(member)
        if redirection is None:
            return None
        return getattr(redirection.hook, ORIGINAL_ATTR)

    def _install_locked(self, member: MemberIdentity) -> Redirection:
        owner = member.owner
        name = member.name
        previous = owner.__dict__.get(name)

        hook = self._build_hook(member)
        if member.kind == STATICMETHOD:
            replacement: Any = staticmethod(hook)
        elif member.kind == CLASSMETHOD:
            replacement = classmethod(hook)
        elif member.kind == GETTER:
            replacement = property(hook, previous.fset, previous.fdel, previous.__doc__)
        elif member.kind == SETTER:
            replacement = property(previous.fget, hook, previous.fdel, previous.__doc__)
        else:
            replacement = hook

        try:
            setattr(owner, name, replacement)
        except (TypeError, AttributeError) as exc:
            raise RedirectionError(member, exc) from exc
        return Redirection(member=member, owner=owner, name=name, previous=previous, hook=hook)

    def _build_hook(self, member: MemberIdentity) -> Callable[..., Any]:
        dispatcher = self._dispatcher
        original = member.function

        if member.kind in (FUNCTION, STATICMETHOD):

            def hook(*args: Any, **kwargs: Any) -> Any:
                arguments = normalize_arguments(member, args, kwargs)
                outcome = dispatcher.dispatch(member, STATIC, arguments)
                return resolve_outcome(outcome, lambda: original(*args, **kwargs))

        elif member.kind == CLASSMETHOD:

            def hook(cls: Any, *args: Any, **kwargs: Any) -> Any:
                arguments = normalize_arguments(member, args, kwargs)
                outcome = dispatcher.dispatch(member, STATIC, arguments)
                return resolve_outcome(outcome, lambda: original(cls, *args, **kwargs))

        elif member.kind in (METHOD, GETTER, SETTER):

            def hook(self: Any, *args: Any, **kwargs: Any) -> Any:
                arguments = normalize_arguments(member, args, kwargs)
                outcome = dispatcher.dispatch(member, dispatcher.receiver_of(self), arguments)
                return resolve_outcome(outcome, lambda: original(self, *args, **kwargs))

        else:
            raise RedirectionError(member, TypeError(f"unsupported member kind {member.kind!r}"))

        functools.update_wrapper(hook, original)
        setattr(hook, ORIGINAL_ATTR, original)
        return hook
