"""Run-time generation of forwarding subtypes.

For a base class, ``SubclassSynthesizer`` builds one subtype whose public
methods and properties hand every call to the dispatcher before falling back
to the inherited implementation. Generated types are cached per base class and
reference counted by the instances created from them.
"""

from __future__ import annotations

import functools
import inspect
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable

from .dispatcher import Dispatcher, resolve_outcome
from .exceptions import ConstructorMismatchError, MemberResolutionError, SynthesisError
from .members import (
    BASE_ATTR,
    GETTER,
    METHOD,
    MemberIdentity,
    member_of,
    normalize_arguments,
    setter_of,
)

logger = logging.getLogger(__name__)

HANDLE_ATTR = "_surrogate_handle"
OVERRIDES_ATTR = "__surrogate_overrides__"


@dataclass(frozen=True)
class InterceptorHandle:
    """Carried by every synthesized instance; routes its calls to a dispatcher."""

    dispatcher: Dispatcher


def is_synthesized(obj_or_type: Any) -> bool:
    klass = obj_or_type if isinstance(obj_or_type, type) else type(obj_or_type)
    return BASE_ATTR in klass.__dict__


def base_of(obj_or_type: Any) -> type:
    klass = obj_or_type if isinstance(obj_or_type, type) else type(obj_or_type)
    return klass.__dict__.get(BASE_ATTR, klass)


def overrides(obj_or_type: Any, member: MemberIdentity) -> bool:
    """Whether a synthesized type forwards ``member`` through its own override."""
    klass = obj_or_type if isinstance(obj_or_type, type) else type(obj_or_type)
    return member in klass.__dict__.get(OVERRIDES_ATTR, frozenset())


class SubclassSynthesizer:
    """Cache of generated subtypes, one per base class."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._types: dict[type, type] = {}
        self._ref_counts: dict[type, int] = {}

    def get_or_create(self, base: type) -> type:
        """Return the cached subtype for ``base``, generating it on first use."""
        base = base_of(base)
        with self._lock:
            return self._get_or_create_locked(base)

    def acquire(self, base: type) -> type:
        """Like get_or_create, and count one more live instance of the type."""
        base = base_of(base)
        with self._lock:
            generated = self._get_or_create_locked(base)
            self._ref_counts[base] = self._ref_counts.get(base, 0) + 1
            return generated

    def release(self, base: type, generated: type | None = None) -> None:
        """Count one instance less; the cached type is purged at zero.

        When ``generated`` is given and the cache already holds a different type
        for ``base`` (because the entry was cleared and rebuilt), nothing changes.
        """
        base = base_of(base)
        with self._lock:
            if generated is not None and self._types.get(base) is not generated:
                return
            count = self._ref_counts.get(base)
            if count is None:
                return
            if count <= 1:
                self._ref_counts.pop(base, None)
                self._types.pop(base, None)
                logger.debug("Purged synthesized type for %s", base.__qualname__)
            else:
                self._ref_counts[base] = count - 1

    def instantiate(
        self,
        generated: type,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
        handle: InterceptorHandle,
    ) -> Any:
        """Create an instance of ``generated``, checking arguments against the base first.

        Raises:
            ConstructorMismatchError: If the base constructor cannot accept the arguments.
        """
        _check_constructor(base_of(generated), args, kwargs)
        return generated(*args, _surrogate_handle=handle, **kwargs)

    def ref_count(self, base: type) -> int:
        with self._lock:
            return self._ref_counts.get(base_of(base), 0)

    def cached_count(self) -> int:
        with self._lock:
            return len(self._types)

    def clear_type(self, base: type) -> None:
        """Drop one base's cached type regardless of its reference count."""
        with self._lock:
            self._types.pop(base_of(base), None)
            self._ref_counts.pop(base_of(base), None)

    def clear(self) -> None:
        with self._lock:
            self._types.clear()
            self._ref_counts.clear()

    def _get_or_create_locked(self, base: type) -> type:
        generated = self._types.get(base)
        if generated is None:
            generated = _synthesize(base)
            self._types[base] = generated
            logger.debug(
                "Synthesized %s with %d forwarding members",
                generated.__qualname__,
                len(generated.__dict__[OVERRIDES_ATTR]),
            )
        return generated


def _synthesize(base: type) -> type:
    if base.__dict__.get("__final__", False):
        raise SynthesisError(base, "the class is marked @final")

    forwarded: list[MemberIdentity] = []
    namespace: dict[str, Any] = {
        "__module__": base.__module__,
        "__qualname__": f"Substitute_{base.__qualname__}",
        "__doc__": base.__doc__,
        BASE_ATTR: base,
        "__init__": _build_init(base),
    }

    for name in _public_names(base):
        try:
            member = member_of(base, name)
        except MemberResolutionError:
            continue
        if member.kind == METHOD and not member.is_final:
            namespace[name] = _method_override(member)
            forwarded.append(member)
        elif member.kind == GETTER:
            setter = _setter_or_none(base, name)
            raw = inspect.getattr_static(base, name)
            namespace[name] = _property_override(member, setter, raw)
            forwarded.append(member)
            if setter is not None:
                forwarded.append(setter)

    namespace[OVERRIDES_ATTR] = frozenset(forwarded)
    try:
        return type(base)(f"Substitute_{base.__name__}", (base,), namespace)
    except TypeError as exc:
        raise SynthesisError(base, str(exc)) from exc


def _public_names(base: type) -> list[str]:
    seen: list[str] = []
    for klass in base.__mro__:
        if klass is object or BASE_ATTR in klass.__dict__:
            continue
        for name in klass.__dict__:
            if not name.startswith("_") and name not in seen:
                seen.append(name)
    return seen


def _setter_or_none(base: type, name: str) -> MemberIdentity | None:
    try:
        return setter_of(base, name)
    except MemberResolutionError:
        return None


def _handle_of(instance: Any) -> InterceptorHandle | None:
    try:
        return object.__getattribute__(instance, "__dict__").get(HANDLE_ATTR)
    except AttributeError:
        return None


def _forward(
    instance: Any,
    member: MemberIdentity,
    args: tuple[Any, ...],
    kwargs: dict[str, Any],
    run_original: Callable[[], Any],
) -> Any:
    handle = _handle_of(instance)
    if handle is None:
        return run_original()
    arguments = normalize_arguments(member, args, kwargs)
    dispatcher = handle.dispatcher
    outcome = dispatcher.dispatch(member, dispatcher.receiver_of(instance), arguments)
    return resolve_outcome(outcome, run_original)


def _method_override(member: MemberIdentity) -> Callable[..., Any]:
    original = member.function

    def override(self: Any, *args: Any, **kwargs: Any) -> Any:
        return _forward(self, member, args, kwargs, lambda: original(self, *args, **kwargs))

    functools.update_wrapper(override, original)
    return override


def _property_override(
    getter: MemberIdentity,
    setter: MemberIdentity | None,
    raw: property,
) -> property:
    original_get = getter.function

    def fget(self: Any) -> Any:
        return _forward(self, getter, (), {}, lambda: original_get(self))

    fset = None
    if setter is not None:
        original_set = setter.function

        def fset(self: Any, value: Any) -> None:
            _forward(self, setter, (value,), {}, lambda: original_set(self, value))

    return property(fget, fset, raw.fdel, raw.__doc__)


def _build_init(base: type) -> Callable[..., None]:
    base_init = base.__init__

    def __init__(self: Any, *args: Any, _surrogate_handle: InterceptorHandle | None = None, **kwargs: Any) -> None:
        object.__setattr__(self, HANDLE_ATTR, _surrogate_handle)
        base_init(self, *args, **kwargs)

    signature = _mirrored_signature(base_init)
    if signature is not None:
        __init__.__signature__ = signature  # type: ignore[attr-defined]
    return __init__


def _mirrored_signature(base_init: Callable[..., Any]) -> inspect.Signature | None:
    """Base constructor parameters plus a trailing keyword-only handle parameter."""
    try:
        signature = inspect.signature(base_init)
    except (TypeError, ValueError):
        return None
    params = list(signature.parameters.values())
    handle = inspect.Parameter(HANDLE_ATTR, inspect.Parameter.KEYWORD_ONLY, default=None)
    if params and params[-1].kind is inspect.Parameter.VAR_KEYWORD:
        params.insert(len(params) - 1, handle)
    else:
        params.append(handle)
    try:
        return signature.replace(parameters=params)
    except ValueError:
        return None


def _check_constructor(base: type, args: tuple[Any, ...], kwargs: dict[str, Any]) -> None:
    if base.__init__ is object.__init__ and base.__new__ is object.__new__:
        if args or kwargs:
            raise ConstructorMismatchError(base, TypeError(f"{base.__qualname__}() takes no arguments"))
        return
    try:
        signature = inspect.signature(base)
    except (TypeError, ValueError):
        return
    try:
        signature.bind(*args, **kwargs)
    except TypeError as exc:
        raise ConstructorMismatchError(base, exc) from exc
