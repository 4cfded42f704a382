"""Member and receiver identities.

A MemberIdentity names one method, property accessor or free function. It is
the key shared by the configuration store, the call ledger, the synthesizer and
the redirection table, so it is resolved once per member and cached.
"""

from __future__ import annotations

import inspect
import sys
import threading
import types
from dataclasses import dataclass, field
from typing import Any, Callable

from .exceptions import MemberResolutionError

METHOD = "method"
FUNCTION = "function"
STATICMETHOD = "staticmethod"
CLASSMETHOD = "classmethod"
GETTER = "getter"
SETTER = "setter"

_RECEIVER_KINDS = frozenset({METHOD, GETTER, SETTER})
_ACCESSOR_KINDS = frozenset({GETTER, SETTER})

# Marks an attribute that was produced by this package (hooks and overrides)
# and points back at the function it replaced.
ORIGINAL_ATTR = "__surrogate_original__"
# Set on every synthesized subtype's own namespace.
BASE_ATTR = "__surrogate_base__"


@dataclass(frozen=True)
class MemberIdentity:
    """Canonical key for a method, property accessor or function.

    Equality uses only the declaring owner's name, the member name, its kind and
    its signature text. The live objects are carried along for the synthesizer
    and the redirection table.
    """

    owner_name: str
    name: str
    kind: str
    signature: str
    owner: Any = field(default=None, compare=False, repr=False)
    function: Callable[..., Any] | None = field(default=None, compare=False, repr=False)
    parameters: inspect.Signature | None = field(default=None, compare=False, repr=False)
    is_async: bool = field(default=False, compare=False)
    is_final: bool = field(default=False, compare=False)

    @property
    def display_name(self) -> str:
        short_owner = self.owner_name.rsplit(".", 1)[-1]
        return f"{short_owner}.{self.name}"

    @property
    def has_receiver(self) -> bool:
        return self.kind in _RECEIVER_KINDS

    @property
    def is_accessor(self) -> bool:
        return self.kind in _ACCESSOR_KINDS

    def __str__(self) -> str:
        if self.kind == SETTER:
            return f"{self.display_name} (setter)"
        return self.display_name


@dataclass(frozen=True)
class ReceiverId:
    """Identity of a bound instance, or the STATIC sentinel."""

    token: int
    type_name: str = field(default="", compare=False)

    @classmethod
    def of(cls, obj: Any) -> ReceiverId:
        if isinstance(obj, ReceiverId):
            return obj
        return cls(id(obj), type(obj).__qualname__)

    def __str__(self) -> str:
        if self.token == 0:
            return "<static>"
        return f"<{self.type_name} at 0x{self.token:x}>"


STATIC = ReceiverId(0, "<static>")

_cache_lock = threading.Lock()
_identity_cache: dict[tuple[Any, str, str], MemberIdentity] = {}


def member_of(target: Any, name: str | None = None) -> MemberIdentity:
    """Resolve a method, property getter or function into a MemberIdentity.

    Args:
        target: A class, an instance, a module, a function, or a bound method.
        name: Attribute name on ``target``. Required for classes, instances and
            modules; omitted when ``target`` already is the function or method.

    Returns:
        The cached identity for that member. Properties resolve to their getter.

    Raises:
        MemberResolutionError: If the target does not name a supported member.
    """
    if name is not None:
        if isinstance(target, types.ModuleType):
            return _resolve_module_function(target, name)
        owner = target if isinstance(target, type) else type(target)
        return _resolve_class_member(owner, name, setter=False)

    if inspect.ismethod(target):
        bound_to = target.__self__
        owner = bound_to if isinstance(bound_to, type) else type(bound_to)
        return _resolve_class_member(owner, target.__func__.__name__, setter=False)

    if inspect.isfunction(target):
        func = _unwrap(target)
        qualname = func.__qualname__
        if "<locals>" in qualname:
            raise MemberResolutionError(target, "locally defined functions have no stable owner")
        module = sys.modules.get(func.__module__)
        if module is None:
            raise MemberResolutionError(target, f"module {func.__module__!r} is not imported")
        parts = qualname.split(".")
        if len(parts) == 1:
            return _resolve_module_function(module, func.__name__)
        owner: Any = module
        for part in parts[:-1]:
            owner = getattr(owner, part, None)
            if owner is None:
                raise MemberResolutionError(target, f"cannot locate owner {qualname!r}")
        return _resolve_class_member(owner, parts[-1], setter=False)

    raise MemberResolutionError(target, "expected a function, method, class, instance or module")


def setter_of(target: Any, name: str) -> MemberIdentity:
    """Resolve the setter accessor of a property."""
    owner = target if isinstance(target, type) else type(target)
    return _resolve_class_member(owner, name, setter=True)


def getter_for(setter: MemberIdentity) -> MemberIdentity:
    return _resolve_class_member(setter.owner, setter.name, setter=False)


def normalize_arguments(
    member: MemberIdentity,
    args: tuple[Any, ...],
    kwargs: dict[str, Any],
) -> tuple[Any, ...]:
    """Turn a call's args/kwargs into one positional argument tuple.

    Arguments are bound to the member's signature (receiver excluded) with
    defaults applied; ``*args`` are flattened in place and a non-empty
    ``**kwargs`` mapping is appended as a dict. Calls that do not bind are kept
    as supplied so the real function can raise its own TypeError.
    """
    signature = member.parameters
    if signature is None:
        return _raw_arguments(args, kwargs)
    try:
        bound = signature.bind(*args, **kwargs)
    except TypeError:
        return _raw_arguments(args, kwargs)
    bound.apply_defaults()

    values: list[Any] = []
    for param_name, param in signature.parameters.items():
        value = bound.arguments[param_name]
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            values.extend(value)
        elif param.kind is inspect.Parameter.VAR_KEYWORD:
            if value:
                values.append(dict(value))
        else:
            values.append(value)
    return tuple(values)


def clear_member_cache() -> None:
    with _cache_lock:
        _identity_cache.clear()


def _raw_arguments(args: tuple[Any, ...], kwargs: dict[str, Any]) -> tuple[Any, ...]:
    if kwargs:
        return tuple(args) + (dict(kwargs),)
    return tuple(args)


def _unwrap(func: Any) -> Any:
    while func is not None and hasattr(func, ORIGINAL_ATTR):
        func = getattr(func, ORIGINAL_ATTR)
    return func


def _resolve_module_function(module: types.ModuleType, name: str) -> MemberIdentity:
    key = (module, name, FUNCTION)
    with _cache_lock:
        cached = _identity_cache.get(key)
    if cached is not None:
        return cached

    raw = _unwrap(module.__dict__.get(name))
    if raw is None:
        raise MemberResolutionError(module, f"module has no attribute {name!r}")
    if not callable(raw) or isinstance(raw, type):
        raise MemberResolutionError(raw, f"{module.__name__}.{name} is not a function")

    identity = _build_identity(module.__name__, module, name, FUNCTION, raw, drop_first=False)
    return _remember(key, identity)


def _resolve_class_member(owner: type, name: str, *, setter: bool) -> MemberIdentity:
    declaring, raw = _find_declaration(owner, name)

    if isinstance(raw, property):
        kind = SETTER if setter else GETTER
    elif setter:
        raise MemberResolutionError(raw, f"{owner.__qualname__}.{name} is not a property")
    elif isinstance(raw, staticmethod):
        kind = STATICMETHOD
    elif isinstance(raw, classmethod):
        kind = CLASSMETHOD
    elif inspect.isfunction(raw):
        kind = METHOD
    else:
        raise MemberResolutionError(
            raw, f"{owner.__qualname__}.{name} is a {type(raw).__name__}, not a method"
        )

    key = (declaring, name, kind)
    with _cache_lock:
        cached = _identity_cache.get(key)
    if cached is not None:
        return cached

    if kind == GETTER:
        func = _unwrap(raw.fget)
    elif kind == SETTER:
        func = _unwrap(raw.fset)
        if func is None:
            raise MemberResolutionError(raw, f"property {owner.__qualname__}.{name} has no setter")
    elif kind in (STATICMETHOD, CLASSMETHOD):
        func = _unwrap(raw.__func__)
    else:
        func = _unwrap(raw)

    owner_name = f"{declaring.__module__}.{declaring.__qualname__}"
    identity = _build_identity(owner_name, declaring, name, kind, func, drop_first=kind != STATICMETHOD)
    return _remember(key, identity)


def _find_declaration(owner: type, name: str) -> tuple[type, Any]:
    for klass in owner.__mro__:
        if klass is object:
            break
        if BASE_ATTR in klass.__dict__:
            continue
        if name in klass.__dict__:
            return klass, klass.__dict__[name]
    raise MemberResolutionError(owner, f"{owner.__qualname__} declares no member {name!r}")


def _build_identity(
    owner_name: str,
    owner: Any,
    name: str,
    kind: str,
    func: Callable[..., Any],
    *,
    drop_first: bool,
) -> MemberIdentity:
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        signature = None
    if signature is not None and drop_first:
        params = list(signature.parameters.values())[1:]
        signature = signature.replace(parameters=params)

    return MemberIdentity(
        owner_name=owner_name,
        name=name,
        kind=kind,
        signature=str(signature) if signature is not None else "(...)",
        owner=owner,
        function=func,
        parameters=signature,
        is_async=inspect.iscoroutinefunction(func),
        is_final=bool(getattr(func, "__final__", False)),
    )


def _remember(key: tuple[Any, str, str], identity: MemberIdentity) -> MemberIdentity:
    with _cache_lock:
        return _identity_cache.setdefault(key, identity)
