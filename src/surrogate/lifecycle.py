"""Registry that owns all substitution state and its cleanup.

``SurrogateRegistry`` ties together the behavior store, the call ledger, the
dispatcher, the subclass synthesizer and the redirection table. A process-wide
default registry backs the functions in ``surrogate.api``.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Iterable

from .behavior_store import BehaviorEntry, BehaviorStore
from .behaviors import Behavior
from .call_ledger import CallLedger, CallRecord
from .dispatcher import Dispatcher, Outcome
from .exceptions import MemberResolutionError, SetupError
from .members import GETTER, STATIC, MemberIdentity, ReceiverId, member_of, setter_of
from .redirection import RedirectionTable
from .synthesizer import InterceptorHandle, SubclassSynthesizer, base_of, is_synthesized, overrides

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Diagnostics:
    """Counts describing the registry's current state.

    Attributes:
        live_receivers: Receivers created or tracked and not yet cleaned up.
        cached_types: Synthesized subtypes currently cached.
        installed_redirections: Hooks currently installed on owners.
        configured_members: Configured (receiver, member) keys plus property cells.
    """

    live_receivers: int
    cached_types: int
    installed_redirections: int
    configured_members: int


@dataclass
class _LiveReceiver:
    obj: Any
    base: type | None
    generated: type | None = None


class SurrogateRegistry:
    """Owner of every piece of substitution state in the process."""

    def __init__(self) -> None:
        self.store = BehaviorStore()
        self.ledger = CallLedger()
        self.dispatcher = Dispatcher(self.store, self.ledger)
        self.synthesizer = SubclassSynthesizer()
        self.redirections = RedirectionTable(self.dispatcher)
        self._lock = threading.Lock()
        self._live: dict[ReceiverId, _LiveReceiver] = {}

    def substitute_for(self, cls: type, *args: Any, **kwargs: Any) -> Any:
        """Create a tracked instance of the synthesized subtype of ``cls``.

        Args:
            cls: The concrete base class.
            *args: Positional constructor arguments for ``cls``.
            **kwargs: Keyword constructor arguments for ``cls``.

        Returns:
            An instance whose overridable members forward to the dispatcher.

        Raises:
            SynthesisError: If ``cls`` cannot be subclassed.
            ConstructorMismatchError: If no constructor of ``cls`` accepts the arguments.
        """
        base = base_of(cls)
        generated = self.synthesizer.acquire(base)
        try:
            instance = self.synthesizer.instantiate(
                generated, args, kwargs, InterceptorHandle(self.dispatcher)
            )
        except BaseException:
            self.synthesizer.release(base, generated)
            raise
        receiver = self.dispatcher.receiver_of(instance)
        with self._lock:
            self._live[receiver] = _LiveReceiver(instance, base, generated)
        logger.debug("Created substitute %s", receiver)
        return instance

    def track(self, obj: Any) -> ReceiverId:
        """Start tracking an existing object as a receiver and return its id."""
        if obj is STATIC or isinstance(obj, ReceiverId):
            return obj
        receiver = self.dispatcher.receiver_of(obj)
        with self._lock:
            if receiver not in self._live:
                self._live[receiver] = _LiveReceiver(obj, None)
        return receiver

    def configure(
        self,
        member: MemberIdentity,
        receiver: Any,
        matchers: Iterable[Any] | None,
        behavior: Behavior,
    ) -> BehaviorEntry:
        """Attach ``behavior`` to calls of ``member`` on ``receiver``.

        Installs a redirection first when the call path to ``member`` does not
        already pass through a synthesized override.

        Raises:
            SetupError: If the receiver does not fit the member or the behavior
                does not fit the member's shape.
            RedirectionError: If the member's owner refuses the redirection.
        """
        _check_receiver(member, receiver)
        behavior.check_compatible(member)
        receiver_id = self.track(receiver)
        if self._needs_redirection(member, receiver_id):
            self.redirections.install(member)
        entry = self.store.add(receiver_id, member, matchers, behavior)
        logger.debug("Configured %s on %s", member, receiver_id)
        return entry

    def set_property(self, receiver: Any, owner: Any, name: str, value: Any) -> None:
        """Give ``receiver`` a property cell so reads of ``owner.name`` return ``value``.

        Raises:
            SetupError: If ``name`` is not a property of ``owner``.
        """
        getter = member_of(owner, name)
        if getter.kind != GETTER:
            raise SetupError(f"{getter} is not a property")
        _check_receiver(getter, receiver)
        receiver_id = self.track(receiver)
        accessors = [getter]
        try:
            accessors.append(setter_of(getter.owner, name))
        except MemberResolutionError:
            pass
        for accessor in accessors:
            if self._needs_redirection(accessor, receiver_id):
                self.redirections.install(accessor)
        self.store.set_property(receiver_id, getter, value)

    def dispatch(self, member: MemberIdentity, receiver: Any, arguments: Iterable[Any]) -> Outcome:
        receiver_id = self.dispatcher.receiver_of(receiver)
        return self.dispatcher.dispatch(member, receiver_id, tuple(arguments))

    def verify(
        self,
        member: MemberIdentity,
        receiver: Any,
        times: int,
        matchers: Iterable[Any] | None = None,
    ) -> None:
        self.ledger.verify(member, self.dispatcher.receiver_of(receiver), times, matchers)

    def received_calls(
        self,
        member: MemberIdentity | None,
        receiver: Any,
        matchers: Iterable[Any] | None = None,
    ) -> list[CallRecord]:
        return self.ledger.calls(member, self.dispatcher.receiver_of(receiver), matchers)

    def cleanup(self, receiver: Any) -> None:
        """Forget one receiver's configuration, property cells and call history.

        Redirections and every other receiver are left untouched.
        """
        receiver_id = self.dispatcher.receiver_of(receiver)
        with self._lock:
            live = self._live.pop(receiver_id, None)
        self.dispatcher.forget(receiver_id)
        if live is not None and live.base is not None:
            self.synthesizer.release(live.base, live.generated)
        logger.debug("Cleaned up %s", receiver_id)

    def clear_all(self) -> None:
        """Drop all state, remove every redirection and purge every synthesized type."""
        with self._lock:
            self._live.clear()
        self.dispatcher.clear()
        self.redirections.uninstall_all()
        self.synthesizer.clear()
        logger.debug("Cleared all substitution state")

    def ref_count(self, cls: type) -> int:
        return self.synthesizer.ref_count(cls)

    def clear_type_cache(self, cls: type) -> None:
        self.synthesizer.clear_type(cls)

    def get_diagnostics(self) -> Diagnostics:
        with self._lock:
            live_receivers = len(self._live)
        return Diagnostics(
            live_receivers=live_receivers,
            cached_types=self.synthesizer.cached_count(),
            installed_redirections=self.redirections.installed_count(),
            configured_members=self.store.configured_count(),
        )

    def _needs_redirection(self, member: MemberIdentity, receiver: ReceiverId) -> bool:
        if receiver == STATIC:
            return True
        with self._lock:
            live = self._live.get(receiver)
        if live is None or not is_synthesized(live.obj):
            return True
        return not overrides(live.obj, member)


@dataclass
class _RegistryState:
    registry: SurrogateRegistry | None = None


_state = _RegistryState()
_state_lock = threading.Lock()


def get_registry() -> SurrogateRegistry:
    """Return the process-wide registry, creating it on first use."""
    with _state_lock:
        if _state.registry is None:
            _state.registry = SurrogateRegistry()
        return _state.registry


def _check_receiver(member: MemberIdentity, receiver: Any) -> None:
    is_static = isinstance(receiver, ReceiverId) and receiver == STATIC
    if member.has_receiver and is_static:
        raise SetupError(f"{member} is an instance member and needs a receiver, not STATIC")
    if not member.has_receiver and not is_static:
        raise SetupError(f"{member} has no receiver; configure it with STATIC")
