"""Unit tests for forwarding subtype synthesis."""

import inspect
from typing import final

import pytest

from surrogate.behavior_store import BehaviorStore
from surrogate.behaviors import FixedValue
from surrogate.call_ledger import CallLedger
from surrogate.dispatcher import Dispatcher
from surrogate.exceptions import ConstructorMismatchError, SynthesisError
from surrogate.members import ReceiverId, member_of, setter_of
from surrogate.synthesizer import (
    InterceptorHandle,
    SubclassSynthesizer,
    base_of,
    is_synthesized,
    overrides,
)


class Sample:
    """A concrete class with a mix of members."""

    def __init__(self, ident: int, *, tag: str = "t") -> None:
        self.ident = ident
        self.tag = tag
        self._name = "sample"

    @property
    def name(self) -> str:
        return self._name

    @name.setter
    def name(self, value: str) -> None:
        self._name = value

    @property
    def upper_name(self) -> str:
        return self._name.upper()

    def increment(self, by: int) -> int:
        return self.ident + by

    @final
    def sealed(self) -> str:
        return "sealed"

    @staticmethod
    def helper() -> int:
        return 1

    @classmethod
    def build(cls) -> "Sample":
        return cls(0)

    def _private(self) -> str:
        return "private"


class Child(Sample):
    def increment(self, by: int) -> int:
        return super().increment(by) * 10

    def extra(self) -> str:
        return "extra"


class Options:
    def __init__(self, **options) -> None:
        self.options = options


class Bare:
    def ping(self) -> str:
        return "pong"


@final
class Sealed:
    pass


@pytest.fixture
def synthesizer() -> SubclassSynthesizer:
    return SubclassSynthesizer()


@pytest.fixture
def handle() -> InterceptorHandle:
    return InterceptorHandle(Dispatcher(BehaviorStore(), CallLedger()))


def test_generated_type_is_a_cached_subclass(synthesizer: SubclassSynthesizer) -> None:
    """Test the generated type derives from the base and is reused."""
    generated = synthesizer.get_or_create(Sample)

    assert issubclass(generated, Sample)
    assert generated is synthesizer.get_or_create(Sample)
    assert generated is synthesizer.get_or_create(generated)
    assert is_synthesized(generated)
    assert not is_synthesized(Sample)
    assert base_of(generated) is Sample
    assert synthesizer.cached_count() == 1


def test_overrides_public_methods_and_properties(synthesizer: SubclassSynthesizer) -> None:
    """Test which members get forwarding overrides."""
    generated = synthesizer.get_or_create(Sample)

    assert overrides(generated, member_of(Sample, "increment"))
    assert overrides(generated, member_of(Sample, "name"))
    assert overrides(generated, setter_of(Sample, "name"))
    assert overrides(generated, member_of(Sample, "upper_name"))
    assert not overrides(generated, member_of(Sample, "sealed"))
    assert not overrides(generated, member_of(Sample, "helper"))
    assert not overrides(generated, member_of(Sample, "build"))
    assert "_private" not in generated.__dict__


def test_overrides_follow_the_mro(synthesizer: SubclassSynthesizer) -> None:
    """Test inherited and redefined members of a subclass base."""
    generated = synthesizer.get_or_create(Child)

    assert overrides(generated, member_of(Child, "increment"))
    assert overrides(generated, member_of(Child, "extra"))
    assert overrides(generated, member_of(Child, "name"))


def test_init_signature_mirrors_base(synthesizer: SubclassSynthesizer) -> None:
    """Test the generated constructor exposes the base parameters plus the handle."""
    generated = synthesizer.get_or_create(Sample)
    params = list(inspect.signature(generated.__init__).parameters.values())

    assert [p.name for p in params] == ["self", "ident", "tag", "_surrogate_handle"]
    assert params[-1].kind is inspect.Parameter.KEYWORD_ONLY


def test_init_signature_keeps_var_keyword_last(synthesizer: SubclassSynthesizer) -> None:
    """Test the handle parameter is placed before **kwargs."""
    generated = synthesizer.get_or_create(Options)
    params = list(inspect.signature(generated.__init__).parameters.values())

    assert [p.name for p in params] == ["self", "_surrogate_handle", "options"]


def test_instantiate_runs_base_constructor(
    synthesizer: SubclassSynthesizer, handle: InterceptorHandle
) -> None:
    """Test constructor arguments reach the base __init__."""
    generated = synthesizer.get_or_create(Sample)
    instance = synthesizer.instantiate(generated, (7,), {"tag": "x"}, handle)

    assert isinstance(instance, Sample)
    assert (instance.ident, instance.tag) == (7, "x")
    assert instance.increment(3) == 10


def test_instantiate_rejects_mismatched_arguments(
    synthesizer: SubclassSynthesizer, handle: InterceptorHandle
) -> None:
    """Test that a constructor mismatch raises before anything runs."""
    generated = synthesizer.get_or_create(Sample)

    with pytest.raises(ConstructorMismatchError) as exc_info:
        synthesizer.instantiate(generated, (), {}, handle)
    assert exc_info.value.base is Sample
    with pytest.raises(ConstructorMismatchError):
        synthesizer.instantiate(generated, (1, 2), {}, handle)


def test_instantiate_class_without_constructor(
    synthesizer: SubclassSynthesizer, handle: InterceptorHandle
) -> None:
    """Test a base with no __init__ takes no arguments."""
    generated = synthesizer.get_or_create(Bare)

    assert synthesizer.instantiate(generated, (), {}, handle).ping() == "pong"
    with pytest.raises(ConstructorMismatchError):
        synthesizer.instantiate(generated, (1,), {}, handle)


def test_final_and_builtin_bases_are_rejected(synthesizer: SubclassSynthesizer) -> None:
    """Test that unsubclassable bases raise SynthesisError."""
    with pytest.raises(SynthesisError):
        synthesizer.get_or_create(Sealed)
    with pytest.raises(SynthesisError):
        synthesizer.get_or_create(bool)
    assert synthesizer.cached_count() == 0


def test_override_dispatches_per_instance(synthesizer: SubclassSynthesizer) -> None:
    """Test that configured behavior applies to one instance only."""
    store = BehaviorStore()
    ledger = CallLedger()
    handle = InterceptorHandle(Dispatcher(store, ledger))
    generated = synthesizer.get_or_create(Sample)
    first = synthesizer.instantiate(generated, (1,), {}, handle)
    second = synthesizer.instantiate(generated, (1,), {}, handle)

    store.add(ReceiverId.of(first), member_of(Sample, "increment"), [5], FixedValue(99))

    assert first.increment(5) == 99
    assert first.increment(4) == 5
    assert second.increment(5) == 6
    assert ledger.call_count(member_of(Sample, "increment"), ReceiverId.of(first)) == 2


def test_property_override_forwards_both_accessors(synthesizer: SubclassSynthesizer) -> None:
    """Test getter and setter calls are recorded and fall through when unconfigured."""
    ledger = CallLedger()
    handle = InterceptorHandle(Dispatcher(BehaviorStore(), ledger))
    instance = synthesizer.instantiate(synthesizer.get_or_create(Sample), (1,), {}, handle)

    instance.name = "changed"
    assert instance.name == "changed"
    receiver = ReceiverId.of(instance)
    assert ledger.call_count(setter_of(Sample, "name"), receiver, ["changed"]) == 1
    assert ledger.call_count(member_of(Sample, "name"), receiver) == 1


def test_instance_without_handle_runs_original(synthesizer: SubclassSynthesizer) -> None:
    """Test that direct construction of the generated type behaves like the base."""
    generated = synthesizer.get_or_create(Sample)
    instance = generated(2)

    assert instance.increment(1) == 3
    assert instance.name == "sample"


def test_reference_counting_purges_at_zero(synthesizer: SubclassSynthesizer) -> None:
    """Test acquire/release bookkeeping and purge."""
    first = synthesizer.acquire(Sample)
    second = synthesizer.acquire(Sample)

    assert first is second
    assert synthesizer.ref_count(Sample) == 2

    synthesizer.release(Sample)
    assert synthesizer.ref_count(Sample) == 1
    assert synthesizer.cached_count() == 1

    synthesizer.release(Sample)
    assert synthesizer.ref_count(Sample) == 0
    assert synthesizer.cached_count() == 0
    assert synthesizer.acquire(Sample) is not first


def test_clear_type_and_clear(synthesizer: SubclassSynthesizer) -> None:
    """Test explicit purges."""
    synthesizer.acquire(Sample)
    synthesizer.acquire(Bare)

    synthesizer.clear_type(Sample)
    assert synthesizer.ref_count(Sample) == 0
    assert synthesizer.cached_count() == 1

    synthesizer.clear()
    assert synthesizer.cached_count() == 0
