"""surrogate.

Substitute the behavior of concrete methods, properties, static methods and
module functions in tests, and verify how they were called.
"""

__version__ = "0.1.0"
__all__ = [
    "STATIC",
    "AnyOfType",
    "Computed",
    "ConstructorMismatchError",
    "DelayedSideEffect",
    "Diagnostics",
    "Exact",
    "Fault",
    "FixedValue",
    "MemberIdentity",
    "MemberResolutionError",
    "ReceiverId",
    "RedirectionError",
    "SetupError",
    "SideEffect",
    "SideEffectAndValue",
    "SurrogateError",
    "SurrogateRegistry",
    "SynthesisError",
    "ValueSequence",
    "VerificationError",
    "any_of",
    "cleanup",
    "clear_all",
    "clear_type_cache",
    "configure",
    "configure_surrogate",
    "dispatch",
    "export_history",
    "get_diagnostics",
    "get_registry",
    "member_of",
    "received_calls",
    "ref_count",
    "set_property",
    "setter_of",
    "substitute_for",
    "track",
    "verify",
]

from .api import (
    cleanup,
    clear_all,
    clear_type_cache,
    configure,
    dispatch,
    export_history,
    get_diagnostics,
    received_calls,
    ref_count,
    set_property,
    substitute_for,
    track,
    verify,
)
from .behaviors import (
    Computed,
    DelayedSideEffect,
    Fault,
    FixedValue,
    SideEffect,
    SideEffectAndValue,
    ValueSequence,
)
from .exceptions import (
    ConstructorMismatchError,
    MemberResolutionError,
    RedirectionError,
    SetupError,
    SurrogateError,
    SynthesisError,
    VerificationError,
)
from .lifecycle import Diagnostics, SurrogateRegistry, get_registry
from .matchers import AnyOfType, Exact, any_of
from .members import STATIC, MemberIdentity, ReceiverId, member_of, setter_of
from .settings import configure_surrogate
