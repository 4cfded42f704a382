"""Custom exceptions for substitution setup, interception and verification."""

from __future__ import annotations

from typing import Any


class SurrogateError(Exception):
    """Base class for all surrogate errors."""


class SetupError(SurrogateError):
    """Raised when a substitution cannot be configured."""


class MemberResolutionError(SetupError):
    """Raised when a target cannot be resolved to a member identity."""

    def __init__(self, target: Any, reason: str) -> None:
        self.target = target
        self.reason = reason
        super().__init__(f"Cannot resolve member from {target!r}: {reason}")


class ConstructorMismatchError(SetupError):
    """Raised when constructor arguments do not fit the base type."""

    def __init__(self, base: type, original_error: Exception) -> None:
        self.base = base
        self.original_error = original_error
        message = (
            f"No compatible constructor on {base.__qualname__} "
            f"for the supplied arguments: {original_error}"
        )
        super().__init__(message)


class SynthesisError(SetupError):
    """Raised when a forwarding subtype cannot be generated for a base type."""

    def __init__(self, base: type, reason: str) -> None:
        self.base = base
        self.reason = reason
        super().__init__(f"Cannot synthesize a substitute for {base!r}: {reason}")


class RedirectionError(SetupError):
    """Raised when the interpreter rejects installing a redirection hook."""

    def __init__(self, member: Any, original_error: Exception) -> None:
        self.member = member
        self.original_error = original_error
        super().__init__(
            f"Failed to redirect {member}: "
            f"{type(original_error).__name__}: {original_error}"
        )


class VerificationError(SurrogateError, AssertionError):
    """Raised when a member was not called the expected number of times."""

    def __init__(self, member: Any, expected: int, actual: int) -> None:
        self.member = member
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Call count mismatch for {member}: expected {expected}, received {actual}"
        )


class SnapshotError(SurrogateError):
    """Raised when an argument cannot be copied with dill."""

    def __init__(self, obj: Any, original_error: Exception) -> None:
        self.obj = obj
        self.original_error = original_error
        super().__init__(f"Cannot snapshot {type(obj).__name__}: {original_error}")
