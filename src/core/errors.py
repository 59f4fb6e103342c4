"""
Domain errors.

Primary-path errors (NotFound, InvalidState, Validation) abort the operation
and reach the caller. DependencyFailure is raised by adapters and is caught
wherever the side effect is best-effort (audit, certificate, notification).
"""


class VerificationError(Exception):
    """Base class for every error raised by the verification core."""


class NotFoundError(VerificationError):
    """Entity missing, or outside the caller's authorization scope.

    The two cases share one error so callers cannot probe for existence.
    """


class InvalidStateError(VerificationError):
    """Operation conflicts with the entity's current state."""


class ValidationError(VerificationError):
    """Malformed input."""


class DependencyFailure(VerificationError):
    """Renderer, store or notifier failed."""


class ConcurrencyConflict(VerificationError):
    """A concurrent writer won the race (unique or version check)."""
