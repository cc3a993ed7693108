"""Exceptions raised by the lock-pick core."""


class LockPickError(Exception):
    """Base class for lock-pick errors."""

    pass


class ChallengeValidationError(LockPickError):
    """Raised when challenge parameters or a snapshot break the model's invariants."""

    pass
