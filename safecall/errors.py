"""Exceptions raised to the caller of safecall.

Failures of the captured callable never show up here: they are returned as
``Err`` values. These exceptions signal a mistake in how ``capture`` was
called.
"""


class SafecallError(Exception):
    """Base class for safecall usage errors."""


class InvalidOptionsError(SafecallError, ValueError):
    """Raised when capture options cannot be resolved."""


class InvalidCallableError(SafecallError, TypeError):
    """Raised when the object to capture is neither a callable nor a (target, args) pair."""
