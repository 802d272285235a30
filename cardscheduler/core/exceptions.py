"""
Custom exceptions for the application.
"""


class CardSchedulerException(Exception):
    """Base exception for all card scheduler exceptions."""
    pass


class ValidationError(CardSchedulerException):
    """Raised when validation fails (bad grade, option or settings value)."""
    pass


class NotFoundError(CardSchedulerException):
    """Raised when a requested resource is not found or not owned by the caller."""
    pass


class ConflictError(CardSchedulerException):
    """Raised when a concurrent update to the same card won the race."""
    pass


class StoreError(CardSchedulerException):
    """Raised when persistence keeps failing after bounded retries.

    The whole operation was rolled back and can be retried by the client.
    """
    pass


class ConfigError(CardSchedulerException):
    """Raised when stored scheduler settings are malformed.

    Never surfaces to callers: the settings loader recovers by using defaults.
    """
    pass
