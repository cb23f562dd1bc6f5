"""Custom exceptions for limit event persistence."""


class LimitEventError(Exception):
    """Raised when a limit event cannot be recorded or read back."""
