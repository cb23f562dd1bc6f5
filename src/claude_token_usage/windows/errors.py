"""Custom exceptions for plan and window tracking."""


class PlanConfigError(Exception):
    """Raised when plan configuration values are invalid or missing."""
