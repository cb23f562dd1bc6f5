"""Custom exceptions for transcript parsing failures."""


class TranscriptError(Exception):
    """Base exception for transcript errors."""


class TranscriptReadError(TranscriptError):
    """Raised when a transcript exists but cannot be opened or read."""
