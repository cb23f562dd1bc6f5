"""Custom exceptions for transcript ingestion failures."""


class IngestionError(Exception):
    """Base exception for transcript ingestion errors."""


class ProjectsRootError(IngestionError):
    """Raised when the transcript projects root is not a directory."""
