"""Custom exception hierarchy."""

from typing import Optional


class AppError(Exception):
    """Base exception for application errors."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class APIClientError(AppError):
    """Raised when an external API call fails."""
    pass


class APITimeoutError(APIClientError):
    """Raised when an external API call times out."""
    pass


class DatabaseError(AppError):
    """Raised when a database operation fails."""
    pass


class ValidationError(AppError):
    """Raised when input validation fails."""
    pass


class ConfigurationError(AppError):
    """Raised when configuration is invalid or missing."""
    pass


class StorageError(AppError):
    """Raised when the object storage collaborator rejects a request."""
    pass


class PipelineError(AppError):
    """Base exception for pipeline errors."""
    pass


class SectionNotFoundError(PipelineError):
    """The special regulations section could not be located in the text."""
    pass


class DocumentSplitError(PipelineError):
    """A source document could not be split into analysis units."""
    pass


class DocumentAnalysisError(PipelineError):
    """The layout analysis collaborator failed for a submitted unit."""
    pass


class ExtractionError(PipelineError):
    """Structured extraction of an entry failed."""
    pass


class PopulationError(PipelineError):
    """Writing extracted regulations to the store failed."""
    pass


class ProcessingCancelledError(PipelineError):
    """Processing stopped because a cancellation was requested."""
    pass


class DocumentNotFoundError(AppError):
    """Raised when a document is not found."""
    pass
