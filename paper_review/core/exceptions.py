"""Custom exception hierarchy."""

from typing import List, Optional


class AppError(Exception):
    """Base exception for application errors."""
    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.original_error = original_error


class ValidationError(AppError):
    """Raised when pipeline or document input is malformed."""
    pass


class ConfigurationError(AppError):
    """Raised when configuration is invalid or missing."""
    pass


class DependencyCycleError(ConfigurationError):
    """Raised when the stage dependency graph contains a cycle."""

    def __init__(self, cycle: List[str]):
        super().__init__(f"Stage dependency cycle detected: {' -> '.join(cycle)}")
        self.cycle = cycle


class DatabaseError(AppError):
    """Raised when an Artifact Store operation fails."""
    pass


class StorageError(AppError):
    """Raised when a file artifact cannot be written or copied."""
    pass


class DocumentNotFoundError(AppError):
    """Raised when a document is not found."""
    pass


class PipelineError(AppError):
    """Base exception for stage errors."""
    pass


class SegmentationError(PipelineError):
    """The source document could not be opened or split at all."""
    pass


class ExtractionError(PipelineError):
    """A single page failed to yield text or a page artifact."""

    def __init__(self, message: str, page_number: Optional[int] = None, original_error: Exception = None):
        super().__init__(message, original_error=original_error)
        self.page_number = page_number


class APIClientError(AppError):
    """Raised when an Oracle call fails."""
    pass


class APITimeoutError(APIClientError):
    """Raised when an Oracle call times out."""
    pass


class OracleResponseError(APIClientError):
    """Raised when the Oracle returns empty or non-JSON content."""
    pass
