"""Application error taxonomy.

Every error carries the HTTP status it maps to; ``main.py`` renders them
as ``{"success": false, "error": ..., "message": ...}``.
"""


class AppError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    status_code = 400


class DocumentNotFound(AppError):
    status_code = 404

    def __init__(self, message: str = "Document not found"):
        super().__init__(message)


class SummaryNotFound(AppError):
    status_code = 404

    def __init__(self, message: str = "Summary not found"):
        super().__init__(message)


class RateLimitExceeded(AppError):
    """AI call rejected by the rate governor. Retryable by the client."""

    status_code = 429


class BurstLimitExceeded(RateLimitExceeded):
    pass


class DailyLimitExceeded(RateLimitExceeded):
    pass


class ExtractionFailed(AppError):
    """OCR ran (or tried to) but recovered no usable text."""

    status_code = 422


class EmptySourceText(AppError):
    status_code = 422


class EmptyGenerationResult(AppError):
    status_code = 502


class GenerationError(AppError):
    """The text-generation provider answered with an error."""

    status_code = 502


class StorageError(AppError):
    status_code = 500


class ConfigurationError(AppError):
    status_code = 500
