"""Custom exception classes for the application."""
from typing import Any, Optional


class AppException(Exception):
    """Base exception for the application."""

    def __init__(self, message: str, detail: Any = None):
        self.message = message
        self.detail = detail
        super().__init__(message)


class ValidationError(AppException):
    """Data validation error."""
    pass


class InvalidRecordError(ValidationError):
    """A collaborator row failed structural validation at the boundary."""

    def __init__(self, message: str, record_id: Optional[str] = None, detail: Any = None):
        self.record_id = record_id
        super().__init__(message, detail)


class RegistryUnavailableError(AppException):
    """The school registry could not be loaded or queried."""
    pass
