"""
Custom exception hierarchy for the Public Slip API.

Every error carries the HTTP status it maps to and renders the
`{success: false, error, message}` envelope consumers already parse.
"""

from typing import Optional, Dict, Any


class SlipApiError(Exception):
    """Base exception for all API errors."""

    status_code = 500

    def __init__(
        self,
        error: str,
        message: Optional[str] = None,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.error = error
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.error)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        body: Dict[str, Any] = {
            "success": False,
            "error": self.error,
        }
        if self.message:
            body["message"] = self.message
        if self.details:
            body["details"] = self.details
        return body


class PayloadValidationError(SlipApiError):
    """Raised when a request payload is malformed or misses required fields."""

    status_code = 400

    def __init__(self, error: str, field: Optional[str] = None, **kwargs):
        super().__init__(error, error_code="PAYLOAD_VALIDATION_ERROR", **kwargs)
        if field:
            self.details["field"] = field


class NotFoundError(SlipApiError):
    """Raised when a referenced entity does not exist."""

    status_code = 404

    def __init__(self, error: str, resource: Optional[str] = None, **kwargs):
        super().__init__(error, error_code="NOT_FOUND", **kwargs)
        if resource:
            self.details["resource"] = resource


class ConflictError(SlipApiError):
    """Raised when a business key already exists on create."""

    status_code = 409

    def __init__(self, error: str, **kwargs):
        super().__init__(error, error_code="CONFLICT", **kwargs)


class StorageUnavailableError(SlipApiError):
    """Raised when the storage gateway is not connected."""

    status_code = 503

    def __init__(self, error: str = "Database unavailable", **kwargs):
        super().__init__(error, error_code="STORAGE_UNAVAILABLE", **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["status"] = "service_unavailable"
        return body


class UnexpectedError(SlipApiError):
    """Raised for any other failure while serving a request."""

    status_code = 500

    def __init__(self, error: str, **kwargs):
        super().__init__(error, error_code="UNEXPECTED_ERROR", **kwargs)
