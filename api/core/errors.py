"""
Typed failures raised by handlers and mapped to HTTP statuses in one place.

Messages are short and safe to show to clients. Internal details travel on
the exception chain (`raise ... from exc`) and only reach the logs.
"""

from __future__ import annotations


class CatalogError(RuntimeError):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(CatalogError):
    status_code = 400
    default_message = "Invalid request"


class UploadTooLargeError(ValidationError):
    status_code = 413
    default_message = "File too large"


class NotFoundError(CatalogError):
    status_code = 404
    default_message = "Not found"


class DeadlineExceededError(CatalogError):
    status_code = 504
    default_message = "Request timeout"


class StorageError(CatalogError):
    status_code = 500
    default_message = "Storage unavailable"


class InternalError(CatalogError):
    status_code = 500
    default_message = "Internal server error"
