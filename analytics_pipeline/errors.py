"""
Error types for the analytics pipeline service.

Every failure the core can produce derives from PipelineError so the HTTP
layer can translate them in one place without leaking storage or
permission-service internals to clients.

Hierarchy:
    PipelineError
    ├── NotFoundError           # missing pipeline on get/update/delete
    ├── AuthorizationError      # missing capability on a protected operation
    ├── ValidationError         # malformed payload or query arguments
    ├── StorageError            # document store I/O failure
    ├── PermissionServiceError  # permission service I/O failure
    └── PipelineApiError        # pipeline service answer the API client cannot map
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base exception for analytics pipeline errors."""

    def __init__(self, message: str, *, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause

    @property
    def message(self) -> str:
        return str(self.args[0]) if self.args else ""


class NotFoundError(PipelineError):
    """Raised when no pipeline matches the requested id."""


class AuthorizationError(PipelineError):
    """Raised when the caller lacks the capability an operation requires."""


class ValidationError(PipelineError):
    """Raised when a payload or query argument is malformed."""


class StorageError(PipelineError):
    """Raised when the document store fails to read or write."""


class PermissionServiceError(PipelineError):
    """Raised when the permission service is unreachable or answers with an error."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        response_body: str | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message, cause=cause)
        self.status_code = status_code
        self.response_body = response_body

    def __str__(self) -> str:
        parts = [f"[permissions] {self.args[0]}"]
        if self.status_code:
            parts.append(f"(status={self.status_code})")
        return " ".join(parts)


class PipelineApiError(PipelineError):
    """Raised by the API client when the pipeline service is unreachable or fails."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        response_body: str | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message, cause=cause)
        self.status_code = status_code
        self.response_body = response_body

    def __str__(self) -> str:
        parts = [f"[pipelines] {self.args[0]}"]
        if self.status_code:
            parts.append(f"(status={self.status_code})")
        return " ".join(parts)
