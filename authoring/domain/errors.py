"""Error codes and exception taxonomy for the authoring subsystem."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence


class ErrorCode(Enum):
    """Authoring error codes."""

    VALIDATION_FAILED = "VALIDATION_FAILED"
    IMAGE_REJECTED = "IMAGE_REJECTED"
    UPLOAD_FAILED = "UPLOAD_FAILED"
    DELETE_FAILED = "DELETE_FAILED"
    PERSIST_FAILED = "PERSIST_FAILED"
    LOAD_FAILED = "LOAD_FAILED"
    AUTH_RESOLUTION_FAILED = "AUTH_RESOLUTION_FAILED"
    NOT_AUTHORIZED = "NOT_AUTHORIZED"
    API_RESPONSE_INVALID = "API_RESPONSE_INVALID"
    CONFIRMATION_REQUIRED = "CONFIRMATION_REQUIRED"
    NO_PENDING_DATE = "NO_PENDING_DATE"
    OPERATION_IN_PROGRESS = "OPERATION_IN_PROGRESS"


@dataclass(eq=False)
class AuthoringError(Exception):
    """Base authoring error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class ValidationFailure(AuthoringError):
    """Raised when a draft breaks one or more validation rules."""

    def __init__(self, violations: Sequence[object]) -> None:
        super().__init__(
            code=ErrorCode.VALIDATION_FAILED,
            message="\n".join(str(getattr(item, "message", item)) for item in violations),
        )
        self.violations = list(violations)


class ImageRejectedError(AuthoringError):
    """Raised when a file fails the content-type or size checks."""

    def __init__(self, file_name: str, reason: str) -> None:
        super().__init__(code=ErrorCode.IMAGE_REJECTED, message=reason)
        self.file_name = file_name


class UploadFailure(AuthoringError):
    """Raised when a single image upload cannot be completed."""

    def __init__(self, file_name: str, reason: str) -> None:
        super().__init__(code=ErrorCode.UPLOAD_FAILED, message=reason)
        self.file_name = file_name


class DeleteFailure(AuthoringError):
    """Raised when an image or event delete is refused by a collaborator."""

    def __init__(self, target: str, reason: str) -> None:
        super().__init__(code=ErrorCode.DELETE_FAILED, message=reason)
        self.target = target


class PersistFailure(AuthoringError):
    """Raised when create or update of an event fails."""

    def __init__(self, reason: str) -> None:
        super().__init__(code=ErrorCode.PERSIST_FAILED, message=reason)


class LoadFailure(AuthoringError):
    """Raised when an event cannot be loaded for editing."""

    def __init__(self, event_id: str, reason: str) -> None:
        super().__init__(code=ErrorCode.LOAD_FAILED, message=reason)
        self.event_id = event_id


class AuthResolutionFailure(AuthoringError):
    """Raised when the current caller cannot be resolved."""

    def __init__(self, reason: str) -> None:
        super().__init__(code=ErrorCode.AUTH_RESOLUTION_FAILED, message=reason)


class NotAuthorizedError(AuthoringError):
    """Raised when the caller lacks the role required for an operation."""

    def __init__(self, required: str, actual: Optional[str]) -> None:
        super().__init__(
            code=ErrorCode.NOT_AUTHORIZED,
            message=f"Role '{required}' required",
        )
        self.required = required
        self.actual = actual


class ApiResponseError(AuthoringError):
    """Raised when the backend answers with an unusable payload."""

    def __init__(self, reason: str, status_code: Optional[int] = None) -> None:
        super().__init__(code=ErrorCode.API_RESPONSE_INVALID, message=reason)
        self.status_code = status_code


class ConfirmationRequiredError(AuthoringError):
    """Raised when a destructive operation is attempted without confirmation."""

    def __init__(self, operation: str) -> None:
        super().__init__(
            code=ErrorCode.CONFIRMATION_REQUIRED,
            message=f"{operation} requires explicit confirmation",
        )
        self.operation = operation


class NoPendingDateError(AuthoringError):
    """Raised when a slot is added before a date has been picked."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.NO_PENDING_DATE,
            message="Select a date before adding a time slot",
        )


class OperationInProgressError(AuthoringError):
    """Raised when an operation starts while the same one is still running."""

    def __init__(self, operation: str) -> None:
        super().__init__(
            code=ErrorCode.OPERATION_IN_PROGRESS,
            message=f"{operation} already in progress",
        )
        self.operation = operation
