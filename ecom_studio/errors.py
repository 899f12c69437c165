"""Error types and the central error classifier."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

import requests

logger = logging.getLogger(__name__)


class StudioError(Exception):
    """Base exception for all Ecom Studio errors."""
    pass


class ValidationError(StudioError):
    """Input rejected before any request was made."""
    pass


class AuthenticationError(StudioError):
    """Missing or expired session."""
    pass


class PermissionDeniedError(StudioError):
    """Authenticated, but not allowed to act on this resource."""
    pass


class ConfigurationError(StudioError):
    """A required setting is missing from the environment."""
    pass


class ApiError(StudioError):
    """A first-party or upstream API answered with an error."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


# Errors a workflow step reports to the user instead of raising
RECOVERABLE_ERRORS = (StudioError, requests.RequestException)


class ErrorType(Enum):
    NETWORK = "network_error"
    AUTH = "auth_error"
    PERMISSION = "permission_error"
    NOT_FOUND = "not_found"
    VALIDATION = "validation_error"
    SERVER = "server_error"
    UNKNOWN = "unknown_error"


ERROR_MESSAGES: dict[ErrorType, str] = {
    ErrorType.NETWORK: "Connection problem. Please check your internet and try again.",
    ErrorType.AUTH: "Authentication failed. Please login again.",
    ErrorType.PERMISSION: "You don't have permission for this action.",
    ErrorType.NOT_FOUND: "The requested item was not found.",
    ErrorType.VALIDATION: "Please check your input and try again.",
    ErrorType.SERVER: "Something went wrong on our end. Please try again later.",
    ErrorType.UNKNOWN: "An unexpected error occurred. Please try again.",
}

# PostgREST / Postgres error codes
SUPABASE_ERROR_MAP: dict[str, ErrorType] = {
    "PGRST116": ErrorType.NOT_FOUND,
    "23505": ErrorType.VALIDATION,
    "42501": ErrorType.PERMISSION,
    "08006": ErrorType.NETWORK,
    "28P01": ErrorType.AUTH,
    "22P02": ErrorType.VALIDATION,
}


@dataclass
class AppError:
    """A classified error: technical message for logs, user message for toasts."""
    type: ErrorType
    message: str
    user_message: str
    original_error: Any = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def format_for_log(self) -> str:
        return f"[{self.timestamp.isoformat()}] {self.type.value}: {self.message}"


def handle_error(error: BaseException, context: str = "") -> AppError:
    """
    Convert any exception into an AppError with a user-friendly message.

    Args:
        error: The caught exception.
        context: Where it happened (e.g. "fetch_images"), for the log line.

    Returns:
        AppError with type, technical message and user message.
    """
    error_type = determine_error_type(error)
    app_error = AppError(
        type=error_type,
        message=str(error) or "Unknown error occurred",
        user_message=ERROR_MESSAGES[error_type],
        original_error=error,
    )
    prefix = f"[{context}] " if context else ""
    logger.error(f"{prefix}{app_error.format_for_log()}")
    return app_error


def determine_error_type(error: BaseException) -> ErrorType:
    """Classify an exception by class first, then by code, status and message."""
    if isinstance(error, (requests.ConnectionError, requests.Timeout)):
        return ErrorType.NETWORK
    if isinstance(error, AuthenticationError):
        return ErrorType.AUTH
    if isinstance(error, PermissionDeniedError):
        return ErrorType.PERMISSION
    if isinstance(error, ValidationError):
        return ErrorType.VALIDATION

    message = str(error).lower()
    code = getattr(error, "code", None)
    status = getattr(error, "status_code", None)

    if any(word in message for word in ("network", "fetch", "connection")):
        return ErrorType.NETWORK
    if code and code in SUPABASE_ERROR_MAP:
        return SUPABASE_ERROR_MAP[code]
    if status == 401 or any(word in message for word in ("auth", "unauthorized", "token")):
        return ErrorType.AUTH
    if status == 403 or any(word in message for word in ("permission", "forbidden")):
        return ErrorType.PERMISSION
    if status == 404 or "not found" in message:
        return ErrorType.NOT_FOUND
    if status in (400, 422) or any(word in message for word in ("invalid", "validation")):
        return ErrorType.VALIDATION
    if (status and status >= 500) or "server" in message:
        return ErrorType.SERVER
    return ErrorType.UNKNOWN
