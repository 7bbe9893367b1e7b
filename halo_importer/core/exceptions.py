"""Custom exceptions for importer-specific error handling."""

from __future__ import annotations

from typing import Optional, Dict, Any


class HaloImporterException(Exception):
    """Base exception for all importer errors."""

    fatal: bool = False

    def __init__(
        self,
        message: str,
        *,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for log records and summaries."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }


# ===== STARTUP EXCEPTIONS =====


class ConfigError(HaloImporterException):
    """Raised when configuration is missing or invalid. The run does not begin."""

    fatal = True

    def __init__(self, message: str, setting: Optional[str] = None):
        details = {"setting": setting} if setting else {}
        super().__init__(message, error_code="INVALID_CONFIG", details=details)


# ===== INPUT EXCEPTIONS =====


class InputException(HaloImporterException):
    """Base exception for input file errors. Never aborts the run."""


class DeserializationError(InputException):
    """Raised when a row cannot be parsed into an action record."""

    def __init__(self, message: str, *, file_name: str, row_number: int, fields: Optional[list[str]] = None):
        details: Dict[str, Any] = {"file_name": file_name, "row_number": row_number}
        if fields is not None:
            details["available_fields"] = fields
        super().__init__(message, error_code="DESERIALIZATION_ERROR", details=details)


class FileReadError(InputException):
    """Raised when an input file cannot be opened or read."""

    def __init__(self, message: str, *, file_name: str):
        super().__init__(message, error_code="FILE_READ_ERROR", details={"file_name": file_name})


# ===== HALO API EXCEPTIONS =====


class HaloException(HaloImporterException):
    """Base exception for Halo API errors."""


class AuthError(HaloException):
    """Raised when the credential exchange fails."""

    def __init__(
        self,
        message: str = "Halo authentication failed",
        *,
        status_code: Optional[int] = None,
        fatal: bool = False,
    ):
        details = {"status_code": status_code} if status_code else {}
        super().__init__(message, error_code="HALO_AUTH_ERROR", details=details)
        self.fatal = fatal or self.fatal


class AuthEndpointUnreachable(AuthError):
    """Raised when the auth endpoint cannot be reached at all."""

    fatal = True

    def __init__(self, message: str = "Halo auth endpoint unreachable"):
        super().__init__(message)
        self.error_code = "HALO_AUTH_UNREACHABLE"


class RemoteError(HaloException):
    """Raised when the Halo API answers with a non-success status."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, body: Optional[str] = None):
        details: Dict[str, Any] = {}
        if status_code:
            details["status_code"] = status_code
        if body:
            details["body"] = body[:500]
        super().__init__(message, error_code="HALO_REMOTE_ERROR", details=details)
        self.status_code = status_code


class TransientApiError(RemoteError):
    """Raised when the request never produced a response (network error, timeout)."""

    def __init__(self, message: str):
        super().__init__(message)
        self.error_code = "HALO_TRANSIENT_ERROR"


class ReportError(RemoteError):
    """Raised when an existing-ID report source cannot be read."""

    fatal = True

    def __init__(self, message: str, *, resource: str, status_code: Optional[int] = None):
        super().__init__(message, status_code=status_code)
        self.error_code = "HALO_REPORT_ERROR"
        self.details["resource"] = resource
