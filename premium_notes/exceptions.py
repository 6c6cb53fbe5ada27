"""
Application-specific exception classes.

Every error the UI shows to the user derives from ``NotesError``; the
``message`` is what ends up in the flash banner.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class NotesError(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, code: str = "SYS_INTERNAL_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)


class OfflineError(NotesError):
    """Raised when an operation needs connectivity and the device is offline."""

    def __init__(self, message: str = "Offline.") -> None:
        super().__init__(message, code="NET_OFFLINE")


class ValidationError(NotesError):
    """Raised when user input is rejected before contacting the backend."""

    def __init__(self, message: str = "Validation failed") -> None:
        super().__init__(message, code="VAL_VALIDATION_ERROR")


class NotFoundError(NotesError):
    """Raised when a requested resource does not exist."""

    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(message, code="RES_NOT_FOUND")


class AuthenticationError(NotesError):
    """Raised when an operation requires a signed-in session."""

    def __init__(self, message: str = "Please log in first.") -> None:
        super().__init__(message, code="AUTH_UNAUTHORIZED")


class RemoteError(NotesError):
    """Raised when the backend returns an error or an unreadable response."""

    def __init__(
        self,
        message: str = "Remote service error",
        payload: Optional[Dict[str, Any]] = None,
        status: Optional[int] = None,
        code: str = "SYS_EXTERNAL_SERVICE_ERROR",
    ) -> None:
        self.payload = payload or {}
        self.status = status
        super().__init__(message, code=code)


class NetworkError(RemoteError):
    """Raised when the backend cannot be reached at all."""

    def __init__(self, message: str = "Network unavailable") -> None:
        super().__init__(message, code="NET_UNREACHABLE")


class ExportError(NotesError):
    """Raised when rendering the PDF export fails."""

    def __init__(self, message: str = "PDF export failed") -> None:
        super().__init__(message, code="EXPORT_FAILED")


__all__ = [
    "NotesError",
    "OfflineError",
    "ValidationError",
    "NotFoundError",
    "AuthenticationError",
    "RemoteError",
    "NetworkError",
    "ExportError",
]
