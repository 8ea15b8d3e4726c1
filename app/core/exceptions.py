"""
Application Exception Handling

Single AppException class for all application errors with FastAPI integration.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.scanner.errors import ClassifiedError, ErrorKind


class AppException(Exception):
    """
    Unified application exception for all error scenarios.

    Provides consistent error response format across the JSON API.

    Usage:
        raise AppException("Image too large", "VALIDATION_ERROR", 422)
        raise classified_error(classify(exc))

    Error Codes:
        Acquisition:
            - PERMISSION_DENIED (403)
            - NO_DEVICE (404)
            - DEVICE_BUSY (409)
            - NO_CODE_FOUND (422)
            - UNPARSEABLE (422)
            - UNKNOWN (500)

        Raffle:
            - QR_ALREADY_USED (409)
            - UNKNOWN_CHAIN (400)

        General:
            - VALIDATION_ERROR (422)
            - INTERNAL_ERROR (500)
    """

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize application exception.

        Args:
            message: Human-readable error message
            code: Machine-readable error code (e.g., "NO_CODE_FOUND")
            status_code: HTTP status code (default: 400)
            details: Additional error context (optional)
        """
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        error_dict = {
            "success": False,
            "error": {
                "code": self.code,
                "message": self.message,
                "timestamp": self.timestamp
            }
        }

        if self.details:
            error_dict["error"]["details"] = self.details

        return error_dict


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    FastAPI exception handler for AppException.

    Converts AppException to consistent JSON error response.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(AppException, app_exception_handler)


# ============================================
# CONVENIENCE FACTORY FUNCTIONS
# ============================================

CLASSIFIED_STATUS = {
    ErrorKind.PERMISSION_DENIED: 403,
    ErrorKind.NO_DEVICE: 404,
    ErrorKind.DEVICE_BUSY: 409,
    ErrorKind.NO_CODE_FOUND: 422,
    ErrorKind.UNPARSEABLE: 422,
    ErrorKind.UNKNOWN: 500,
}


def classified_error(error: ClassifiedError) -> AppException:
    """Create exception carrying a classified acquisition error."""
    return AppException(
        error.message,
        error.kind.value.upper(),
        CLASSIFIED_STATUS[error.kind],
        {"kind": error.kind.value, "recoverable": error.recoverable}
    )


def qr_already_used(raffle_id: str, qr_id: str) -> AppException:
    """Create QR already used exception."""
    return AppException(
        "This QR code was already used for this raffle",
        "QR_ALREADY_USED",
        409,
        {"raffle_id": raffle_id, "qr_id": qr_id}
    )


def unknown_chain(chain: str) -> AppException:
    """Create unknown chain exception."""
    return AppException(
        f"Unknown chain '{chain}'",
        "UNKNOWN_CHAIN",
        400,
        {"chain": chain}
    )


def internal_error(message: str = "Internal server error") -> AppException:
    """Create internal server error exception."""
    return AppException(message, "INTERNAL_ERROR", 500)
