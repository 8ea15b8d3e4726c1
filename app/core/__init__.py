"""
==============================================================================
Core Package
==============================================================================

Core utilities and infrastructure for the application.

This package provides:
- Custom exception handling with consistent error responses
- Exception factory functions for common error scenarios
- FastAPI dependencies for database, camera and decoder access

Modules:
--------
- exceptions: AppException class and error factory functions
- dependencies: FastAPI dependency injection functions

Usage:
------
    from app.core import AppException
    from app.core.dependencies import get_still_decoder

    # Or use exception factory functions via module
    from app.core import exceptions
    raise exceptions.qr_already_used(raffle_id, qr_id)

==============================================================================
"""

from .exceptions import (
    AppException,
    register_exception_handlers,
)

__all__ = [
    "AppException",
    "register_exception_handlers",
]
