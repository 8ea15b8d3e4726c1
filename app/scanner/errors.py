"""
==============================================================================
Acquisition Error Classifier
==============================================================================

Maps platform-level acquisition failures into a stable taxonomy with
user-facing messages.

Platform failures arrive in two shapes:
- CameraAccessError carrying a platform failure name
  (e.g. "NotAllowedError" reported by a browser, or raised by a backend)
- OSError carrying an errno from a local device node

Classification Table:
--------------------
    permission denied/blocked  -> PERMISSION_DENIED  (recoverable)
    no device present          -> NO_DEVICE          (not recoverable)
    device already in use      -> DEVICE_BUSY        (recoverable)
    no code in still image     -> NO_CODE_FOUND      (recoverable)
    unrecognized payload       -> UNPARSEABLE        (recoverable)
    anything else              -> UNKNOWN            (recoverable)

==============================================================================
"""

from __future__ import annotations

import enum
import errno

from pydantic import BaseModel, ConfigDict


class ErrorKind(str, enum.Enum):
    """Stable error taxonomy for the acquisition pipeline."""

    PERMISSION_DENIED = "permission_denied"
    NO_DEVICE = "no_device"
    DEVICE_BUSY = "device_busy"
    NO_CODE_FOUND = "no_code_found"
    UNPARSEABLE = "unparseable"
    UNKNOWN = "unknown"

    def __str__(self) -> str:
        """Return the enum value as string."""
        return self.value


class ClassifiedError(BaseModel):
    """
    Immutable classified pipeline failure.

    Attributes:
        kind: Taxonomy entry
        message: User-facing remediation text
        recoverable: Whether a retry (possibly after user action) can succeed
    """

    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str
    recoverable: bool


class CameraAccessError(Exception):
    """
    Platform-level camera acquisition failure.

    Args:
        name: Platform failure identifier (e.g. "NotAllowedError")
        message: Optional diagnostic detail
    """

    def __init__(self, name: str, message: str = "") -> None:
        self.name = name
        self.message = message or name
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"CameraAccessError(name={self.name!r}, message={self.message!r})"


class NoCodeFoundError(Exception):
    """Raised when a still image holds no decodable QR code."""


# =============================================================================
# PLATFORM IDENTIFIERS
# =============================================================================

PERMISSION_NAMES = frozenset({"NotAllowedError", "SecurityError", "PermissionDeniedError"})
NO_DEVICE_NAMES = frozenset({"NotFoundError", "DevicesNotFoundError"})
BUSY_NAMES = frozenset({"NotReadableError", "TrackStartError"})

PERMISSION_ERRNOS = frozenset({errno.EACCES, errno.EPERM})
NO_DEVICE_ERRNOS = frozenset({errno.ENOENT, errno.ENODEV, errno.ENXIO})
BUSY_ERRNOS = frozenset({errno.EBUSY})

MESSAGES = {
    ErrorKind.PERMISSION_DENIED: (
        "Camera permission denied or blocked. "
        "Allow camera access and try again."
    ),
    ErrorKind.NO_DEVICE: "No camera found on this device.",
    ErrorKind.DEVICE_BUSY: (
        "Camera is in use by another application. Close it and retry."
    ),
    ErrorKind.NO_CODE_FOUND: (
        "No QR code detected in the image. "
        "Try a clearer, well-lit photo that fills the frame."
    ),
    ErrorKind.UNPARSEABLE: (
        "Unrecognized QR format. Expected raffle JSON or a raffle link."
    ),
    ErrorKind.UNKNOWN: "Unable to start the camera. Please try again.",
}

RECOVERABLE = {
    ErrorKind.PERMISSION_DENIED: True,
    ErrorKind.NO_DEVICE: False,
    ErrorKind.DEVICE_BUSY: True,
    ErrorKind.NO_CODE_FOUND: True,
    ErrorKind.UNPARSEABLE: True,
    ErrorKind.UNKNOWN: True,
}


# =============================================================================
# CLASSIFICATION
# =============================================================================

def error_kind(exc: BaseException) -> ErrorKind:
    """Return the taxonomy entry for an exception."""
    if isinstance(exc, NoCodeFoundError):
        return ErrorKind.NO_CODE_FOUND

    name = getattr(exc, "name", None)
    if isinstance(name, str):
        if name in PERMISSION_NAMES:
            return ErrorKind.PERMISSION_DENIED
        if name in NO_DEVICE_NAMES:
            return ErrorKind.NO_DEVICE
        if name in BUSY_NAMES:
            return ErrorKind.DEVICE_BUSY

    if isinstance(exc, PermissionError):
        return ErrorKind.PERMISSION_DENIED

    if isinstance(exc, OSError):
        if exc.errno in PERMISSION_ERRNOS:
            return ErrorKind.PERMISSION_DENIED
        if exc.errno in NO_DEVICE_ERRNOS:
            return ErrorKind.NO_DEVICE
        if exc.errno in BUSY_ERRNOS:
            return ErrorKind.DEVICE_BUSY

    return ErrorKind.UNKNOWN


def make_error(kind: ErrorKind) -> ClassifiedError:
    """Build the classified error for a taxonomy entry."""
    return ClassifiedError(
        kind=kind,
        message=MESSAGES[kind],
        recoverable=RECOVERABLE[kind],
    )


def classify(exc: BaseException) -> ClassifiedError:
    """
    Classify an acquisition failure.

    Args:
        exc: Exception raised by a backend, stream or decoder

    Returns:
        Immutable ClassifiedError with user-facing message
    """
    return make_error(error_kind(exc))


def is_permission_denied(exc: BaseException) -> bool:
    """Check whether a failure is a user/OS permission denial."""
    return error_kind(exc) is ErrorKind.PERMISSION_DENIED


def unparseable() -> ClassifiedError:
    """Classified error for scanned text that is not a raffle payload."""
    return make_error(ErrorKind.UNPARSEABLE)
