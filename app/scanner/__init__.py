"""
==============================================================================
Scanner Package - QR Acquisition
==============================================================================

Camera negotiation, frame decoding and raffle payload parsing.

Classes:
--------
- CaptureSession: Live camera session with single-shot decoding
- StillImageDecoder: One-shot decoding of uploaded images
- QRDecoder: pyzbar/OpenCV decode capability
- OpenCVCameraBackend: Local camera backend
- RaffleEntry: Parsed raffle payload

==============================================================================
"""

from .backends import CameraBackend, FacingMode, StreamConstraints, VideoStream
from .decoder import QRDecoder
from .devices import CameraDevice, CameraRole, DeviceEnumerator, infer_role, select_default
from .errors import CameraAccessError, ClassifiedError, ErrorKind, NoCodeFoundError, classify
from .opencv_backend import OpenCVCameraBackend
from .payload import RaffleEntry, parse
from .session import (
    CaptureSession,
    FinalRungPolicy,
    SessionClosedError,
    SessionPhase,
    VideoSurface,
)
from .still import StillImageDecoder

__all__ = [
    "CameraAccessError",
    "CameraBackend",
    "CameraDevice",
    "CameraRole",
    "CaptureSession",
    "ClassifiedError",
    "DeviceEnumerator",
    "ErrorKind",
    "FacingMode",
    "FinalRungPolicy",
    "NoCodeFoundError",
    "OpenCVCameraBackend",
    "QRDecoder",
    "RaffleEntry",
    "SessionClosedError",
    "SessionPhase",
    "StillImageDecoder",
    "StreamConstraints",
    "VideoStream",
    "VideoSurface",
    "classify",
    "infer_role",
    "parse",
    "select_default",
]
