"""
==============================================================================
Camera Backend Interfaces
==============================================================================

Abstract camera backend and video stream used by capture sessions.

A backend negotiates streams from constraint sets and enumerates devices.
A stream delivers frames one at a time and owns the device until released.

Implementations:
---------------
- OpenCVCameraBackend: local V4L2/OpenCV cameras (opencv_backend.py)
- RemoteCameraBackend: browser camera over a websocket (websockets/scanner.py)

==============================================================================
"""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import numpy as np
from pydantic import BaseModel, ConfigDict

from app.scanner.devices import CameraDevice


class FacingMode(str, enum.Enum):
    """Requested camera facing."""

    ENVIRONMENT = "environment"
    USER = "user"

    def __str__(self) -> str:
        """Return the enum value as string."""
        return self.value


class StreamConstraints(BaseModel):
    """
    Constraint set for one stream request.

    Attributes:
        facing_mode: Requested facing, if any
        facing_exact: Facing is mandatory rather than preferred
        width: Ideal frame width
        height: Ideal frame height
        device_id: Exact device to open
    """

    model_config = ConfigDict(frozen=True)

    facing_mode: Optional[FacingMode] = None
    facing_exact: bool = False
    width: Optional[int] = None
    height: Optional[int] = None
    device_id: Optional[str] = None

    @classmethod
    def any_camera(cls) -> "StreamConstraints":
        """Generic request for whichever camera the platform provides."""
        return cls()

    @property
    def is_generic(self) -> bool:
        """Check if no facing, size or device is requested."""
        return (
            self.facing_mode is None
            and self.device_id is None
            and self.width is None
            and self.height is None
        )

    def to_media_constraints(self) -> Dict[str, Any]:
        """
        Render as a getUserMedia-style constraints dictionary.

        Returns:
            {"video": ..., "audio": False}
        """
        if self.is_generic:
            return {"video": True, "audio": False}

        video: Dict[str, Any] = {}
        if self.device_id is not None:
            video["deviceId"] = {"exact": self.device_id}
        if self.facing_mode is not None:
            key = "exact" if self.facing_exact else "ideal"
            video["facingMode"] = {key: self.facing_mode.value}
        if self.width is not None:
            video["width"] = {"ideal": self.width}
        if self.height is not None:
            video["height"] = {"ideal": self.height}

        return {"video": video, "audio": False}


class VideoStream(ABC):
    """
    Live camera stream.

    next_frame() waits for the next frame-ready signal; it never returns
    a frame before the previous call completed.
    """

    device_id: str = ""

    @abstractmethod
    async def next_frame(self) -> Optional[np.ndarray]:
        """
        Wait for the next frame.

        Returns:
            Frame pixels, or None when no pixel data is available yet

        Raises:
            CameraAccessError: If the stream was lost
        """

    @abstractmethod
    def release(self) -> None:
        """Release the device. Safe to call more than once."""


class CameraBackend(ABC):
    """Source of camera streams and device listings."""

    @abstractmethod
    async def enumerate_devices(self) -> List[CameraDevice]:
        """List video input devices."""

    @abstractmethod
    async def open(self, constraints: StreamConstraints) -> VideoStream:
        """
        Open a stream matching the constraints.

        Raises:
            CameraAccessError: If no stream satisfies the constraints
        """
