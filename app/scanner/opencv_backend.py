"""
==============================================================================
OpenCV Camera Backend
==============================================================================

Local cameras through cv2.VideoCapture.

Device Discovery:
----------------
1. /dev/video* capture nodes (sysfs "index" 0), labelled from
   /sys/class/video4linux/<node>/name
2. Otherwise: probe indices 0..camera_probe_limit-1

Constraint Resolution:
---------------------
- device_id: that device, else OverconstrainedError
- exact environment facing: a BACK-labelled device, else OverconstrainedError
- ideal environment facing: a BACK-labelled device, else the first device
- generic: the first device

Blocking OpenCV calls run on a single worker thread per stream, so reads
and the final release never overlap.

==============================================================================
"""

from __future__ import annotations

import asyncio
import logging
import os
import stat
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional, Union

import cv2
import numpy as np

from app.scanner.backends import CameraBackend, FacingMode, StreamConstraints, VideoStream
from app.scanner.devices import CameraDevice, CameraRole
from app.scanner.errors import CameraAccessError


# Module logger
logger = logging.getLogger(__name__)


DEV_ROOT = Path("/dev")
SYSFS_ROOT = Path("/sys/class/video4linux")


class OpenCVVideoStream(VideoStream):
    """
    Stream over an opened cv2.VideoCapture.

    Args:
        cap: Opened capture
        device_id: Device the capture was opened on
        max_read_failures: Consecutive failed reads before the stream is lost
    """

    def __init__(self, cap: cv2.VideoCapture, device_id: str, max_read_failures: int = 30) -> None:
        self.device_id = device_id
        self._cap = cap
        self._max_read_failures = max_read_failures
        self._failures = 0
        self._released = False
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="camera")

    @property
    def is_released(self) -> bool:
        return self._released

    async def next_frame(self) -> Optional[np.ndarray]:
        if self._released:
            raise CameraAccessError("AbortError", f"Stream on {self.device_id} was released")

        loop = asyncio.get_running_loop()
        ret, frame = await loop.run_in_executor(self._executor, self._cap.read)

        if ret and frame is not None:
            self._failures = 0
            return frame

        self._failures += 1
        if self._failures > self._max_read_failures:
            raise CameraAccessError(
                "AbortError",
                f"Lost camera {self.device_id} after {self._failures} failed reads"
            )

        logger.debug(f"Failed to read frame from {self.device_id}")
        return None

    def release(self) -> None:
        if self._released:
            return
        self._released = True

        # queued behind any in-flight read
        self._executor.submit(self._cap.release)
        self._executor.shutdown(wait=False)
        logger.debug(f"Camera {self.device_id} released")


class OpenCVCameraBackend(CameraBackend):
    """
    Camera backend for local V4L2/OpenCV cameras.

    Example:
        >>> backend = OpenCVCameraBackend()
        >>> devices = await backend.enumerate_devices()
        >>> stream = await backend.open(StreamConstraints.any_camera())
    """

    def __init__(
        self,
        probe_limit: int = 4,
        max_read_failures: int = 30,
        dev_root: Path = DEV_ROOT,
        sysfs_root: Path = SYSFS_ROOT,
    ) -> None:
        self._probe_limit = probe_limit
        self._max_read_failures = max_read_failures
        self._dev_root = Path(dev_root)
        self._sysfs_root = Path(sysfs_root)

    # =========================================================================
    # ENUMERATION
    # =========================================================================

    async def enumerate_devices(self) -> List[CameraDevice]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._enumerate)

    def _enumerate(self) -> List[CameraDevice]:
        devices = self._list_device_nodes()
        if devices:
            return devices
        return self._probe_indices()

    def _list_device_nodes(self) -> List[CameraDevice]:
        devices = []

        for node in sorted(self._dev_root.glob("video*"), key=self._node_number):
            try:
                if not stat.S_ISCHR(node.stat().st_mode):
                    continue
            except OSError:
                continue

            sysfs = self._sysfs_root / node.name
            if self._read_sysfs(sysfs / "index") not in (None, "0"):
                # metadata node of a multi-node camera
                continue

            label = self._read_sysfs(sysfs / "name") or ""
            devices.append(CameraDevice.from_label(str(node), label))

        return devices

    def _probe_indices(self) -> List[CameraDevice]:
        devices = []

        for index in range(self._probe_limit):
            cap = cv2.VideoCapture(index)
            try:
                if cap.isOpened():
                    devices.append(CameraDevice.from_label(str(index), f"Camera {index}"))
            finally:
                cap.release()

        logger.debug(f"Probed {self._probe_limit} camera indices, found {len(devices)}")
        return devices

    @staticmethod
    def _read_sysfs(path: Path) -> Optional[str]:
        try:
            return path.read_text().strip()
        except OSError:
            return None

    @staticmethod
    def _node_number(node: Path) -> int:
        digits = node.name[len("video"):]
        return int(digits) if digits.isdigit() else 0

    # =========================================================================
    # STREAMS
    # =========================================================================

    async def open(self, constraints: StreamConstraints) -> VideoStream:
        devices = await self.enumerate_devices()
        device = self._resolve(constraints, devices)

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._open_device, device, constraints)

    @staticmethod
    def _resolve(constraints: StreamConstraints, devices: List[CameraDevice]) -> CameraDevice:
        if not devices:
            raise CameraAccessError("NotFoundError", "No video input devices")

        if constraints.device_id is not None:
            for device in devices:
                if device.id == constraints.device_id:
                    return device
            raise CameraAccessError(
                "OverconstrainedError", f"Device {constraints.device_id} not found"
            )

        if constraints.facing_mode is FacingMode.ENVIRONMENT:
            back = [device for device in devices if device.role is CameraRole.BACK]
            if back:
                return back[0]
            if constraints.facing_exact:
                raise CameraAccessError("OverconstrainedError", "No environment-facing camera")

        return devices[0]

    def _open_device(self, device: CameraDevice, constraints: StreamConstraints) -> OpenCVVideoStream:
        source: Union[int, str] = int(device.id) if device.id.isdigit() else device.id

        if isinstance(source, str) and not os.access(source, os.R_OK | os.W_OK):
            raise CameraAccessError("NotAllowedError", f"No access to {source}")

        cap = cv2.VideoCapture(source)
        if not cap.isOpened():
            cap.release()
            raise CameraAccessError("NotReadableError", f"Cannot open camera {device.id}")

        if constraints.width:
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, constraints.width)
        if constraints.height:
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, constraints.height)

        ret, _ = cap.read()
        if not ret:
            cap.release()
            raise CameraAccessError("NotReadableError", f"Camera {device.id} delivers no frames")

        logger.info(f"📷 Camera opened: {device.display_name} ({device.id})")
        return OpenCVVideoStream(cap, device.id, self._max_read_failures)
