"""
Scripted camera backend, stream and decoder for tests.
"""

import asyncio
from typing import List, Optional

import numpy as np

from app.scanner.backends import CameraBackend, StreamConstraints, VideoStream
from app.scanner.devices import CameraDevice
from app.scanner.errors import CameraAccessError


BLACK = np.zeros((8, 8, 3), dtype=np.uint8)
QR_TEXT = '{"raffleId":"123","qrId":"abc","valueWei":"1000000000000000"}'


def qr_frame() -> np.ndarray:
    """Frame the fake decoder reads as a QR code (white corner pixel)."""
    frame = BLACK.copy()
    frame[0, 0] = 255
    return frame


class FakeStream(VideoStream):
    """Stream fed by the test through push()."""

    def __init__(self, device_id: str) -> None:
        self.device_id = device_id
        self.release_count = 0
        self._frames: asyncio.Queue = asyncio.Queue()

    def push(self, item) -> None:
        """Queue a frame, None, or an exception to raise from next_frame()."""
        self._frames.put_nowait(item)

    async def next_frame(self):
        if self.release_count:
            raise CameraAccessError("AbortError", "Stream released")
        item = await self._frames.get()
        if isinstance(item, BaseException):
            raise item
        return item

    def release(self) -> None:
        self.release_count += 1


class FakeBackend(CameraBackend):
    """
    Camera backend with scripted failures.

    failures are consumed one per open() call; None means success.
    While gate is set to an unset Event, open() blocks on it.
    """

    def __init__(self, devices: Optional[List[CameraDevice]] = None) -> None:
        self.devices = devices if devices is not None else [
            CameraDevice.from_label("cam-front", "Front Camera"),
            CameraDevice.from_label("cam-back", "Back Camera"),
        ]
        self.failures: List[Optional[BaseException]] = []
        self.requests: List[StreamConstraints] = []
        self.streams: List[FakeStream] = []
        self.gate: Optional[asyncio.Event] = None

    async def enumerate_devices(self) -> List[CameraDevice]:
        return list(self.devices)

    async def open(self, constraints: StreamConstraints) -> VideoStream:
        self.requests.append(constraints)
        if self.gate is not None:
            await self.gate.wait()

        if self.failures:
            failure = self.failures.pop(0)
            if failure is not None:
                raise failure

        if constraints.device_id is not None:
            device_id = constraints.device_id
        elif constraints.facing_mode is not None:
            device_id = "cam-back"
        else:
            device_id = self.devices[0].id if self.devices else "default"

        stream = FakeStream(device_id)
        self.streams.append(stream)
        return stream


class FakeDecoder:
    """Decoder returning text for frames with a white corner pixel."""

    def __init__(self, text: str = QR_TEXT) -> None:
        self.text = text
        self.calls = 0

    def __call__(self, frame: np.ndarray) -> Optional[str]:
        self.calls += 1
        return self.text if frame[0, 0, 0] == 255 else None
