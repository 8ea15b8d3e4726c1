"""
Tests for the local OpenCV camera backend (no camera hardware needed).
"""

import pytest

from app.scanner.backends import FacingMode, StreamConstraints
from app.scanner.devices import CameraDevice
from app.scanner.errors import CameraAccessError
from app.scanner.opencv_backend import OpenCVCameraBackend, OpenCVVideoStream
from fakes import BLACK


DEVICES = [
    CameraDevice.from_label("/dev/video0", "Integrated Camera"),
    CameraDevice.from_label("/dev/video2", "USB Back Camera"),
]

EXACT_ENVIRONMENT = StreamConstraints(facing_mode=FacingMode.ENVIRONMENT, facing_exact=True)


def resolve(constraints, devices=DEVICES):
    return OpenCVCameraBackend._resolve(constraints, devices)


class TestResolve:

    def test_no_devices(self):
        with pytest.raises(CameraAccessError) as exc_info:
            resolve(StreamConstraints.any_camera(), [])
        assert exc_info.value.name == "NotFoundError"

    def test_pinned_device(self):
        assert resolve(StreamConstraints(device_id="/dev/video0")).id == "/dev/video0"

    def test_unknown_pinned_device(self):
        with pytest.raises(CameraAccessError) as exc_info:
            resolve(StreamConstraints(device_id="/dev/video9"))
        assert exc_info.value.name == "OverconstrainedError"

    def test_environment_facing_picks_back_camera(self):
        assert resolve(EXACT_ENVIRONMENT).id == "/dev/video2"

    def test_exact_environment_without_back_camera(self):
        with pytest.raises(CameraAccessError) as exc_info:
            resolve(EXACT_ENVIRONMENT, DEVICES[:1])
        assert exc_info.value.name == "OverconstrainedError"

    def test_ideal_environment_without_back_camera(self):
        ideal = EXACT_ENVIRONMENT.model_copy(update={"facing_exact": False})

        assert resolve(ideal, DEVICES[:1]).id == "/dev/video0"

    def test_generic_request_takes_first_device(self):
        assert resolve(StreamConstraints.any_camera()).id == "/dev/video0"


class FakeCapture:
    """Stand-in for cv2.VideoCapture."""

    def __init__(self, frames):
        self.frames = list(frames)
        self.release_count = 0

    def read(self):
        if self.frames:
            frame = self.frames.pop(0)
            return frame is not None, frame
        return False, None

    def release(self):
        self.release_count += 1


@pytest.mark.asyncio
async def test_stream_reads_frames():
    stream = OpenCVVideoStream(FakeCapture([BLACK]), "/dev/video0")

    frame = await stream.next_frame()

    assert frame.shape == BLACK.shape
    stream.release()


@pytest.mark.asyncio
async def test_stream_lost_after_consecutive_failures():
    stream = OpenCVVideoStream(FakeCapture([]), "/dev/video0", max_read_failures=2)

    assert await stream.next_frame() is None
    assert await stream.next_frame() is None
    with pytest.raises(CameraAccessError) as exc_info:
        await stream.next_frame()

    assert exc_info.value.name == "AbortError"
    stream.release()


@pytest.mark.asyncio
async def test_successful_read_resets_failure_count():
    stream = OpenCVVideoStream(FakeCapture([None, None, BLACK, None, None]), "x", max_read_failures=2)

    for _ in range(5):
        await stream.next_frame()

    stream.release()


def test_release_is_idempotent():
    cap = FakeCapture([])
    stream = OpenCVVideoStream(cap, "/dev/video0")

    stream.release()
    stream.release()
    stream._executor.shutdown(wait=True)

    assert stream.is_released
    assert cap.release_count == 1


@pytest.mark.asyncio
async def test_released_stream_refuses_reads():
    stream = OpenCVVideoStream(FakeCapture([BLACK]), "/dev/video0")
    stream.release()

    with pytest.raises(CameraAccessError):
        await stream.next_frame()
