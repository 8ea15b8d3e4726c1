"""
==============================================================================
Capture Session
==============================================================================

Owns one live camera stream and its decode loop.

State Machine:
-------------

    ┌──────┐ start() ┌─────────────┐  stream   ┌───────────┐ decoded/stop() ┌─────────┐
    │ IDLE │ ──────▶ │ NEGOTIATING │ ────────▶ │ STREAMING │ ─────────────▶ │ STOPPED │
    └──────┘         └─────────────┘           └───────────┘                └─────────┘
                            │ ladder exhausted /      │ stream lost
                            │ permission denied       │
                            ▼                         ▼
                     ┌────────────────────────────────────┐
                     │               FAILED               │
                     └────────────────────────────────────┘

STOPPED and FAILED are terminal: construct a new session to retry.

Negotiation Ladder (first success wins):
---------------------------------------
1. Exact environment-facing camera at the preferred resolution
2. Ideal environment-facing camera at the preferred resolution
3. Generic permission probe (released at once), fresh enumeration,
   request pinned to the default device
4. Last resort: any camera, or the default device again when the
   final rung policy is "preferred_camera"

A permission denial aborts the ladder at any step.

Resource Model:
--------------
- The decode loop is an explicit asyncio task reading one frame at a time
- Stream and decode task are released together by stop(), by a
  successful decode and by failures
- At most one active session per camera backend

==============================================================================
"""

from __future__ import annotations

import asyncio
import enum
import logging
import weakref
from typing import Awaitable, Callable, List, Optional, Tuple

from app.config import Settings, get_settings
from app.scanner.backends import CameraBackend, FacingMode, StreamConstraints, VideoStream
from app.scanner.decoder import DecodeFn
from app.scanner.devices import CameraDevice, DeviceEnumerator, label_ranker
from app.scanner.errors import (
    CameraAccessError,
    ClassifiedError,
    classify,
    is_permission_denied,
)


# Module logger
logger = logging.getLogger(__name__)


class SessionPhase(str, enum.Enum):
    """Capture session lifecycle phase."""

    IDLE = "idle"
    NEGOTIATING = "negotiating"
    STREAMING = "streaming"
    STOPPED = "stopped"
    FAILED = "failed"

    def __str__(self) -> str:
        """Return the enum value as string."""
        return self.value

    @property
    def is_terminal(self) -> bool:
        """Check if the phase ends the session."""
        return self in (SessionPhase.STOPPED, SessionPhase.FAILED)


class FinalRungPolicy(str, enum.Enum):
    """
    Last negotiation step.

    - ANY_CAMERA: accept whatever camera the platform opens by default
    - PREFERRED_CAMERA: re-apply the default device heuristic first
    """

    ANY_CAMERA = "any_camera"
    PREFERRED_CAMERA = "preferred_camera"


class SessionClosedError(RuntimeError):
    """Raised when start() is called on a stopped or failed session."""


class VideoSurface:
    """
    Preview target bound to a streaming session.

    The base class draws nothing; subclasses override the hooks.
    """

    def attach(self, stream: VideoStream) -> None:
        """Called once the stream is live."""

    def render(self, frame) -> None:
        """Called with every frame before it is decoded."""

    def detach(self) -> None:
        """Called right before the stream is released."""


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


def _release_result(future: asyncio.Future) -> None:
    """Release a stream produced for a request nobody awaits anymore."""
    if future.cancelled() or future.exception() is not None:
        return
    stream = future.result()
    if stream is not None:
        logger.debug(f"Releasing orphaned stream on {stream.device_id!r}")
        stream.release()


Rung = Tuple[str, Callable[[], Awaitable[VideoStream]]]


class CaptureSession:
    """
    Single-shot QR capture session.

    Negotiates a camera stream, decodes frames until the first QR code is
    read, hands the text to on_decoded, then stops and releases the camera.

    Attributes:
        phase: Current lifecycle phase
        active_device_id: Device of the live stream (None unless streaming)
        last_error: Classified failure (set when phase is FAILED)
        devices: Devices enumerated after the stream opened

    Example:
        >>> session = CaptureSession(backend, QRDecoder(), on_decoded=print)
        >>> await session.start()
        <SessionPhase.STREAMING: 'streaming'>
        >>> await session.wait()
        <SessionPhase.STOPPED: 'stopped'>
    """

    # One active session per backend
    _owners: "weakref.WeakKeyDictionary[CameraBackend, CaptureSession]" = (
        weakref.WeakKeyDictionary()
    )

    def __init__(
        self,
        backend: CameraBackend,
        decoder: DecodeFn,
        on_decoded: Callable[[str], None],
        on_error: Optional[Callable[[ClassifiedError], None]] = None,
        surface: Optional[VideoSurface] = None,
        enumerator: Optional[DeviceEnumerator] = None,
        preferred_width: int = 1280,
        preferred_height: int = 720,
        final_rung_policy: FinalRungPolicy = FinalRungPolicy.ANY_CAMERA,
    ) -> None:
        """
        Initialize session.

        Args:
            backend: Camera backend providing streams and device lists
            decoder: Decode capability (frame -> text or None)
            on_decoded: Receives the decoded text once
            on_error: Receives the classified error when the session fails
            surface: Preview target (no preview if None)
            enumerator: Device enumerator (built on backend if None)
            preferred_width: Frame width for facing-mode requests
            preferred_height: Frame height for facing-mode requests
            final_rung_policy: Behavior of the last negotiation step
        """
        self._backend = backend
        self._decoder = decoder
        self._on_decoded = on_decoded
        self._on_error = on_error
        self._surface = surface or VideoSurface()
        self._enumerator = enumerator or DeviceEnumerator(backend)
        self._width = preferred_width
        self._height = preferred_height
        self._final_rung_policy = FinalRungPolicy(final_rung_policy)

        self._phase = SessionPhase.IDLE
        self._stream: Optional[VideoStream] = None
        self._negotiation: Optional[asyncio.Task] = None
        self._decode_task: Optional[asyncio.Task] = None
        self._active_device_id: Optional[str] = None
        self._last_error: Optional[ClassifiedError] = None
        self._devices: List[CameraDevice] = []
        self._closed = asyncio.Event()

    @classmethod
    def from_settings(
        cls,
        backend: CameraBackend,
        decoder: DecodeFn,
        on_decoded: Callable[[str], None],
        settings: Optional[Settings] = None,
        **kwargs,
    ) -> "CaptureSession":
        """Create a session tuned by application settings."""
        settings = settings or get_settings()
        kwargs.setdefault(
            "enumerator",
            DeviceEnumerator(backend, label_ranker(settings.back_camera_terms)),
        )
        return cls(
            backend,
            decoder,
            on_decoded,
            preferred_width=settings.preferred_width,
            preferred_height=settings.preferred_height,
            final_rung_policy=FinalRungPolicy(settings.final_rung_policy),
            **kwargs,
        )

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def active_device_id(self) -> Optional[str]:
        return self._active_device_id

    @property
    def last_error(self) -> Optional[ClassifiedError]:
        return self._last_error

    @property
    def devices(self) -> List[CameraDevice]:
        return list(self._devices)

    @property
    def is_negotiating(self) -> bool:
        return self._phase is SessionPhase.NEGOTIATING

    @property
    def is_streaming(self) -> bool:
        return self._phase is SessionPhase.STREAMING

    @property
    def is_closed(self) -> bool:
        return self._phase.is_terminal

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def start(self) -> SessionPhase:
        """
        Negotiate a stream and start the decode loop.

        A session that is already negotiating or streaming releases its
        current stream before negotiating again.

        Returns:
            Phase after negotiation (STREAMING or FAILED, or the phase set
            by a concurrent stop()/start())

        Raises:
            SessionClosedError: If the session is stopped or failed
        """
        if self._phase.is_terminal:
            raise SessionClosedError(
                f"Capture session is {self._phase.value}; create a new session to retry"
            )

        if self._phase is not SessionPhase.IDLE:
            logger.info("Restarting capture session, releasing current stream")
            self._release()

        self._claim_backend()
        self._set_phase(SessionPhase.NEGOTIATING)

        negotiation = asyncio.ensure_future(self._negotiate())
        self._negotiation = negotiation
        try:
            await asyncio.wait({negotiation})
        except asyncio.CancelledError:
            self.stop()
            raise

        if negotiation is not self._negotiation:
            # superseded by stop() or a newer start()
            return self._phase

        self._negotiation = None
        error = negotiation.exception()
        if error is not None:
            self._fail(classify(error), error)
            return self._phase

        self._begin_streaming(negotiation.result())
        self._devices = await self._enumerator.list_video_inputs()
        return self._phase

    def stop(self) -> None:
        """
        Stop the session and release the camera.

        Synchronous and idempotent; a no-op for idle and finished sessions.
        No decode attempt runs after this returns.
        """
        if self._phase is SessionPhase.IDLE or self._phase.is_terminal:
            return

        logger.info("Stopping capture session")
        self._finish(SessionPhase.STOPPED)

    async def wait(self) -> SessionPhase:
        """Wait until the session is stopped or failed."""
        await self._closed.wait()
        return self._phase

    # =========================================================================
    # NEGOTIATION
    # =========================================================================

    def _ladder(self) -> List[Rung]:
        environment = StreamConstraints(
            facing_mode=FacingMode.ENVIRONMENT,
            width=self._width,
            height=self._height,
        )
        exact_environment = environment.model_copy(update={"facing_exact": True})

        return [
            ("exact environment camera", lambda: self._request(exact_environment)),
            ("ideal environment camera", lambda: self._request(environment)),
            ("default device after permission probe", self._request_after_probe),
            ("last resort camera", self._request_last_resort),
        ]

    async def _negotiate(self) -> VideoStream:
        last_error: Optional[Exception] = None

        for step, request in self._ladder():
            try:
                stream = await request()
            except Exception as exc:
                logger.info(f"Negotiation step '{step}' failed: {exc!r}")
                if is_permission_denied(exc):
                    raise
                last_error = exc
                continue

            logger.info(f"Stream opened on {stream.device_id!r} ({step})")
            return stream

        raise last_error or CameraAccessError("NotFoundError", "No camera could be opened")

    async def _request(self, constraints: StreamConstraints) -> VideoStream:
        logger.debug(f"Requesting stream: {constraints.to_media_constraints()}")
        pending = asyncio.ensure_future(self._backend.open(constraints))
        try:
            return await asyncio.shield(pending)
        except asyncio.CancelledError:
            pending.add_done_callback(_release_result)
            raise

    async def _request_after_probe(self) -> VideoStream:
        probe = await self._request(StreamConstraints.any_camera())
        probe.release()

        devices = await self._enumerator.list_video_inputs()
        device_id = self._enumerator.select_default(devices)
        if device_id is None:
            raise CameraAccessError("NotFoundError", "No video input listed after permission probe")

        logger.info(f"Starting with default device {device_id!r}")
        return await self._request(StreamConstraints(device_id=device_id))

    async def _request_last_resort(self) -> VideoStream:
        if self._final_rung_policy is FinalRungPolicy.PREFERRED_CAMERA:
            devices = await self._enumerator.list_video_inputs()
            device_id = self._enumerator.select_default(devices)
            if device_id is not None:
                return await self._request(StreamConstraints(device_id=device_id))

        return await self._request(StreamConstraints.any_camera())

    # =========================================================================
    # DECODE LOOP
    # =========================================================================

    def _begin_streaming(self, stream: VideoStream) -> None:
        self._stream = stream
        self._active_device_id = stream.device_id
        self._set_phase(SessionPhase.STREAMING)
        self._surface.attach(stream)
        self._decode_task = asyncio.ensure_future(self._decode_loop(stream))

    async def _decode_loop(self, stream: VideoStream) -> None:
        try:
            while True:
                frame = await stream.next_frame()
                if self._stream is not stream:
                    return
                if frame is None or getattr(frame, "size", 0) == 0:
                    # no pixel data yet; let stop() run before the next wait
                    await asyncio.sleep(0)
                    continue

                self._surface.render(frame)
                if self._stream is not stream:
                    # stopped from the preview
                    return

                text = self._decode_frame(frame)
                if text:
                    self._complete(text)
                    return
        except Exception as exc:
            logger.error(f"Capture stream error: {exc!r}")
            self._fail(classify(exc), exc)

    def _decode_frame(self, frame) -> Optional[str]:
        try:
            return self._decoder(frame)
        except Exception as e:
            logger.error(f"Decode error: {e}")
            return None

    def _complete(self, text: str) -> None:
        logger.info(f"QR decoded on {self._active_device_id!r} ({len(text)} chars)")
        try:
            self._on_decoded(text)
        except Exception as e:
            logger.error(f"on_decoded handler error: {e}")
        self._finish(SessionPhase.STOPPED)

    # =========================================================================
    # TEARDOWN
    # =========================================================================

    def _fail(self, error: ClassifiedError, exc: Optional[BaseException] = None) -> None:
        if self._phase.is_terminal:
            return

        logger.warning(f"Capture session failed: {error.kind.value} ({exc!r})")
        self._finish(SessionPhase.FAILED, error)

        if self._on_error is not None:
            try:
                self._on_error(error)
            except Exception as e:
                logger.error(f"on_error handler error: {e}")

    def _finish(self, phase: SessionPhase, error: Optional[ClassifiedError] = None) -> None:
        if self._phase.is_terminal:
            return

        self._release()
        self._last_error = error
        self._set_phase(phase)

        if self._owners.get(self._backend) is self:
            del self._owners[self._backend]
        self._closed.set()

    def _release(self) -> None:
        """Cancel negotiation and decode loop and release the stream together."""
        negotiation, self._negotiation = self._negotiation, None
        if negotiation is not None:
            if negotiation.done():
                _release_result(negotiation)
            else:
                negotiation.cancel()

        task, self._decode_task = self._decode_task, None
        if task is not None and task is not _current_task():
            task.cancel()

        stream, self._stream = self._stream, None
        if stream is not None:
            self._surface.detach()
            stream.release()

        self._active_device_id = None

    def _claim_backend(self) -> None:
        owner = self._owners.get(self._backend)
        if owner is not None and owner is not self:
            logger.info("Stopping previous capture session on this camera backend")
            owner.stop()
        self._owners[self._backend] = self

    def _set_phase(self, phase: SessionPhase) -> None:
        if phase is not self._phase:
            logger.info(f"Capture session {self._phase.value} → {phase.value}")
        self._phase = phase

    def __repr__(self) -> str:
        return (
            f"CaptureSession(phase={self._phase.value!r}, "
            f"device={self._active_device_id!r})"
        )
