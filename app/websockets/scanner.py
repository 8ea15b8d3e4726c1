"""
==============================================================================
Scanner WebSocket Module
==============================================================================

Remote QR capture: the connected browser is the camera, the server runs
the capture session (negotiation ladder, decode loop, single-shot stop).

Protocol:
---------
Server → client:
    {"type": "negotiate", "request_id": n, "constraints": {...}}
        getUserMedia constraints for one negotiation step
    {"type": "enumerate", "request_id": n}
        list video inputs
    {"type": "release", "request_id": n, "device_id": "..."}
        stop the tracks of the stream opened for request n
    {"type": "scanned", "success": bool, "raw": "...", "entry": {...}, "error": {...}}
        QR decoded (entry is null and error set when unparseable)
    {"type": "error", "error": {"kind": "...", "message": "...", "recoverable": bool}}
        capture failed
    {"type": "stopped"}
        session stopped without a result

Client → server:
    {"type": "stream", "request_id": n, "device_id": "...", "label": "..."}
    {"type": "error", "request_id": n, "name": "NotAllowedError", "message": "..."}
    {"type": "devices", "request_id": n, "devices": [{"id": "...", "label": "..."}]}
    {"type": "frame", "frame": "<base64 image or data URL>"}
    {"type": "ended"}      active track ended
    {"type": "stop"}       user cancelled

The server closes the connection after "scanned", "error" or "stopped".

==============================================================================
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import itertools
import json
import logging
from typing import Any, Callable, Dict, List, Optional, Set

import cv2
import numpy as np
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from app.config import Settings, get_settings
from app.core.dependencies import get_decoder
from app.scanner.backends import CameraBackend, StreamConstraints, VideoStream
from app.scanner.decoder import DecodeFn
from app.scanner.devices import CameraDevice
from app.scanner.errors import CameraAccessError
from app.scanner.session import CaptureSession, SessionPhase
from app.schemas.scan import ScanResult


# Module logger
logger = logging.getLogger(__name__)

router = APIRouter()

# Marks the end of a remote stream in its frame queue
_ENDED = object()

RESPONSE_TYPES = frozenset({"stream", "error", "devices"})


def decode_frame(payload: Any) -> Optional[np.ndarray]:
    """Decode a base64 image (optionally a data URL) into a BGR frame."""
    if not isinstance(payload, str) or not payload:
        return None

    if payload.startswith("data:"):
        payload = payload.split(",", 1)[-1]

    try:
        data = base64.b64decode(payload)
    except (binascii.Error, ValueError):
        return None

    if not data:
        return None

    return cv2.imdecode(np.frombuffer(data, np.uint8), cv2.IMREAD_COLOR)


class RemoteVideoStream(VideoStream):
    """Stream whose frames arrive over the websocket (latest frame wins)."""

    def __init__(
        self,
        backend: "RemoteCameraBackend",
        request_id: int,
        device_id: str,
        label: str = ""
    ) -> None:
        self.device_id = device_id
        self.label = label
        self.request_id = request_id
        self._backend = backend
        self._frames: asyncio.Queue = asyncio.Queue(maxsize=1)
        self._end_reason: Optional[str] = None
        self._released = False

    def push(self, payload: str) -> None:
        if self._end_reason is not None:
            return
        self._put(payload)

    def end(self, reason: str) -> None:
        if self._end_reason is not None:
            return
        self._end_reason = reason
        self._put(_ENDED)

    def _put(self, item: Any) -> None:
        if self._frames.full():
            self._frames.get_nowait()
        self._frames.put_nowait(item)

    async def next_frame(self) -> Optional[np.ndarray]:
        if self._released:
            raise CameraAccessError("AbortError", f"Stream on {self.device_id} was released")

        item = await self._frames.get()
        if item is _ENDED:
            raise CameraAccessError("AbortError", self._end_reason or "Remote track ended")

        return decode_frame(item)

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self._backend.detach(self)


class RemoteCameraBackend(CameraBackend):
    """
    Camera backend driven by a websocket client.

    pump() must run for the lifetime of the connection; it routes client
    answers to pending requests and frames to the active stream.
    """

    def __init__(self, websocket: WebSocket, timeout: float = 30.0) -> None:
        self._websocket = websocket
        self._timeout = timeout
        self._ids = itertools.count(1)
        self._pending: Dict[int, asyncio.Future] = {}
        self._active: Optional[RemoteVideoStream] = None
        self._outgoing: Set[asyncio.Task] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    # =========================================================================
    # CAMERA BACKEND
    # =========================================================================

    async def open(self, constraints: StreamConstraints) -> VideoStream:
        response = await self._request(
            "negotiate", constraints=constraints.to_media_constraints()
        )

        if response.get("type") == "error":
            raise CameraAccessError(
                str(response.get("name") or "UnknownError"),
                str(response.get("message") or "")
            )

        device_id = str(response.get("device_id") or constraints.device_id or "remote")
        stream = RemoteVideoStream(
            self, response["request_id"], device_id, str(response.get("label") or "")
        )

        if self._active is not None:
            self._active.release()
        self._active = stream
        return stream

    async def enumerate_devices(self) -> List[CameraDevice]:
        response = await self._request("enumerate")

        if response.get("type") == "error":
            raise CameraAccessError(
                str(response.get("name") or "UnknownError"),
                str(response.get("message") or "")
            )

        devices = []
        for item in response.get("devices") or []:
            if not isinstance(item, dict):
                continue
            if item.get("kind", "videoinput") != "videoinput":
                continue
            devices.append(
                CameraDevice.from_label(str(item.get("id") or ""), str(item.get("label") or ""))
            )
        return devices

    def detach(self, stream: RemoteVideoStream) -> None:
        """Forget a released stream and tell the client to stop its tracks."""
        if self._active is stream:
            self._active = None
        self.post({
            "type": "release",
            "request_id": stream.request_id,
            "device_id": stream.device_id
        })

    # =========================================================================
    # MESSAGING
    # =========================================================================

    async def _request(self, kind: str, **fields) -> Dict[str, Any]:
        if self._closed:
            raise CameraAccessError("AbortError", "Scanner client disconnected")

        request_id = next(self._ids)
        future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future

        try:
            await self._websocket.send_json({"type": kind, "request_id": request_id, **fields})
            return await asyncio.wait_for(future, self._timeout)
        except asyncio.TimeoutError:
            raise CameraAccessError("AbortError", f"No answer to {kind} request {request_id}")
        finally:
            self._pending.pop(request_id, None)

    def post(self, message: Dict[str, Any]) -> None:
        """Queue a message without waiting for it to be sent."""
        if self._closed:
            return
        task = asyncio.ensure_future(self._websocket.send_json(message))
        self._outgoing.add(task)
        task.add_done_callback(self._sent)

    def _sent(self, task: asyncio.Task) -> None:
        self._outgoing.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.debug(f"Dropped outgoing message: {task.exception()!r}")

    async def flush(self) -> None:
        """Wait for queued messages to be sent."""
        if self._outgoing:
            await asyncio.gather(*list(self._outgoing), return_exceptions=True)

    async def pump(self, on_stop: Optional[Callable[[], None]] = None) -> None:
        """
        Read client messages until the connection closes.

        Args:
            on_stop: Called when the reader ends (cancel, disconnect or error)
        """
        reason = "Scanner client disconnected"
        try:
            while True:
                received = await self._websocket.receive()
                if received["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(received.get("code", 1000))

                text = received.get("text")
                if not text:
                    logger.warning("Ignoring non-text scanner message")
                    continue

                try:
                    message = json.loads(text)
                except (ValueError, RecursionError):
                    logger.warning("Ignoring malformed scanner message")
                    continue

                if isinstance(message, dict):
                    self._dispatch(message, on_stop)

        except WebSocketDisconnect:
            logger.info("📱 Client disconnected")
        except Exception as e:
            logger.error(f"Scanner reader failed: {e!r}")
            reason = "Scanner connection failed"
        finally:
            self.close(reason)
            if on_stop is not None:
                on_stop()

    def close(self, reason: str = "Scanner connection closed") -> None:
        """Fail pending requests and end the active stream."""
        if self._closed:
            return
        self._closed = True
        self._abort(reason)

    def _dispatch(self, message: Dict[str, Any], on_stop: Optional[Callable[[], None]]) -> None:
        kind = message.get("type")
        if not isinstance(kind, str):
            logger.debug(f"Ignoring scanner message without a type: {kind!r}")
            return

        if kind in RESPONSE_TYPES and "request_id" in message:
            request_id = message["request_id"]
            if not isinstance(request_id, int) or isinstance(request_id, bool):
                logger.warning(f"Ignoring {kind} answer with request id {request_id!r}")
                return

            future = self._pending.get(request_id)
            if future is not None and not future.done():
                future.set_result(message)
            elif kind == "stream":
                # answer to a request that already timed out
                self.post({
                    "type": "release",
                    "request_id": request_id,
                    "device_id": message.get("device_id")
                })

        elif kind == "frame":
            if self._active is not None:
                self._active.push(message.get("frame"))

        elif kind == "ended":
            if self._active is not None:
                self._active.end("Remote track ended")

        elif kind == "stop":
            logger.info("🛑 Client requested stop")
            if on_stop is not None:
                on_stop()

        else:
            logger.debug(f"Ignoring scanner message type {kind!r}")

    def _abort(self, reason: str) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(CameraAccessError("AbortError", reason))
        if self._active is not None:
            self._active.end(reason)


class ScanWebSocketHandler:
    """
    Handler for remote QR capture connections.

    Runs one single-shot capture session per connection.
    """

    def __init__(self, websocket: WebSocket, decoder: DecodeFn, settings: Settings):
        self._websocket = websocket
        self._backend = RemoteCameraBackend(websocket, settings.ws_negotiation_timeout)
        self._raw: Optional[str] = None
        self._session = CaptureSession.from_settings(
            self._backend,
            decoder,
            on_decoded=self._on_decoded,
            settings=settings,
        )

    def _on_decoded(self, text: str) -> None:
        self._raw = text

    def _started(self, task: asyncio.Task) -> None:
        if task.cancelled() or task.exception() is None:
            return
        logger.error(f"Capture session start failed: {task.exception()!r}")
        self._session.stop()

    def _result_message(self, phase: SessionPhase) -> Dict[str, Any]:
        if self._raw is not None:
            return {"type": "scanned", **ScanResult.from_raw(self._raw).model_dump(mode="json")}

        if phase is SessionPhase.FAILED and self._session.last_error is not None:
            return {"type": "error", "error": self._session.last_error.model_dump(mode="json")}

        return {"type": "stopped"}

    async def run(self) -> None:
        """Main handler loop."""
        await self._websocket.accept()
        logger.info("📱 Scanner WebSocket connected")

        reader = asyncio.ensure_future(self._backend.pump(on_stop=self._session.stop))
        starter = asyncio.ensure_future(self._session.start())
        starter.add_done_callback(self._started)

        try:
            phase = await self._session.wait()
            await self._backend.flush()

            if not self._backend.closed:
                await self._websocket.send_json(self._result_message(phase))
                await self._websocket.close()

        except WebSocketDisconnect:
            logger.info("📱 Client disconnected")
        finally:
            self._session.stop()
            self._backend.close()
            starter.cancel()
            reader.cancel()
            await asyncio.gather(starter, reader, return_exceptions=True)
            logger.info("✅ Scanner WebSocket closed")


@router.websocket("/ws/scan")
async def websocket_scan(
    websocket: WebSocket,
    decoder: DecodeFn = Depends(get_decoder),
    settings: Settings = Depends(get_settings)
):
    """Remote QR capture via WebSocket."""
    handler = ScanWebSocketHandler(websocket, decoder, settings)
    await handler.run()
