"""
==============================================================================
Remote Scanner WebSocket Tests
==============================================================================

Drives /ws/scan as the browser side of the protocol.

==============================================================================
"""

import base64

import cv2
import pytest
from fastapi.testclient import TestClient

from app.websockets.scanner import RemoteCameraBackend, decode_frame
from fakes import BLACK, QR_TEXT, FakeDecoder, qr_frame


DEVICES = [
    {"id": "cam-front", "label": "Front Camera", "kind": "videoinput"},
    {"id": "cam-back", "label": "Back Camera", "kind": "videoinput"},
    {"id": "mic", "label": "Microphone", "kind": "audioinput"},
]


def encoded(frame, data_url: bool = False) -> str:
    ok, data = cv2.imencode(".png", frame)
    assert ok
    text = base64.b64encode(data.tobytes()).decode("ascii")
    return f"data:image/png;base64,{text}" if data_url else text


def open_stream(ws) -> dict:
    """Answer the first negotiation step and the follow-up enumeration."""
    negotiate = ws.receive_json()
    assert negotiate["type"] == "negotiate"
    ws.send_json({
        "type": "stream",
        "request_id": negotiate["request_id"],
        "device_id": "cam-back",
        "label": "Back Camera",
    })

    enumerate_request = ws.receive_json()
    assert enumerate_request["type"] == "enumerate"
    ws.send_json({"type": "devices", "request_id": enumerate_request["request_id"], "devices": DEVICES})
    return negotiate


class TestRemoteScan:
    """Full remote capture flows."""

    def test_scan_flow(self, client: TestClient, decoder: FakeDecoder):
        with client.websocket_connect("/ws/scan") as ws:
            negotiate = open_stream(ws)
            assert negotiate["constraints"] == {
                "video": {
                    "facingMode": {"exact": "environment"},
                    "width": {"ideal": 1280},
                    "height": {"ideal": 720},
                },
                "audio": False,
            }

            ws.send_json({"type": "frame", "frame": encoded(BLACK)})
            ws.send_json({"type": "frame", "frame": encoded(qr_frame(), data_url=True)})

            release = ws.receive_json()
            assert release == {
                "type": "release",
                "request_id": negotiate["request_id"],
                "device_id": "cam-back",
            }

            scanned = ws.receive_json()
            assert scanned["type"] == "scanned"
            assert scanned["success"] is True
            assert scanned["raw"] == QR_TEXT
            assert scanned["entry"] == {
                "raffleId": "123",
                "qrToken": "abc",
                "stakeAmount": "1000000000000000",
            }

    def test_unparseable_code(self, client: TestClient, decoder: FakeDecoder):
        decoder.text = "hello world"

        with client.websocket_connect("/ws/scan") as ws:
            open_stream(ws)
            ws.send_json({"type": "frame", "frame": encoded(qr_frame())})

            assert ws.receive_json()["type"] == "release"
            scanned = ws.receive_json()
            assert scanned["success"] is False
            assert scanned["error"]["kind"] == "unparseable"

    def test_permission_denied(self, client: TestClient):
        with client.websocket_connect("/ws/scan") as ws:
            negotiate = ws.receive_json()
            ws.send_json({
                "type": "error",
                "request_id": negotiate["request_id"],
                "name": "NotAllowedError",
                "message": "Permission denied",
            })

            message = ws.receive_json()
            assert message["type"] == "error"
            assert message["error"]["kind"] == "permission_denied"
            assert message["error"]["recoverable"] is True

    def test_overconstrained_falls_back_to_ideal_facing(self, client: TestClient):
        with client.websocket_connect("/ws/scan") as ws:
            first = ws.receive_json()
            ws.send_json({
                "type": "error",
                "request_id": first["request_id"],
                "name": "OverconstrainedError",
            })

            second = ws.receive_json()
            assert second["type"] == "negotiate"
            assert second["constraints"]["video"]["facingMode"] == {"ideal": "environment"}

            ws.send_json({"type": "stop"})
            assert ws.receive_json() == {"type": "stopped"}

    def test_malformed_messages_are_ignored(self, client: TestClient):
        with client.websocket_connect("/ws/scan") as ws:
            ws.receive_json()
            ws.send_json({"type": "devices", "request_id": [1]})
            ws.send_json({"type": "stream", "request_id": {"id": 1}})
            ws.send_json({"type": ["stop"]})
            ws.send_bytes(b"\x00binary")
            ws.send_text("[1, 2")
            ws.send_json({"type": "stop"})

            assert ws.receive_json() == {"type": "stopped"}

    def test_malformed_messages_while_streaming(self, client: TestClient, decoder: FakeDecoder):
        with client.websocket_connect("/ws/scan") as ws:
            open_stream(ws)
            ws.send_json({"type": "devices", "request_id": True})
            ws.send_bytes(b"\x89PNG")
            ws.send_json({"type": "frame", "frame": encoded(qr_frame())})

            assert ws.receive_json()["type"] == "release"
            assert ws.receive_json()["type"] == "scanned"

    def test_client_stop(self, client: TestClient):
        with client.websocket_connect("/ws/scan") as ws:
            negotiate = open_stream(ws)
            ws.send_json({"type": "stop"})

            assert ws.receive_json() == {
                "type": "release",
                "request_id": negotiate["request_id"],
                "device_id": "cam-back",
            }
            assert ws.receive_json() == {"type": "stopped"}

    def test_track_ended(self, client: TestClient):
        with client.websocket_connect("/ws/scan") as ws:
            open_stream(ws)
            ws.send_json({"type": "ended"})

            assert ws.receive_json()["type"] == "release"
            message = ws.receive_json()
            assert message["type"] == "error"
            assert message["error"]["kind"] == "unknown"


def test_decode_frame_rejects_garbage():
    assert decode_frame(None) is None
    assert decode_frame("") is None
    assert decode_frame("!!!not base64!!!") is None
    assert decode_frame(base64.b64encode(b"not an image").decode()) is None


def test_decode_frame_data_url():
    frame = decode_frame(encoded(qr_frame(), data_url=True))

    assert frame.shape == (8, 8, 3)
    assert frame[0, 0, 0] == 255


class BrokenSocket:
    """Socket whose reads fail the way a closed connection does."""

    def __init__(self, error: Exception) -> None:
        self.error = error

    async def receive(self):
        raise self.error


@pytest.mark.asyncio
async def test_reader_failure_stops_the_session():
    stops = []
    backend = RemoteCameraBackend(BrokenSocket(RuntimeError("socket closed")))

    await backend.pump(on_stop=lambda: stops.append(True))

    assert stops == [True]
    assert backend.closed
