"""
==============================================================================
QR Raffle Scanner - Command Line
==============================================================================

Local capture without the HTTP service.

Usage:
------
    python -m app.cli devices            # list cameras and the default pick
    python -m app.cli decode ticket.png  # decode + parse a still image
    python -m app.cli scan               # live capture with preview window

Exit codes: 0 success, 1 capture/decode failure, 2 unparseable payload.

==============================================================================
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from app.config import get_settings
from app.scanner.decoder import QRDecoder
from app.scanner.devices import DeviceEnumerator, label_ranker
from app.scanner.errors import NoCodeFoundError, classify
from app.scanner.opencv_backend import OpenCVCameraBackend
from app.scanner.session import CaptureSession, SessionPhase
from app.scanner.still import StillImageDecoder
from app.scanner.surface import OpenCVWindowSurface
from app.schemas.scan import ScanResult


logger = logging.getLogger(__name__)


def _backend() -> OpenCVCameraBackend:
    settings = get_settings()
    return OpenCVCameraBackend(
        probe_limit=settings.camera_probe_limit,
        max_read_failures=settings.max_read_failures,
    )


def _print_result(result: ScanResult) -> int:
    print(json.dumps(result.model_dump(mode="json"), indent=2))
    return 0 if result.success else 2


async def list_devices() -> int:
    backend = _backend()
    enumerator = DeviceEnumerator(backend, label_ranker(get_settings().back_camera_terms))
    devices = await enumerator.list_video_inputs()
    default_id = enumerator.select_default(devices)

    if not devices:
        print("❌ No cameras found")
        return 1

    for device in devices:
        marker = "*" if device.id == default_id else " "
        print(f"{marker} {device.id:<16} {device.role.value:<8} {device.display_name}")
    return 0


def decode_image(path: str) -> int:
    still = StillImageDecoder(QRDecoder(), get_settings().spool_path)
    try:
        raw = still.decode_file(path)
    except NoCodeFoundError as e:
        print(f"❌ {classify(e).message}")
        return 1
    return _print_result(ScanResult.from_raw(raw))


async def scan(show_preview: bool = True) -> int:
    settings = get_settings()
    decoded: List[str] = []

    surface = OpenCVWindowSurface() if show_preview else None
    session = CaptureSession.from_settings(
        _backend(),
        QRDecoder(),
        on_decoded=decoded.append,
        settings=settings,
        surface=surface,
    )
    if surface is not None:
        surface.on_quit = session.stop

    phase = await session.start()
    if phase is SessionPhase.STREAMING:
        print(f"📷 Scanning with {session.active_device_id} (Ctrl+C to cancel)")
        try:
            phase = await session.wait()
        except asyncio.CancelledError:
            session.stop()
            raise

    if decoded:
        return _print_result(ScanResult.from_raw(decoded[0]))

    if phase is SessionPhase.FAILED and session.last_error is not None:
        print(f"❌ {session.last_error.message}")
        return 1

    print("🛑 Scan stopped")
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="app.cli", description="QR raffle scanner")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("devices", help="List cameras and the default device")

    decode = commands.add_parser("decode", help="Decode a QR code from an image file")
    decode.add_argument("image", help="Image path")

    live = commands.add_parser("scan", help="Scan with a local camera")
    live.add_argument("--no-preview", action="store_true", help="Do not open a preview window")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug or get_settings().debug else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    )

    if args.command == "devices":
        return asyncio.run(list_devices())
    if args.command == "decode":
        return decode_image(args.image)

    try:
        return asyncio.run(scan(show_preview=not args.no_preview))
    except KeyboardInterrupt:
        print("🛑 Scan cancelled")
        return 1


if __name__ == "__main__":
    sys.exit(main())
