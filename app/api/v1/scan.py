"""
==============================================================================
Scan Endpoints
==============================================================================

Payload parsing, still-image decoding and local camera listing.

Endpoints:
---------
- POST /scan/parse    {raw} → parsed raffle entry or unparseable error
- POST /scan/image    multipart image → decoded text + parsed entry
- GET  /scan/devices  local video inputs and the default device

==============================================================================
"""

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.concurrency import run_in_threadpool

from app.core import exceptions
from app.core.dependencies import get_device_enumerator, get_still_decoder
from app.scanner.devices import DeviceEnumerator
from app.scanner.errors import NoCodeFoundError, classify
from app.scanner.still import StillImageDecoder
from app.schemas.scan import DeviceListResponse, ParseRequest, ScanResult


# Module logger
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/scan", tags=["Scan"])

MAX_IMAGE_BYTES = 10 * 1024 * 1024


class ScanController:
    """Controller for scan operations."""

    def __init__(self, still: StillImageDecoder = None):
        self._still = still

    def parse(self, raw: str) -> ScanResult:
        result = ScanResult.from_raw(raw)
        if not result.success:
            logger.info(f"Unparseable payload ({len(raw)} chars)")
        return result

    async def decode_upload(self, upload: UploadFile) -> ScanResult:
        """
        Decode an uploaded image and parse its payload.

        Raises:
            AppException: NO_CODE_FOUND (422) when the image holds no QR code
        """
        data = await upload.read()
        if len(data) > MAX_IMAGE_BYTES:
            raise exceptions.AppException(
                "Image too large",
                "VALIDATION_ERROR",
                422,
                {"max_bytes": MAX_IMAGE_BYTES}
            )

        suffix = Path(upload.filename or "").suffix or ".img"
        try:
            raw = await run_in_threadpool(self._still.decode_image, data, suffix)
        except NoCodeFoundError as e:
            logger.info(f"No QR code in upload {upload.filename!r}: {e}")
            raise exceptions.classified_error(classify(e))

        return self.parse(raw)


@router.post("/parse", response_model=ScanResult)
async def parse_payload(body: ParseRequest):
    """Parse raw QR text into a raffle entry."""
    controller = ScanController()
    return controller.parse(body.raw)


@router.post("/image", response_model=ScanResult)
async def decode_image(
    file: UploadFile = File(...),
    still: StillImageDecoder = Depends(get_still_decoder)
):
    """Decode a QR code from an uploaded photo (camera fallback)."""
    controller = ScanController(still)
    return await controller.decode_upload(file)


@router.get("/devices", response_model=DeviceListResponse)
async def list_devices(enumerator: DeviceEnumerator = Depends(get_device_enumerator)):
    """List local video inputs and the device a session would default to."""
    devices = await enumerator.list_video_inputs()
    return DeviceListResponse(
        devices=devices,
        default_device_id=enumerator.select_default(devices),
        total=len(devices)
    )
