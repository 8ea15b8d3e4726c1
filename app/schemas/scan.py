"""
==============================================================================
Scan Schemas Module
==============================================================================

Request and response schemas for payload parsing, still-image decoding
and camera listing.

==============================================================================
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from app.scanner.devices import CameraDevice
from app.scanner.errors import ClassifiedError, unparseable
from app.scanner.payload import parse


class ParseRequest(BaseModel):
    """Raw QR text to parse."""
    raw: str = Field(..., max_length=4096)


class ScanResult(BaseModel):
    """
    Outcome of a scan.

    entry holds the parsed payload with its wire (camelCase) keys; when the
    text is not a raffle payload, entry is None and error is the
    unparseable classification.
    """
    success: bool
    raw: str
    entry: Optional[Dict[str, Any]] = None
    error: Optional[ClassifiedError] = None

    @classmethod
    def from_raw(cls, raw: str) -> "ScanResult":
        """Parse decoded text into a scan result."""
        entry = parse(raw)
        if entry is None:
            return cls(success=False, raw=raw, error=unparseable())
        return cls(success=True, raw=raw, entry=entry.model_dump(by_alias=True))


class DeviceListResponse(BaseModel):
    """Local video inputs and the default pick."""
    success: bool = Field(default=True)
    devices: List[CameraDevice]
    default_device_id: Optional[str] = None
    total: int = Field(ge=0)
