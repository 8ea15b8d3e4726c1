"""
==============================================================================
Schemas Package - Pydantic Models
==============================================================================

Request and response schemas using Pydantic for validation.

This package provides:
- Common: Shared response schemas
- Raffle: Entry notifier schemas
- Scan: Parse, still-image and device listing schemas

==============================================================================
"""

from .common import OkResponse
from .raffle import RaffleEntryCreate, RaffleEntryListResponse, RaffleEntryResponse
from .scan import DeviceListResponse, ParseRequest, ScanResult

__all__ = [
    # Common
    "OkResponse",
    # Raffle
    "RaffleEntryCreate",
    "RaffleEntryListResponse",
    "RaffleEntryResponse",
    # Scan
    "DeviceListResponse",
    "ParseRequest",
    "ScanResult",
]
