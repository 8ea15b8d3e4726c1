"""
==============================================================================
FastAPI Dependencies Module
==============================================================================

Dependency injection for the scan and raffle routes.

Dependency Hierarchy:
--------------------
                    ┌─────────────────┐
                    │ get_settings()  │
                    └────────┬────────┘
                             │
        ┌────────────────────┼────────────────────┐
        │                    │                    │
┌───────▼───────┐   ┌───────▼────────┐   ┌───────▼────────┐
│   get_db()    │   │get_camera_back.│   │ get_decoder()  │
└───────────────┘   └────────────────┘   └───────┬────────┘
                                                 │
                                         ┌───────▼──────────┐
                                         │get_still_decoder │
                                         └──────────────────┘

Every provider can be replaced through app.dependency_overrides, which is
how the test suite swaps in fake cameras and decoders.

==============================================================================
"""

from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import Depends

from app.config import Settings, get_settings
from app.db.database import get_db
from app.scanner.backends import CameraBackend
from app.scanner.decoder import QRDecoder
from app.scanner.devices import DeviceEnumerator, label_ranker
from app.scanner.opencv_backend import OpenCVCameraBackend
from app.scanner.still import StillImageDecoder


# Module logger
logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _local_backend() -> OpenCVCameraBackend:
    settings = get_settings()
    logger.debug("Creating local OpenCV camera backend")
    return OpenCVCameraBackend(
        probe_limit=settings.camera_probe_limit,
        max_read_failures=settings.max_read_failures,
    )


@lru_cache(maxsize=1)
def _shared_decoder() -> QRDecoder:
    return QRDecoder()


def get_camera_backend() -> CameraBackend:
    """FastAPI dependency providing the local camera backend."""
    return _local_backend()


def get_decoder() -> QRDecoder:
    """FastAPI dependency providing the shared QR decoder."""
    return _shared_decoder()


def get_still_decoder(
    decoder: QRDecoder = Depends(get_decoder),
    settings: Settings = Depends(get_settings),
) -> StillImageDecoder:
    """FastAPI dependency providing a still-image decoder."""
    return StillImageDecoder(decoder, settings.spool_path)


def get_device_enumerator(
    backend: CameraBackend = Depends(get_camera_backend),
    settings: Settings = Depends(get_settings),
) -> DeviceEnumerator:
    """FastAPI dependency providing an enumerator ranked by back-camera terms."""
    return DeviceEnumerator(backend, label_ranker(settings.back_camera_terms))


__all__ = [
    "get_camera_backend",
    "get_db",
    "get_decoder",
    "get_device_enumerator",
    "get_still_decoder",
]
