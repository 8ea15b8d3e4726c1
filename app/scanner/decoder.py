"""
==============================================================================
QR Decode Capability
==============================================================================

decode(image) -> text | None, built on pyzbar and OpenCV.

Decode Order:
------------
1. pyzbar restricted to QR symbols on a grayscale copy
2. OpenCV QRCodeDetector as a second pass

Decoding errors are logged and reported as "no code" so a bad frame
never interrupts a capture loop.

One decoder may be shared across threads: each thread gets its own
QRCodeDetector, since OpenCV detectors are not safe for concurrent use.

==============================================================================
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

import cv2
import numpy as np

try:
    from pyzbar.pyzbar import ZBarSymbol, decode as zbar_decode
except ImportError:  # libzbar missing: OpenCV detector only
    ZBarSymbol = None
    zbar_decode = None


# Module logger
logger = logging.getLogger(__name__)


DecodeFn = Callable[[np.ndarray], Optional[str]]


class QRDecoder:
    """
    QR decoder for camera frames and still images.

    Example:
        >>> decoder = QRDecoder()
        >>> decoder.decode(cv2.imread("ticket.png"))
        '{"raffleId":"123"}'
    """

    def __init__(self, use_opencv_fallback: bool = True) -> None:
        """
        Initialize decoder.

        Args:
            use_opencv_fallback: Run OpenCV's detector when pyzbar finds nothing
        """
        self._use_opencv = use_opencv_fallback or zbar_decode is None
        self._local = threading.local()

        if zbar_decode is None:
            logger.warning("pyzbar unavailable, decoding with OpenCV only")

    def __call__(self, image: np.ndarray) -> Optional[str]:
        return self.decode(image)

    def decode(self, image: np.ndarray) -> Optional[str]:
        """
        Decode the first QR code in an image.

        Args:
            image: OpenCV image (BGR, BGRA or grayscale numpy array)

        Returns:
            Decoded text, or None when no code is found
        """
        if image is None or image.size == 0:
            return None

        gray = self._to_gray(image)
        if gray is None:
            return None

        text = self._decode_zbar(gray)
        if text:
            return text

        if self._use_opencv:
            return self._decode_opencv(gray)

        return None

    @staticmethod
    def _to_gray(image: np.ndarray) -> Optional[np.ndarray]:
        try:
            if image.ndim == 2:
                return image
            if image.shape[2] == 4:
                return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
            return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
        except (cv2.error, IndexError, AttributeError) as e:
            logger.error(f"Frame conversion error: {e}")
            return None

    @staticmethod
    def _decode_zbar(gray: np.ndarray) -> Optional[str]:
        if zbar_decode is None:
            return None

        try:
            symbols = zbar_decode(gray, symbols=[ZBarSymbol.QRCODE])
        except Exception as e:
            logger.error(f"Decode error: {e}")
            return None

        for symbol in symbols:
            text = symbol.data.decode("utf-8", errors="replace").strip("\x00")
            if text:
                return text

        return None

    def _thread_detector(self) -> cv2.QRCodeDetector:
        detector = getattr(self._local, "detector", None)
        if detector is None:
            detector = self._local.detector = cv2.QRCodeDetector()
        return detector

    def _decode_opencv(self, gray: np.ndarray) -> Optional[str]:
        try:
            text, _, _ = self._thread_detector().detectAndDecode(gray)
        except cv2.error as e:
            logger.error(f"OpenCV decode error: {e}")
            return None
        return text or None
