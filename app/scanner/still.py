"""
==============================================================================
Still Image Decoding
==============================================================================

Decodes a QR code from an uploaded or on-disk image.

Uploaded bytes are spooled to a temporary file that is removed on every
outcome, so repeated decodes leave nothing behind.

==============================================================================
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

import cv2

from app.scanner.decoder import DecodeFn, QRDecoder
from app.scanner.errors import NoCodeFoundError


# Module logger
logger = logging.getLogger(__name__)


class StillImageDecoder:
    """
    One-shot QR decoder for still images.

    Example:
        >>> still = StillImageDecoder()
        >>> still.decode_file(Path("ticket.png"))
        'https://raffle.example/?raffleId=42'
    """

    def __init__(
        self,
        decoder: Optional[DecodeFn] = None,
        spool_dir: Optional[Union[str, Path]] = None
    ) -> None:
        """
        Initialize still decoder.

        Args:
            decoder: Decode capability (QRDecoder if None)
            spool_dir: Directory for temporary upload files (system temp if None)
        """
        self._decoder = decoder or QRDecoder()
        self._spool_dir = str(spool_dir) if spool_dir else None

    def decode_image(self, data: bytes, suffix: str = ".img") -> str:
        """
        Decode the first QR code in encoded image bytes.

        Args:
            data: Encoded image (PNG, JPEG, ...)
            suffix: Temporary file suffix

        Returns:
            Decoded text

        Raises:
            NoCodeFoundError: If the image is unreadable or holds no QR code
        """
        if not data:
            raise NoCodeFoundError("Empty image")

        spool = tempfile.NamedTemporaryFile(suffix=suffix, dir=self._spool_dir, delete=False)
        path = spool.name

        try:
            with spool:
                spool.write(data)
            return self.decode_file(path)
        finally:
            os.unlink(path)

    def decode_file(self, path: Union[str, Path]) -> str:
        """
        Decode the first QR code in an image file.

        Raises:
            NoCodeFoundError: If the image is unreadable or holds no QR code
        """
        image = cv2.imread(str(path))
        if image is None:
            logger.error(f"Could not read image: {path}")
            raise NoCodeFoundError(f"Could not read image: {path}")

        text = self._decoder(image)
        if not text:
            raise NoCodeFoundError("No QR code in image")

        logger.info(f"QR decoded from still image ({len(text)} chars)")
        return text
