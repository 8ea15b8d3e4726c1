"""
OpenCV preview window for capture sessions.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

import cv2
import numpy as np

from app.scanner.backends import VideoStream
from app.scanner.session import VideoSurface


# Module logger
logger = logging.getLogger(__name__)


class OpenCVWindowSurface(VideoSurface):
    """
    Shows live frames in a HighGUI window.

    Pressing 'q' in the window calls on_quit (usually session.stop).
    """

    def __init__(
        self,
        window_name: str = "QR Scanner",
        on_quit: Optional[Callable[[], None]] = None
    ) -> None:
        self._window_name = window_name
        self.on_quit = on_quit
        self._open = False

    def attach(self, stream: VideoStream) -> None:
        cv2.namedWindow(self._window_name, cv2.WINDOW_NORMAL)
        self._open = True
        logger.info(f"📷 Preview on {stream.device_id} (press 'q' to quit)")

    def render(self, frame: np.ndarray) -> None:
        if not self._open:
            return

        cv2.imshow(self._window_name, frame)
        if cv2.waitKey(1) & 0xFF == ord("q"):
            logger.info("User pressed 'q' - stopping scan")
            if self.on_quit is not None:
                self.on_quit()

    def detach(self) -> None:
        if not self._open:
            return
        self._open = False
        cv2.destroyWindow(self._window_name)
