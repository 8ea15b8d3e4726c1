"""
Tests for the QR decode capability.
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import numpy as np

from app.scanner.decoder import QRDecoder


WHITE = np.full((64, 64, 3), 255, dtype=np.uint8)


def test_blank_and_empty_images_have_no_code():
    decoder = QRDecoder()

    assert decoder(WHITE) is None
    assert decoder(np.zeros((0, 0, 3), dtype=np.uint8)) is None
    assert decoder(None) is None


def test_detector_is_reused_within_a_thread():
    decoder = QRDecoder()

    assert decoder._thread_detector() is decoder._thread_detector()


def test_each_thread_gets_its_own_detector():
    decoder = QRDecoder()
    barrier = threading.Barrier(4)

    def detector_id(_):
        barrier.wait()
        return id(decoder._thread_detector())

    with ThreadPoolExecutor(max_workers=4) as pool:
        ids = list(pool.map(detector_id, range(4)))

    assert len(set(ids)) == 4


def test_concurrent_decodes_share_one_decoder():
    decoder = QRDecoder()

    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(decoder, [WHITE] * 16))

    assert results == [None] * 16
