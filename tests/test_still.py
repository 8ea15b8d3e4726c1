"""
Tests for still-image decoding.
"""

import errno
import tempfile

import cv2
import pytest

from app.scanner.errors import NoCodeFoundError
from app.scanner.still import StillImageDecoder
from fakes import BLACK, QR_TEXT, FakeDecoder, qr_frame


def png(frame) -> bytes:
    ok, encoded = cv2.imencode(".png", frame)
    assert ok
    return encoded.tobytes()


@pytest.fixture
def spool(tmp_path):
    path = tmp_path / "spool"
    path.mkdir()
    return path


def test_decode_image_returns_text(spool):
    still = StillImageDecoder(FakeDecoder(), spool)

    assert still.decode_image(png(qr_frame()), ".png") == QR_TEXT
    assert list(spool.iterdir()) == []


def test_no_code_leaves_no_spool_file(spool):
    still = StillImageDecoder(FakeDecoder(), spool)

    with pytest.raises(NoCodeFoundError):
        still.decode_image(png(BLACK), ".png")

    assert list(spool.iterdir()) == []


def test_garbage_bytes_are_no_code(spool):
    still = StillImageDecoder(FakeDecoder(), spool)

    with pytest.raises(NoCodeFoundError):
        still.decode_image(b"definitely not an image")

    assert list(spool.iterdir()) == []


def test_empty_upload_is_no_code(spool):
    decoder = FakeDecoder()
    still = StillImageDecoder(decoder, spool)

    with pytest.raises(NoCodeFoundError):
        still.decode_image(b"")

    assert decoder.calls == 0


def test_repeated_decodes_do_not_accumulate_files(spool):
    still = StillImageDecoder(FakeDecoder(), spool)

    for _ in range(5):
        still.decode_image(png(qr_frame()), ".png")

    assert list(spool.iterdir()) == []


def test_decode_file(tmp_path):
    path = tmp_path / "ticket.png"
    cv2.imwrite(str(path), qr_frame())

    assert StillImageDecoder(FakeDecoder()).decode_file(path) == QR_TEXT


def test_missing_file_is_no_code(tmp_path):
    with pytest.raises(NoCodeFoundError):
        StillImageDecoder(FakeDecoder()).decode_file(tmp_path / "missing.png")


def test_failed_spool_write_leaves_no_file(spool, monkeypatch):
    real = tempfile.NamedTemporaryFile

    def disk_full(*args, **kwargs):
        handle = real(*args, **kwargs)

        def write(data):
            raise OSError(errno.ENOSPC, "No space left on device")

        handle.write = write
        return handle

    monkeypatch.setattr(tempfile, "NamedTemporaryFile", disk_full)
    still = StillImageDecoder(FakeDecoder(), spool)

    with pytest.raises(OSError):
        still.decode_image(png(qr_frame()), ".png")

    assert list(spool.iterdir()) == []
