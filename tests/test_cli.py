"""
Tests for the command line entry point (no camera hardware needed).
"""

import cv2
import pytest

from app import cli
from app.scanner.opencv_backend import OpenCVCameraBackend
from fakes import BLACK, FakeBackend, FakeDecoder, qr_frame


@pytest.fixture
def ticket(tmp_path):
    path = tmp_path / "ticket.png"
    cv2.imwrite(str(path), qr_frame())
    return path


@pytest.fixture
def fake_decoder(monkeypatch):
    decoder = FakeDecoder()
    monkeypatch.setattr(cli, "QRDecoder", lambda: decoder)
    return decoder


class TestDecodeCommand:

    def test_parseable_code(self, ticket, fake_decoder, capsys):
        assert cli.main(["decode", str(ticket)]) == 0

        output = capsys.readouterr().out
        assert '"success": true' in output
        assert '"raffleId": "123"' in output

    def test_unparseable_code(self, ticket, fake_decoder, capsys):
        fake_decoder.text = "hello world"

        assert cli.main(["decode", str(ticket)]) == 2
        assert '"kind": "unparseable"' in capsys.readouterr().out

    def test_image_without_code(self, tmp_path, fake_decoder, capsys):
        path = tmp_path / "blank.png"
        cv2.imwrite(str(path), BLACK)

        assert cli.main(["decode", str(path)]) == 1
        assert "❌" in capsys.readouterr().out

    def test_missing_image(self, tmp_path, fake_decoder):
        assert cli.main(["decode", str(tmp_path / "missing.png")]) == 1


class TestDevicesCommand:

    def test_lists_devices_and_marks_default(self, monkeypatch, capsys):
        monkeypatch.setattr(cli, "_backend", FakeBackend)

        assert cli.main(["devices"]) == 0

        lines = capsys.readouterr().out.splitlines()
        assert len(lines) == 2
        assert lines[1].startswith("* cam-back")
        assert lines[0].startswith("  cam-front")

    def test_no_cameras(self, tmp_path, monkeypatch, capsys):
        monkeypatch.setattr(
            cli,
            "_backend",
            lambda: OpenCVCameraBackend(probe_limit=0, dev_root=tmp_path, sysfs_root=tmp_path),
        )

        assert cli.main(["devices"]) == 1
        assert "No cameras found" in capsys.readouterr().out


def test_command_is_required():
    with pytest.raises(SystemExit):
        cli.main([])
