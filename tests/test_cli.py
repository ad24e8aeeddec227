"""
Tests for the command line helpers and startup validation
"""

import base64

import pytest

from qrconnect.cli import build_parser, main, write_qr_image
from qrconnect.client import ProxyAPIClient
from qrconnect.exceptions import ApiError
from qrconnect.startup_validation import ProxySettings, validate_environment


class TestWriteQrImage:
    def test_data_uri_is_decoded(self, tmp_path):
        target = tmp_path / "qr.png"
        payload = "data:image/png;base64," + base64.b64encode(b"\x89PNG").decode()

        assert write_qr_image(payload, str(target))
        assert target.read_bytes() == b"\x89PNG"

    def test_plain_base64(self, tmp_path):
        target = tmp_path / "qr.png"
        assert write_qr_image(base64.b64encode(b"img").decode(), str(target))
        assert target.read_bytes() == b"img"

    def test_invalid_payload_writes_nothing(self, tmp_path):
        target = tmp_path / "qr.png"
        assert not write_qr_image("not base64!", str(target))
        assert not write_qr_image("", str(target))
        assert not target.exists()


class TestParser:
    def test_onboard_options(self):
        args = build_parser().parse_args(["onboard", "--name", "Clinic One", "--phone", "41999999999"])
        assert args.command == "onboard"
        assert args.name == "Clinic One"
        assert args.qr_out == "qrcode.png"

    def test_status_requires_token(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["status"])


class TestStartupValidation:
    def test_valid_settings(self, monkeypatch):
        monkeypatch.setenv("EVOLUTION_API_URL", "https://evolution.example.com/")
        monkeypatch.setenv("MASTER_API_KEY", "secret")

        settings = ProxySettings()

        assert settings.EVOLUTION_API_URL == "https://evolution.example.com"
        assert validate_environment()

    def test_invalid_url(self, monkeypatch):
        monkeypatch.setenv("EVOLUTION_API_URL", "evolution.example.com")
        monkeypatch.setenv("MASTER_API_KEY", "secret")

        assert not validate_environment()

    def test_blank_master_key(self, monkeypatch):
        monkeypatch.setenv("EVOLUTION_API_URL", "http://evolution.test")
        monkeypatch.setenv("MASTER_API_KEY", "  ")

        assert not validate_environment()


class TestCommandFailures:
    """Proxy and network failures end with a message and exit status 1"""

    UNREACHABLE = "http://127.0.0.1:9"

    def test_status_against_unreachable_proxy(self, capsys):
        code = main(["status", "--api-url", self.UNREACHABLE, "--token", "x"])

        assert code == 1
        assert "Status check failed" in capsys.readouterr().err

    def test_status_rejected_token(self, monkeypatch, capsys):
        async def rejected(self, token):
            raise ApiError(401, "Unauthorized")

        monkeypatch.setattr(ProxyAPIClient, "get_instance_status", rejected)

        assert main(["status", "--api-url", self.UNREACHABLE, "--token", "x"]) == 1
        assert "Unauthorized" in capsys.readouterr().err

    def test_login_against_unreachable_proxy(self, capsys):
        code = main(["login", "--api-url", self.UNREACHABLE, "--backend", "memory", "--token", "x"])

        assert code == 1
        assert "Login failed" in capsys.readouterr().err

    def test_onboard_against_unreachable_proxy(self, tmp_path, capsys):
        code = main([
            "onboard",
            "--api-url", self.UNREACHABLE,
            "--backend", "memory",
            "--name", "Clinic One",
            "--phone", "41999999999",
            "--qr-out", str(tmp_path / "qr.png"),
        ])

        assert code == 1
        assert "Error:" in capsys.readouterr().err
