"""Unit tests for the namecard-bot CLI."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from namecard_bot.cli import build_parser
from namecard_bot.main import main


@pytest.fixture(autouse=True)
def _no_logging_setup():
    with patch("namecard_bot.main.setup_logging"):
        yield


class TestParser:
    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_serve_defaults(self):
        args = build_parser().parse_args(["serve"])
        assert args.host == "0.0.0.0"
        assert args.no_register is False


class TestSetWebhook:
    @patch("namecard_bot.main.register_webhook", new_callable=AsyncMock)
    def test_explicit_url(self, mock_register):
        assert main(["set-webhook", "--url", "https://bot.example.com/telegram-webhook"]) == 0
        mock_register.assert_awaited_once_with("https://bot.example.com/telegram-webhook")

    @patch("namecard_bot.main.WEBHOOK_URL", "https://abc.ngrok.app/")
    @patch("namecard_bot.main.WEBHOOK_PATH", "/telegram-webhook")
    @patch("namecard_bot.main.register_webhook", new_callable=AsyncMock)
    def test_url_from_env(self, mock_register):
        assert main(["set-webhook"]) == 0
        mock_register.assert_awaited_once_with("https://abc.ngrok.app/telegram-webhook")

    @patch("namecard_bot.main.WEBHOOK_URL", None)
    @patch("namecard_bot.main.register_webhook", new_callable=AsyncMock)
    def test_missing_url_fails(self, mock_register):
        assert main(["set-webhook"]) == 1
        mock_register.assert_not_awaited()

    @patch("namecard_bot.main.register_webhook", new_callable=AsyncMock, side_effect=RuntimeError("Unauthorized"))
    def test_registration_error_fails(self, _mock_register):
        assert main(["set-webhook", "--url", "https://x/telegram-webhook"]) == 1


class TestServe:
    @patch("namecard_bot.main.uvicorn.run")
    @patch("namecard_bot.main.register_webhook", new_callable=AsyncMock)
    def test_no_register_skips_webhook(self, mock_register, mock_run):
        assert main(["serve", "--no-register", "--port", "8080"]) == 0
        mock_register.assert_not_awaited()
        mock_run.assert_called_once()
        assert mock_run.call_args.kwargs["port"] == 8080

    @patch("namecard_bot.main.WEBHOOK_URL", "https://abc.example.com")
    @patch("namecard_bot.main.ngrok")
    @patch("namecard_bot.main.uvicorn.run")
    @patch("namecard_bot.main.register_webhook", new_callable=AsyncMock)
    def test_configured_url_skips_tunnel(self, mock_register, mock_run, mock_ngrok):
        assert main(["serve"]) == 0
        mock_register.assert_awaited_once_with("https://abc.example.com/telegram-webhook")
        mock_ngrok.connect.assert_not_called()


class TestTunnel:
    @patch("namecard_bot.main.WEBHOOK_URL", None)
    @patch("namecard_bot.main.NGROK_AUTHTOKEN", "ngrok-token")
    @patch("namecard_bot.main.ngrok")
    @patch("namecard_bot.main.uvicorn.run")
    @patch("namecard_bot.main.register_webhook", new_callable=AsyncMock)
    def test_opens_tunnel_and_registers_it(self, mock_register, mock_run, mock_ngrok):
        mock_ngrok.connect.return_value = MagicMock(public_url="https://a1b2.ngrok-free.app")

        assert main(["serve", "--port", "3000"]) == 0

        mock_ngrok.set_auth_token.assert_called_once_with("ngrok-token")
        mock_ngrok.connect.assert_called_once_with(3000)
        mock_register.assert_awaited_once_with("https://a1b2.ngrok-free.app/telegram-webhook")
        mock_run.assert_called_once()
        mock_ngrok.disconnect.assert_called_once_with("https://a1b2.ngrok-free.app")
        mock_ngrok.kill.assert_called_once()

    @patch("namecard_bot.main.WEBHOOK_URL", None)
    @patch("namecard_bot.main.ngrok")
    @patch("namecard_bot.main.uvicorn.run", side_effect=KeyboardInterrupt)
    @patch("namecard_bot.main.register_webhook", new_callable=AsyncMock)
    def test_tunnel_closed_when_server_stops(self, _mock_register, _mock_run, mock_ngrok):
        mock_ngrok.connect.return_value = MagicMock(public_url="https://a1b2.ngrok-free.app")

        with pytest.raises(KeyboardInterrupt):
            main(["serve"])

        mock_ngrok.kill.assert_called_once()

    @patch("namecard_bot.main.WEBHOOK_URL", None)
    @patch("namecard_bot.main.ngrok")
    @patch("namecard_bot.main.uvicorn.run")
    @patch("namecard_bot.main.register_webhook", new_callable=AsyncMock, side_effect=RuntimeError("Unauthorized"))
    def test_registration_failure_closes_tunnel(self, _mock_register, mock_run, mock_ngrok):
        mock_ngrok.connect.return_value = MagicMock(public_url="https://a1b2.ngrok-free.app")

        assert main(["serve"]) == 1

        mock_run.assert_not_called()
        mock_ngrok.kill.assert_called_once()

    @patch("namecard_bot.main.WEBHOOK_URL", None)
    @patch("namecard_bot.main.ngrok")
    @patch("namecard_bot.main.uvicorn.run")
    def test_tunnel_failure_fails(self, mock_run, mock_ngrok):
        mock_ngrok.connect.side_effect = RuntimeError("ngrok not installed")

        assert main(["serve"]) == 1

        mock_run.assert_not_called()
        mock_ngrok.kill.assert_not_called()
