from __future__ import annotations

import argparse

from namecard_bot.config import PORT


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="namecard-bot",
        description="Telegram name card extraction bot",
    )
    p.add_argument("--log-level", default="INFO", help="Python logging level (INFO, DEBUG, ...)")

    sub = p.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the webhook server locally")
    serve.add_argument("--host", default="0.0.0.0", help="Bind address")
    serve.add_argument("--port", type=int, default=PORT, help="Bind port (default from env PORT)")
    serve.add_argument(
        "--no-register",
        action="store_true",
        help="Do not register the webhook (WEBHOOKURL, or an ngrok tunnel) on startup",
    )

    hook = sub.add_parser("set-webhook", help="Register a webhook URL with Telegram and exit")
    hook.add_argument(
        "--url",
        default=None,
        help="Full webhook URL (default: env WEBHOOKURL + WEBHOOKPATH)",
    )
    return p
