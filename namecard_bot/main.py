from __future__ import annotations

import asyncio
import logging

import uvicorn
from pyngrok import ngrok
from pyngrok.ngrok import NgrokTunnel

from namecard_bot.cli import build_parser
from namecard_bot.config import NGROK_AUTHTOKEN, WEBHOOK_PATH, WEBHOOK_URL
from namecard_bot.context import AppContext
from namecard_bot.logging_config import setup_logging
from namecard_bot.secret_store import build_secret_resolver

logger = logging.getLogger("namecard_bot")


def default_webhook_url() -> str | None:
    if not WEBHOOK_URL:
        return None
    return WEBHOOK_URL.rstrip("/") + WEBHOOK_PATH


def open_tunnel(port: int) -> NgrokTunnel:
    """Expose the local port publicly so Telegram can reach the webhook."""
    if NGROK_AUTHTOKEN:
        ngrok.set_auth_token(NGROK_AUTHTOKEN)
    tunnel = ngrok.connect(port)
    logger.info("Ngrok URL: %s", tunnel.public_url)
    return tunnel


def close_tunnel(tunnel: NgrokTunnel) -> None:
    try:
        ngrok.disconnect(tunnel.public_url)
    finally:
        ngrok.kill()


async def register_webhook(url: str) -> None:
    ctx = AppContext(build_secret_resolver())
    try:
        telegram = await ctx.telegram()
        await telegram.register_webhook(url)
    finally:
        await ctx.aclose()


def _register_or_fail(url: str | None) -> bool:
    if not url:
        logger.error("Missing webhook URL: set WEBHOOKURL (and WEBHOOKPATH) or pass --url")
        return False
    try:
        asyncio.run(register_webhook(url))
    except Exception:
        logger.exception("Error setting the Telegram webhook")
        return False
    logger.info("Webhook set to %s", url)
    return True


def serve(host: str, port: int, log_level: str, register: bool = True) -> int:
    tunnel: NgrokTunnel | None = None
    try:
        if register:
            url = default_webhook_url()
            if url is None:
                try:
                    tunnel = open_tunnel(port)
                except Exception:
                    logger.exception("Could not open an ngrok tunnel; set WEBHOOKURL instead")
                    return 1
                url = tunnel.public_url.rstrip("/") + WEBHOOK_PATH
            if not _register_or_fail(url):
                return 1

        logger.info("Local server running on port %d", port)
        uvicorn.run("namecard_bot.app:app", host=host, port=port, log_level=log_level.lower())
        return 0
    finally:
        if tunnel is not None:
            close_tunnel(tunnel)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level.upper())

    if args.command == "set-webhook":
        return 0 if _register_or_fail(args.url or default_webhook_url()) else 1

    return serve(args.host, args.port, args.log_level, register=not args.no_register)


def run() -> None:
    raise SystemExit(main())


if __name__ == "__main__":
    run()
