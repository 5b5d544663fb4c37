"""FastAPI entry point for the name card bot.

Endpoints:
- POST /telegram-webhook    Telegram update delivery
- GET|POST /setup-webhook   Register this service's own URL with Telegram
- GET  /                    Status and setup hint
- GET  /liveness            Health check
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated, cast

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from namecard_bot.config import LOG_LEVEL, PUBLIC_BASE_URL, WEBHOOK_PATH
from namecard_bot.context import AppContext
from namecard_bot.logging_config import generate_request_id, setup_logging
from namecard_bot.models import HealthResponse, SetupWebhookResponse, StatusResponse
from namecard_bot.secret_store import build_secret_resolver
from namecard_bot.webhook import handle_update

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: build the client context, close it on shutdown."""
    setup_logging(level=LOG_LEVEL, force=False)
    app.state.ctx = AppContext(build_secret_resolver())
    logger.info("Name card bot started")
    yield
    await app.state.ctx.aclose()
    logger.info("Name card bot stopped")


app = FastAPI(
    title="Name Card Bot",
    version="0.1.0",
    lifespan=lifespan,
)


def get_context(request: Request) -> AppContext:
    """Dependency: the process-wide AppContext created in lifespan."""
    return cast(AppContext, request.app.state.ctx)


# -- Request ID middleware ----------------------------------------------------


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Attach a unique request ID for trace correlation."""
    request_id = request.headers.get("x-request-id") or generate_request_id()
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["x-request-id"] = request_id
    return response


# -- Health -------------------------------------------------------------------


@app.get("/", response_model=StatusResponse)
async def root() -> StatusResponse:
    return StatusResponse(
        status="ok",
        message="Name Card Bot is running",
        setup="Visit /setup-webhook to configure the Telegram webhook automatically",
    )


@app.get("/liveness", response_model=HealthResponse)
async def liveness() -> HealthResponse:
    return HealthResponse(status="ok")


# -- Telegram -----------------------------------------------------------------


def public_webhook_url(request: Request) -> str:
    """This service's own webhook URL.

    Uses PUBLIC_BASE_URL when configured, otherwise the URL the request arrived
    on. Forwarded headers are trusted only through uvicorn's proxy_headers
    handling (FORWARDED_ALLOW_IPS), never read directly here.
    """
    if PUBLIC_BASE_URL:
        return PUBLIC_BASE_URL.rstrip("/") + WEBHOOK_PATH
    return f"{request.url.scheme}://{request.url.netloc}{WEBHOOK_PATH}"


@app.api_route("/setup-webhook", methods=["GET", "POST"], response_model=SetupWebhookResponse)
async def setup_webhook(
    request: Request,
    ctx: Annotated[AppContext, Depends(get_context)],
) -> JSONResponse:
    webhook_url = public_webhook_url(request)
    try:
        telegram = await ctx.telegram()
        await telegram.register_webhook(webhook_url)
    except Exception as e:
        logger.exception("Error setting webhook to %s", webhook_url)
        body = SetupWebhookResponse(success=False, message=f"Error setting webhook: {e}")
        return JSONResponse(status_code=500, content=body.model_dump())

    body = SetupWebhookResponse(success=True, message=f"Webhook set successfully to: {webhook_url}")
    return JSONResponse(status_code=200, content=body.model_dump())


@app.post(WEBHOOK_PATH)
async def telegram_webhook(
    request: Request,
    ctx: Annotated[AppContext, Depends(get_context)],
) -> PlainTextResponse:
    """Receive a Telegram update; the status code tells Telegram whether to redeliver."""
    logger.info("Webhook called: telegram handler")
    body = await request.body()
    result = await handle_update(body, ctx)
    return PlainTextResponse(result.body, status_code=result.status_code)
