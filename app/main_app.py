# =============================
# ✅ Import and Load .env at startup
# =============================
import os
from dotenv import load_dotenv
load_dotenv(dotenv_path=os.path.join(os.path.dirname(__file__), ".env"))

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from fastapi.staticfiles import StaticFiles

from app.admin_routes import admin_router
from app.config import ORDER_CREATED, ORDER_UPDATED, SERVICE_NAME, Settings, load_settings
from app.errors import SignatureMismatch, SignatureMissing
from app.storage.order_store import OrderStore
from app.storage.payload_store import PayloadStore
from app.utils.locks import InFlight
from app.webhook_handler import describe, handle_webhook
from app.woocommerce.signature import SIGNATURE_HEADER, check_webhook_signature

logger = logging.getLogger("uvicorn.error")

STATIC_DIR = Path(__file__).resolve().parent / "static"

ENDPOINTS = [
    "/webhooks/{source}/order-created",
    "/webhooks/{source}/order-updated",
    "/admin/orders",
    "/admin/orders/{order_number}",
    "/admin/payloads",
    "/admin/payloads/{filename}",
    "/admin/payloads/view/{filename}",
]


# =============================
# ✅ Startup / shutdown
# =============================
@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    for store in (app.state.payloads, app.state.orders):
        try:
            store.ensure_dir()
            logger.info(f"Directory created/exists: {store.base_dir}")
        except OSError as e:
            logger.error(f"Error creating directory {store.base_dir}: {e}")
    logger.info("[Startup] %s", describe(settings))

    yield

    in_flight: InFlight = app.state.in_flight
    if in_flight.count:
        logger.info("[Shutdown] waiting for %d in-flight webhook(s)", in_flight.count)
    if not await in_flight.drain(settings.shutdown_drain_secs):
        logger.warning("[Shutdown] %d webhook(s) still running after %.1fs",
                       in_flight.count, settings.shutdown_drain_secs)


# =============================
# ✅ FastAPI App Initialization
# =============================
def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()

    app = FastAPI(title=SERVICE_NAME, lifespan=lifespan)
    app.state.settings = settings
    app.state.payloads = PayloadStore(settings.payloads_dir)
    app.state.orders = OrderStore(settings.orders_dir, settings.currency_symbol)
    app.state.in_flight = InFlight()

    # ---- Static files (served from app/static) ----
    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

    # ---- Admin router once, with prefix ----
    app.include_router(admin_router, prefix="/admin")

    @app.middleware("http")
    async def request_timeout(request: Request, call_next):
        try:
            return await asyncio.wait_for(call_next(request), settings.request_timeout_secs)
        except asyncio.TimeoutError:
            logger.error("[Timeout] %s %s exceeded %.1fs",
                         request.method, request.url.path, settings.request_timeout_secs)
            return PlainTextResponse("Request timed out", status_code=504)

    @app.get("/")
    def root():
        return {"status": "ok", "service": SERVICE_NAME, "endpoints": ENDPOINTS}

    # ======================================
    # ✅ Webhook Handlers (public endpoints)
    # ======================================
    @app.post("/webhooks/{source}/order-created", response_class=PlainTextResponse)
    async def order_created(source: str, request: Request):
        return await receive_webhook(request, source, ORDER_CREATED)

    @app.post("/webhooks/{source}/order-updated", response_class=PlainTextResponse)
    async def order_updated(source: str, request: Request):
        return await receive_webhook(request, source, ORDER_UPDATED)

    return app


async def receive_webhook(request: Request, source: str, event_type: str) -> PlainTextResponse:
    settings: Settings = request.app.state.settings
    logger.info(f"[Webhook] Received {event_type} from {source}")

    # raw bytes, before anything parses them: the signature covers these exactly
    body = await request.body()
    try:
        check_webhook_signature(settings, event_type, body, request.headers.get(SIGNATURE_HEADER))
    except (SignatureMissing, SignatureMismatch) as e:
        return PlainTextResponse(str(e), status_code=401)

    try:
        async with request.app.state.in_flight.track():
            result = await handle_webhook(
                event_type, body, request.app.state.payloads, request.app.state.orders,
            )
    except Exception:
        logger.exception("[Webhook] Failed to process %s", event_type)
        return PlainTextResponse("Internal Server Error", status_code=500)

    if result.storage_failed and not settings.ack_on_storage_failure:
        return PlainTextResponse("Failed to store webhook", status_code=500)
    return PlainTextResponse("Webhook received")


app = create_app()


def run():
    settings: Settings = app.state.settings
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        timeout_graceful_shutdown=max(1, int(settings.shutdown_drain_secs)),
    )


if __name__ == "__main__":
    run()
