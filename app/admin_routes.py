# app/admin_routes.py
# =============================
# Admin Dashboard Routes (read-only)
# =============================

import json
import logging
from pathlib import Path

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse
from fastapi.templating import Jinja2Templates
from pydantic import ValidationError

from app.errors import InvalidFilename
from app.storage.order_store import OrderStore
from app.storage.payload_store import (
    EVENT_LABELS,
    PayloadStore,
    classify_filename,
    timestamp_from_filename,
)
from app.woocommerce.order import WooOrder, format_money, order_totals, summarize_order

logger = logging.getLogger("uvicorn.error")
admin_router = APIRouter()

# Templates
BASE_DIR = Path(__file__).resolve().parent
TEMPLATE_DIR = BASE_DIR / "templates"
templates = Jinja2Templates(directory=str(TEMPLATE_DIR))
templates.env.filters["money"] = format_money


def _payloads(request: Request) -> PayloadStore:
    return request.app.state.payloads


def _orders(request: Request) -> OrderStore:
    return request.app.state.orders


def _error_page(request: Request, message: str, status_code: int) -> HTMLResponse:
    return templates.TemplateResponse(
        request, "error.html", {"message": message}, status_code=status_code,
    )


# -----------------------------
# ✅ Raw payload log
# -----------------------------
@admin_router.get("/payloads")
async def list_payloads(request: Request, format: str = "html"):
    try:
        files = _payloads(request).list_payloads()
    except OSError as e:
        logger.error(f"[Payloads] Failed to list payload files: {e}")
        if format == "json":
            return JSONResponse({"error": "Failed to list payload files", "message": str(e)},
                                status_code=500)
        return _error_page(request, f"Failed to list payload files: {e}", 500)

    if format == "json":
        return JSONResponse([f.as_dict() for f in files])
    return templates.TemplateResponse(request, "payloads.html", {"files": files})


@admin_router.get("/payloads/view/{filename:path}", response_class=HTMLResponse)
async def view_payload(request: Request, filename: str):
    try:
        content, is_json = _payloads(request).read(filename)
    except InvalidFilename:
        return _error_page(request, "Invalid filename", 400)
    except FileNotFoundError:
        return _error_page(request, "Payload file not found", 404)
    except OSError as e:
        logger.error(f"[Payloads] Error reading payload file {filename}: {e}")
        return _error_page(request, f"Failed to read payload file: {e}", 500)

    if not is_json:
        return _error_page(request, "Invalid JSON format", 400)

    body = content if isinstance(content, dict) else {}
    billing = body.get("billing") if isinstance(body.get("billing"), dict) else {}
    customer = f"{billing.get('first_name') or ''} {billing.get('last_name') or ''}".strip()
    context = {
        "filename": filename,
        "label": EVENT_LABELS[classify_filename(filename)],
        "timestamp": timestamp_from_filename(filename),
        "order_id": body.get("id") or "Unknown",
        "order_number": body.get("number") or "Unknown",
        "order_status": body.get("status") or "Unknown",
        "order_total": body.get("total") or "Unknown",
        "customer_name": customer or "Unknown",
        "pretty_json": json.dumps(content, indent=2, ensure_ascii=False),
    }
    return templates.TemplateResponse(request, "payload_view.html", context)


@admin_router.get("/payloads/{filename:path}")
async def get_payload(request: Request, filename: str):
    try:
        content, is_json = _payloads(request).read(filename)
    except InvalidFilename:
        return JSONResponse({"error": "Invalid filename"}, status_code=400)
    except FileNotFoundError:
        return JSONResponse({"error": "Payload file not found"}, status_code=404)
    except OSError as e:
        logger.error(f"[Payloads] Error reading payload file {filename}: {e}")
        return JSONResponse({"error": "Failed to read payload file", "message": str(e)},
                            status_code=500)

    if is_json:
        return JSONResponse(content)
    return PlainTextResponse(content)


# -----------------------------
# ✅ Orders dashboard
# -----------------------------
@admin_router.get("/orders", response_class=HTMLResponse)
async def list_orders(request: Request):
    try:
        orders = _orders(request).list_orders()
    except OSError as e:
        logger.error(f"[Orders] Failed to list orders: {e}")
        return _error_page(request, f"Failed to list orders: {e}", 500)
    return templates.TemplateResponse(request, "orders.html", {"orders": orders})


@admin_router.get("/orders/{order_number}", response_class=HTMLResponse)
async def order_detail(request: Request, order_number: str):
    store = _orders(request)
    try:
        body = store.get(order_number)
    except FileNotFoundError:
        return _error_page(request, f"Order #{order_number} not found", 404)
    except (OSError, ValueError) as e:
        logger.error(f"[Orders] Failed to view order {order_number}: {e}")
        return _error_page(request, f"Failed to view order: {e}", 500)

    try:
        order = WooOrder.model_validate(body if isinstance(body, dict) else {})
        summary = summarize_order(order, store.currency_symbol)
        totals = order_totals(order, store.currency_symbol)
    except ValidationError as e:
        logger.error(f"[Orders] Order {order_number} has an unexpected shape: {e}")
        return _error_page(request, f"Failed to view order: {e}", 500)

    context = {
        "order": order,
        "summary": summary,
        "totals": totals,
        "body": body,
        "pretty_json": json.dumps(body, indent=2, ensure_ascii=False),
    }
    return templates.TemplateResponse(request, "order_detail.html", context)
