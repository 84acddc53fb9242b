# app/webhook_handler.py
# ────────────────────────────────────────────
# Handles incoming WooCommerce order webhooks → payload log + order store
# ────────────────────────────────────────────

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from app.config import ORDER_CREATED, ORDER_UPDATED, Settings
from app.errors import InvalidFilename, PayloadAbsent, StorageWriteFailure
from app.storage.order_store import OrderStore, UpsertResult
from app.storage.payload_store import PayloadStore, decode_body
from app.woocommerce.order import parse_order

logger = logging.getLogger("uvicorn.error")


@dataclass
class IngestResult:
    filename: Optional[str] = None
    order_number: Optional[str] = None
    upsert: Optional[UpsertResult] = None
    storage_failed: bool = False


async def handle_webhook(
    event_type: str,
    body: bytes,
    payloads: PayloadStore,
    orders: OrderStore,
    received_at: Optional[datetime] = None,
) -> IngestResult:
    """
    Persist one verified delivery.

    The raw body always goes to the payload log first; when it decodes to an
    order it is also merged into the order store. Storage problems are logged
    and reported through `storage_failed`, never raised.
    """
    received_at = received_at or datetime.now(timezone.utc)
    result = IngestResult()

    try:
        result.filename = payloads.store(event_type, received_at, body)
    except PayloadAbsent:
        logger.warning("[Webhook] %s delivered without a body, nothing stored", event_type)
        return result
    except StorageWriteFailure as e:
        logger.error("[Webhook] Error writing payload file: %s", e)
        result.storage_failed = True
        return result

    decoded = decode_body(body)
    order = parse_order(decoded)
    if order is None:
        logger.warning("[Webhook] %s body is not an order, skipping order store", result.filename)
        return result

    result.order_number = order.number
    try:
        result.upsert = await orders.upsert(decoded, order)
    except InvalidFilename:
        logger.warning("[Webhook] order number %r is not storable, skipping", order.number)
    except (StorageWriteFailure, OSError) as e:
        logger.error("[Webhook] Error saving order data: %s", e)
        result.storage_failed = True
    return result


def describe(settings: Settings) -> str:
    created = bool(settings.secret_for(ORDER_CREATED))
    updated = bool(settings.secret_for(ORDER_UPDATED))
    return (
        f"order-created secret configured: {created}, "
        f"order-updated secret configured: {updated}, "
        f"enforce signature: {settings.enforce_signature}, "
        f"skip validation: {settings.skip_signature_validation}"
    )
