# app/storage/order_store.py
# =============================
# One JSON file per WooCommerce order number
# A delivery only replaces the stored snapshot when its date_modified is newer.
# =============================

import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import Any, List, Optional

from pydantic import ValidationError

from app.config import DEFAULT_CURRENCY_SYMBOL
from app.errors import InvalidFilename, StorageWriteFailure
from app.storage.json_files import atomic_write_json, read_json_or_text, safe_child
from app.utils.locks import KeyedLock
from app.woocommerce.order import (
    OrderSummary,
    WooOrder,
    order_sort_key,
    parse_order,
    summarize_order,
)

logger = logging.getLogger("uvicorn.error")

FILE_PREFIX = "order_"


class UpsertResult(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"


def order_filename(order_number: str) -> str:
    return f"{FILE_PREFIX}{order_number.strip()}.json"


class OrderStore:
    def __init__(self, base_dir: Path, currency_symbol: str = DEFAULT_CURRENCY_SYMBOL):
        self.base_dir = Path(base_dir)
        self.currency_symbol = currency_symbol
        self._locks = KeyedLock()

    def ensure_dir(self) -> None:
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, order_number: str) -> Path:
        return safe_child(self.base_dir, order_filename(order_number))

    def _load_existing(self, path: Path) -> Optional[WooOrder]:
        try:
            raw, is_json = read_json_or_text(path)
        except FileNotFoundError:
            return None
        existing = parse_order(raw) if is_json else None
        if existing is None:
            logger.warning("[Orders] %s is unreadable, overwriting", path.name)
        return existing

    async def upsert(self, body: Any, order: Optional[WooOrder] = None) -> UpsertResult:
        """
        Insert or replace the stored order for body["number"].

        `body` is written verbatim; `order` is its validated view (parsed here
        when not supplied). Raises InvalidFilename for order numbers that are
        not usable as a filename and StorageWriteFailure on I/O errors, including
        failures reading the stored snapshot. File I/O runs in a worker thread
        while the per-number lock is held.
        """
        if order is None:
            order = parse_order(body)
        if order is None:
            raise ValueError("Body is not an order (missing number)")

        number = order.number.strip()
        path = self.path_for(number)

        async with self._locks.hold(number):
            try:
                existing = await asyncio.to_thread(self._load_existing, path)
            except OSError as e:
                raise StorageWriteFailure(path, e) from e
            if existing is not None:
                new_ts, old_ts = order.modified_at, existing.modified_at
                if new_ts is None or (old_ts is not None and new_ts <= old_ts):
                    logger.info(
                        "Order %s already has a more recent update (%s >= %s). Skipping.",
                        number, existing.date_modified, order.date_modified,
                    )
                    return UpsertResult.SKIPPED

            try:
                await asyncio.to_thread(atomic_write_json, path, body)
            except (OSError, TypeError, ValueError) as e:
                raise StorageWriteFailure(path, e) from e

        if existing is None:
            logger.info("Created order %s", number)
            return UpsertResult.CREATED
        logger.info("Updated order %s (%s)", number, order.date_modified)
        return UpsertResult.UPDATED

    def get(self, order_number: str) -> Any:
        """Raw stored body. FileNotFoundError when absent."""
        try:
            path = self.path_for(order_number)
        except InvalidFilename:
            raise FileNotFoundError(order_number)
        if not path.is_file():
            raise FileNotFoundError(order_number)
        raw, is_json = read_json_or_text(path)
        if not is_json:
            raise ValueError(f"Order file {path.name} is not valid JSON")
        return raw

    def list_orders(self) -> List[OrderSummary]:
        summaries: List[OrderSummary] = []
        for path in self.base_dir.iterdir():
            name = path.name
            if not (name.startswith(FILE_PREFIX) and name.endswith(".json")) or not path.is_file():
                continue
            try:
                raw, is_json = read_json_or_text(path)
            except FileNotFoundError:
                continue
            order = parse_order(raw) if is_json else None
            if order is None:
                logger.warning("[Orders] skipping unreadable %s", name)
                continue
            try:
                summaries.append(summarize_order(order, self.currency_symbol))
            except ValidationError as e:
                logger.warning("[Orders] skipping %s: %s", name, e)
        summaries.sort(key=lambda s: order_sort_key(s.order_number), reverse=True)
        return summaries
