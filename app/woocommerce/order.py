# app/woocommerce/order.py
# =============================
# WooCommerce order bodies (as delivered by order.* webhooks)
# Only the fields the receiver reads are typed; everything else rides along.
# Typed fields are tolerant: a wrong-typed value becomes None rather than
# rejecting the whole order.
# =============================

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from html import unescape
from typing import Annotated, Any, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError, field_validator

from app.config import DEFAULT_CURRENCY_SYMBOL


def parse_wc_datetime(value: Any) -> Optional[datetime]:
    """
    Parse a Woo timestamp ("2024-01-01T10:00:00", "...Z", "...+02:00").
    Naive values are taken as UTC. Returns None for anything unparseable.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def to_decimal(v) -> Optional[Decimal]:
    if v is None or v == "" or isinstance(v, bool):
        return None
    try:
        d = Decimal(str(v))
    except (InvalidOperation, TypeError, ValueError):
        return None
    return d if d.is_finite() else None


def _loose_str(v):
    # Woo sends most scalars as strings, but plugins emit numbers too
    if v is None or isinstance(v, str):
        return v
    if isinstance(v, (int, float, Decimal)) and not isinstance(v, bool):
        return str(v)
    return None


def _loose_int(v):
    if isinstance(v, bool):
        return None
    if isinstance(v, int):
        return v
    if isinstance(v, float) and v.is_integer():
        return int(v)
    if isinstance(v, str) and v.strip().lstrip("-").isdigit():
        return int(v.strip())
    return None


LooseStr = Annotated[Optional[str], BeforeValidator(_loose_str)]
LooseInt = Annotated[Optional[int], BeforeValidator(_loose_int)]


class Address(BaseModel):
    model_config = ConfigDict(extra="allow")

    first_name: LooseStr = ""
    last_name: LooseStr = ""
    company: LooseStr = ""
    address_1: LooseStr = ""
    address_2: LooseStr = ""
    city: LooseStr = ""
    state: LooseStr = ""
    postcode: LooseStr = ""
    country: LooseStr = ""
    email: LooseStr = ""
    phone: LooseStr = ""

    @property
    def lines(self) -> List[str]:
        """Non-empty postal lines, in display order."""
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        city_line = " ".join(p for p in (self.city, self.state, self.postcode) if p)
        return [p for p in (name, self.company, self.address_1, self.address_2, city_line, self.country) if p]


class LineItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: LooseInt = None
    name: LooseStr = ""
    sku: LooseStr = ""
    quantity: LooseInt = 0
    price: LooseStr = None
    total: LooseStr = None


class ShippingLine(BaseModel):
    model_config = ConfigDict(extra="allow")

    method_title: LooseStr = ""
    total: LooseStr = None


def _dicts_only(v):
    return [i for i in v if isinstance(i, dict)] if isinstance(v, list) else []


class WooOrder(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: LooseInt = None
    number: LooseStr = None
    status: LooseStr = "unknown"
    currency: LooseStr = None
    currency_symbol: LooseStr = None
    date_created: LooseStr = None
    date_modified: LooseStr = None
    date_paid: LooseStr = None
    date_completed: LooseStr = None
    total: LooseStr = None
    shipping_total: LooseStr = None
    discount_total: LooseStr = None
    total_tax: LooseStr = None
    customer_id: LooseInt = None
    billing: Address = Field(default_factory=Address)
    shipping: Address = Field(default_factory=Address)
    payment_method: LooseStr = None
    payment_method_title: LooseStr = None
    transaction_id: LooseStr = None
    line_items: List[LineItem] = Field(default_factory=list)
    shipping_lines: List[ShippingLine] = Field(default_factory=list)

    @field_validator("billing", "shipping", mode="before")
    @classmethod
    def _address_or_empty(cls, v):
        return v if isinstance(v, dict) else {}

    @field_validator("line_items", "shipping_lines", mode="before")
    @classmethod
    def _items_or_empty(cls, v):
        return _dicts_only(v)

    @property
    def modified_at(self) -> Optional[datetime]:
        return parse_wc_datetime(self.date_modified)


def parse_order(body: Any) -> Optional[WooOrder]:
    """
    Validate a decoded webhook body as an order.
    Returns None when it is not an object or carries no order number.
    """
    if not isinstance(body, dict):
        return None
    try:
        order = WooOrder.model_validate(body)
    except ValidationError:
        # keep the fields the store needs; the raw body is written untouched
        order = WooOrder.model_construct(
            number=_loose_str(body.get("number")),
            date_modified=_loose_str(body.get("date_modified")),
        )
    if not order.number or not order.number.strip():
        return None
    return order


# -----------------------------
# Dashboard view of an order
# -----------------------------
class OrderSummary(BaseModel):
    order_number: str
    id: Optional[int] = None
    status: str
    currency_symbol: str
    total: Optional[Decimal] = None
    total_formatted: str
    date_created: Optional[datetime] = None
    date_modified: Optional[datetime] = None
    date_paid: Optional[datetime] = None
    customer_name: str
    customer_email: str
    payment_method: str
    is_paid: bool
    item_count: int


class OrderTotals(BaseModel):
    """Totals breakdown for the order page. Zero amounts are left as None."""

    subtotal: Optional[str] = None
    shipping: Optional[str] = None
    discount: Optional[str] = None
    tax: Optional[str] = None
    total: str


def format_total(total: Optional[Decimal], symbol: str) -> str:
    amount = (total or Decimal("0")).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{symbol}{amount}"


def format_money(value: Any, symbol: str) -> str:
    return format_total(to_decimal(value), symbol)


def order_symbol(order: WooOrder, default_symbol: str = DEFAULT_CURRENCY_SYMBOL) -> str:
    # Woo sends the symbol as an HTML entity ("&pound;")
    return unescape(order.currency_symbol or default_symbol)


def summarize_order(order: WooOrder, default_symbol: str = DEFAULT_CURRENCY_SYMBOL) -> OrderSummary:
    total = to_decimal(order.total)
    symbol = order_symbol(order, default_symbol)
    name = f"{order.billing.first_name or ''} {order.billing.last_name or ''}".strip()
    return OrderSummary(
        order_number=order.number or "",
        id=order.id,
        status=order.status or "unknown",
        currency_symbol=symbol,
        total=total,
        total_formatted=format_total(total, symbol),
        date_created=parse_wc_datetime(order.date_created),
        date_modified=order.modified_at,
        date_paid=parse_wc_datetime(order.date_paid),
        customer_name=name or "Unknown",
        customer_email=order.billing.email or "",
        payment_method=order.payment_method_title or order.payment_method or "",
        is_paid=bool(order.date_paid),
        item_count=len(order.line_items),
    )


def order_totals(order: WooOrder, default_symbol: str = DEFAULT_CURRENCY_SYMBOL) -> OrderTotals:
    symbol = order_symbol(order, default_symbol)
    zero = Decimal("0")
    total = to_decimal(order.total) or zero
    shipping = to_decimal(order.shipping_total) or zero
    discount = to_decimal(order.discount_total) or zero
    tax = to_decimal(order.total_tax) or zero

    def shown(amount: Decimal) -> Optional[str]:
        return format_total(amount, symbol) if amount > 0 else None

    return OrderTotals(
        subtotal=shown(total - shipping),
        shipping=shown(shipping),
        discount=shown(discount),
        tax=shown(tax),
        total=format_total(total, symbol),
    )


def order_sort_key(number: str):
    """Numeric order numbers first (highest first when reversed), others after."""
    text = (number or "").strip()
    if text.isdigit():
        return (1, int(text), text)
    return (0, 0, text)
