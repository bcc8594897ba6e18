from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from ..models.orders import PAYMENT_TYPES
from ..models.returns import RETURN_REASONS
from .order_errors import OrderValidationError

# Maximum price: 9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999

DEFAULT_RETURN_REASON = "Items returned during new order"
DEFAULT_RETURN_ITEM_REASON = "unwanted"


@dataclass(frozen=True)
class OrderLineRequest:
    product_id: int
    quantity: int
    unit_price_cents: int
    discount_cents: int = 0


@dataclass(frozen=True)
class ReturnItemRequest:
    product_id: int
    batch_id: int
    quantity: int
    unit_price_cents: int
    reason: str = DEFAULT_RETURN_ITEM_REASON


@dataclass(frozen=True)
class ReturnRequest:
    order_id: str
    items: tuple[ReturnItemRequest, ...]
    reason: str = DEFAULT_RETURN_REASON


@dataclass(frozen=True)
class OrderRequest:
    customer_id: int
    payment_type: str
    order_items: tuple[OrderLineRequest, ...]
    sales_rep_id: int | None = None
    notes: str | None = None
    returns: ReturnRequest | None = None


def _field(data: dict, *names: str) -> Any:
    # snake_case first, then the camelCase the mobile client sends
    for name in names:
        if name in data and data[name] is not None:
            return data[name]
    return None


def _to_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def _to_int(value: Any, label: str) -> int:
    # Strict: reject floats, bools, decimals and scientific notation
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if re.fullmatch(r"-?\d+", stripped):
            return int(stripped)
    raise OrderValidationError(f"{label} must be an integer", details={"field": label})


def _to_positive_int(value: Any, label: str) -> int:
    result = _to_int(value, label)
    if result <= 0:
        raise OrderValidationError(f"{label} must be a positive integer", details={"field": label})
    return result


def _to_cents(data: dict, cents_key: str, amount_key: str, label: str, *, required: bool) -> int:
    """
    Money from either integer cents (`cents_key`) or a decimal amount
    (`amount_key`, converted half-up to the nearest cent).
    """
    if data.get(cents_key) is not None:
        cents = _to_int(data[cents_key], f"{label}.{cents_key}")
    elif data.get(amount_key) is not None:
        raw = data[amount_key]
        if isinstance(raw, bool):
            raise OrderValidationError(f"{label}.{amount_key} must be a number", details={"field": label})
        try:
            amount = Decimal(str(raw).strip())
        except InvalidOperation:
            raise OrderValidationError(f"{label}.{amount_key} must be a number", details={"field": label})
        if not amount.is_finite():
            raise OrderValidationError(f"{label}.{amount_key} must be a number", details={"field": label})
        cents = int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    elif required:
        raise OrderValidationError(f"{label}.{cents_key} is required", details={"field": label})
    else:
        return 0

    if cents < 0:
        raise OrderValidationError(f"{label} amount cannot be negative", details={"field": label})
    if cents > MAX_PRICE_CENTS:
        raise OrderValidationError(f"{label} amount is too large", details={"field": label})
    return cents


def _parse_line(raw: Any, index: int) -> OrderLineRequest:
    label = f"order_items[{index}]"
    if not isinstance(raw, dict):
        raise OrderValidationError(f"{label} must be an object", details={"field": label})

    product_id = _field(raw, "product_id", "productId")
    if product_id is None:
        raise OrderValidationError(f"{label}.product_id is required", details={"field": label})

    line = OrderLineRequest(
        product_id=_to_int(product_id, f"{label}.product_id"),
        quantity=_to_positive_int(raw.get("quantity"), f"{label}.quantity"),
        unit_price_cents=_to_cents(raw, "unit_price_cents", "unit_price", label, required=True),
        discount_cents=_to_cents(raw, "discount_cents", "discount", label, required=False),
    )
    if line.discount_cents > line.quantity * line.unit_price_cents:
        raise OrderValidationError(
            f"{label} discount exceeds line amount",
            details={"field": label},
        )
    return line


def _parse_return_item(raw: Any, index: int) -> ReturnItemRequest:
    label = f"returns.items[{index}]"
    if not isinstance(raw, dict):
        raise OrderValidationError(f"{label} must be an object", details={"field": label})

    product_id = _field(raw, "product_id", "productId")
    batch_id = _field(raw, "batch_id", "batchId")
    if product_id is None or batch_id is None:
        raise OrderValidationError(f"{label}.product_id and batch_id are required", details={"field": label})

    reason = _to_text(raw.get("reason")) or DEFAULT_RETURN_ITEM_REASON
    if reason not in RETURN_REASONS:
        raise OrderValidationError(
            f"{label}.reason must be one of: {', '.join(RETURN_REASONS)}",
            details={"field": label},
        )

    return ReturnItemRequest(
        product_id=_to_int(product_id, f"{label}.product_id"),
        batch_id=_to_int(batch_id, f"{label}.batch_id"),
        quantity=_to_positive_int(raw.get("quantity"), f"{label}.quantity"),
        unit_price_cents=_to_cents(raw, "unit_price_cents", "unit_price", label, required=True),
        reason=reason,
    )


def _parse_returns(raw: Any) -> ReturnRequest | None:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise OrderValidationError("returns must be an object", details={"field": "returns"})

    items = raw.get("items") or []
    if not isinstance(items, list):
        raise OrderValidationError("returns.items must be a list", details={"field": "returns.items"})
    if not items:
        # An empty returns block is the same as no returns
        return None

    order_id = _to_text(_field(raw, "order_id", "orderId"))
    if not order_id:
        raise OrderValidationError("returns.order_id is required", details={"field": "returns.order_id"})

    return ReturnRequest(
        order_id=order_id,
        items=tuple(_parse_return_item(item, i) for i, item in enumerate(items)),
        reason=_to_text(raw.get("reason")) or DEFAULT_RETURN_REASON,
    )


def parse_order_request(payload: Any) -> OrderRequest:
    """
    Validate and normalize a create-order JSON body.

    Raises OrderValidationError on the first problem found; nothing is read
    from or written to the database.
    """
    if not isinstance(payload, dict):
        raise OrderValidationError("Request body must be a JSON object")

    customer_id = _field(payload, "customer_id", "customerId")
    if customer_id is None:
        raise OrderValidationError("customer_id is required", details={"field": "customer_id"})

    payment_type = _to_text(_field(payload, "payment_type", "paymentType"))
    if payment_type not in PAYMENT_TYPES:
        raise OrderValidationError(
            f"payment_type must be one of: {', '.join(PAYMENT_TYPES)}",
            details={"field": "payment_type"},
        )

    raw_lines = _field(payload, "order_items", "orderItems")
    if not isinstance(raw_lines, list) or not raw_lines:
        raise OrderValidationError("order_items must be a non-empty list", details={"field": "order_items"})

    sales_rep_id = _field(payload, "sales_rep_id", "salesRepId")

    return OrderRequest(
        customer_id=_to_int(customer_id, "customer_id"),
        payment_type=payment_type,
        order_items=tuple(_parse_line(line, i) for i, line in enumerate(raw_lines)),
        sales_rep_id=_to_int(sales_rep_id, "sales_rep_id") if sales_rep_id is not None else None,
        notes=_to_text(payload.get("notes")),
        returns=_parse_returns(payload.get("returns")),
    )
