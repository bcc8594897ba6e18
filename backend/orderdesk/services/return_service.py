# Overview: Return planning for goods handed back while a new order is taken; pure computation.

"""
Return Processing

A customer may hand back goods from an earlier order while a new order is
being taken. The returned units go straight back into the exact batch the
caller names (not a FEFO choice) and their value is credited against the
new order.

DESIGN PRINCIPLES:
- Planning only: produces a ReturnPlan, the Transaction Coordinator writes it
- Every item must name an existing batch of the named product, otherwise
  the whole order submission fails (nothing is skipped)
- item total = quantity x unit price; return total = sum of item totals
- Returned quantity is NOT checked against what the original order sold
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from ..models.returns import RETURN_STATUS_PROCESSED
from .fefo_service import BatchStock, StockDelta
from .identifier_service import IdentifierGenerator, generate_identifier
from .order_errors import ReturnError
from .order_schemas import ReturnRequest


@dataclass(frozen=True)
class PlannedReturnItem:
    return_item_id: str
    product_id: int
    batch_id: int
    quantity: int
    unit_price_cents: int
    total_price_cents: int
    reason: str


@dataclass(frozen=True)
class ReturnPlan:
    return_id: str
    order_id: str
    processed_by: int
    reason: str
    total_amount_cents: int
    items: tuple[PlannedReturnItem, ...]
    stock_increments: tuple[StockDelta, ...]
    status: str = RETURN_STATUS_PROCESSED


def plan_return(
    request: ReturnRequest,
    *,
    processed_by: int,
    known_batches: Mapping[int, BatchStock],
    new_id: IdentifierGenerator = generate_identifier,
) -> ReturnPlan:
    """
    Price the returned items and stage their stock increments.

    Args:
        request: Parsed returns payload (original order, reason, items)
        processed_by: User recorded as processing the return
        known_batches: Batches referenced by the items, keyed by id, as read
            from the store; a missing key means the batch does not exist

    Raises:
        ReturnError: If an item names an unknown batch, or a batch that
            belongs to another product
    """
    if not request.items:
        raise ReturnError("Return has no items")

    return_id = new_id("return")
    items: list[PlannedReturnItem] = []
    increments: dict[tuple[int, int], int] = {}
    total = 0

    for item in request.items:
        batch = known_batches.get(item.batch_id)
        if batch is None:
            raise ReturnError(
                f"Batch {item.batch_id} not found",
                details={"batch_id": item.batch_id, "product_id": item.product_id},
            )
        if batch.product_id != item.product_id:
            raise ReturnError(
                f"Batch {item.batch_id} does not belong to product {item.product_id}",
                details={"batch_id": item.batch_id, "product_id": item.product_id},
            )

        item_total = item.quantity * item.unit_price_cents
        total += item_total

        items.append(PlannedReturnItem(
            return_item_id=new_id("return_item"),
            product_id=item.product_id,
            batch_id=item.batch_id,
            quantity=item.quantity,
            unit_price_cents=item.unit_price_cents,
            total_price_cents=item_total,
            reason=item.reason,
        ))
        key = (item.batch_id, item.product_id)
        increments[key] = increments.get(key, 0) + item.quantity

    return ReturnPlan(
        return_id=return_id,
        order_id=request.order_id,
        processed_by=processed_by,
        reason=request.reason,
        total_amount_cents=total,
        items=tuple(items),
        stock_increments=tuple(
            StockDelta(batch_id, product_id, qty)
            for (batch_id, product_id), qty in increments.items()
        ),
    )
