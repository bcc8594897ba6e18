# Overview: First-Expiry-First-Out batch allocation; pure computation, no database access.

"""
FEFO Allocation

A requested order line (product, quantity, unit price, discount) is split
across the product's batches, soonest expiry first, until the quantity is
covered. Nothing here touches the database: callers pass in the batches
they read (under lock) and get back immutable allocated items. The
Transaction Coordinator (order_service) applies the matching stock
decrements.

ORDERING:
- Ascending expiry date
- Batches without an expiry date never expire and come last
- Ties broken by batch id, so the split is deterministic

MONEY:
- All amounts are integer cents
- The line discount is spread over the split items in proportion to the
  quantity taken from each batch, using cumulative half-up rounding:
      share_i = round(D * q_1..i / Q) - round(D * q_1..i-1 / Q)
  Shares are never negative, each is within one cent of the exact
  proportion, and they always sum to exactly D.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from typing import Iterable

from .order_errors import InsufficientStockError


@dataclass(frozen=True)
class BatchStock:
    """Availability snapshot of one batch, as read inside the order transaction."""
    batch_id: int
    product_id: int
    expiry_date: date | None
    available_quantity: int
    batch_number: str | None = None

    @classmethod
    def from_model(cls, batch) -> "BatchStock":
        return cls(
            batch_id=batch.id,
            product_id=batch.product_id,
            expiry_date=batch.expiry_date,
            available_quantity=batch.current_quantity,
            batch_number=batch.batch_number,
        )


@dataclass(frozen=True)
class AllocatedItem:
    """One (requested line, batch) pair; becomes one OrderItem row."""
    product_id: int
    batch_id: int
    quantity: int
    unit_price_cents: int
    discount_cents: int
    total_price_cents: int


@dataclass(frozen=True)
class StockDelta:
    """Staged change to a batch's current_quantity (negative = sold, positive = returned)."""
    batch_id: int
    product_id: int
    quantity_delta: int


def fefo_sort_key(batch: BatchStock) -> tuple:
    return (batch.expiry_date is None, batch.expiry_date or date.min, batch.batch_id)


def order_batches(batches: Iterable[BatchStock]) -> list[BatchStock]:
    """Sort batches into consumption order."""
    return sorted(batches, key=fefo_sort_key)


def _round_half_up(numerator: int, denominator: int) -> int:
    # nearest-cent rounding (half-up), non-negative operands
    return (numerator + (denominator // 2)) // denominator


def split_discount(discount_cents: int, quantities: list[int], total_quantity: int) -> list[int]:
    """
    Spread `discount_cents` over `quantities` (which must sum to total_quantity).
    """
    if sum(quantities) != total_quantity:
        raise ValueError("quantities must sum to total_quantity")
    if discount_cents < 0:
        raise ValueError("discount_cents must be non-negative")

    shares: list[int] = []
    cumulative_qty = 0
    allocated = 0
    for qty in quantities:
        cumulative_qty += qty
        target = _round_half_up(discount_cents * cumulative_qty, total_quantity)
        shares.append(target - allocated)
        allocated = target
    return shares


def allocate_line(
    product_id: int,
    quantity: int,
    unit_price_cents: int,
    discount_cents: int,
    batches: Iterable[BatchStock],
) -> tuple[AllocatedItem, ...]:
    """
    Split one requested line across batches in FEFO order.

    Availability is checked before anything is produced; a short product
    raises InsufficientStockError and yields no items at all. Batches after
    the one that completes the quantity are left untouched.
    """
    if quantity <= 0:
        raise ValueError("quantity must be positive")

    candidates = [
        b for b in order_batches(batches)
        if b.product_id == product_id and b.available_quantity > 0
    ]
    total_available = sum(b.available_quantity for b in candidates)
    if not candidates or total_available < quantity:
        raise InsufficientStockError(product_id, quantity, total_available)

    takes: list[tuple[BatchStock, int]] = []
    remaining = quantity
    for batch in candidates:
        if remaining <= 0:
            break
        taken = min(remaining, batch.available_quantity)
        takes.append((batch, taken))
        remaining -= taken

    discounts = split_discount(discount_cents, [taken for _, taken in takes], quantity)

    return tuple(
        AllocatedItem(
            product_id=product_id,
            batch_id=batch.batch_id,
            quantity=taken,
            unit_price_cents=unit_price_cents,
            discount_cents=discount,
            total_price_cents=taken * unit_price_cents - discount,
        )
        for (batch, taken), discount in zip(takes, discounts)
    )


class StockView:
    """
    Working copy of batch availability for one settlement.

    Two requested lines for the same product draw on the same batches;
    each allocation is deducted here so the next line only sees what is left.
    """

    def __init__(self, batches: Iterable[BatchStock]):
        self._batches: dict[int, BatchStock] = {}
        self._remaining: dict[int, int] = {}
        for batch in batches:
            self._batches[batch.batch_id] = batch
            self._remaining[batch.batch_id] = batch.available_quantity

    def available(self, product_id: int) -> list[BatchStock]:
        return order_batches(
            replace(batch, available_quantity=self._remaining[batch_id])
            for batch_id, batch in self._batches.items()
            if batch.product_id == product_id
        )

    def remaining(self, batch_id: int) -> int:
        return self._remaining[batch_id]

    def allocate(
        self,
        product_id: int,
        quantity: int,
        unit_price_cents: int,
        discount_cents: int = 0,
    ) -> tuple[AllocatedItem, ...]:
        items = allocate_line(
            product_id,
            quantity,
            unit_price_cents,
            discount_cents,
            self.available(product_id),
        )
        for item in items:
            self._remaining[item.batch_id] -= item.quantity
        return items
