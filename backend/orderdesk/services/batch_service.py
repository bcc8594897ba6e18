# Overview: Service-layer operations for product batches; FEFO reads and guarded quantity updates.

"""
Batch Ledger

Batch stock is a mutable quantity per batch (product_batches.current_quantity).

Invariants:
- current_quantity never goes negative: every decrement is a conditional
  UPDATE that only matches while enough stock remains, backed by a CHECK
  constraint on the column
- FEFO order is ascending expiry, NULL expiry last, then batch id
- Only active batches with stock are offered for allocation; returns may
  target any existing batch
"""

from __future__ import annotations

from typing import Iterable

from sqlalchemy import update

from ..extensions import db
from ..models import ProductBatch
from .concurrency import lock_for_update
from .fefo_service import BatchStock, StockDelta
from .order_errors import InsufficientStockError, ReturnError


def fefo_ordering():
    """ORDER BY clause for FEFO: expiry ascending, NULL last, id as tie-break."""
    return (
        ProductBatch.expiry_date.is_(None),
        ProductBatch.expiry_date.asc(),
        ProductBatch.id.asc(),
    )


def available_batches_query(product_ids: Iterable[int]):
    return db.session.query(ProductBatch).filter(
        ProductBatch.product_id.in_(list(product_ids)),
        ProductBatch.is_active.is_(True),
        ProductBatch.current_quantity > 0,
    ).order_by(*fefo_ordering())


def fetch_available_batches(product_ids: Iterable[int], *, lock: bool = True) -> list[BatchStock]:
    """
    Read allocatable batches of the given products in FEFO order.

    With lock=True the rows are locked until the surrounding transaction
    ends (SELECT ... FOR UPDATE where the database supports it).
    """
    ids = sorted(set(product_ids))
    if not ids:
        return []
    query = available_batches_query(ids)
    if lock:
        query = lock_for_update(query)
    return [BatchStock.from_model(batch) for batch in query.all()]


def fetch_batches_by_id(batch_ids: Iterable[int], *, lock: bool = True) -> dict[int, BatchStock]:
    """Read the named batches regardless of state; missing ids are absent from the result."""
    ids = sorted(set(batch_ids))
    if not ids:
        return {}
    query = db.session.query(ProductBatch).filter(ProductBatch.id.in_(ids))
    if lock:
        query = lock_for_update(query)
    return {batch.id: BatchStock.from_model(batch) for batch in query.all()}


def list_product_batches(product_id: int) -> list[ProductBatch]:
    """Active batches with stock for one product, FEFO order (read-only listing)."""
    return available_batches_query([product_id]).all()


def decrement_batch(batch_id: int, product_id: int, quantity: int) -> None:
    """
    Take `quantity` units out of a batch.

    Raises InsufficientStockError if the batch no longer holds that many
    units (another transaction got there first).
    """
    result = db.session.execute(
        update(ProductBatch)
        .where(
            ProductBatch.id == batch_id,
            ProductBatch.current_quantity >= quantity,
        )
        .values(current_quantity=ProductBatch.current_quantity - quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        current = db.session.query(ProductBatch.current_quantity).filter_by(id=batch_id).scalar()
        raise InsufficientStockError(product_id, quantity, current or 0)


def increment_batch(batch_id: int, quantity: int) -> None:
    """Put `quantity` units back into a batch."""
    result = db.session.execute(
        update(ProductBatch)
        .where(ProductBatch.id == batch_id)
        .values(current_quantity=ProductBatch.current_quantity + quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise ReturnError(f"Batch {batch_id} not found", details={"batch_id": batch_id})


def apply_stock_deltas(deltas: Iterable[StockDelta]) -> None:
    """Apply staged batch movements in the order given."""
    for delta in deltas:
        if delta.quantity_delta < 0:
            decrement_batch(delta.batch_id, delta.product_id, -delta.quantity_delta)
        elif delta.quantity_delta > 0:
            increment_batch(delta.batch_id, delta.quantity_delta)
