# Overview: Order settlement planning; turns a parsed order request into an immutable plan.

"""
Order Settlement

WHY: Settling an order touches many rows (order, items, batches, return,
return items, customer credit). Computing everything first, as a plain
value, keeps the arithmetic testable without a database and leaves the
Transaction Coordinator (order_service) with nothing to decide but
"apply all of it or none of it".

STEPS:
1. Resolve the sales rep the order is taken for (resolve_sales_rep)
2. FEFO-allocate every requested line (fefo_service)
3. Plan returns, if any (return_service)
4. final = gross - returns credit   (line discounts are already netted
   into each item total, so gross is the sum of net item totals)
5. Payment type 'credit' with returns: the customer's credit balance
   grows by the final amount
6. Stage batch decrements (sold) and increments (returned)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping

from ..models.auth import ROLE_OWNER, ROLE_SALES_REP
from ..models.orders import ORDER_STATUS_PENDING, PAYMENT_CREDIT
from .fefo_service import AllocatedItem, BatchStock, StockDelta, StockView
from .identifier_service import IdentifierGenerator, generate_identifier
from .order_errors import OrderAuthorizationError, OrderValidationError
from .order_schemas import OrderRequest
from .return_service import ReturnPlan, plan_return
from .session_service import Identity


@dataclass(frozen=True)
class PlannedOrderItem:
    order_item_id: str
    allocation: AllocatedItem


@dataclass(frozen=True)
class SettlementTotals:
    total_amount_cents: int
    discount_amount_cents: int
    returns_amount_cents: int
    final_amount_cents: int


@dataclass(frozen=True)
class CreditAdjustment:
    customer_id: int
    amount_cents: int


@dataclass(frozen=True)
class SettlementResult:
    order_id: str
    total_amount_cents: int
    discount_amount_cents: int
    returns_amount_cents: int
    final_amount_cents: int
    created_by: int
    fefo_split: bool
    item_count: int

    def to_dict(self) -> dict:
        return {
            "order_id": self.order_id,
            "total_amount_cents": self.total_amount_cents,
            "discount_amount_cents": self.discount_amount_cents,
            "returns_amount_cents": self.returns_amount_cents,
            "final_amount_cents": self.final_amount_cents,
            "created_by": self.created_by,
            "fefo_split": self.fefo_split,
            "item_count": self.item_count,
        }


@dataclass(frozen=True)
class SettlementPlan:
    order_id: str
    customer_id: int
    sales_rep_id: int
    payment_type: str
    notes: str | None
    items: tuple[PlannedOrderItem, ...]
    requested_line_count: int
    totals: SettlementTotals
    return_plan: ReturnPlan | None
    stock_deltas: tuple[StockDelta, ...]
    credit_adjustment: CreditAdjustment | None
    status: str = ORDER_STATUS_PENDING

    @property
    def fefo_split(self) -> bool:
        """True when some requested line needed more than one batch."""
        return len(self.items) > self.requested_line_count

    def result(self) -> SettlementResult:
        return SettlementResult(
            order_id=self.order_id,
            total_amount_cents=self.totals.total_amount_cents,
            discount_amount_cents=self.totals.discount_amount_cents,
            returns_amount_cents=self.totals.returns_amount_cents,
            final_amount_cents=self.totals.final_amount_cents,
            created_by=self.sales_rep_id,
            fefo_split=self.fefo_split,
            item_count=len(self.items),
        )


def resolve_sales_rep(identity: Identity, requested_sales_rep_id: int | None = None) -> int:
    """
    Decide whose order this is.

    - owner may name any sales rep (on-behalf-of)
    - sales_rep creates orders for themselves only
    - every other role is refused
    """
    if requested_sales_rep_id is not None and identity.role == ROLE_OWNER:
        return requested_sales_rep_id

    if identity.role not in (ROLE_OWNER, ROLE_SALES_REP):
        raise OrderAuthorizationError(
            "Only sales representatives and owners can create orders",
            details={"role": identity.role},
        )

    if requested_sales_rep_id is not None and requested_sales_rep_id != identity.user_id:
        raise OrderAuthorizationError(
            "Only owners can create orders on behalf of another sales representative",
            details={"role": identity.role, "sales_rep_id": requested_sales_rep_id},
        )

    if not identity.user_id:
        raise OrderValidationError("Sales representative ID is required")

    return identity.user_id


def _stage_decrements(items: Iterable[PlannedOrderItem]) -> list[StockDelta]:
    # one decrement per batch, even when two lines drew on it
    per_batch: dict[tuple[int, int], int] = {}
    for planned in items:
        key = (planned.allocation.batch_id, planned.allocation.product_id)
        per_batch[key] = per_batch.get(key, 0) + planned.allocation.quantity
    return [
        StockDelta(batch_id, product_id, -qty)
        for (batch_id, product_id), qty in per_batch.items()
    ]


def plan_settlement(
    request: OrderRequest,
    *,
    sales_rep_id: int,
    batches: Iterable[BatchStock],
    return_batches: Mapping[int, BatchStock] | None = None,
    new_id: IdentifierGenerator = generate_identifier,
) -> SettlementPlan:
    """
    Build the complete settlement for one order request.

    Args:
        request: Parsed order request
        sales_rep_id: Result of resolve_sales_rep
        batches: Availability of every batch of the requested products
        return_batches: Batches named by the returns payload, keyed by id

    Raises:
        InsufficientStockError: A requested line cannot be covered
        ReturnError: The returns payload names an unknown batch
    """
    stock = StockView(batches)

    items: list[PlannedOrderItem] = []
    gross = 0
    discount = 0
    for line in request.order_items:
        for allocation in stock.allocate(
            line.product_id,
            line.quantity,
            line.unit_price_cents,
            line.discount_cents,
        ):
            items.append(PlannedOrderItem(new_id("order_item"), allocation))
            gross += allocation.total_price_cents
            discount += allocation.discount_cents

    return_plan = None
    returns_amount = 0
    if request.returns is not None and request.returns.items:
        return_plan = plan_return(
            request.returns,
            processed_by=sales_rep_id,
            known_batches=return_batches or {},
            new_id=new_id,
        )
        returns_amount = return_plan.total_amount_cents

    final_amount = gross - returns_amount

    credit_adjustment = None
    if request.payment_type == PAYMENT_CREDIT and return_plan is not None:
        # Existing behavior: the balance grows by the final amount
        credit_adjustment = CreditAdjustment(request.customer_id, final_amount)

    stock_deltas = _stage_decrements(items)
    if return_plan is not None:
        stock_deltas.extend(return_plan.stock_increments)

    return SettlementPlan(
        order_id=new_id("order"),
        customer_id=request.customer_id,
        sales_rep_id=sales_rep_id,
        payment_type=request.payment_type,
        notes=request.notes,
        items=tuple(items),
        requested_line_count=len(request.order_items),
        totals=SettlementTotals(
            total_amount_cents=gross,
            discount_amount_cents=discount,
            returns_amount_cents=returns_amount,
            final_amount_cents=final_amount,
        ),
        return_plan=return_plan,
        stock_deltas=tuple(stock_deltas),
        credit_adjustment=credit_adjustment,
    )
