# Overview: Service-layer operations for order creation; the single transactional I/O phase.

"""
Order Creation (Transaction Coordinator)

WHY: One order submission writes the order, its items, batch decrements,
an optional return with its items and batch increments, and possibly the
customer's credit balance. Either every one of those rows is written or
none is.

FLOW:
1. Resolve the sales rep (no transaction opened; authorization and
   validation errors surface here)
2. Open one transactional scope (transaction_scope)
3. Check the customer, the sales rep and the original order of any return
4. Lock and read FEFO batches for every requested product, and the batches
   named by returns
5. Plan the settlement (settlement_service, no I/O)
6. Apply the plan: insert rows, guarded batch decrements, increments,
   credit update
7. Commit; on any error roll back, release the session and re-raise

Transient lock conflicts replay steps 2-7 (run_with_retry). Store failures
that are not OrderErrors are wrapped in OrderProcessingError.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Customer, Order, OrderItem, Return, ReturnItem, User
from ..models.auth import ROLE_OWNER, ROLE_SALES_REP
from .batch_service import apply_stock_deltas, fetch_available_batches, fetch_batches_by_id
from .concurrency import run_with_retry, transaction_scope
from .identifier_service import IdentifierGenerator, generate_identifier
from .order_errors import OrderError, OrderProcessingError, OrderValidationError, ReturnError
from .order_schemas import OrderRequest
from .session_service import Identity
from .settlement_service import (
    SettlementPlan,
    SettlementResult,
    plan_settlement,
    resolve_sales_rep,
)


def _check_references(request: OrderRequest, sales_rep_id: int) -> None:
    customer = db.session.query(Customer).filter_by(id=request.customer_id).first()
    if not customer:
        raise OrderValidationError(
            f"Customer {request.customer_id} not found",
            details={"customer_id": request.customer_id},
        )
    if not customer.is_active:
        raise OrderValidationError(
            f"Customer {request.customer_id} is not active",
            details={"customer_id": request.customer_id},
        )

    sales_rep = db.session.query(User).filter_by(id=sales_rep_id).first()
    # Orders are attributed to selling users only
    if not sales_rep or not sales_rep.is_active or sales_rep.role not in (ROLE_SALES_REP, ROLE_OWNER):
        raise OrderValidationError(
            f"Sales representative {sales_rep_id} not found",
            details={"sales_rep_id": sales_rep_id},
        )

    if request.returns is not None:
        original = db.session.query(Order.id).filter_by(id=request.returns.order_id).first()
        if not original:
            raise ReturnError(
                f"Order {request.returns.order_id} not found",
                details={"order_id": request.returns.order_id},
            )


def _write_plan(plan: SettlementPlan) -> None:
    totals = plan.totals

    db.session.add(Order(
        id=plan.order_id,
        customer_id=plan.customer_id,
        sales_rep_id=plan.sales_rep_id,
        payment_type=plan.payment_type,
        total_amount_cents=totals.total_amount_cents,
        discount_amount_cents=totals.discount_amount_cents,
        returns_amount_cents=totals.returns_amount_cents,
        final_amount_cents=totals.final_amount_cents,
        notes=plan.notes,
        status=plan.status,
    ))
    # Parent rows first; order_items / returns reference them
    db.session.flush()

    for planned in plan.items:
        allocation = planned.allocation
        db.session.add(OrderItem(
            id=planned.order_item_id,
            order_id=plan.order_id,
            product_id=allocation.product_id,
            batch_id=allocation.batch_id,
            quantity=allocation.quantity,
            unit_price_cents=allocation.unit_price_cents,
            discount_cents=allocation.discount_cents,
            total_price_cents=allocation.total_price_cents,
        ))

    return_plan = plan.return_plan
    if return_plan is not None:
        db.session.add(Return(
            id=return_plan.return_id,
            order_id=return_plan.order_id,
            processed_by_user_id=return_plan.processed_by,
            reason=return_plan.reason,
            total_amount_cents=return_plan.total_amount_cents,
            status=return_plan.status,
        ))
        db.session.flush()
        for item in return_plan.items:
            db.session.add(ReturnItem(
                id=item.return_item_id,
                return_id=return_plan.return_id,
                product_id=item.product_id,
                batch_id=item.batch_id,
                quantity=item.quantity,
                unit_price_cents=item.unit_price_cents,
                total_price_cents=item.total_price_cents,
                reason=item.reason,
            ))

    db.session.flush()

    apply_stock_deltas(plan.stock_deltas)

    if plan.credit_adjustment is not None:
        db.session.execute(
            update(Customer)
            .where(Customer.id == plan.credit_adjustment.customer_id)
            .values(credit_balance_cents=Customer.credit_balance_cents + plan.credit_adjustment.amount_cents)
            .execution_options(synchronize_session=False)
        )


def create_order(
    request: OrderRequest,
    identity: Identity,
    *,
    new_id: IdentifierGenerator = generate_identifier,
) -> SettlementResult:
    """
    Settle and persist one order atomically.

    Args:
        request: Parsed order request (order_schemas.parse_order_request)
        identity: Authenticated caller
        new_id: Identifier generator for the created rows

    Returns:
        SettlementResult with the new order id and its totals

    Raises:
        OrderAuthorizationError / OrderValidationError: before any transaction
        InsufficientStockError, ReturnError, OrderValidationError: rolled back
        OrderProcessingError: unexpected store failure, rolled back
    """
    sales_rep_id = resolve_sales_rep(identity, request.sales_rep_id)

    product_ids = {line.product_id for line in request.order_items}
    return_batch_ids = (
        {item.batch_id for item in request.returns.items}
        if request.returns is not None else set()
    )

    def _op() -> SettlementResult:
        with transaction_scope():
            _check_references(request, sales_rep_id)

            plan = plan_settlement(
                request,
                sales_rep_id=sales_rep_id,
                batches=fetch_available_batches(product_ids),
                return_batches=fetch_batches_by_id(return_batch_ids),
                new_id=new_id,
            )
            _write_plan(plan)
            return plan.result()

    config = current_app.config
    try:
        return run_with_retry(
            _op,
            attempts=config.get("ORDER_RETRY_ATTEMPTS", 3),
            backoff_base=config.get("ORDER_RETRY_BACKOFF_SECONDS", 0.1),
        )
    except OrderError:
        raise
    except SQLAlchemyError as exc:
        raise OrderProcessingError(
            "Error creating order",
            details={"reason": exc.__class__.__name__},
        ) from exc
