"""
Settlement planning tests (no database).

Covers return planning, sales-rep resolution, totals, credit adjustment
and the staged stock movements of a plan.
"""

from datetime import date

import pytest

from orderdesk.services.fefo_service import BatchStock, StockDelta
from orderdesk.services.identifier_service import sequential_identifiers
from orderdesk.services.order_errors import (
    InsufficientStockError,
    OrderAuthorizationError,
    OrderValidationError,
    ReturnError,
)
from orderdesk.services.order_schemas import (
    OrderLineRequest,
    OrderRequest,
    ReturnItemRequest,
    ReturnRequest,
)
from orderdesk.services.return_service import plan_return
from orderdesk.services.session_service import Identity
from orderdesk.services.settlement_service import plan_settlement, resolve_sales_rep


def _batch(batch_id, qty, expiry, product_id=1):
    return BatchStock(batch_id=batch_id, product_id=product_id, expiry_date=expiry, available_quantity=qty)


def _request(lines, payment_type="cash", returns=None, customer_id=5):
    return OrderRequest(
        customer_id=customer_id,
        payment_type=payment_type,
        order_items=tuple(OrderLineRequest(*line) for line in lines),
        returns=returns,
    )


def _returns(*items, order_id="old-order"):
    return ReturnRequest(order_id=order_id, items=tuple(ReturnItemRequest(*item) for item in items))


# =============================================================================
# RETURNS
# =============================================================================


class TestPlanReturn:

    def test_prices_items_and_stages_increments(self):
        request = _returns((1, 10, 2, 500), (1, 10, 1, 500), (2, 20, 3, 100))
        known = {10: _batch(10, 0, None, product_id=1), 20: _batch(20, 4, None, product_id=2)}

        plan = plan_return(request, processed_by=3, known_batches=known, new_id=sequential_identifiers())

        assert plan.return_id == "return-1"
        assert [i.return_item_id for i in plan.items] == ["return_item-1", "return_item-2", "return_item-3"]
        assert [i.total_price_cents for i in plan.items] == [1000, 500, 300]
        assert plan.total_amount_cents == 1800
        assert plan.processed_by == 3
        assert plan.order_id == "old-order"
        assert plan.status == "processed"
        assert set(plan.stock_increments) == {StockDelta(10, 1, 3), StockDelta(20, 2, 3)}

    def test_unknown_batch_rejected(self):
        with pytest.raises(ReturnError):
            plan_return(_returns((1, 99, 1, 500)), processed_by=3, known_batches={})

    def test_batch_of_other_product_rejected(self):
        with pytest.raises(ReturnError):
            plan_return(
                _returns((1, 10, 1, 500)),
                processed_by=3,
                known_batches={10: _batch(10, 5, None, product_id=2)},
            )

    def test_empty_return_rejected(self):
        with pytest.raises(ReturnError):
            plan_return(ReturnRequest(order_id="x", items=()), processed_by=3, known_batches={})


# =============================================================================
# SALES REP RESOLUTION
# =============================================================================


class TestResolveSalesRep:

    def test_sales_rep_orders_for_self(self):
        assert resolve_sales_rep(Identity(7, "sales_rep")) == 7

    def test_sales_rep_may_name_self(self):
        assert resolve_sales_rep(Identity(7, "sales_rep"), 7) == 7

    def test_owner_may_order_on_behalf(self):
        assert resolve_sales_rep(Identity(1, "owner"), 7) == 7

    def test_owner_without_override_is_recorded(self):
        assert resolve_sales_rep(Identity(1, "owner")) == 1

    def test_sales_rep_cannot_override(self):
        with pytest.raises(OrderAuthorizationError):
            resolve_sales_rep(Identity(7, "sales_rep"), 8)

    @pytest.mark.parametrize("role", ["lorry_driver", None, "admin"])
    def test_other_roles_refused(self, role):
        with pytest.raises(OrderAuthorizationError):
            resolve_sales_rep(Identity(7, role))

    def test_missing_user_id(self):
        with pytest.raises(OrderValidationError):
            resolve_sales_rep(Identity(None, "sales_rep"))


# =============================================================================
# SETTLEMENT
# =============================================================================


class TestPlanSettlement:

    def test_split_line_totals_and_decrements(self):
        batches = [_batch(1, 5, date(2024, 1, 1)), _batch(2, 10, date(2024, 6, 1))]

        plan = plan_settlement(
            _request([(1, 8, 10000, 4000)]),
            sales_rep_id=7,
            batches=batches,
            new_id=sequential_identifiers(),
        )

        assert plan.order_id == "order-1"
        assert [p.order_item_id for p in plan.items] == ["order_item-1", "order_item-2"]
        assert plan.totals.total_amount_cents == 76000
        assert plan.totals.discount_amount_cents == 4000
        assert plan.totals.returns_amount_cents == 0
        assert plan.totals.final_amount_cents == 76000
        assert plan.fefo_split is True
        assert plan.stock_deltas == (StockDelta(1, 1, -5), StockDelta(2, 1, -3))
        assert plan.credit_adjustment is None
        assert plan.status == "pending"

    def test_two_single_batch_lines_not_split(self):
        batches = [_batch(1, 10, date(2024, 1, 1), product_id=1), _batch(2, 10, date(2024, 1, 1), product_id=2)]

        plan = plan_settlement(
            _request([(1, 2, 100, 0), (2, 3, 200, 0)]),
            sales_rep_id=7,
            batches=batches,
        )

        assert len(plan.items) == 2
        assert plan.fefo_split is False
        result = plan.result()
        assert result.item_count == 2
        assert result.fefo_split is False
        assert result.created_by == 7

    def test_lines_for_same_product_aggregate_decrements(self):
        plan = plan_settlement(
            _request([(1, 2, 100, 0), (1, 3, 100, 0)]),
            sales_rep_id=7,
            batches=[_batch(1, 10, date(2024, 1, 1))],
        )

        assert plan.stock_deltas == (StockDelta(1, 1, -5),)

    def test_short_stock_fails_whole_plan(self):
        batches = [_batch(1, 10, date(2024, 1, 1), product_id=1), _batch(2, 3, date(2024, 1, 1), product_id=2)]

        with pytest.raises(InsufficientStockError) as exc_info:
            plan_settlement(_request([(1, 2, 100, 0), (2, 5, 100, 0)]), sales_rep_id=7, batches=batches)
        assert exc_info.value.product_id == 2

    def test_credit_order_with_returns(self):
        # gross 500, returns 200 -> final 300, credit balance grows by 300
        plan = plan_settlement(
            _request(
                [(1, 5, 100, 0)],
                payment_type="credit",
                returns=_returns((1, 9, 2, 100)),
            ),
            sales_rep_id=7,
            batches=[_batch(1, 10, date(2024, 1, 1))],
            return_batches={9: _batch(9, 0, date(2023, 1, 1))},
        )

        assert plan.totals.total_amount_cents == 500
        assert plan.totals.returns_amount_cents == 200
        assert plan.totals.final_amount_cents == 300
        assert plan.credit_adjustment.customer_id == 5
        assert plan.credit_adjustment.amount_cents == 300
        assert plan.return_plan.processed_by == 7
        assert plan.stock_deltas == (StockDelta(1, 1, -5), StockDelta(9, 1, 2))

    @pytest.mark.parametrize("payment_type", ["cash", "cheque"])
    def test_no_credit_adjustment_for_other_payment_types(self, payment_type):
        plan = plan_settlement(
            _request([(1, 5, 100, 0)], payment_type=payment_type, returns=_returns((1, 9, 2, 100))),
            sales_rep_id=7,
            batches=[_batch(1, 10, date(2024, 1, 1))],
            return_batches={9: _batch(9, 0, None)},
        )

        assert plan.totals.final_amount_cents == 300
        assert plan.credit_adjustment is None

    def test_no_credit_adjustment_without_returns(self):
        plan = plan_settlement(
            _request([(1, 5, 100, 0)], payment_type="credit"),
            sales_rep_id=7,
            batches=[_batch(1, 10, date(2024, 1, 1))],
        )

        assert plan.credit_adjustment is None
        assert plan.totals.final_amount_cents == plan.totals.total_amount_cents
