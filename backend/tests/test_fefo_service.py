"""
FEFO allocation tests (no database).

Verifies:
- Batches consumed by ascending expiry, undated batches last, id tie-break
- Quantities conserved across the split
- Discount shares sum exactly to the line discount and are never negative
- Short stock raises before anything is allocated
"""

from datetime import date

import pytest

from orderdesk.services.fefo_service import (
    BatchStock,
    StockView,
    allocate_line,
    order_batches,
    split_discount,
)
from orderdesk.services.order_errors import InsufficientStockError


def _batch(batch_id, qty, expiry, product_id=1):
    return BatchStock(
        batch_id=batch_id,
        product_id=product_id,
        expiry_date=expiry,
        available_quantity=qty,
    )


# =============================================================================
# ORDERING
# =============================================================================


class TestFefoOrdering:

    def test_ascending_expiry(self):
        batches = [
            _batch(1, 5, date(2024, 6, 1)),
            _batch(2, 5, date(2024, 1, 1)),
            _batch(3, 5, date(2024, 3, 1)),
        ]
        assert [b.batch_id for b in order_batches(batches)] == [2, 3, 1]

    def test_undated_batches_come_last(self):
        batches = [
            _batch(1, 5, None),
            _batch(2, 5, date(2030, 1, 1)),
        ]
        assert [b.batch_id for b in order_batches(batches)] == [2, 1]

    def test_same_expiry_breaks_ties_by_id(self):
        batches = [
            _batch(9, 5, date(2024, 1, 1)),
            _batch(4, 5, date(2024, 1, 1)),
            _batch(7, 5, None),
            _batch(5, 5, None),
        ]
        assert [b.batch_id for b in order_batches(batches)] == [4, 9, 5, 7]


# =============================================================================
# ALLOCATION
# =============================================================================


class TestAllocateLine:

    def test_two_batch_split_with_proportional_discount(self):
        batches = [
            _batch(1, 5, date(2024, 1, 1)),
            _batch(2, 10, date(2024, 6, 1)),
        ]

        items = allocate_line(1, 8, 10000, 4000, batches)

        assert [(i.batch_id, i.quantity) for i in items] == [(1, 5), (2, 3)]
        assert [i.discount_cents for i in items] == [2500, 1500]
        assert [i.total_price_cents for i in items] == [47500, 28500]

    def test_single_batch_covers_line(self):
        items = allocate_line(1, 3, 500, 0, [_batch(1, 10, date(2024, 1, 1))])

        assert len(items) == 1
        assert items[0].quantity == 3
        assert items[0].total_price_cents == 1500

    def test_stops_at_batch_that_completes_quantity(self):
        batches = [
            _batch(1, 2, date(2024, 1, 1)),
            _batch(2, 2, date(2024, 2, 1)),
            _batch(3, 2, date(2024, 3, 1)),
            _batch(4, 50, date(2024, 4, 1)),
        ]

        items = allocate_line(1, 5, 100, 0, batches)

        assert [(i.batch_id, i.quantity) for i in items] == [(1, 2), (2, 2), (3, 1)]

    def test_ignores_other_products_and_empty_batches(self):
        batches = [
            _batch(1, 10, date(2023, 1, 1), product_id=2),
            _batch(2, 0, date(2023, 6, 1)),
            _batch(3, 4, date(2024, 1, 1)),
        ]

        items = allocate_line(1, 4, 100, 0, batches)

        assert [(i.batch_id, i.quantity) for i in items] == [(3, 4)]

    def test_insufficient_stock_raises(self):
        with pytest.raises(InsufficientStockError) as exc_info:
            allocate_line(7, 5, 100, 0, [_batch(1, 3, date(2024, 1, 1), product_id=7)])

        err = exc_info.value
        assert err.product_id == 7
        assert err.details["requested_quantity"] == 5
        assert err.details["available_quantity"] == 3
        assert "7" in err.message

    def test_no_batches_raises(self):
        with pytest.raises(InsufficientStockError):
            allocate_line(1, 1, 100, 0, [])

    def test_non_positive_quantity_rejected(self):
        with pytest.raises(ValueError):
            allocate_line(1, 0, 100, 0, [_batch(1, 3, date(2024, 1, 1))])

    def test_quantity_conserved_and_expiry_non_decreasing(self):
        batches = [
            _batch(10, 3, date(2025, 3, 1)),
            _batch(11, 1, None),
            _batch(12, 2, date(2025, 1, 1)),
            _batch(13, 4, date(2025, 2, 1)),
        ]
        by_id = {b.batch_id: b for b in batches}

        for quantity in range(1, 11):
            items = allocate_line(1, quantity, 100, 0, batches)
            assert sum(i.quantity for i in items) == quantity
            expiries = [by_id[i.batch_id].expiry_date or date.max for i in items]
            assert expiries == sorted(expiries)


# =============================================================================
# DISCOUNT SPLIT
# =============================================================================


class TestSplitDiscount:

    def test_exact_proportions(self):
        assert split_discount(4000, [5, 3], 8) == [2500, 1500]

    def test_rounding_remainder_is_spread(self):
        shares = split_discount(100, [1, 1, 1], 3)
        assert sum(shares) == 100
        assert shares == [33, 34, 33]

    def test_small_discount_never_negative(self):
        shares = split_discount(1, [1, 1, 1, 1], 4)
        assert sum(shares) == 1
        assert all(s >= 0 for s in shares)

    def test_zero_discount(self):
        assert split_discount(0, [2, 3], 5) == [0, 0]

    @pytest.mark.parametrize("discount", [1, 7, 99, 1001, 123457])
    def test_shares_sum_to_discount(self, discount):
        shares = split_discount(discount, [3, 7, 1, 2], 13)
        assert sum(shares) == discount
        assert all(s >= 0 for s in shares)

    def test_quantities_must_match_total(self):
        with pytest.raises(ValueError):
            split_discount(100, [1, 2], 4)

    def test_negative_discount_rejected(self):
        with pytest.raises(ValueError):
            split_discount(-1, [1], 1)


# =============================================================================
# STOCK VIEW
# =============================================================================


class TestStockView:

    def test_second_line_sees_remaining_stock(self):
        stock = StockView([
            _batch(1, 5, date(2024, 1, 1)),
            _batch(2, 5, date(2024, 6, 1)),
        ])

        first = stock.allocate(1, 4, 100)
        second = stock.allocate(1, 4, 100)

        assert [(i.batch_id, i.quantity) for i in first] == [(1, 4)]
        assert [(i.batch_id, i.quantity) for i in second] == [(1, 1), (2, 3)]
        assert stock.remaining(1) == 0
        assert stock.remaining(2) == 2

    def test_combined_lines_cannot_exceed_stock(self):
        stock = StockView([_batch(1, 5, date(2024, 1, 1))])
        stock.allocate(1, 4, 100)

        with pytest.raises(InsufficientStockError):
            stock.allocate(1, 2, 100)
        assert stock.remaining(1) == 1
