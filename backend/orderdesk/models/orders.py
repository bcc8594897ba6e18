from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

PAYMENT_CASH = "cash"
PAYMENT_CREDIT = "credit"
PAYMENT_CHEQUE = "cheque"

PAYMENT_TYPES = (PAYMENT_CASH, PAYMENT_CREDIT, PAYMENT_CHEQUE)

ORDER_STATUS_PENDING = "pending"
ORDER_STATUS_PROCESSING = "processing"
ORDER_STATUS_DELIVERED = "delivered"
ORDER_STATUS_CANCELLED = "cancelled"


class Order(db.Model):
    """
    Customer order produced by settlement.

    Written once, inside the order transaction, together with its items,
    any return recorded against an earlier order and the batch movements.
    Amounts are cents:
    - total_amount_cents: sum of item totals (item discounts already netted)
    - discount_amount_cents: sum of item discounts
    - returns_amount_cents: credit for goods returned with this order
    - final_amount_cents: total_amount_cents - returns_amount_cents
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.CheckConstraint(
            "payment_type IN ('cash', 'credit', 'cheque')",
            name="ck_orders_payment_type",
        ),
        db.Index("ix_orders_customer_status_date", "customer_id", "status", "order_date"),
    )

    id = db.Column(db.String(36), primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    sales_rep_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    order_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    delivery_date = db.Column(db.Date, nullable=True)

    payment_type = db.Column(db.String(16), nullable=False)
    payment_status = db.Column(db.String(16), nullable=False, default="pending")

    total_amount_cents = db.Column(db.Integer, nullable=False)
    discount_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    returns_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    final_amount_cents = db.Column(db.Integer, nullable=False)

    notes = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(16), nullable=False, default=ORDER_STATUS_PENDING, index=True)

    customer = db.relationship("Customer", backref=db.backref("orders", lazy=True))
    sales_rep = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "sales_rep_id": self.sales_rep_id,
            "order_date": to_utc_z(self.order_date),
            "payment_type": self.payment_type,
            "payment_status": self.payment_status,
            "total_amount_cents": self.total_amount_cents,
            "discount_amount_cents": self.discount_amount_cents,
            "returns_amount_cents": self.returns_amount_cents,
            "final_amount_cents": self.final_amount_cents,
            "notes": self.notes,
            "status": self.status,
        }


class OrderItem(db.Model):
    """One (requested line, batch) pair of an order."""
    __tablename__ = "order_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
    )

    id = db.Column(db.String(36), primary_key=True)
    order_id = db.Column(db.String(36), db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    batch_id = db.Column(db.Integer, db.ForeignKey("product_batches.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_price_cents = db.Column(db.Integer, nullable=False)

    order = db.relationship("Order", backref=db.backref("items", lazy=True))
    product = db.relationship("Product")
    batch = db.relationship("ProductBatch")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "batch_id": self.batch_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "discount_cents": self.discount_cents,
            "total_price_cents": self.total_price_cents,
        }
