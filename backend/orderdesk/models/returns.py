from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

RETURN_STATUS_PENDING = "pending"
RETURN_STATUS_PROCESSED = "processed"
RETURN_STATUS_REJECTED = "rejected"

RETURN_REASONS = ("damaged", "expired", "unwanted", "wrong_item")


class Return(db.Model):
    """
    Goods handed back against an earlier order, recorded while taking a new one.

    order_id points at the ORIGINAL order the goods came from. Returns
    created by order settlement are immediately 'processed': the stock is
    already back in the named batches.
    """
    __tablename__ = "returns"

    id = db.Column(db.String(36), primary_key=True)
    order_id = db.Column(db.String(36), db.ForeignKey("orders.id"), nullable=False, index=True)
    return_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    processed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    reason = db.Column(db.Text, nullable=False)
    total_amount_cents = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(16), nullable=False, default=RETURN_STATUS_PROCESSED)

    order = db.relationship("Order", backref=db.backref("returns", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "return_date": to_utc_z(self.return_date),
            "processed_by_user_id": self.processed_by_user_id,
            "reason": self.reason,
            "total_amount_cents": self.total_amount_cents,
            "status": self.status,
        }


class ReturnItem(db.Model):
    __tablename__ = "return_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_return_items_quantity_positive"),
        db.CheckConstraint(
            "reason IN ('damaged', 'expired', 'unwanted', 'wrong_item')",
            name="ck_return_items_reason",
        ),
    )

    id = db.Column(db.String(36), primary_key=True)
    return_id = db.Column(db.String(36), db.ForeignKey("returns.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    batch_id = db.Column(db.Integer, db.ForeignKey("product_batches.id"), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_price_cents = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(16), nullable=False, default="unwanted")

    return_doc = db.relationship("Return", backref=db.backref("items", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "return_id": self.return_id,
            "product_id": self.product_id,
            "batch_id": self.batch_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "total_price_cents": self.total_price_cents,
            "reason": self.reason,
        }
