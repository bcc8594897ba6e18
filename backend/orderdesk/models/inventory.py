from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z


class Product(db.Model):
    """
    Product master.

    unit_price_cents is the reference price only; the price actually charged
    is whatever the order line carries.
    """
    __tablename__ = "products"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(64), nullable=True)

    unit_price_cents = db.Column(db.Integer, nullable=False)
    reorder_level = db.Column(db.Integer, nullable=False, default=10)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "unit_price_cents": self.unit_price_cents,
            "reorder_level": self.reorder_level,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class ProductBatch(db.Model):
    """
    A received lot of one product with its own expiry date and quantity.

    Batches are consumed First-Expiry-First-Out by order settlement and
    refilled by returns. A batch at zero stays in the table.
    NULL expiry_date means the lot never expires (consumed last).
    """
    __tablename__ = "product_batches"
    __table_args__ = (
        db.CheckConstraint("current_quantity >= 0", name="ck_product_batches_quantity_nonnegative"),
        # FEFO lookup: product, active, by expiry
        db.Index("ix_product_batches_fefo", "product_id", "is_active", "expiry_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    batch_number = db.Column(db.String(64), nullable=False)
    supplier_name = db.Column(db.String(128), nullable=True)

    manufacturing_date = db.Column(db.Date, nullable=True)
    expiry_date = db.Column(db.Date, nullable=True)
    received_date = db.Column(db.Date, nullable=True)

    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)
    selling_price_cents = db.Column(db.Integer, nullable=False)

    initial_quantity = db.Column(db.Integer, nullable=False)
    current_quantity = db.Column(db.Integer, nullable=False)

    notes = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("batches", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "batch_number": self.batch_number,
            "supplier_name": self.supplier_name,
            "manufacturing_date": to_iso_date(self.manufacturing_date),
            "expiry_date": to_iso_date(self.expiry_date),
            "received_date": to_iso_date(self.received_date),
            "cost_price_cents": self.cost_price_cents,
            "selling_price_cents": self.selling_price_cents,
            "initial_quantity": self.initial_quantity,
            "current_quantity": self.current_quantity,
            "is_active": self.is_active,
        }
