# Overview: Read-only lookups used while taking an order (customers, stock, earlier orders).

"""
Order-entry lookups.

Nothing here writes. Results are plain dicts ready for jsonify, so routes
do not touch ORM objects after the query.
"""
from __future__ import annotations

from sqlalchemy import and_, func

from ..extensions import db
from ..models import Customer, Order, OrderItem, Product, ProductBatch, Return
from ..models.orders import ORDER_STATUS_DELIVERED, ORDER_STATUS_PROCESSING
from .batch_service import list_product_batches

RETURNABLE_ORDER_STATUSES = (ORDER_STATUS_DELIVERED, ORDER_STATUS_PROCESSING)
RECENT_ORDERS_LIMIT = 20


class CatalogNotFoundError(LookupError):
    """Requested record does not exist."""


def list_active_customers() -> list[dict]:
    customers = (
        db.session.query(Customer)
        .filter(Customer.is_active.is_(True))
        .order_by(Customer.name.asc(), Customer.id.asc())
        .all()
    )
    return [c.to_dict() for c in customers]


def list_products_with_stock() -> list[dict]:
    """
    Active products with total_stock: the sum of current_quantity over
    active batches that still hold stock. Products without such batches
    report 0.
    """
    total_stock = func.coalesce(func.sum(ProductBatch.current_quantity), 0).label("total_stock")
    rows = (
        db.session.query(Product, total_stock)
        .outerjoin(
            ProductBatch,
            and_(
                ProductBatch.product_id == Product.id,
                ProductBatch.is_active.is_(True),
                ProductBatch.current_quantity > 0,
            ),
        )
        .filter(Product.is_active.is_(True))
        .group_by(Product.id)
        .order_by(Product.name.asc(), Product.id.asc())
        .all()
    )
    items = []
    for product, stock in rows:
        data = product.to_dict()
        data["total_stock"] = int(stock or 0)
        items.append(data)
    return items


def list_batches_for_product(product_id: int) -> list[dict]:
    product = db.session.query(Product).filter_by(id=product_id).first()
    if not product:
        raise CatalogNotFoundError(f"Product {product_id} not found")
    return [batch.to_dict() for batch in list_product_batches(product_id)]


def list_customer_orders(customer_id: int, limit: int = RECENT_ORDERS_LIMIT) -> list[dict]:
    """Most recent delivered / processing orders of a customer; what goods can be returned against."""
    customer = db.session.query(Customer).filter_by(id=customer_id).first()
    if not customer:
        raise CatalogNotFoundError(f"Customer {customer_id} not found")

    orders = (
        db.session.query(Order)
        .filter(
            Order.customer_id == customer_id,
            Order.status.in_(RETURNABLE_ORDER_STATUSES),
        )
        .order_by(Order.order_date.desc(), Order.id.desc())
        .limit(limit)
        .all()
    )
    return [o.to_dict() for o in orders]


def list_order_items(order_id: str) -> list[dict]:
    order = db.session.query(Order.id).filter_by(id=order_id).first()
    if not order:
        raise CatalogNotFoundError(f"Order {order_id} not found")

    rows = (
        db.session.query(OrderItem, Product.name, ProductBatch.batch_number)
        .join(Product, Product.id == OrderItem.product_id)
        .join(ProductBatch, ProductBatch.id == OrderItem.batch_id)
        .filter(OrderItem.order_id == order_id)
        .order_by(OrderItem.product_id.asc(), ProductBatch.expiry_date.asc(), OrderItem.batch_id.asc())
        .all()
    )
    items = []
    for item, product_name, batch_number in rows:
        data = item.to_dict()
        data["product_name"] = product_name
        data["batch_number"] = batch_number
        items.append(data)
    return items


def get_order_detail(order_id: str) -> dict:
    """Order with its items and the returns recorded against it."""
    order = db.session.query(Order).filter_by(id=order_id).first()
    if not order:
        raise CatalogNotFoundError(f"Order {order_id} not found")

    returns = (
        db.session.query(Return)
        .filter(Return.order_id == order_id)
        .order_by(Return.return_date.asc())
        .all()
    )
    return {
        "order": order.to_dict(),
        "items": list_order_items(order_id),
        "returns": [
            {**r.to_dict(), "items": [item.to_dict() for item in r.items]}
            for r in returns
        ],
    }
