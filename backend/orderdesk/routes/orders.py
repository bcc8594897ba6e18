# Overview: Flask API routes for order entry; parses input and returns JSON responses.

# backend/orderdesk/routes/orders.py
"""Order API routes with permission enforcement"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import catalog_service
from ..services import order_service
from ..services.catalog_service import CatalogNotFoundError
from ..services.order_errors import (
    InsufficientStockError,
    OrderAuthorizationError,
    OrderError,
    OrderProcessingError,
)
from ..services.order_schemas import parse_order_request
from ..decorators import require_auth, require_permission
from ..permissions import ADD_ORDER, VIEW_CUSTOMERS, VIEW_ORDERS, VIEW_PRODUCTS


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _error(e: OrderError, status: int):
    return jsonify({"success": False, "error": e.message, "details": e.details}), status


@orders_bp.post("/create")
@require_auth
@require_permission(ADD_ORDER)
def create_order_route():
    """
    Create an order: FEFO allocation, optional returns, totals, one transaction.

    Requires: add_order permission
    Available to: owner, sales_rep
    """
    identity = g.identity
    try:
        order_request = parse_order_request(request.get_json(silent=True))
        result = order_service.create_order(order_request, identity)

        current_app.logger.info(
            "Order %s created by user %s, role %s (%d items, fefo_split=%s)",
            result.order_id, identity.user_id, identity.role,
            result.item_count, result.fefo_split,
        )
        return jsonify({
            "success": True,
            "message": "Order created successfully",
            "data": result.to_dict(),
        }), 201

    except InsufficientStockError as e:
        current_app.logger.warning(
            "Order rejected for user %s: %s", identity.user_id, e.message
        )
        return _error(e, 409)
    except OrderAuthorizationError as e:
        current_app.logger.warning(
            "Order refused for user %s (role %s): %s", identity.user_id, identity.role, e.message
        )
        return _error(e, 403)
    except OrderProcessingError as e:
        current_app.logger.exception("Failed to create order")
        return _error(e, 500)
    except OrderError as e:
        return _error(e, 400)
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"success": False, "error": "Error creating order", "details": {}}), 500


@orders_bp.get("/customers")
@require_auth
@require_permission(VIEW_CUSTOMERS)
def list_customers_route():
    """Active customers, by name."""
    customers = catalog_service.list_active_customers()
    return jsonify({"success": True, "data": customers}), 200


@orders_bp.get("/products")
@require_auth
@require_permission(VIEW_PRODUCTS)
def list_products_route():
    """Active products with total available stock."""
    products = catalog_service.list_products_with_stock()
    return jsonify({"success": True, "data": products}), 200


@orders_bp.get("/products/<int:product_id>/batches")
@require_auth
@require_permission(VIEW_PRODUCTS)
def list_product_batches_route(product_id: int):
    """Batches with stock, in the order they will be consumed (FEFO)."""
    try:
        batches = catalog_service.list_batches_for_product(product_id)
        return jsonify({"success": True, "data": batches}), 200
    except CatalogNotFoundError as e:
        return jsonify({"success": False, "error": str(e)}), 404


@orders_bp.get("/customers/<int:customer_id>/orders")
@require_auth
@require_permission(VIEW_CUSTOMERS)
def list_customer_orders_route(customer_id: int):
    """Recent delivered / processing orders of a customer (return candidates)."""
    try:
        orders = catalog_service.list_customer_orders(customer_id)
        return jsonify({"success": True, "data": orders}), 200
    except CatalogNotFoundError as e:
        return jsonify({"success": False, "error": str(e)}), 404


@orders_bp.get("/<order_id>/items")
@require_auth
@require_permission(VIEW_ORDERS)
def list_order_items_route(order_id: str):
    try:
        items = catalog_service.list_order_items(order_id)
        return jsonify({"success": True, "data": items}), 200
    except CatalogNotFoundError as e:
        return jsonify({"success": False, "error": str(e)}), 404


@orders_bp.get("/<order_id>")
@require_auth
@require_permission(VIEW_ORDERS)
def get_order_route(order_id: str):
    try:
        detail = catalog_service.get_order_detail(order_id)
        return jsonify({"success": True, "data": detail}), 200
    except CatalogNotFoundError as e:
        return jsonify({"success": False, "error": str(e)}), 404
