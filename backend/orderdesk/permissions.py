"""
Permission System Constants and Definitions

Centralized permission codes and the fixed role -> permission mapping.
Roles are not editable at runtime; a user's permissions are exactly those
of their role.
"""

from .models.auth import ROLE_LORRY_DRIVER, ROLE_OWNER, ROLE_SALES_REP

# =============================================================================
# PERMISSION CODES
# =============================================================================

VIEW_CUSTOMERS = "view_customers"
ADD_CUSTOMER = "add_customer"
EDIT_CUSTOMER = "edit_customer"
DELETE_CUSTOMER = "delete_customer"
VIEW_CUSTOMER_PAYMENTS = "view_customer_payments"
MANAGE_CUSTOMER_PAYMENTS = "manage_customer_payments"
VIEW_ORDERS = "view_orders"
ADD_ORDER = "add_order"
EDIT_ORDER = "edit_order"
DELETE_ORDER = "delete_order"
MANAGE_DELIVERIES = "manage_deliveries"
VIEW_DELIVERIES = "view_deliveries"
UPDATE_DELIVERY_STATUS = "update_delivery_status"
VIEW_PRODUCTS = "view_products"
MANAGE_PRODUCTS = "manage_products"
VIEW_SUPPLIERS = "view_suppliers"
MANAGE_SUPPLIERS = "manage_suppliers"
VIEW_SALES_REPS = "view_sales_reps"
MANAGE_SALES_REPS = "manage_sales_reps"
VIEW_DRIVERS = "view_drivers"
MANAGE_DRIVERS = "manage_drivers"
VIEW_REPORTS = "view_reports"
MANAGE_REPORTS = "manage_reports"
VIEW_INVENTORY = "view_inventory"
MANAGE_INVENTORY = "manage_inventory"


# =============================================================================
# ROLE MAPPING
# =============================================================================

ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    ROLE_OWNER: frozenset({
        VIEW_CUSTOMERS, ADD_CUSTOMER, EDIT_CUSTOMER, DELETE_CUSTOMER,
        VIEW_CUSTOMER_PAYMENTS, MANAGE_CUSTOMER_PAYMENTS,
        VIEW_ORDERS, ADD_ORDER, EDIT_ORDER, DELETE_ORDER,
        MANAGE_DELIVERIES, VIEW_DELIVERIES,
        VIEW_PRODUCTS, MANAGE_PRODUCTS,
        VIEW_SUPPLIERS, MANAGE_SUPPLIERS,
        VIEW_SALES_REPS, MANAGE_SALES_REPS,
        VIEW_DRIVERS, MANAGE_DRIVERS,
        VIEW_REPORTS, MANAGE_REPORTS,
        VIEW_INVENTORY, MANAGE_INVENTORY,
    }),
    ROLE_SALES_REP: frozenset({
        VIEW_CUSTOMERS, ADD_CUSTOMER, EDIT_CUSTOMER,
        VIEW_CUSTOMER_PAYMENTS, MANAGE_CUSTOMER_PAYMENTS,
        VIEW_ORDERS, ADD_ORDER, EDIT_ORDER, DELETE_ORDER,
        VIEW_PRODUCTS,
    }),
    ROLE_LORRY_DRIVER: frozenset({
        VIEW_CUSTOMERS,
        VIEW_CUSTOMER_PAYMENTS, MANAGE_CUSTOMER_PAYMENTS,
        VIEW_ORDERS,
        UPDATE_DELIVERY_STATUS, VIEW_DELIVERIES,
        VIEW_PRODUCTS,
    }),
}


def get_role_permissions(role: str | None) -> frozenset[str]:
    """Permissions of a role; unknown or missing roles have none."""
    if not role:
        return frozenset()
    return ROLE_PERMISSIONS.get(role, frozenset())


def role_has_permission(role: str | None, permission_code: str) -> bool:
    return permission_code in get_role_permissions(role)
