"""
Authorization tests.

Verifies:
- Unauthenticated requests return 401
- Lorry drivers cannot create orders (403)
- Role -> permission mapping
"""

import pytest

from orderdesk.permissions import (
    ADD_ORDER,
    MANAGE_INVENTORY,
    UPDATE_DELIVERY_STATUS,
    VIEW_ORDERS,
    get_role_permissions,
    role_has_permission,
)


# =============================================================================
# UNAUTHENTICATED ACCESS - 401
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("POST", "/api/orders/create"),
            ("GET", "/api/orders/customers"),
            ("GET", "/api/orders/products"),
            ("GET", "/api/orders/products/1/batches"),
            ("GET", "/api/orders/customers/1/orders"),
            ("GET", "/api/orders/abc/items"),
            ("GET", "/api/orders/abc"),
            ("GET", "/api/auth/me"),
        ],
    )
    def test_requires_auth(self, client, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_invalid_token(self, client):
        resp = client.get("/api/orders/customers", headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401


# =============================================================================
# DRIVER DENIED ORDER CREATION - 403
# =============================================================================


class TestDriverDenied:

    def test_cannot_create_order(self, client, driver_headers):
        resp = client.post("/api/orders/create", json={}, headers=driver_headers)

        assert resp.status_code == 403
        assert resp.json["required_permission"] == ADD_ORDER

    def test_can_view_customers(self, client, driver_headers):
        resp = client.get("/api/orders/customers", headers=driver_headers)
        assert resp.status_code == 200


# =============================================================================
# ROLE MAPPING
# =============================================================================


class TestRolePermissions:

    def test_owner_has_everything(self):
        assert role_has_permission("owner", ADD_ORDER)
        assert role_has_permission("owner", MANAGE_INVENTORY)

    def test_sales_rep(self):
        assert role_has_permission("sales_rep", ADD_ORDER)
        assert not role_has_permission("sales_rep", MANAGE_INVENTORY)

    def test_lorry_driver(self):
        assert role_has_permission("lorry_driver", UPDATE_DELIVERY_STATUS)
        assert role_has_permission("lorry_driver", VIEW_ORDERS)
        assert not role_has_permission("lorry_driver", ADD_ORDER)

    @pytest.mark.parametrize("role", [None, "", "admin"])
    def test_unknown_roles_have_nothing(self, role):
        assert get_role_permissions(role) == frozenset()
