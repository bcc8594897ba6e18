"""
Pytest fixtures for orderdesk backend tests.

Provides an app on a temporary SQLite file, test client, users per role,
and factories for customers, products and batches.

Fixtures hand out ids, not ORM objects: order creation closes the session
when its transaction ends, so objects loaded before it are detached.
"""

from datetime import date

import pytest

from orderdesk import create_app
from orderdesk.extensions import db
from orderdesk.models import Customer, Order, Product, ProductBatch
from orderdesk.models.auth import ROLE_LORRY_DRIVER, ROLE_OWNER, ROLE_SALES_REP
from orderdesk.models.orders import ORDER_STATUS_DELIVERED
from orderdesk.services.auth_service import create_user
from orderdesk.services.session_service import Identity

TEST_PASSWORD = "Password123!"


@pytest.fixture(scope='function')
def app(tmp_path):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'orderdesk.db'}",
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        # worker threads in the concurrency tests share the file database
        'SQLALCHEMY_ENGINE_OPTIONS': {'connect_args': {'check_same_thread': False, 'timeout': 30}},
        'ORDER_RETRY_BACKOFF_SECONDS': 0.01,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def make_user(app):
    def _make(username: str, role: str, is_active: bool = True) -> int:
        # low bcrypt cost keeps the suite fast
        user = create_user(username, username.title(), TEST_PASSWORD, role, rounds=4)
        if not is_active:
            user.is_active = False
            db.session.commit()
        return user.id
    return _make


@pytest.fixture(scope='function')
def owner_id(make_user):
    return make_user("owner", ROLE_OWNER)


@pytest.fixture(scope='function')
def rep_id(make_user):
    return make_user("rep", ROLE_SALES_REP)


@pytest.fixture(scope='function')
def driver_id(make_user):
    return make_user("driver", ROLE_LORRY_DRIVER)


@pytest.fixture(scope='function')
def rep_identity(rep_id):
    return Identity(user_id=rep_id, role=ROLE_SALES_REP)


@pytest.fixture(scope='function')
def owner_identity(owner_id):
    return Identity(user_id=owner_id, role=ROLE_OWNER)


@pytest.fixture(scope='function')
def make_customer(app):
    def _make(name: str = "Corner Shop", is_active: bool = True, credit_balance_cents: int = 0) -> int:
        customer = Customer(
            name=name,
            phone="0771234567",
            is_active=is_active,
            credit_balance_cents=credit_balance_cents,
        )
        db.session.add(customer)
        db.session.commit()
        return customer.id
    return _make


@pytest.fixture(scope='function')
def customer_id(make_customer):
    return make_customer()


@pytest.fixture(scope='function')
def make_product(app):
    def _make(name: str = "Soap 100g", unit_price_cents: int = 10000, is_active: bool = True) -> int:
        product = Product(name=name, unit_price_cents=unit_price_cents, is_active=is_active)
        db.session.add(product)
        db.session.commit()
        return product.id
    return _make


@pytest.fixture(scope='function')
def make_batch(app):
    def _make(
        product_id: int,
        quantity: int,
        expiry_date: date | None,
        batch_number: str | None = None,
        is_active: bool = True,
    ) -> int:
        batch = ProductBatch(
            product_id=product_id,
            batch_number=batch_number or f"B-{product_id}-{expiry_date or 'NONE'}",
            expiry_date=expiry_date,
            selling_price_cents=10000,
            initial_quantity=quantity,
            current_quantity=quantity,
            is_active=is_active,
        )
        db.session.add(batch)
        db.session.commit()
        return batch.id
    return _make


@pytest.fixture(scope='function')
def make_order(app):
    """Insert a bare delivered order (the 'original order' returns point at)."""
    def _make(order_id: str, customer_id: int, sales_rep_id: int, status: str = ORDER_STATUS_DELIVERED) -> str:
        db.session.add(Order(
            id=order_id,
            customer_id=customer_id,
            sales_rep_id=sales_rep_id,
            payment_type="cash",
            total_amount_cents=0,
            final_amount_cents=0,
            status=status,
        ))
        db.session.commit()
        return order_id
    return _make


def batch_quantity(batch_id: int) -> int:
    return db.session.query(ProductBatch.current_quantity).filter_by(id=batch_id).scalar()


@pytest.fixture(scope='function')
def quantity_of():
    """Current quantity of a batch, read fresh from the database."""
    return batch_quantity


def get_auth_token(client, username: str, password: str = TEST_PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def rep_headers(client, rep_id):
    return auth_headers(get_auth_token(client, "rep"))


@pytest.fixture(scope='function')
def owner_headers(client, owner_id):
    return auth_headers(get_auth_token(client, "owner"))


@pytest.fixture(scope='function')
def driver_headers(client, driver_id):
    return auth_headers(get_auth_token(client, "driver"))
