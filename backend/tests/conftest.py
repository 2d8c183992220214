"""
Pytest fixtures for POS backend tests.

Provides an in-memory app, a clean database per test, a controllable clock,
and small factories for users, products and sale requests.
"""

from datetime import datetime, timedelta

import pytest

from pos import create_app
from pos.extensions import db
from pos.services import build_services
from pos.services.sales_service import SaleLineRequest, SaleRequest


class FakeClock:
    """Callable clock; tests move it forward explicitly."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'AUTO_MIGRATE': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    # Clear all data but keep schema
    for table in reversed(db.metadata.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()
    db.session.expunge_all()

    yield db.session

    # Cleanup after test
    db.session.rollback()


@pytest.fixture(scope='function')
def clock():
    return FakeClock(datetime(2026, 3, 14, 10, 0, 0))


@pytest.fixture(scope='function')
def services(db_session, clock):
    """Service set bound to the test session and the fake clock."""
    return build_services(db_session, clock=clock, bcrypt_rounds=4)


@pytest.fixture(scope='function')
def cashier(services):
    return services.auth.create_user(
        username="caja1",
        password="secreto123",
        full_name="Caja Uno",
        role="cashier",
    )


@pytest.fixture(scope='function')
def make_product(services):
    """Factory: make_product(name="Arroz", stock=10, price=4.5, ...)."""

    def _make(name="Arroz Costeño 1kg", stock=10, price=4.5, **extra):
        data = {"name": name, "stock": stock, "price": price}
        data.update(extra)
        return services.inventory.create_product(data)

    return _make


@pytest.fixture(scope='function')
def sale_request(cashier):
    """
    Factory: sale_request([(product, qty), ...], payment_method="cash").

    Amounts are computed here the way a register would; the engine stores
    them as given.
    """

    def _build(lines, payment_method="cash", **extra):
        items = tuple(
            SaleLineRequest(
                product_id=product.id,
                product_name=product.name,
                quantity=qty,
                unit_price=product.price,
                total_price=round(product.price * qty, 2),
            )
            for product, qty in lines
        )
        subtotal = round(sum(item.total_price for item in items), 2)
        fields = {
            "items": items,
            "subtotal": subtotal,
            "total": subtotal,
            "payment_method": payment_method,
            "cashier_id": cashier.id,
            "cashier_name": cashier.full_name,
        }
        fields.update(extra)
        return SaleRequest(**fields)

    return _build
