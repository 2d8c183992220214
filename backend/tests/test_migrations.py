# Overview: Pytest coverage for the Alembic schema and the migrate-at-startup path.

"""
Migration Tests

Covers:
- AUTO_MIGRATE brings a fresh database to head, and a second startup is a no-op
- The migrated schema matches the models (autogenerate finds no differences)
- Service loggers keep working after Alembic has configured logging
"""

import logging

import pytest
from alembic.autogenerate import compare_metadata
from alembic.migration import MigrationContext
from sqlalchemy import inspect, text

from pos import create_app
from pos.extensions import db
from pos.models import Product, SaleItem, StockMovement
from pos.services.sales_service import SaleLineRequest, SaleRequest


HEAD_REVISION = "20261019_initial_pos"

SERVICE_LOGGERS = (
    "pos.services.sales_service",
    "pos.services.inventory_service",
    "pos.services.concurrency",
    "pos.services.auth_service",
)


def _migrated_app(database_path):
    return create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{database_path}",
        'BCRYPT_ROUNDS': 4,
        'AUTO_MIGRATE': True,
    })


@pytest.fixture(scope='function')
def database_path(tmp_path):
    return tmp_path / "pos.sqlite3"


@pytest.fixture(scope='function')
def migrated_app(database_path):
    """App whose schema was built by Alembic at startup, not create_all()."""
    app = _migrated_app(database_path)
    yield app
    with app.app_context():
        db.session.remove()
        db.engine.dispose()


def _version_rows(app):
    with app.app_context():
        return db.session.execute(text("SELECT version_num FROM alembic_version")).scalars().all()


class TestStartupMigrations:
    def test_fresh_database_reaches_head(self, migrated_app):
        with migrated_app.app_context():
            tables = set(inspect(db.engine).get_table_names())

        assert {"users", "products", "sales", "sale_items", "stock_movements"} <= tables
        assert _version_rows(migrated_app) == [HEAD_REVISION]

    def test_second_startup_is_idempotent(self, migrated_app, database_path):
        services = migrated_app.extensions["pos"]
        with migrated_app.app_context():
            services.inventory.create_product({"name": "Arroz", "price": 4.5, "stock": 3})

        again = _migrated_app(database_path)

        assert _version_rows(again) == [HEAD_REVISION]
        with again.app_context():
            assert db.session.query(Product).count() == 1
            db.session.remove()
            db.engine.dispose()

    def test_schema_matches_models(self, migrated_app):
        with migrated_app.app_context():
            with db.engine.connect() as connection:
                diff = compare_metadata(MigrationContext.configure(connection), db.metadata)

        assert diff == []

    def test_service_loggers_stay_enabled(self, migrated_app):
        for name in SERVICE_LOGGERS:
            assert logging.getLogger(name).disabled is False, name

    def test_cancel_skip_warning_is_logged(self, migrated_app, caplog):
        services = migrated_app.extensions["pos"]
        with migrated_app.app_context():
            cashier = services.auth.create_user(
                username="caja1", password="secreto123", full_name="Caja Uno",
            )
            keep = services.inventory.create_product({"name": "Queda", "price": 1, "stock": 5})
            gone = services.inventory.create_product({"name": "Borrado", "price": 1, "stock": 5})
            gone_id = gone.id
            result = services.sales.create_sale(SaleRequest(
                items=(
                    SaleLineRequest(keep.id, "Queda", 1, 1.0, 1.0),
                    SaleLineRequest(gone_id, "Borrado", 1, 1.0, 1.0),
                ),
                subtotal=2,
                total=2,
                payment_method="cash",
                cashier_id=cashier.id,
                cashier_name=cashier.full_name,
            ))

            db.session.query(StockMovement).filter_by(product_id=gone_id).delete()
            db.session.query(SaleItem).filter_by(product_id=gone_id).update({"product_id": "gone"})
            db.session.query(Product).filter_by(id=gone_id).delete()
            db.session.commit()

            with caplog.at_level(logging.WARNING, logger="pos.services.sales_service"):
                sale = services.sales.cancel(result.sale.id, cashier.id)

            assert sale.is_active is False
            assert services.inventory.stock_level(keep.id) == 5

        assert "no longer exists" in caplog.text
