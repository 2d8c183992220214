# Overview: Pytest coverage for product maintenance and standalone stock paths.

import pytest

from pos.errors import (
    DuplicateConstraintError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from pos.models import Product, StockMovement
from pos.services.inventory_service import UNSET, ProductPatch


class TestCreateProduct:
    def test_defaults(self, db_session, services):
        product = services.inventory.create_product({"name": "  Leche Gloria  ", "price": 3.8})

        assert product.name == "Leche Gloria"
        assert product.stock == 0
        assert product.cost == 0
        assert product.min_stock == 5
        assert product.is_active is True

    def test_blank_optional_text_becomes_null(self, db_session, services):
        product = services.inventory.create_product(
            {"name": "Pan", "price": 0.2, "barcode": "   ", "category": ""}
        )

        assert product.barcode is None
        assert product.category is None

    @pytest.mark.parametrize("data", [
        {"price": 1},
        {"name": "   ", "price": 1},
        {"name": "Azúcar"},
        {"name": "Azúcar", "price": -1},
        {"name": "Azúcar", "price": 1, "stock": -2},
        {"name": "Azúcar", "price": 1, "stock": "1e5"},
    ])
    def test_rejects_invalid_input(self, db_session, services, data):
        with pytest.raises(ValidationError):
            services.inventory.create_product(data)
        assert db_session.query(Product).count() == 0

    def test_barcode_is_unique_even_against_inactive_rows(self, db_session, services, make_product):
        old = make_product(name="Viejo", barcode="7750001")
        services.inventory.delete_product(old.id)

        with pytest.raises(DuplicateConstraintError):
            make_product(name="Nuevo", barcode="7750001")


class TestProductPatch:
    def test_absent_versus_explicit_null(self):
        patch = ProductPatch.from_mapping({"category": None, "price": 2})

        assert patch.changes() == {"category": None, "price": 2}
        assert patch.name is UNSET

    def test_unknown_fields_rejected(self):
        with pytest.raises(ValidationError):
            ProductPatch.from_mapping({"id": "x"})

    def test_empty_patch_is_noop(self, db_session, services, make_product):
        product = make_product()

        assert services.inventory.update_product(product.id, ProductPatch()) is False

    def test_update_applies_present_fields_only(self, db_session, services, make_product):
        product = make_product(name="Fideos", price=2.5, category="Abarrotes")

        updated = services.inventory.update_product(
            product.id, ProductPatch.from_mapping({"price": 2.8, "category": None})
        )

        assert updated is True
        refreshed = services.inventory.require_product(product.id)
        assert refreshed.price == 2.8
        assert refreshed.category is None
        assert refreshed.name == "Fideos"

    def test_update_barcode_collision(self, db_session, services, make_product):
        make_product(name="A", barcode="111")
        b = make_product(name="B", barcode="222")

        with pytest.raises(DuplicateConstraintError):
            services.inventory.update_product(b.id, ProductPatch(barcode="111"))

    def test_update_barcode_taken_after_precheck(self, db_session, services, make_product, monkeypatch):
        """The unique constraint still reports a duplicate, not a store failure."""
        make_product(name="A", barcode="111")
        b = make_product(name="B", barcode="222")
        monkeypatch.setattr(services.inventory, "_ensure_barcode_free", lambda *args, **kwargs: None)

        with pytest.raises(DuplicateConstraintError) as exc_info:
            services.inventory.update_product(b.id, ProductPatch(barcode="111"))

        assert exc_info.value.status_code == 409
        assert services.inventory.require_product(b.id).barcode == "222"

    def test_update_unknown_product(self, db_session, services):
        with pytest.raises(NotFoundError):
            services.inventory.update_product("missing", ProductPatch(name="X"))


class TestSoftDelete:
    def test_delete_keeps_row(self, db_session, services, make_product):
        product = make_product(barcode="999")

        assert services.inventory.delete_product(product.id) is True
        assert services.inventory.get_product(product.id).is_active is False
        assert services.inventory.get_by_barcode("999") is None

    def test_delete_unknown_returns_false(self, db_session, services):
        assert services.inventory.delete_product("missing") is False


class TestStockPaths:
    def test_adjust_stock_writes_signed_movement(self, db_session, services, cashier, make_product):
        product = make_product(stock=10)

        movement = services.inventory.adjust_stock(product.id, -3, "Merma", cashier.id)

        assert services.inventory.stock_level(product.id) == 7
        assert movement.movement_type == "adjustment"
        assert movement.quantity == -3
        assert (movement.previous_stock, movement.new_stock) == (10, 7)
        assert movement.notes == "Merma"
        assert movement.created_by == cashier.id

    def test_adjust_below_zero_is_rejected(self, db_session, services, make_product):
        product = make_product(stock=2)

        with pytest.raises(InvalidStateError) as exc_info:
            services.inventory.adjust_stock(product.id, -5, None, None)

        assert "negativo" in exc_info.value.message
        assert services.inventory.stock_level(product.id) == 2
        assert db_session.query(StockMovement).count() == 0

    def test_restock(self, db_session, services, make_product):
        product = make_product(stock=0)

        movement = services.inventory.restock(product.id, 24, None, notes="Proveedor")

        assert movement.movement_type == "restock"
        assert services.inventory.stock_level(product.id) == 24

    @pytest.mark.parametrize("quantity", [0, -1, 2.5, "abc"])
    def test_restock_requires_positive_integer(self, db_session, services, make_product, quantity):
        product = make_product(stock=1)

        with pytest.raises(ValidationError):
            services.inventory.restock(product.id, quantity, None)

    def test_stock_paths_on_unknown_product(self, db_session, services):
        with pytest.raises(NotFoundError):
            services.inventory.restock("missing", 1, None)
        assert services.inventory.stock_level("missing") is None

    def test_apply_stock_delta_refuses_negative(self, db_session, services, make_product):
        product = make_product(stock=1)

        with pytest.raises(InvalidStateError):
            services.inventory.apply_stock_delta(product.id, -2)
        db_session.rollback()

        assert services.inventory.stock_level(product.id) == 1
