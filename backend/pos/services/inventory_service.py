# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

# backend/pos/services/inventory_service.py

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any, Callable, Optional

from sqlalchemy.exc import IntegrityError

from ..models import Product, StockMovement
from ..errors import (
    DuplicateConstraintError,
    InvalidStateError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from ..validation import require_amount, require_int, require_text, optional_text
from pos.time_utils import utcnow
from .concurrency import lock_for_update, unit_of_work
from .identifier_service import new_id
from .ledger_service import StockLedger
"""
Inventory Invariants (authoritative)

- Product.stock is the current on-hand quantity and is never negative.
- Every stock change goes through apply_stock_delta(), a conditional UPDATE
  (WHERE stock + delta >= 0), and is paired with exactly one StockMovement
  written in the same unit of work.
- Products are soft-deleted; barcode stays unique across all rows.
"""

logger = logging.getLogger(__name__)


class _Unset(enum.Enum):
    UNSET = "UNSET"

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET = _Unset.UNSET

PRODUCT_MUTABLE_FIELDS = (
    "name", "price", "cost", "stock", "min_stock",
    "category", "barcode", "description", "image_url", "is_active",
)


@dataclass(frozen=True)
class ProductPatch:
    """
    Partial product update.

    A field left as UNSET is absent (not touched); None is an explicit
    "clear this value". Field order here is the order changes are applied.
    """
    name: Any = UNSET
    price: Any = UNSET
    cost: Any = UNSET
    stock: Any = UNSET
    min_stock: Any = UNSET
    category: Any = UNSET
    barcode: Any = UNSET
    description: Any = UNSET
    image_url: Any = UNSET
    is_active: Any = UNSET

    @classmethod
    def from_mapping(cls, data: dict) -> "ProductPatch":
        unknown = sorted(set(data) - set(PRODUCT_MUTABLE_FIELDS))
        if unknown:
            raise ValidationError(
                f"Campos no permitidos: {', '.join(unknown)}",
                details={"fields": unknown},
            )
        return cls(**{k: data[k] for k in PRODUCT_MUTABLE_FIELDS if k in data})

    def changes(self) -> dict[str, Any]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not UNSET
        }

    def is_empty(self) -> bool:
        return not self.changes()


class InventoryStore:
    """Products and their stock levels."""

    def __init__(
        self,
        session,
        ledger: StockLedger,
        *,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = new_id,
        default_min_stock: int = 5,
    ):
        self.session = session
        self.ledger = ledger
        self.clock = clock
        self.id_factory = id_factory
        self.default_min_stock = default_min_stock

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_product(self, product_id: str) -> Product | None:
        return self.session.query(Product).filter_by(id=product_id).first()

    def require_product(self, product_id: str, *, lock: bool = False) -> Product:
        query = self.session.query(Product).filter_by(id=product_id)
        if lock:
            query = lock_for_update(query)
        product = query.first()
        if product is None:
            raise NotFoundError("Producto no encontrado", details={"product_id": product_id})
        return product

    def get_by_barcode(self, barcode: str) -> Product | None:
        """Active product with this barcode, or None."""
        return (
            self.session.query(Product)
            .filter(Product.barcode == barcode.strip(), Product.is_active.is_(True))
            .first()
        )

    def stock_level(self, product_id: str) -> int | None:
        """Current stock, or None when the product row doesn't exist."""
        return (
            lock_for_update(self.session.query(Product.stock).filter(Product.id == product_id))
            .scalar()
        )

    # ------------------------------------------------------------------
    # Stock primitive (no commit; caller owns the unit of work)
    # ------------------------------------------------------------------

    def apply_stock_delta(
        self,
        product_id: str,
        delta: int,
        *,
        now: Optional[datetime] = None,
    ) -> tuple[int, int]:
        """
        Add `delta` (may be negative) to the product's stock.

        Returns (previous_stock, new_stock). Raises NotFoundError for an
        unknown product and InvalidStateError when the result would be
        negative. The UPDATE is conditional so the store itself refuses a
        negative result even if the read above is stale.
        """
        product = self.require_product(product_id, lock=True)
        previous = product.stock
        new = previous + delta
        if new < 0:
            raise InvalidStateError(
                "El stock no puede ser negativo",
                details={"product_id": product_id, "current_stock": previous, "delta": delta},
            )

        updated = (
            self.session.query(Product)
            .filter(Product.id == product_id, Product.stock + delta >= 0)
            .update(
                {Product.stock: Product.stock + delta, Product.updated_at: now or self.clock()},
                synchronize_session="fetch",
            )
        )
        if updated != 1:
            raise InvalidStateError(
                "El stock no puede ser negativo",
                details={"product_id": product_id, "current_stock": previous, "delta": delta},
            )
        return previous, new

    # ------------------------------------------------------------------
    # Standalone stock paths
    # ------------------------------------------------------------------

    def adjust_stock(
        self,
        product_id: str,
        delta: int,
        reason: str | None,
        user_id: str | None,
    ) -> StockMovement:
        """
        Manual correction outside a sale. Appends an 'adjustment' movement
        whose quantity is the signed delta.
        """
        delta = require_int(delta, "quantity")

        with unit_of_work(self.session):
            now = self.clock()
            previous, new = self.apply_stock_delta(product_id, delta, now=now)
            movement = self.ledger.record(
                product_id=product_id,
                movement_type="adjustment",
                quantity=delta,
                previous_stock=previous,
                new_stock=new,
                notes=optional_text(reason, "reason"),
                created_by=user_id,
                occurred_at=now,
            )

        logger.info("Stock adjusted product=%s %s -> %s by user=%s", product_id, previous, new, user_id)
        return movement

    def restock(
        self,
        product_id: str,
        quantity: int,
        user_id: str | None,
        notes: str | None = None,
    ) -> StockMovement:
        """Receive `quantity` (> 0) units; appends a 'restock' movement."""
        quantity = require_int(quantity, "quantity", minimum=1)

        with unit_of_work(self.session):
            now = self.clock()
            previous, new = self.apply_stock_delta(product_id, quantity, now=now)
            movement = self.ledger.record(
                product_id=product_id,
                movement_type="restock",
                quantity=quantity,
                previous_stock=previous,
                new_stock=new,
                notes=optional_text(notes, "notes"),
                created_by=user_id,
                occurred_at=now,
            )

        logger.info("Product %s restocked %s -> %s", product_id, previous, new)
        return movement

    # ------------------------------------------------------------------
    # Catalog maintenance
    # ------------------------------------------------------------------

    def _ensure_barcode_free(self, barcode: str | None, *, exclude_id: str | None = None) -> None:
        if not barcode:
            return
        q = self.session.query(Product.id).filter(Product.barcode == barcode)
        if exclude_id is not None:
            q = q.filter(Product.id != exclude_id)
        if q.first() is not None:
            raise DuplicateConstraintError(
                "Ya existe un producto con ese código de barras",
                details={"barcode": barcode},
            )

    def create_product(self, data: dict) -> Product:
        """
        Create a product from a plain dict.

        Required: name (non-blank), price (>= 0). Defaults: cost 0, stock 0,
        min_stock from config. Blank optional text becomes NULL.
        """
        name = require_text(data.get("name"), "name", label="El nombre del producto")
        if data.get("price") is None:
            raise ValidationError("El precio es requerido", details={"field": "price"})
        price = require_amount(data.get("price"), "price")
        cost = require_amount(data.get("cost", 0) or 0, "cost")
        stock = require_int(data.get("stock", 0) or 0, "stock", minimum=0)
        min_stock = data.get("min_stock")
        min_stock = self.default_min_stock if min_stock is None else require_int(min_stock, "min_stock", minimum=0)
        barcode = optional_text(data.get("barcode"), "barcode")

        now = self.clock()
        product = Product(
            id=self.id_factory(),
            name=name,
            price=price,
            cost=cost,
            stock=stock,
            min_stock=min_stock,
            category=optional_text(data.get("category"), "category"),
            barcode=barcode,
            description=optional_text(data.get("description"), "description"),
            image_url=optional_text(data.get("image_url"), "image_url"),
            is_active=True,
            created_at=now,
            updated_at=now,
        )

        self._ensure_barcode_free(barcode)
        try:
            with unit_of_work(self.session):
                self.session.add(product)
                self.session.flush()
        except StoreError as exc:
            if isinstance(exc.__cause__, IntegrityError):
                raise DuplicateConstraintError(
                    "Ya existe un producto con ese código de barras",
                    details={"barcode": barcode},
                ) from exc
            raise

        logger.info("Product created id=%s name=%r", product.id, product.name)
        return product

    def _normalize_patch(self, product: Product, patch: ProductPatch) -> dict[str, Any]:
        normalized: dict[str, Any] = {}
        for key, value in patch.changes().items():
            if key == "name":
                normalized[key] = require_text(value, "name", label="El nombre")
            elif key in ("price", "cost"):
                normalized[key] = require_amount(value, key)
            elif key in ("stock", "min_stock"):
                normalized[key] = require_int(value, key, minimum=0)
            elif key == "is_active":
                if not isinstance(value, bool):
                    raise ValidationError("is_active debe ser booleano", details={"field": key})
                normalized[key] = value
            else:
                normalized[key] = optional_text(value, key)

        if "barcode" in normalized:
            self._ensure_barcode_free(normalized["barcode"], exclude_id=product.id)
        return normalized

    def update_product(self, product_id: str, patch: ProductPatch) -> bool:
        """
        Apply only the fields present in `patch`. Returns False when the
        patch is empty.

        NOTE: a direct 'stock' edit here is a catalog correction and writes
        no ledger row; use adjust_stock() for audited changes.
        """
        product = self.require_product(product_id)
        changes = self._normalize_patch(product, patch)
        if not changes:
            return False

        try:
            with unit_of_work(self.session):
                for key, value in changes.items():
                    setattr(product, key, value)
                product.updated_at = self.clock()
        except StoreError as exc:
            # Another writer took the barcode after the pre-check
            if isinstance(exc.__cause__, IntegrityError) and "barcode" in changes:
                raise DuplicateConstraintError(
                    "Ya existe un producto con ese código de barras",
                    details={"barcode": changes["barcode"]},
                ) from exc
            raise
        return True

    def delete_product(self, product_id: str) -> bool:
        """
        Soft-delete: preserves the row so historical sale items keep a valid
        reference. Returns False if the product doesn't exist.
        """
        product = self.get_product(product_id)
        if product is None:
            return False

        with unit_of_work(self.session):
            if product.is_active:
                product.is_active = False
                product.updated_at = self.clock()
        return True
