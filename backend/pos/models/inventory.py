from __future__ import annotations

from ..extensions import db
from pos.time_utils import to_utc_z


MOVEMENT_TYPES = ("sale", "adjustment", "restock")


class Product(db.Model):
    """
    Product master data with its current stock level.

    INVARIANTS:
    - stock >= 0 at all times (CHECK constraint + conditional UPDATE in
      InventoryStore.apply_stock_delta).
    - barcode is unique across every row, active or not.
    - Products are soft-deleted (is_active=False) so old sale items keep a
      valid reference.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        db.CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
        db.CheckConstraint("cost >= 0", name="ck_products_cost_non_negative"),
        db.Index("ix_products_name", "name"),
        db.Index("ix_products_active", "is_active"),
        db.Index("ix_products_stock", "stock"),
    )

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(255), nullable=False)

    price = db.Column(db.Float, nullable=False)
    cost = db.Column(db.Float, nullable=False, default=0)

    stock = db.Column(db.Integer, nullable=False, default=0)
    min_stock = db.Column(db.Integer, nullable=False, default=5)

    category = db.Column(db.String(120), nullable=True, index=True)
    barcode = db.Column(db.String(64), nullable=True, unique=True)
    description = db.Column(db.Text, nullable=True)
    image_url = db.Column(db.String(512), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "cost": self.cost,
            "stock": self.stock,
            "min_stock": self.min_stock,
            "category": self.category,
            "barcode": self.barcode,
            "description": self.description,
            "image_url": self.image_url,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockMovement(db.Model):
    """
    Append-only stock ledger row.

    quantity is the magnitude for 'sale' (stock goes down) and the signed
    delta for 'adjustment' / 'restock'. Either way:
        sale:  new_stock == previous_stock - quantity
        other: new_stock == previous_stock + quantity
    Rows are never updated or deleted; corrections are new rows.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.CheckConstraint(
            "movement_type IN ('sale', 'adjustment', 'restock')",
            name="ck_stock_movements_type",
        ),
        db.Index("ix_stock_movements_product_type", "product_id", "movement_type"),
        db.Index("ix_stock_movements_created", "created_at"),
    )

    id = db.Column(db.String(64), primary_key=True)
    product_id = db.Column(db.String(64), db.ForeignKey("products.id"), nullable=False, index=True)
    movement_type = db.Column(db.String(16), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    previous_stock = db.Column(db.Integer, nullable=False)
    new_stock = db.Column(db.Integer, nullable=False)

    # e.g. the sale that caused the movement
    reference_id = db.Column(db.String(64), nullable=True, index=True)
    notes = db.Column(db.String(255), nullable=True)

    created_by = db.Column(db.String(64), db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def stock_delta(self) -> int:
        return self.new_stock - self.previous_stock

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "movement_type": self.movement_type,
            "quantity": self.quantity,
            "previous_stock": self.previous_stock,
            "new_stock": self.new_stock,
            "reference_id": self.reference_id,
            "notes": self.notes,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }
