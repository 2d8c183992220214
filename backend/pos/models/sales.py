from __future__ import annotations

from ..extensions import db
from pos.time_utils import to_utc_z


PAYMENT_METHODS = ("cash", "card", "transfer")


class Sale(db.Model):
    """
    Sale header.

    daily_number is contiguous per business_date starting at 1; the unique
    constraint is the store-level backstop for SalesEngine's numbering.
    A sale is never deleted: cancelling sets is_active=False.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("business_date", "daily_number", name="uq_sales_business_date_daily_number"),
        db.CheckConstraint(
            "payment_method IN ('cash', 'card', 'transfer')",
            name="ck_sales_payment_method",
        ),
        db.CheckConstraint("daily_number > 0", name="ck_sales_daily_number_positive"),
        db.Index("ix_sales_created", "created_at"),
        db.Index("ix_sales_active", "is_active"),
    )

    id = db.Column(db.String(64), primary_key=True)

    # Caller-computed amounts, stored as submitted
    total = db.Column(db.Float, nullable=False)
    subtotal = db.Column(db.Float, nullable=False)
    tax = db.Column(db.Float, nullable=False, default=0)
    discount = db.Column(db.Float, nullable=False, default=0)

    payment_method = db.Column(db.String(16), nullable=False, index=True)

    cashier_id = db.Column(db.String(64), db.ForeignKey("users.id"), nullable=False, index=True)
    cashier_name = db.Column(db.String(255), nullable=False)
    customer_name = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    daily_number = db.Column(db.Integer, nullable=False)
    business_date = db.Column(db.Date, nullable=False, index=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    # Cancellation audit trail
    cancelled_by = db.Column(db.String(64), db.ForeignKey("users.id"), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    items = db.relationship(
        "SaleItem",
        back_populates="sale",
        cascade="all, delete-orphan",
        order_by="SaleItem.line_number",
        lazy="select",
    )

    def __repr__(self) -> str:
        return f"<Sale id={self.id} #{self.daily_number} {self.business_date} total={self.total}>"

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "total": self.total,
            "subtotal": self.subtotal,
            "tax": self.tax,
            "discount": self.discount,
            "payment_method": self.payment_method,
            "cashier_id": self.cashier_id,
            "cashier_name": self.cashier_name,
            "customer_name": self.customer_name,
            "notes": self.notes,
            "daily_number": self.daily_number,
            "business_date": self.business_date.isoformat() if self.business_date else None,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "cancelled_by": self.cancelled_by,
            "cancelled_at": to_utc_z(self.cancelled_at) if self.cancelled_at else None,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    """
    Line item owned by one sale. product_name / unit_price / total_price are
    snapshots taken at sale time and never re-read from the catalog.
    """
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sale_items_quantity_positive"),
        db.Index("ix_sale_items_sale_product", "sale_id", "product_id"),
    )

    id = db.Column(db.String(64), primary_key=True)
    sale_id = db.Column(
        db.String(64),
        db.ForeignKey("sales.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Reference only; the product may be deactivated later
    product_id = db.Column(db.String(64), db.ForeignKey("products.id"), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)

    line_number = db.Column(db.Integer, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Float, nullable=False)
    total_price = db.Column(db.Float, nullable=False)

    sale = db.relationship("Sale", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "line_number": self.line_number,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "total_price": self.total_price,
        }
