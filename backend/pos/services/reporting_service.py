# Overview: Service-layer operations for reporting; read-only queries over committed state.

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional, Union

from sqlalchemy import case, func

from ..models import Product, Sale, SaleItem, PAYMENT_METHODS
from ..errors import ValidationError
from pos.time_utils import parse_date


DateLike = Union[str, date, None]

SALE_STATUSES = ("active", "cancelled")


@dataclass(frozen=True)
class ProductFilters:
    category: Optional[str] = None
    search: Optional[str] = None
    in_stock: bool = False
    low_stock: bool = False


@dataclass(frozen=True)
class SaleFilters:
    date_from: DateLike = None
    date_to: DateLike = None
    payment_method: Optional[str] = None
    cashier_id: Optional[str] = None
    status: Optional[str] = None  # "active" | "cancelled" | None for both


def _parse_range(date_from: DateLike, date_to: DateLike) -> tuple[date | None, date | None]:
    try:
        return parse_date(date_from), parse_date(date_to)
    except (TypeError, ValueError):
        raise ValidationError(
            "Fecha inválida, use AAAA-MM-DD",
            details={"from": str(date_from), "to": str(date_to)},
        )


def _filter_business_dates(query, date_from: DateLike, date_to: DateLike):
    """Inclusive calendar-date range on Sale.business_date."""
    start, end = _parse_range(date_from, date_to)
    if start is not None:
        query = query.filter(Sale.business_date >= start)
    if end is not None:
        query = query.filter(Sale.business_date <= end)
    return query


class ReportingService:
    """Pure reads; never opens a unit of work."""

    def __init__(self, session, *, top_products_limit: int = 10):
        self.session = session
        self.top_products_limit = top_products_limit

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def list_products(self, filters: ProductFilters | None = None) -> list[Product]:
        """Active products ordered by name."""
        filters = filters or ProductFilters()
        q = self.session.query(Product).filter(Product.is_active.is_(True))

        if filters.category:
            q = q.filter(Product.category == filters.category)

        if filters.search:
            pattern = f"%{filters.search.strip()}%"
            q = q.filter(
                Product.name.ilike(pattern)
                | Product.barcode.ilike(pattern)
                | Product.category.ilike(pattern)
            )

        if filters.in_stock:
            q = q.filter(Product.stock > 0)

        if filters.low_stock:
            q = q.filter(Product.stock <= Product.min_stock, Product.stock > 0)

        return q.order_by(Product.name.asc(), Product.id.asc()).all()

    def list_categories(self) -> list[str]:
        rows = (
            self.session.query(Product.category)
            .filter(Product.category.isnot(None), Product.is_active.is_(True))
            .distinct()
            .order_by(Product.category.asc())
            .all()
        )
        return [row.category for row in rows]

    def low_stock_products(self) -> list[Product]:
        """Active, 0 < stock <= min_stock, lowest stock first."""
        return (
            self.session.query(Product)
            .filter(
                Product.is_active.is_(True),
                Product.stock <= Product.min_stock,
                Product.stock > 0,
            )
            .order_by(Product.stock.asc(), Product.name.asc())
            .all()
        )

    def out_of_stock_products(self) -> list[Product]:
        return (
            self.session.query(Product)
            .filter(Product.is_active.is_(True), Product.stock == 0)
            .order_by(Product.name.asc())
            .all()
        )

    def product_stats(self) -> dict:
        """
        total counts every row (active or not); the other figures only count
        active products. total_value = SUM(stock * price).
        """
        active = Product.is_active.is_(True)
        row = self.session.query(
            func.count(Product.id).label("total"),
            func.coalesce(func.sum(case((active, 1), else_=0)), 0).label("active"),
            func.coalesce(
                func.sum(case((active & (Product.stock <= Product.min_stock) & (Product.stock > 0), 1), else_=0)),
                0,
            ).label("low_stock"),
            func.coalesce(func.sum(case((active & (Product.stock == 0), 1), else_=0)), 0).label("out_of_stock"),
            func.coalesce(func.sum(case((active, Product.stock * Product.price), else_=0)), 0).label("total_value"),
        ).one()

        return {
            "total": int(row.total or 0),
            "active": int(row.active or 0),
            "low_stock": int(row.low_stock or 0),
            "out_of_stock": int(row.out_of_stock or 0),
            "total_value": float(row.total_value or 0),
        }

    # ------------------------------------------------------------------
    # Sales
    # ------------------------------------------------------------------

    def list_sales(self, filters: SaleFilters | None = None) -> list[Sale]:
        """Newest first."""
        filters = filters or SaleFilters()
        q = _filter_business_dates(self.session.query(Sale), filters.date_from, filters.date_to)

        if filters.payment_method:
            if filters.payment_method not in PAYMENT_METHODS:
                raise ValidationError(
                    f"payment_method inválido: {filters.payment_method!r}",
                    details={"allowed": list(PAYMENT_METHODS)},
                )
            q = q.filter(Sale.payment_method == filters.payment_method)

        if filters.cashier_id:
            q = q.filter(Sale.cashier_id == filters.cashier_id)

        if filters.status == "active":
            q = q.filter(Sale.is_active.is_(True))
        elif filters.status == "cancelled":
            q = q.filter(Sale.is_active.is_(False))
        elif filters.status is not None:
            raise ValidationError(
                f"status inválido: {filters.status!r}",
                details={"allowed": list(SALE_STATUSES)},
            )

        return q.order_by(Sale.created_at.desc(), Sale.daily_number.desc()).all()

    def sales_metrics(self, date_from: DateLike = None, date_to: DateLike = None) -> dict:
        """
        Totals over active sales plus the count of cancelled ones, optionally
        restricted to an inclusive date range.
        """
        active = Sale.is_active.is_(True)
        q = self.session.query(
            func.coalesce(func.sum(case((active, Sale.total), else_=0)), 0).label("total_sales"),
            func.coalesce(func.sum(case((active, 1), else_=0)), 0).label("total_tickets"),
            func.avg(case((active, Sale.total))).label("average_ticket"),
            func.coalesce(func.sum(case((Sale.is_active.is_(False), 1), else_=0)), 0).label("cancelled_sales"),
        )
        row = _filter_business_dates(q, date_from, date_to).one()

        return {
            "total_sales": float(row.total_sales or 0),
            "total_tickets": int(row.total_tickets or 0),
            "average_ticket": float(row.average_ticket or 0),
            "cancelled_sales": int(row.cancelled_sales or 0),
        }

    def top_products(
        self,
        limit: int | None = None,
        date_from: DateLike = None,
        date_to: DateLike = None,
    ) -> list[dict]:
        """
        Best sellers by quantity over active sales.

        Grouped by (product_id, product_name): a product renamed between sales
        shows up once per name it was sold under. Ties on quantity are broken
        by product_name, then product_id.
        """
        limit = self.top_products_limit if limit is None else limit
        if limit < 1:
            raise ValidationError("limit debe ser mayor a cero", details={"limit": limit})

        quantity = func.sum(SaleItem.quantity).label("quantity")
        q = (
            self.session.query(
                SaleItem.product_id,
                SaleItem.product_name,
                quantity,
                func.sum(SaleItem.total_price).label("revenue"),
            )
            .join(Sale, SaleItem.sale_id == Sale.id)
            .filter(Sale.is_active.is_(True))
        )
        q = _filter_business_dates(q, date_from, date_to)

        rows = (
            q.group_by(SaleItem.product_id, SaleItem.product_name)
            .order_by(quantity.desc(), SaleItem.product_name.asc(), SaleItem.product_id.asc())
            .limit(limit)
            .all()
        )
        return [
            {
                "product_id": row.product_id,
                "product_name": row.product_name,
                "quantity": int(row.quantity or 0),
                "revenue": float(row.revenue or 0),
            }
            for row in rows
        ]

    def sales_by_payment_method(self, date_from: DateLike = None, date_to: DateLike = None) -> list[dict]:
        q = self.session.query(
            Sale.payment_method,
            func.coalesce(func.sum(Sale.total), 0).label("total"),
            func.count(Sale.id).label("count"),
        ).filter(Sale.is_active.is_(True))
        q = _filter_business_dates(q, date_from, date_to)

        rows = q.group_by(Sale.payment_method).order_by(Sale.payment_method.asc()).all()
        return [
            {
                "payment_method": row.payment_method,
                "total": float(row.total or 0),
                "count": int(row.count or 0),
            }
            for row in rows
        ]
