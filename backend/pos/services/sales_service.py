"""
Sales Service - atomic sale creation and cancellation

WHY: A sale touches four tables (sales, sale_items, products, stock_movements).
All of it happens inside one unit of work so a failure on any line leaves no
sale header, no item rows, no stock change and no ledger rows behind.

DAILY NUMBERING:
- daily_number restarts at 1 every calendar day (by the engine's clock).
- It is MAX(daily_number)+1 for the day, read and consumed in the same unit
  of work as the insert. Cancelled sales keep their number, so the sequence
  stays contiguous.
- uq_sales_business_date_daily_number rejects a duplicate if a second writer
  ever races the read.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import func

from ..models import Sale, SaleItem, PAYMENT_METHODS
from ..errors import InsufficientStockError, InvalidStateError, NotFoundError, ValidationError
from ..validation import (
    optional_text,
    require_amount,
    require_choice,
    require_int,
    require_mapping,
    require_text,
)
from pos.time_utils import utcnow
from .concurrency import lock_for_update, unit_of_work
from .identifier_service import new_id
from .inventory_service import InventoryStore
from .ledger_service import StockLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SaleLineRequest:
    product_id: str
    product_name: str
    quantity: int
    unit_price: float
    total_price: float

    @classmethod
    def from_mapping(cls, data: dict, index: int = 0) -> "SaleLineRequest":
        data = require_mapping(data)
        prefix = f"items[{index}]"
        return cls(
            product_id=require_text(data.get("product_id"), f"{prefix}.product_id"),
            product_name=require_text(data.get("product_name"), f"{prefix}.product_name"),
            quantity=require_int(data.get("quantity"), f"{prefix}.quantity", minimum=1),
            unit_price=require_amount(data.get("unit_price"), f"{prefix}.unit_price"),
            total_price=require_amount(data.get("total_price"), f"{prefix}.total_price"),
        )


@dataclass(frozen=True)
class SaleRequest:
    """
    What the register submits. Amounts are computed by the caller and stored
    as given; the engine never recomputes total = subtotal + tax - discount.
    """
    items: tuple[SaleLineRequest, ...]
    subtotal: float
    total: float
    payment_method: str
    cashier_id: str
    cashier_name: str
    tax: float = 0
    discount: float = 0
    customer_name: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: dict) -> "SaleRequest":
        data = require_mapping(data)
        raw_items = data.get("items")
        if not isinstance(raw_items, list) or not raw_items:
            raise ValidationError("La venta debe tener al menos un producto")
        return cls(
            items=tuple(SaleLineRequest.from_mapping(item, i) for i, item in enumerate(raw_items)),
            subtotal=require_amount(data.get("subtotal"), "subtotal"),
            total=require_amount(data.get("total"), "total", minimum=None),
            payment_method=require_choice(data.get("payment_method"), "payment_method", PAYMENT_METHODS),
            cashier_id=require_text(data.get("cashier_id"), "cashier_id"),
            cashier_name=require_text(data.get("cashier_name"), "cashier_name"),
            tax=require_amount(data.get("tax", 0) or 0, "tax"),
            discount=require_amount(data.get("discount", 0) or 0, "discount"),
            customer_name=optional_text(data.get("customer_name"), "customer_name"),
            notes=optional_text(data.get("notes"), "notes"),
        )


@dataclass
class SaleResult:
    sale: Sale
    daily_number: int
    items: list[SaleItem] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "sale": self.sale.to_dict(include_items=True),
            "daily_number": self.daily_number,
        }


def _validate_request(request: SaleRequest) -> None:
    """Fail fast, before any mutation."""
    if not request.items:
        raise ValidationError("La venta debe tener al menos un producto")

    if request.total <= 0:
        raise ValidationError("El total debe ser mayor a cero", details={"total": request.total})

    require_choice(request.payment_method, "payment_method", PAYMENT_METHODS)
    require_text(request.cashier_id, "cashier_id")
    require_text(request.cashier_name, "cashier_name")

    for name in ("subtotal", "tax", "discount"):
        require_amount(getattr(request, name), name)

    for i, line in enumerate(request.items):
        require_int(line.quantity, f"items[{i}].quantity", minimum=1)
        require_amount(line.unit_price, f"items[{i}].unit_price")
        require_amount(line.total_price, f"items[{i}].total_price")


class SalesEngine:
    def __init__(
        self,
        session,
        inventory: InventoryStore,
        ledger: StockLedger,
        *,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = new_id,
    ):
        self.session = session
        self.inventory = inventory
        self.ledger = ledger
        self.clock = clock
        self.id_factory = id_factory

    def _next_daily_number(self, business_date) -> int:
        last = (
            self.session.query(func.max(Sale.daily_number))
            .filter(Sale.business_date == business_date)
            .scalar()
        )
        return (last or 0) + 1

    def _post_line(
        self,
        sale: Sale,
        line: SaleLineRequest,
        line_number: int,
        cashier_id: str,
        now: datetime,
    ) -> SaleItem:
        current = self.inventory.stock_level(line.product_id)
        if current is None:
            raise NotFoundError(
                f'Producto "{line.product_name}" no encontrado',
                details={"product_id": line.product_id},
            )

        if current < line.quantity:
            raise InsufficientStockError(
                product_id=line.product_id,
                product_name=line.product_name,
                available=current,
                requested=line.quantity,
            )

        # Snapshot as submitted; never re-read name/price from the catalog
        item = SaleItem(
            id=self.id_factory(),
            sale_id=sale.id,
            product_id=line.product_id,
            product_name=line.product_name,
            line_number=line_number,
            quantity=line.quantity,
            unit_price=line.unit_price,
            total_price=line.total_price,
        )
        self.session.add(item)

        previous, new = self.inventory.apply_stock_delta(line.product_id, -line.quantity, now=now)

        self.ledger.record(
            product_id=line.product_id,
            movement_type="sale",
            quantity=line.quantity,
            previous_stock=previous,
            new_stock=new,
            reference_id=sale.id,
            created_by=cashier_id,
            occurred_at=now,
        )
        return item

    def create_sale(self, request: SaleRequest) -> SaleResult:
        """
        Create a sale, its items, the stock decrements and the 'sale' ledger
        rows as one unit of work. Lines are processed in input order.

        Raises ValidationError before touching the store; NotFoundError /
        InsufficientStockError abort the whole unit.
        """
        _validate_request(request)

        now = self.clock()
        business_date = now.date()

        with unit_of_work(self.session):
            daily_number = self._next_daily_number(business_date)

            sale = Sale(
                id=self.id_factory(),
                total=request.total,
                subtotal=request.subtotal,
                tax=request.tax,
                discount=request.discount,
                payment_method=request.payment_method,
                cashier_id=request.cashier_id,
                cashier_name=request.cashier_name,
                customer_name=request.customer_name,
                notes=request.notes,
                daily_number=daily_number,
                business_date=business_date,
                is_active=True,
                created_at=now,
            )
            self.session.add(sale)
            self.session.flush()

            items = [
                self._post_line(sale, line, position, request.cashier_id, now)
                for position, line in enumerate(request.items, start=1)
            ]

        logger.info(
            "Sale %s created: #%s on %s, %d item(s), total=%s",
            sale.id, daily_number, business_date, len(items), request.total,
        )
        return SaleResult(sale=sale, daily_number=daily_number, items=items)

    def cancel(self, sale_id: str, user_id: str) -> Sale:
        """
        Cancel an active sale: restore each item's stock, append one
        'adjustment' movement per item, then mark the sale inactive.

        Items whose product row no longer exists are skipped (logged); the
        cancellation itself still succeeds.
        """
        with unit_of_work(self.session):
            sale = lock_for_update(self.session.query(Sale).filter_by(id=sale_id)).first()
            if sale is None:
                raise NotFoundError("Venta no encontrada", details={"sale_id": sale_id})

            if not sale.is_active:
                raise InvalidStateError(
                    "La venta ya fue cancelada",
                    details={"sale_id": sale_id, "daily_number": sale.daily_number},
                )

            now = self.clock()
            note = f"Cancelación de venta #{sale.daily_number}"

            for item in sale.items:
                if self.inventory.stock_level(item.product_id) is None:
                    logger.warning(
                        "Cancel sale %s: product %s (%r) no longer exists, %d unit(s) not restored",
                        sale.id, item.product_id, item.product_name, item.quantity,
                    )
                    continue

                previous, new = self.inventory.apply_stock_delta(item.product_id, item.quantity, now=now)
                self.ledger.record(
                    product_id=item.product_id,
                    movement_type="adjustment",
                    quantity=item.quantity,
                    previous_stock=previous,
                    new_stock=new,
                    reference_id=sale.id,
                    notes=note,
                    created_by=user_id,
                    occurred_at=now,
                )

            sale.is_active = False
            sale.cancelled_by = user_id
            sale.cancelled_at = now

        logger.info("Sale %s (#%s) cancelled by user=%s", sale_id, sale.daily_number, user_id)
        return sale

    def get_sale(self, sale_id: str) -> Sale | None:
        return self.session.query(Sale).filter_by(id=sale_id).first()

    def require_sale(self, sale_id: str) -> Sale:
        sale = self.get_sale(sale_id)
        if sale is None:
            raise NotFoundError("Venta no encontrada", details={"sale_id": sale_id})
        return sale

    def list_today(self) -> list[Sale]:
        """Sales of the clock's current calendar day, newest first."""
        today = self.clock().date()
        return (
            self.session.query(Sale)
            .filter(Sale.business_date == today)
            .order_by(Sale.created_at.desc(), Sale.daily_number.desc())
            .all()
        )
