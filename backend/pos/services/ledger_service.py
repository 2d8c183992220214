# Overview: Service-layer operations for the stock ledger; append and read only.

from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

from ..models import StockMovement, MOVEMENT_TYPES
from ..errors import ValidationError
from pos.time_utils import utcnow
from .identifier_service import new_id
"""
Stock Ledger Invariants (authoritative)

- Append-only: there is no update or delete API. A correction is a new row.
- Rows are written inside the same DB transaction as the stock change they
  record; record() flushes but never commits.
- Every row reconciles:
    sale:               new_stock == previous_stock - quantity
    adjustment/restock: new_stock == previous_stock + quantity
"""


class StockLedger:
    def __init__(
        self,
        session,
        *,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = new_id,
    ):
        self.session = session
        self.clock = clock
        self.id_factory = id_factory

    def record(
        self,
        *,
        product_id: str,
        movement_type: str,
        quantity: int,
        previous_stock: int,
        new_stock: int,
        reference_id: Optional[str] = None,
        notes: Optional[str] = None,
        created_by: Optional[str] = None,
        occurred_at: Optional[datetime] = None,
    ) -> StockMovement:
        """Append one movement. Raises ValidationError if it doesn't reconcile."""
        if movement_type not in MOVEMENT_TYPES:
            raise ValidationError(
                f"Tipo de movimiento inválido: {movement_type!r}",
                details={"allowed": list(MOVEMENT_TYPES)},
            )

        expected = previous_stock - quantity if movement_type == "sale" else previous_stock + quantity
        if new_stock != expected or new_stock < 0:
            raise ValidationError(
                "El movimiento de stock no cuadra",
                details={
                    "movement_type": movement_type,
                    "quantity": quantity,
                    "previous_stock": previous_stock,
                    "new_stock": new_stock,
                },
            )

        movement = StockMovement(
            id=self.id_factory(),
            product_id=product_id,
            movement_type=movement_type,
            quantity=quantity,
            previous_stock=previous_stock,
            new_stock=new_stock,
            reference_id=reference_id,
            notes=notes,
            created_by=created_by,
            created_at=occurred_at or self.clock(),
        )
        self.session.add(movement)
        self.session.flush()  # ensures the row exists before the caller commits
        return movement

    def list_movements(
        self,
        *,
        product_id: Optional[str] = None,
        movement_type: Optional[str] = None,
        reference_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[StockMovement]:
        """Newest first; filters combine with AND."""
        q = self.session.query(StockMovement)
        if product_id is not None:
            q = q.filter(StockMovement.product_id == product_id)
        if movement_type is not None:
            if movement_type not in MOVEMENT_TYPES:
                raise ValidationError(
                    f"Tipo de movimiento inválido: {movement_type!r}",
                    details={"allowed": list(MOVEMENT_TYPES)},
                )
            q = q.filter(StockMovement.movement_type == movement_type)
        if reference_id is not None:
            q = q.filter(StockMovement.reference_id == reference_id)

        q = q.order_by(StockMovement.created_at.desc())
        if limit is not None:
            q = q.limit(limit)
        return q.all()
