"""
Error kinds raised by the POS services.

Every mutation path is all-or-nothing: when one of these escapes a unit of
work, the session has already been rolled back. Routes render them as
{"error": message, "details": {...}} with the status code below.
"""

from __future__ import annotations


class PosError(Exception):
    """Base class for reportable POS failures."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "details": self.details}


class ValidationError(PosError):
    """Bad input; nothing was attempted."""
    status_code = 400


class NotFoundError(PosError):
    """Unknown product, sale or user id."""
    status_code = 404


class InsufficientStockError(PosError):
    """A line item asks for more units than the product has on hand."""
    status_code = 409

    def __init__(self, *, product_id: str, product_name: str, available: int, requested: int):
        super().__init__(
            f'Stock insuficiente para "{product_name}". '
            f"Disponible: {available}, Solicitado: {requested}",
            details={
                "product_id": product_id,
                "product_name": product_name,
                "available": available,
                "requested": requested,
            },
        )
        self.available = available
        self.requested = requested


class DuplicateConstraintError(PosError):
    """Unique value (barcode, username) already taken."""
    status_code = 409


class InvalidStateError(PosError):
    """Operation not allowed in the record's current state."""
    status_code = 409


class StoreError(PosError):
    """Unclassified failure reported by the database; carries its message."""
    status_code = 500
