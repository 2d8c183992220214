"""
Input coercion shared by the services and the JSON routes.

Integers are strict: bools, floats, decimals and scientific notation are
rejected. Amounts accept ints, floats and plain numeric strings.
"""
from __future__ import annotations

import math
from typing import Any

from .errors import ValidationError


def require_text(value: Any, field: str, *, label: str | None = None) -> str:
    """Return value stripped; blank or non-string values are rejected."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{label or field} es requerido", details={"field": field})
    return value.strip()


def optional_text(value: Any, field: str) -> str | None:
    """Strip strings; blank becomes None."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} debe ser texto", details={"field": field})
    stripped = value.strip()
    return stripped or None


def require_int(value: Any, field: str, *, minimum: int | None = None) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} debe ser un entero", details={"field": field})

    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        # Reject scientific notation (e.g., "1e15") and decimals (e.g., "12.5")
        if not stripped or "e" in stripped.lower() or "." in stripped:
            raise ValidationError(f"{field} debe ser un entero", details={"field": field})
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} debe ser un entero", details={"field": field})
    else:
        raise ValidationError(f"{field} debe ser un entero", details={"field": field})

    if minimum is not None and result < minimum:
        raise ValidationError(
            f"{field} debe ser mayor o igual a {minimum}",
            details={"field": field, "minimum": minimum},
        )
    return result


def require_amount(value: Any, field: str, *, minimum: float | None = 0) -> float:
    """Monetary amount as float. minimum=None skips the lower bound."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} debe ser un número", details={"field": field})

    if isinstance(value, (int, float)):
        result = float(value)
    elif isinstance(value, str):
        try:
            result = float(value.strip())
        except ValueError:
            raise ValidationError(f"{field} debe ser un número", details={"field": field})
    else:
        raise ValidationError(f"{field} debe ser un número", details={"field": field})

    if math.isnan(result) or math.isinf(result):
        raise ValidationError(f"{field} debe ser un número", details={"field": field})

    if minimum is not None and result < minimum:
        raise ValidationError(
            f"{field} no puede ser negativo" if minimum == 0 else f"{field} debe ser mayor o igual a {minimum}",
            details={"field": field, "minimum": minimum},
        )
    return result


def require_choice(value: Any, field: str, choices: tuple[str, ...]) -> str:
    if value not in choices:
        raise ValidationError(
            f"{field} inválido: {value!r}",
            details={"field": field, "allowed": list(choices)},
        )
    return value


def require_mapping(payload: Any) -> dict:
    if not isinstance(payload, dict):
        raise ValidationError("Se esperaba un objeto JSON")
    return payload
