# Overview: Flask API routes for the stock ledger (read only).

from flask import Blueprint, request

from ..services import get_services
from ..validation import require_int


ledger_bp = Blueprint("ledger", __name__, url_prefix="/api/stock-movements")


@ledger_bp.get("")
def list_stock_movements_route():
    """
    Query params: product_id, movement_type (sale|adjustment|restock),
    reference_id, limit (default 100, max 500).
    """
    limit = request.args.get("limit")
    limit = 100 if limit is None else require_int(limit, "limit", minimum=1)
    limit = min(limit, 500)

    movements = get_services().ledger.list_movements(
        product_id=request.args.get("product_id") or None,
        movement_type=request.args.get("movement_type") or None,
        reference_id=request.args.get("reference_id") or None,
        limit=limit,
    )
    return {"items": [m.to_dict() for m in movements], "count": len(movements)}
