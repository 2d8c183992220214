# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/pos/routes/sales.py
"""Sales API routes"""

from flask import Blueprint, request

from ..services import get_services
from ..services.reporting_service import SaleFilters
from ..services.sales_service import SaleRequest
from ..validation import require_int, require_mapping, require_text


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _date_range() -> tuple[str | None, str | None]:
    return request.args.get("from") or None, request.args.get("to") or None


@sales_bp.post("")
def create_sale_route():
    """
    Create a sale atomically.

    Body: {"items": [{product_id, product_name, quantity, unit_price, total_price}],
           "subtotal", "total", "tax", "discount", "payment_method",
           "cashier_id", "cashier_name", "customer_name", "notes"}
    """
    payload = request.get_json(silent=True) or {}
    result = get_services().sales.create_sale(SaleRequest.from_mapping(payload))
    return result.to_dict(), 201


@sales_bp.get("")
def list_sales_route():
    """
    Query params: from, to (YYYY-MM-DD, inclusive), payment_method,
    cashier, status (active|cancelled).
    """
    date_from, date_to = _date_range()
    filters = SaleFilters(
        date_from=date_from,
        date_to=date_to,
        payment_method=request.args.get("payment_method") or None,
        cashier_id=request.args.get("cashier") or None,
        status=request.args.get("status") or None,
    )
    sales = get_services().reports.list_sales(filters)
    return {"items": [s.to_dict() for s in sales], "count": len(sales)}


@sales_bp.get("/today")
def list_today_route():
    sales = get_services().sales.list_today()
    return {"items": [s.to_dict() for s in sales], "count": len(sales)}


@sales_bp.get("/metrics")
def sales_metrics_route():
    date_from, date_to = _date_range()
    return get_services().reports.sales_metrics(date_from, date_to)


@sales_bp.get("/top-products")
def top_products_route():
    date_from, date_to = _date_range()
    limit = request.args.get("limit")
    limit = require_int(limit, "limit", minimum=1) if limit is not None else None
    return {"items": get_services().reports.top_products(limit, date_from, date_to)}


@sales_bp.get("/by-payment-method")
def sales_by_payment_method_route():
    date_from, date_to = _date_range()
    return {"items": get_services().reports.sales_by_payment_method(date_from, date_to)}


@sales_bp.get("/<sale_id>")
def get_sale_route(sale_id: str):
    """Sale with its items."""
    sale = get_services().sales.require_sale(sale_id)
    return {"sale": sale.to_dict(include_items=True)}


@sales_bp.post("/<sale_id>/cancel")
def cancel_sale_route(sale_id: str):
    """
    Cancel an active sale and restore stock.

    Body: {"user_id": str}
    """
    payload = require_mapping(request.get_json(silent=True) or {})
    user_id = require_text(payload.get("user_id"), "user_id")
    sale = get_services().sales.cancel(sale_id, user_id)
    return {"sale": sale.to_dict(include_items=True)}
