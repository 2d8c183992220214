# Overview: Flask API routes for products and stock; parses input and returns JSON responses.

# backend/pos/routes/products.py
"""
Product catalog and stock routes.

Error responses come from the PosError handler registered in create_app:
{"error": "...", "details": {...}} with the error's status code.
"""
from flask import Blueprint, request

from ..errors import NotFoundError
from ..services import get_services
from ..services.inventory_service import ProductPatch
from ..services.reporting_service import ProductFilters
from ..validation import require_mapping


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _flag(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


@products_bp.get("")
def list_products_route():
    """
    List active products.

    Query params:
    - category: exact category
    - search: substring of name, barcode or category
    - in_stock: true -> stock > 0
    - low_stock: true -> 0 < stock <= min_stock
    """
    filters = ProductFilters(
        category=request.args.get("category") or None,
        search=request.args.get("search") or None,
        in_stock=request.args.get("in_stock", default=False, type=_flag),
        low_stock=request.args.get("low_stock", default=False, type=_flag),
    )
    products = get_services().reports.list_products(filters)
    return {"items": [p.to_dict() for p in products], "count": len(products)}


@products_bp.post("")
def create_product_route():
    payload = require_mapping(request.get_json(silent=True) or {})
    product = get_services().inventory.create_product(payload)
    return {"product": product.to_dict()}, 201


@products_bp.get("/<product_id>")
def get_product_route(product_id: str):
    product = get_services().inventory.require_product(product_id)
    return {"product": product.to_dict()}


@products_bp.get("/barcode/<barcode>")
def get_product_by_barcode_route(barcode: str):
    product = get_services().inventory.get_by_barcode(barcode)
    if product is None:
        raise NotFoundError("Producto no encontrado", details={"barcode": barcode})
    return {"product": product.to_dict()}


@products_bp.patch("/<product_id>")
def update_product_route(product_id: str):
    """Only keys present in the body are updated; null clears optional text."""
    payload = require_mapping(request.get_json(silent=True) or {})
    services = get_services()
    updated = services.inventory.update_product(product_id, ProductPatch.from_mapping(payload))
    product = services.inventory.require_product(product_id)
    return {"updated": updated, "product": product.to_dict()}


@products_bp.delete("/<product_id>")
def delete_product_route(product_id: str):
    """Soft delete."""
    if not get_services().inventory.delete_product(product_id):
        raise NotFoundError("Producto no encontrado", details={"product_id": product_id})
    return {"deleted": True}


@products_bp.post("/<product_id>/adjust-stock")
def adjust_stock_route(product_id: str):
    """
    Body: {"quantity": signed int, "reason": str, "user_id": str}
    """
    payload = require_mapping(request.get_json(silent=True) or {})
    services = get_services()
    movement = services.inventory.adjust_stock(
        product_id,
        payload.get("quantity"),
        payload.get("reason"),
        payload.get("user_id"),
    )
    product = services.inventory.require_product(product_id)
    return {"movement": movement.to_dict(), "product": product.to_dict()}, 201


@products_bp.post("/<product_id>/restock")
def restock_route(product_id: str):
    """
    Body: {"quantity": int > 0, "notes": str, "user_id": str}
    """
    payload = require_mapping(request.get_json(silent=True) or {})
    services = get_services()
    movement = services.inventory.restock(
        product_id,
        payload.get("quantity"),
        payload.get("user_id"),
        payload.get("notes"),
    )
    product = services.inventory.require_product(product_id)
    return {"movement": movement.to_dict(), "product": product.to_dict()}, 201


@products_bp.get("/categories")
def list_categories_route():
    return {"categories": get_services().reports.list_categories()}


@products_bp.get("/low-stock")
def low_stock_route():
    products = get_services().reports.low_stock_products()
    return {"items": [p.to_dict() for p in products], "count": len(products)}


@products_bp.get("/out-of-stock")
def out_of_stock_route():
    products = get_services().reports.out_of_stock_products()
    return {"items": [p.to_dict() for p in products], "count": len(products)}


@products_bp.get("/stats")
def product_stats_route():
    return get_services().reports.product_stats()
