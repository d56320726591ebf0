"""
Inventory controller - product stock lookups and manual adjustments.
"""

from flask import Blueprint, request

from barber_scheduler.core.api_utils import api_response, current_settings
from barber_scheduler.db.session import SessionLocal
from barber_scheduler.schemas.dtos import ProductStockResponse, StockAdjustmentRequest
from barber_scheduler.services.inventory_service import InventoryService

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/products")


@inventory_bp.route("/<int:product_id>", methods=["GET"])
def get_product(product_id: int):
    db = SessionLocal()
    try:
        service = InventoryService.from_session(db, current_settings())
        product = service.get_product(product_id)
        return api_response(
            True, "Product found", ProductStockResponse.from_domain(product).to_dict()
        )
    finally:
        db.close()


@inventory_bp.route("/<int:product_id>/stock", methods=["PATCH", "POST"])
def adjust_stock(product_id: int):
    """Adjust stock with ``{"action": "add|subtract|set", "quantity": n}``."""
    payload = StockAdjustmentRequest.from_dict(request.get_json(silent=True) or {})
    db = SessionLocal()
    try:
        service = InventoryService.from_session(db, current_settings())
        product = service.adjust_stock(product_id, payload.action, payload.quantity)
        return api_response(
            True, "Stock updated", ProductStockResponse.from_domain(product).to_dict()
        )
    finally:
        db.close()
