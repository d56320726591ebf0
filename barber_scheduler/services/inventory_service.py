import logging
from typing import Optional

from barber_scheduler.core.config import Settings, get_settings
from barber_scheduler.core.exceptions import NotFoundError
from barber_scheduler.db.session import transaction_scope
from barber_scheduler.domain.entities import Product
from barber_scheduler.domain.interfaces import IProductRepository
from barber_scheduler.repositories.product_repository import ProductRepository
from barber_scheduler.schemas.dtos import StockAdjustmentRequest

logger = logging.getLogger(__name__)


class InventoryService:
    """Manual stock adjustments outside of bookings."""

    def __init__(self, session, repository: IProductRepository):
        self.session = session
        self.repository = repository

    @classmethod
    def from_session(cls, session, settings: Optional[Settings] = None) -> "InventoryService":
        settings = settings or get_settings()
        return cls(session, ProductRepository(session, settings.low_stock_threshold))

    def get_product(self, product_id: int) -> Product:
        product = self.repository.get_by_id(product_id)
        if product is None:
            raise NotFoundError.for_entity("Product", product_id)
        return product

    def adjust_stock(self, product_id: int, action: str, quantity: int) -> Product:
        """Apply ``add``, ``subtract`` or ``set`` to a product's stock.

        Subtracting more than is on hand empties the stock instead of failing.
        """
        StockAdjustmentRequest(action=action, quantity=quantity).validate()

        with transaction_scope(self.session):
            product = self.repository.get_by_id(product_id, lock=True)
            if product is None:
                raise NotFoundError.for_entity("Product", product_id)
            previous = product.stock_quantity

            if action == "add":
                product = self.repository.increase_stock(product_id, quantity)
            elif action == "subtract":
                product = self.repository.decrease_stock(
                    product_id, min(quantity, previous)
                )
            else:
                product = self.repository.set_stock(product_id, quantity)

        logger.info(
            "Stock adjusted",
            extra={
                "context": {
                    "product_id": product_id,
                    "action": action,
                    "quantity": quantity,
                    "previous": previous,
                    "current": product.stock_quantity,
                    "stock_status": product.stock_status,
                }
            },
        )
        return product

