from typing import Optional

from sqlalchemy import select

from barber_scheduler.core.exceptions import (
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from barber_scheduler.db.base import Product as ProductModel
from barber_scheduler.domain.entities import Product
from barber_scheduler.domain.interfaces import IProductRepository


class ProductRepository(IProductRepository):
    """Product lookups and stock mutations.

    Every mutation re-reads the row under a lock, so the decision and the
    write happen inside the caller's transaction.
    """

    def __init__(self, db_session, default_min_stock: int = 5) -> None:
        self.db = db_session
        self.default_min_stock = default_min_stock

    def get_by_id(self, product_id: int, lock: bool = False) -> Optional[Product]:
        db_item = self._load(product_id, lock=lock)
        return self._to_domain(db_item) if db_item else None

    def get_active_in_stock(
        self, product_id: int, lock: bool = False
    ) -> Optional[Product]:
        stmt = select(ProductModel).where(
            ProductModel.id == product_id,
            ProductModel.is_active.is_(True),
            ProductModel.stock_quantity > 0,
        )
        if lock:
            stmt = stmt.with_for_update()
        db_item = self.db.execute(stmt).scalar_one_or_none()
        return self._to_domain(db_item) if db_item else None

    def increase_stock(self, product_id: int, quantity: int) -> Product:
        if quantity < 0:
            raise ValidationError("Quantity to add cannot be negative", field="quantity")
        db_item = self._load_or_raise(product_id)
        db_item.stock_quantity = (db_item.stock_quantity or 0) + quantity
        self.db.flush()
        return self._to_domain(db_item)

    def decrease_stock(self, product_id: int, quantity: int) -> Product:
        if quantity < 0:
            raise ValidationError(
                "Quantity to remove cannot be negative", field="quantity"
            )
        db_item = self._load_or_raise(product_id)
        current_qtd = db_item.stock_quantity or 0
        if quantity > current_qtd:
            raise InsufficientStockError(product_id, quantity, current_qtd)
        db_item.stock_quantity = current_qtd - quantity
        self.db.flush()
        return self._to_domain(db_item)

    def set_stock(self, product_id: int, quantity: int) -> Product:
        if quantity < 0:
            raise ValidationError("Stock quantity cannot be negative", field="quantity")
        db_item = self._load_or_raise(product_id)
        db_item.stock_quantity = quantity
        self.db.flush()
        return self._to_domain(db_item)

    def _load(self, product_id: int, lock: bool = False) -> Optional[ProductModel]:
        stmt = select(ProductModel).where(ProductModel.id == product_id)
        if lock:
            stmt = stmt.with_for_update()
        return self.db.execute(stmt).scalar_one_or_none()

    def _load_or_raise(self, product_id: int) -> ProductModel:
        db_item = self._load(product_id, lock=True)
        if not db_item:
            raise NotFoundError.for_entity("Product", product_id)
        return db_item

    def _to_domain(self, db_item: ProductModel) -> Product:
        return Product(
            id=db_item.id,
            shop_id=db_item.barbershop_id,
            name=db_item.name,
            price=db_item.price,
            stock_quantity=db_item.stock_quantity or 0,
            min_stock=(
                db_item.min_stock
                if db_item.min_stock is not None
                else self.default_min_stock
            ),
            is_active=bool(db_item.is_active),
        )
