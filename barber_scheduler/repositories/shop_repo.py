from typing import Optional

from barber_scheduler.db.base import Barbershop
from barber_scheduler.domain.entities import Shop
from barber_scheduler.domain.interfaces import IShopReader


def shop_to_domain(db_shop: Barbershop) -> Shop:
    return Shop(
        id=db_shop.id,
        owner_id=db_shop.owner_id,
        name=db_shop.name,
        opening_time=db_shop.opening_time,
        closing_time=db_shop.closing_time,
        is_active=bool(db_shop.is_active),
    )


class ShopRepository(IShopReader):
    def __init__(self, db_session) -> None:
        self.db = db_session

    def get_by_id(self, shop_id: int) -> Optional[Shop]:
        db_shop = self.db.get(Barbershop, shop_id)
        return shop_to_domain(db_shop) if db_shop else None
