from typing import Optional

from barber_scheduler.db.base import Client as ClientModel
from barber_scheduler.domain.entities import Client
from barber_scheduler.domain.interfaces import IClientReader


def client_to_domain(db_client: ClientModel) -> Client:
    return Client(
        id=db_client.id,
        name=db_client.name,
        email=db_client.email,
        phone=db_client.phone,
    )


class ClientRepository(IClientReader):
    def __init__(self, db_session) -> None:
        self.db = db_session

    def get_by_id(self, client_id: int) -> Optional[Client]:
        db_client = self.db.get(ClientModel, client_id)
        return client_to_domain(db_client) if db_client else None
