from .session import (
    Base,
    SessionLocal,
    create_tables,
    configure,
    get_engine,
    transaction_scope,
)

__all__ = [
    "Base",
    "SessionLocal",
    "create_tables",
    "configure",
    "get_engine",
    "transaction_scope",
]
