"""Database models."""
from arena.models.base import Base, init_db
from arena.models.user import User
from arena.models.tournament import Tournament
from arena.models.transaction import Transaction
from arena.models.alert import Alert

__all__ = [
    "Base",
    "User",
    "Tournament",
    "Transaction",
    "Alert",
    "init_db",
]
