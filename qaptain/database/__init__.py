"""Persistence for saved scenarios."""

from qaptain.database.connection import get_db, init_db, close_db, configure
from qaptain.database.repositories import SavedScenarioRepository

__all__ = [
    "get_db",
    "init_db",
    "close_db",
    "configure",
    "SavedScenarioRepository",
]
