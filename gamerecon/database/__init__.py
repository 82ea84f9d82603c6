"""Database layer."""

from gamerecon.database.connection import (
    db_factory_for,
    get_connection,
    get_db,
    init_db,
    reset_db,
)

__all__ = [
    "db_factory_for",
    "get_connection",
    "get_db",
    "init_db",
    "reset_db",
]
