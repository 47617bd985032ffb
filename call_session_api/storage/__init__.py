"""Storage layer for the call session service."""

from .database import Database, get_db, init_database

__all__ = ["Database", "get_db", "init_database"]
