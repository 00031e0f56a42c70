"""Database module."""

from .schema import init_db
from .operations import (
    ListingStore,
    close_db,
    get_db,
)

__all__ = [
    "init_db",
    "get_db",
    "close_db",
    "ListingStore",
]
