"""Local profile store and database connectivity utilities."""

from .connections import get_engine, get_store_engine, dispose_engines
from .health import check_connection
from .profiles import ConnectionProfile, ProfileStore

__all__ = [
    "get_engine",
    "get_store_engine",
    "dispose_engines",
    "check_connection",
    "ConnectionProfile",
    "ProfileStore",
]
