"""Simple ODBC connectivity checks."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

import pyodbc

from config import OdbcConstants, settings

logger = logging.getLogger(__name__)


def check_connection(
    conn_str: str,
    timeout: int | None = None,
    probe_query: str = OdbcConstants.PROBE_QUERY,
    connect: Optional[Callable[..., Any]] = None,
) -> bool:
    """Return ``True`` if ``conn_str`` connects and answers ``probe_query``."""
    connect = connect or pyodbc.connect
    try:
        conn = connect(conn_str, timeout=timeout or settings.connection_timeout)
    except pyodbc.Error as exc:
        logger.error("Database connection failed: %s", exc)
        return False
    try:
        cursor = conn.cursor()
        cursor.execute(probe_query)
        cursor.fetchall()
        return True
    except pyodbc.Error as exc:
        logger.error("Probe query failed: %s", exc)
        return False
    finally:
        conn.close()


__all__ = ["check_connection"]
