"""Pure helpers shared by the query executor and diagnostics.

Nothing in this module touches the driver: connection string assembly,
SQL validation, literal parameter substitution and the SQL Anywhere
``LIMIT`` rewrite are all plain string work.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from config import OdbcConstants, settings
from db.profiles import ConnectionProfile

from .errors import InvalidProfileIdError, InvalidQueryError, MissingDriverError

logger = logging.getLogger(__name__)

_PASSWORD_RE = re.compile(r"(PWD=)(\{(?:[^}]|\}\})*\}|[^;]*)(;?)", re.IGNORECASE)
_SPECIAL_CHARS = set(";{}")
_LIMIT_RE = re.compile(r"\s+LIMIT\s+(\d+)(?:\s*,\s*(\d+))?", re.IGNORECASE)
_ORDER_BY_RE = re.compile(r"\s+ORDER\s+BY\s+", re.IGNORECASE)
_SELECT_COLUMNS_RE = re.compile(r"SELECT\s+(?:TOP\s+\d+\s+)?(.+?)\s+FROM", re.IGNORECASE | re.DOTALL)
_SELECT_RE = re.compile(r"SELECT", re.IGNORECASE)


def coerce_profile_id(value: Any) -> int:
    """Return ``value`` as an integer profile id.

    Accepts ints, numeric strings, mappings with an ``id`` key and objects
    exposing an ``id`` attribute.
    """
    candidate = value
    if isinstance(value, Mapping):
        candidate = value.get("id")
    elif not isinstance(value, (int, str)) and hasattr(value, "id"):
        candidate = value.id

    if isinstance(candidate, bool) or candidate is None:
        raise InvalidProfileIdError(f"ID de conexão inválido: {value!r}")
    if isinstance(candidate, int):
        return candidate
    if isinstance(candidate, str) and candidate.strip().lstrip("-").isdigit():
        return int(candidate.strip())
    raise InvalidProfileIdError(f"ID de conexão inválido: {value!r}")


def validate_sql(sql: Any) -> str:
    if not isinstance(sql, str) or not sql.strip():
        raise InvalidQueryError("Consulta SQL inválida ou vazia")
    return sql


def sql_preview(sql: str, length: Optional[int] = None) -> str:
    """Shorten ``sql`` for log output."""
    limit = length or settings.sql_preview_length
    return sql if len(sql) <= limit else f"{sql[:limit]}..."


def is_sql_anywhere(driver: Optional[str]) -> bool:
    return bool(driver) and "sql anywhere" in driver.lower()


def quote_value(value: Any) -> str:
    """Brace-quote ``value`` when it holds ``;``, ``{`` or ``}``.

    Closing braces inside the value are doubled, as ODBC expects.
    """
    text = str(value)
    if _SPECIAL_CHARS.isdisjoint(text):
        return text
    return "{" + text.replace("}", "}}") + "}"


def build_connection_string(
    profile: ConnectionProfile,
    app_name: Optional[str] = None,
    timeout: Optional[int] = None,
) -> str:
    """Assemble the ODBC connection string for ``profile``.

    A raw ``connection_string`` on the profile wins outright. Otherwise the
    string is built from the individual fields and a driver is required.
    """
    if profile.connection_string and profile.connection_string.strip():
        return profile.connection_string

    if not profile.driver:
        raise MissingDriverError()

    app_name = app_name or settings.app_name
    parts = [f"DSN={profile.driver};"]
    if profile.server:
        parts.append(f"SERVER={profile.server};")
    if profile.database:
        parts.append(f"DATABASE={profile.database};")
    if profile.port:
        parts.append(f"PORT={profile.port};")
    if profile.username:
        parts.append(f"UID={quote_value(profile.username)};")
    if profile.password:
        parts.append(f"PWD={quote_value(profile.password)};")

    driver = profile.driver.lower()
    if "sql anywhere" in driver:
        parts.append(f"APP={app_name};CHARSET=UTF8;")
    elif "sql server" in driver:
        parts.append(f"APP={app_name};Trusted_Connection=No;")
    elif "mysql" in driver:
        parts.append("CHARSET=utf8;")

    if profile.params and profile.params.strip():
        extra = profile.params.strip()
        parts.append(extra if extra.endswith(";") else f"{extra};")

    parts.append(f"TIMEOUT={timeout or settings.connection_timeout};")
    return "".join(parts)


def build_sql_anywhere_string(profile: ConnectionProfile, app_name: Optional[str] = None) -> str:
    """Return the ``Driver={...};ENG=...;CommLinks=tcpip(...)`` form for SQL Anywhere."""
    app_name = app_name or settings.app_name
    driver = "{" + profile.driver.replace("}", "}}") + "}"
    port = profile.port or OdbcConstants.SQL_ANYWHERE_DEFAULT_PORT
    return (
        f"Driver={driver};ENG={profile.server};DBN={profile.database or ''};"
        f"UID={quote_value(profile.username or '')};PWD={quote_value(profile.password or '')};"
        f"APP={app_name};CHARSET=UTF8;"
        f"CommLinks=tcpip(HOST={profile.server};PORT={port});"
    )


def candidate_connection_strings(
    profile: ConnectionProfile,
    app_name: Optional[str] = None,
    timeout: Optional[int] = None,
) -> list[str]:
    """Return the connection strings worth trying for ``profile``, in order.

    SQL Anywhere profiles with a server try the ``CommLinks`` form first.
    The built (or raw) string follows, and a configured ``dsn`` adds a bare
    ``DSN=...;UID=...;PWD=...;`` fallback.
    """
    candidates = []
    has_raw = bool(profile.connection_string and profile.connection_string.strip())
    if not has_raw and is_sql_anywhere(profile.driver) and profile.server:
        candidates.append(build_sql_anywhere_string(profile, app_name=app_name))
    if has_raw or profile.driver:
        candidates.append(build_connection_string(profile, app_name=app_name, timeout=timeout))
    if profile.dsn and profile.dsn.strip():
        dsn_str = (
            f"DSN={profile.dsn.strip()};"
            f"UID={quote_value(profile.username or '')};PWD={quote_value(profile.password or '')};"
        )
        if dsn_str not in candidates:
            candidates.append(dsn_str)
    return candidates


def mask_password(conn_str: str) -> str:
    """Replace the ``PWD`` value in ``conn_str`` with ``****``.

    Brace-quoted values are masked whole, including any ``;`` they contain.
    """
    return _PASSWORD_RE.sub(lambda m: f"{m.group(1)}****{m.group(3)}", conn_str)


def format_sql_value(value: Any) -> str:
    """Render ``value`` as a SQL literal."""
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    if isinstance(value, datetime):
        return f"'{value.strftime('%Y-%m-%d %H:%M:%S.')}{value.microsecond // 1000:03d}'"
    if isinstance(value, date):
        return f"'{value.isoformat()}'"
    if isinstance(value, str):
        return _quote(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        items = list(value)
        if not items:
            return "NULL"
        if all(_is_number(item) for item in items):
            return f"({', '.join(str(item) for item in items)})"
        rendered = ["NULL" if item is None else _quote(str(item)) for item in items]
        return f"({', '.join(rendered)})"
    return _quote(json.dumps(value, default=str, ensure_ascii=False, separators=(",", ":")))


def _quote(text: str) -> str:
    return "'" + text.replace("'", "''") + "'"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def replace_query_params(sql: str, params: Optional[Mapping[str, Any]]) -> str:
    """Substitute ``:name`` and ``@name`` placeholders with SQL literals.

    This is plain text replacement, not driver-side binding.
    """
    if not params:
        return sql

    processed = sql
    for name, value in params.items():
        literal = format_sql_value(value)
        pattern = re.compile(rf"[:@]{re.escape(str(name))}\b")
        processed = pattern.sub(lambda _m: literal, processed)

    logger.debug(f"SQL with parameters substituted: {sql_preview(processed)}")
    return processed


def adapt_limit_clause(sql: str) -> str:
    """Rewrite a MySQL style ``LIMIT`` for SQL Anywhere.

    ``LIMIT n`` becomes ``SELECT TOP n``. ``LIMIT n, m`` takes ``n`` rows
    after skipping ``m`` using a ``ROW_NUMBER()`` wrapper; an offset of
    zero is treated as no offset.
    """
    match = _LIMIT_RE.search(sql)
    if not match:
        return sql

    limit = int(match.group(1))
    offset = int(match.group(2)) if match.group(2) else 0
    stripped = _LIMIT_RE.sub("", sql, count=1)

    if not offset:
        adapted = _SELECT_RE.sub(f"SELECT TOP {limit}", stripped, count=1)
    else:
        inner = stripped
        if not _ORDER_BY_RE.search(stripped):
            columns = _SELECT_COLUMNS_RE.search(stripped)
            if columns:
                first_column = columns.group(1).split(",")[0].strip()
                inner = f"{stripped} ORDER BY {first_column}"
        adapted = (
            "SELECT * FROM ("
            "SELECT *, ROW_NUMBER() OVER (ORDER BY (SELECT 1)) AS rownum "
            f"FROM ({inner}) AS innerQuery"
            f") AS outerQuery WHERE rownum > {offset} AND rownum <= {offset + limit}"
        )

    logger.info(f"Adapted LIMIT clause for SQL Anywhere: {sql_preview(adapted)}")
    return adapted


__all__ = [
    "coerce_profile_id",
    "validate_sql",
    "sql_preview",
    "is_sql_anywhere",
    "quote_value",
    "build_connection_string",
    "build_sql_anywhere_string",
    "candidate_connection_strings",
    "mask_password",
    "format_sql_value",
    "replace_query_params",
    "adapt_limit_clause",
]
