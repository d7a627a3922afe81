"""Connection profile records and the local SQLite store holding them."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, fields
from typing import Any, Mapping, Optional

import sqlalchemy

from .connections import get_store_engine
from .migrations import EVENT_TABLE, PROFILE_TABLE, ensure_schema

logger = logging.getLogger(__name__)


@dataclass
class ConnectionProfile:
    """A stored set of parameters for reaching a database through ODBC."""

    name: str
    id: Optional[int] = None
    driver: Optional[str] = None
    server: Optional[str] = None
    port: Optional[int] = None
    database: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    connection_string: Optional[str] = None
    dsn: Optional[str] = None
    params: Optional[str] = None
    simulated: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ConnectionProfile":
        """Build a profile from a mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        values["port"] = _coerce_port(values.get("port"))
        values["simulated"] = bool(values.get("simulated") or False)
        values.setdefault("name", "")
        return cls(**values)

    def describe(self) -> dict[str, Any]:
        """Return the profile as a dict without its password."""
        data = asdict(self)
        data.pop("password", None)
        return data


PROFILE_COLUMNS = tuple(f.name for f in fields(ConnectionProfile) if f.name != "id")


def _coerce_port(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring invalid port value: {value!r}")
        return None


class ProfileStore:
    """Read and write connection profiles and the event log."""

    def __init__(self, engine: Any = None) -> None:
        self.engine = engine if engine is not None else get_store_engine()
        ensure_schema(self.engine)

    def get(self, profile_id: int) -> Optional[ConnectionProfile]:
        """Return the profile with ``profile_id`` or ``None``."""
        with self.engine.connect() as conn:
            row = conn.execute(
                sqlalchemy.text(f"SELECT * FROM {PROFILE_TABLE} WHERE id = :id"),
                {"id": profile_id},
            ).mappings().first()
        return ConnectionProfile.from_mapping(row) if row else None

    def list_profiles(self) -> list[ConnectionProfile]:
        with self.engine.connect() as conn:
            rows = conn.execute(
                sqlalchemy.text(f"SELECT * FROM {PROFILE_TABLE} ORDER BY name")
            ).mappings().all()
        return [ConnectionProfile.from_mapping(row) for row in rows]

    def create(self, profile: ConnectionProfile) -> int:
        """Insert ``profile`` and return its new id."""
        values = self._column_values(asdict(profile))
        names = ", ".join(values)
        placeholders = ", ".join(f":{name}" for name in values)
        with self.engine.begin() as conn:
            result = conn.execute(
                sqlalchemy.text(f"INSERT INTO {PROFILE_TABLE} ({names}) VALUES ({placeholders})"),
                values,
            )
            new_id = result.lastrowid
        logger.info(f"Created connection profile {profile.name!r} with id {new_id}")
        return new_id

    def update(self, profile_id: int, **changes: Any) -> bool:
        """Update the given columns; return ``True`` when a row changed."""
        unknown = set(changes) - set(PROFILE_COLUMNS)
        if unknown:
            raise ValueError(f"Unknown profile fields: {', '.join(sorted(unknown))}")
        if not changes:
            return False
        values = self._column_values(changes)
        assignments = ", ".join(f"{name} = :{name}" for name in values)
        values["id"] = profile_id
        with self.engine.begin() as conn:
            result = conn.execute(
                sqlalchemy.text(f"UPDATE {PROFILE_TABLE} SET {assignments} WHERE id = :id"),
                values,
            )
        return result.rowcount > 0

    def delete(self, profile_id: int) -> bool:
        with self.engine.begin() as conn:
            result = conn.execute(
                sqlalchemy.text(f"DELETE FROM {PROFILE_TABLE} WHERE id = :id"),
                {"id": profile_id},
            )
        return result.rowcount > 0

    def log_event(self, level: str, message: str) -> None:
        """Append an entry to the event log."""
        with self.engine.begin() as conn:
            conn.execute(
                sqlalchemy.text(f"INSERT INTO {EVENT_TABLE} (level, message) VALUES (:level, :message)"),
                {"level": level, "message": message},
            )

    def recent_events(self, limit: int = 50) -> list[dict[str, Any]]:
        with self.engine.connect() as conn:
            rows = conn.execute(
                sqlalchemy.text(
                    f"SELECT level, message, created_at FROM {EVENT_TABLE} "
                    "ORDER BY id DESC LIMIT :limit"
                ),
                {"limit": limit},
            ).mappings().all()
        return [dict(row) for row in rows]

    @staticmethod
    def _column_values(data: Mapping[str, Any]) -> dict[str, Any]:
        values = {k: v for k, v in data.items() if k in PROFILE_COLUMNS}
        if "port" in values and values["port"] is not None:
            values["port"] = str(values["port"])
        if "simulated" in values:
            values["simulated"] = 1 if values["simulated"] else 0
        return values


__all__ = ["ConnectionProfile", "ProfileStore", "PROFILE_COLUMNS"]
