"""Pass-through query execution against stored connection profiles.

Every call resolves the profile by id, opens one driver connection, runs the
statement and closes the connection again. Nothing is pooled or retried.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union

import pyodbc
from sqlalchemy.exc import SQLAlchemyError

from config import Settings, settings as default_settings
from db.health import check_connection
from db.profiles import ConnectionProfile, ProfileStore
from utils.logging_helper import record_failure, record_success

from .core import (
    adapt_limit_clause,
    build_connection_string,
    candidate_connection_strings,
    coerce_profile_id,
    is_sql_anywhere,
    mask_password,
    replace_query_params,
    sql_preview,
    validate_sql,
)
from .errors import (
    DriverConnectionError,
    InvalidProfileIdError,
    OdbcAgentError,
    ProfileNotFoundError,
    QueryExecutionError,
    driver_error_text,
    odbc_error_details,
)
from .simulated import SimulatedConnection

logger = logging.getLogger(__name__)

CONNECTION_TEST_QUERY = "SELECT 1"

ConnectFn = Callable[..., Any]
Connection = Union["OdbcConnection", SimulatedConnection]


class OdbcConnection:
    """Thin wrapper over a driver connection returning rows as dicts."""

    simulated = False

    def __init__(self, handle: Any, conn_str: str = "") -> None:
        self.handle = handle
        self.conn_str = mask_password(conn_str)
        self.closed = False

    def query(self, sql: str) -> list[dict[str, Any]]:
        cursor = self.handle.cursor()
        try:
            cursor.execute(sql)
            if cursor.description is None:
                return []
            columns = [column[0] for column in cursor.description]
            return [dict(zip(columns, row)) for row in cursor.fetchall()]
        finally:
            cursor.close()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.handle.close()

    def __enter__(self) -> "OdbcConnection":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


@dataclass
class ConnectionTestResult:
    success: bool
    message: str


@dataclass
class QueryTestResult:
    success: bool
    message: str
    data: list[dict[str, Any]] = field(default_factory=list)
    simulated: bool = False


class OdbcService:
    """Resolve profiles and run statements through the ODBC driver."""

    def __init__(
        self,
        store: Optional[ProfileStore] = None,
        settings: Optional[Settings] = None,
        connect: Optional[ConnectFn] = None,
    ) -> None:
        self.store = store if store is not None else ProfileStore()
        self.settings = settings or default_settings
        self._connect = connect or pyodbc.connect

    # ------------------------------------------------------------------
    # Profiles and connections
    # ------------------------------------------------------------------
    def get_profile(self, profile_id: Any) -> ConnectionProfile:
        """Return the stored profile for ``profile_id`` or raise."""
        pid = coerce_profile_id(profile_id)
        profile = self.store.get(pid)
        if profile is None:
            raise ProfileNotFoundError(pid)
        return profile

    def connect(self, profile_id: Any) -> Connection:
        """Open a connection for the stored profile ``profile_id``."""
        return self.open_profile(self.get_profile(profile_id))

    def open_profile(self, profile: ConnectionProfile) -> Connection:
        if profile.simulated:
            return SimulatedConnection(profile.name)

        conn_str = build_connection_string(
            profile,
            app_name=self.settings.app_name,
            timeout=self.settings.connection_timeout,
        )
        return self._open(conn_str, profile)

    def _open(self, conn_str: str, profile: ConnectionProfile) -> OdbcConnection:
        masked = mask_password(conn_str)
        logger.info(f"Connecting to profile {profile.name!r} with {masked}")
        try:
            handle = self._connect(conn_str, timeout=self.settings.connection_timeout)
        except pyodbc.Error as exc:
            details = odbc_error_details(exc)
            logger.error(f"Connection to profile {profile.name!r} failed: {exc}")
            self.log_event("error", f"Falha ao conectar via ODBC ({profile.name}): {driver_error_text(exc)}")
            raise DriverConnectionError(exc, details) from exc
        return OdbcConnection(handle, conn_str)

    @staticmethod
    def close_quietly(connection: Optional[Connection]) -> None:
        if connection is None:
            return
        try:
            connection.close()
        except Exception as exc:
            logger.warning(f"Error closing ODBC connection: {exc}")

    def log_event(self, level: str, message: str) -> None:
        try:
            self.store.log_event(level, message)
        except SQLAlchemyError as exc:
            logger.warning(f"Could not write event log entry: {exc}")

    # ------------------------------------------------------------------
    # Query execution
    # ------------------------------------------------------------------
    def execute_query(
        self,
        profile_id: Any,
        sql: str,
        params: Optional[Mapping[str, Any]] = None,
    ) -> list[dict[str, Any]]:
        """Run ``sql`` on the profile and return its rows.

        Placeholders are substituted from ``params`` and a ``LIMIT`` clause is
        rewritten for SQL Anywhere drivers. Failures are raised as
        :class:`QueryExecutionError` carrying a localized message.
        """
        validate_sql(sql)
        pid = coerce_profile_id(profile_id)
        return self._run(pid, sql, params=params, adapt=True)[0]

    def execute_raw_query(self, profile_id: Any, sql: str) -> list[dict[str, Any]]:
        """Run ``sql`` exactly as given."""
        validate_sql(sql)
        pid = coerce_profile_id(profile_id)
        return self._run(pid, sql, params=None, adapt=False)[0]

    def _run(
        self,
        profile_id: int,
        sql: str,
        params: Optional[Mapping[str, Any]],
        adapt: bool,
    ) -> tuple[list[dict[str, Any]], ConnectionProfile]:
        start = time.perf_counter()
        connection: Optional[Connection] = None
        processed = sql
        try:
            profile = self.get_profile(profile_id)
            if adapt:
                processed = replace_query_params(sql, params)
                if self.settings.adapt_limit_clause and is_sql_anywhere(profile.driver):
                    processed = adapt_limit_clause(processed)
            connection = self.open_profile(profile)
            logger.info(f"Executing on profile {profile_id}: {sql_preview(processed, self.settings.sql_preview_length)}")
            rows = connection.query(processed)
        except Exception as exc:
            record_failure()
            error = QueryExecutionError(processed, exc, profile_id)
            logger.error(f"Query on profile {profile_id} failed: {exc}")
            self.log_event("error", f"Erro ao executar consulta ODBC: {error}")
            raise error from exc
        finally:
            self.close_quietly(connection)

        elapsed_ms = (time.perf_counter() - start) * 1000
        record_success(elapsed_ms / 1000)
        logger.info(f"Query on profile {profile_id} returned {len(rows)} rows in {elapsed_ms:.0f}ms")
        if rows:
            logger.debug(f"Sample rows: {rows[:self.settings.result_sample_size]}")
        self.log_event(
            "info",
            f"Consulta ODBC executada com sucesso: {len(rows)} registros em {elapsed_ms:.0f}ms",
        )
        return rows, profile

    # ------------------------------------------------------------------
    # Test helpers
    # ------------------------------------------------------------------
    def test_connection(self, profile_or_id: Any) -> ConnectionTestResult:
        """Validate a profile's fields and try to connect with it.

        ``profile_or_id`` may be a :class:`ConnectionProfile`, a mapping of
        profile fields or a stored profile id. Never raises.
        """
        if isinstance(profile_or_id, ConnectionProfile):
            profile = profile_or_id
        elif isinstance(profile_or_id, Mapping) and "name" in profile_or_id:
            profile = ConnectionProfile.from_mapping(profile_or_id)
        else:
            try:
                profile = self.get_profile(profile_or_id)
            except (InvalidProfileIdError, ProfileNotFoundError):
                return ConnectionTestResult(False, f"Conexão ODBC ID {profile_or_id} não encontrada")

        problem = self._missing_field(profile)
        if problem:
            return ConnectionTestResult(False, problem)

        if profile.simulated:
            return ConnectionTestResult(True, f"Conexão simulada com '{profile.name}' estabelecida com sucesso")

        try:
            candidates = candidate_connection_strings(
                profile,
                app_name=self.settings.app_name,
                timeout=self.settings.connection_timeout,
            )
        except OdbcAgentError as exc:
            return ConnectionTestResult(False, f"Falha na conexão: {exc}")

        last_error: Optional[Exception] = None
        for attempt, conn_str in enumerate(candidates, start=1):
            connection = None
            try:
                connection = self._open(conn_str, profile)
                connection.query(CONNECTION_TEST_QUERY)
            except (DriverConnectionError, pyodbc.Error) as exc:
                logger.warning(f"Connection attempt {attempt} for {profile.name!r} failed: {exc}")
                last_error = exc.original_error if isinstance(exc, DriverConnectionError) else exc
                continue
            finally:
                self.close_quietly(connection)

            self.log_event("info", f"Teste de conexão ODBC bem-sucedido: {profile.name} (Tentativa {attempt})")
            return ConnectionTestResult(
                True, f"Conexão com '{profile.name}' estabelecida com sucesso (Tentativa {attempt})"
            )

        text = driver_error_text(last_error) if last_error else "nenhuma string de conexão disponível"
        self.log_event("error", f"Falha no teste de conexão ODBC: {text}")
        return ConnectionTestResult(False, f"Falha na conexão: {text}")

    @staticmethod
    def _missing_field(profile: ConnectionProfile) -> Optional[str]:
        if not profile.name:
            return "Nome da conexão não fornecido"
        if not profile.dsn and not profile.connection_string:
            if not profile.server:
                return "Host/Servidor não fornecido"
            if not profile.database:
                return "Nome do banco de dados não fornecido"
        if not profile.username:
            return "Usuário não fornecido"
        if not profile.password:
            return "Senha não fornecida"
        return None

    def test_query(self, sql: Any, profile_id: Any) -> QueryTestResult:
        """Run ``sql`` as a trial query and report the outcome. Never raises."""
        if not isinstance(sql, str) or not sql.strip():
            return QueryTestResult(False, "Consulta SQL vazia ou não fornecida")
        if profile_id is None or profile_id == "":
            return QueryTestResult(False, "ID da conexão não fornecido")
        try:
            pid = coerce_profile_id(profile_id)
        except InvalidProfileIdError:
            return QueryTestResult(False, f"ID da conexão inválido: {profile_id}")
        if self.store.get(pid) is None:
            return QueryTestResult(False, f"Conexão ID {pid} não encontrada")

        try:
            rows, profile = self._run(pid, sql, params=None, adapt=True)
        except QueryExecutionError as exc:
            return QueryTestResult(False, str(exc))

        return QueryTestResult(
            True,
            f"Consulta executada com sucesso. {len(rows)} registros retornados.",
            data=rows,
            simulated=profile.simulated,
        )

    def verify_active_connection(self, profile_id: Any) -> bool:
        """Return ``True`` when the profile can connect and answer a probe.

        The same connection strings as :meth:`test_connection` are tried in
        order and the first one that answers wins.
        """
        try:
            profile = self.get_profile(profile_id)
        except OdbcAgentError as exc:
            logger.error(f"Cannot verify connection {profile_id}: {exc}")
            return False
        if profile.simulated:
            return True
        candidates = candidate_connection_strings(
            profile,
            app_name=self.settings.app_name,
            timeout=self.settings.connection_timeout,
        )
        if not candidates:
            logger.error(f"Cannot verify connection {profile_id}: no connection string available")
            return False
        return any(
            check_connection(conn_str, timeout=self.settings.connection_timeout, connect=self._connect)
            for conn_str in candidates
        )


__all__ = [
    "OdbcConnection",
    "OdbcService",
    "ConnectionTestResult",
    "QueryTestResult",
]
