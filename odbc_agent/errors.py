"""Exception types and the driver-error to user-message mapping."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import pyodbc


class OdbcAgentError(Exception):
    """Base exception for ODBC agent operations."""


class InvalidQueryError(OdbcAgentError, ValueError):
    """Raised when the SQL text is empty or not a string."""


class InvalidProfileIdError(OdbcAgentError, ValueError):
    """Raised when a profile id cannot be coerced to an integer."""


class ProfileNotFoundError(OdbcAgentError, LookupError):
    """Raised when no profile exists for the requested id."""

    def __init__(self, profile_id: int):
        self.profile_id = profile_id
        super().__init__(f"Conexão com ID {profile_id} não encontrada")


class MissingDriverError(OdbcAgentError, ValueError):
    """Raised when a connection string must be built without a driver name."""

    def __init__(self) -> None:
        super().__init__("Driver ODBC não especificado na configuração da conexão")


class DriverConnectionError(OdbcAgentError):
    """Raised when the ODBC driver refuses a connection."""

    def __init__(self, original_error: Exception, details: str = ""):
        self.original_error = original_error
        self.details = details
        msg = f"Falha ao conectar com o banco de dados via ODBC. {driver_error_text(original_error)}"
        if details:
            msg += f" Detalhes: {details}"
        super().__init__(msg)


class QueryExecutionError(OdbcAgentError):
    """Raised when a query fails; the message is the user-facing hint."""

    def __init__(
        self, sql: str, original_error: Exception, profile_id: Optional[int] = None
    ):
        self.sql = sql
        self.original_error = original_error
        self.profile_id = profile_id
        super().__init__(friendly_error_message(original_error))


def driver_error_text(error: BaseException) -> str:
    """Return the human-readable part of a driver error.

    ``pyodbc.Error`` carries ``(sqlstate, message)`` in its args; other
    exceptions are rendered with ``str``.
    """
    if isinstance(error, pyodbc.Error) and len(error.args) >= 2:
        return str(error.args[1])
    return str(error)


def odbc_error_details(error: BaseException) -> str:
    """Return ``[Código: SQLSTATE] message`` for pyodbc errors, else ``''``."""
    if isinstance(error, pyodbc.Error) and len(error.args) >= 2:
        return f"[Código: {error.args[0]}] {error.args[1]}"
    return ""


@dataclass(frozen=True)
class ErrorHint:
    """Keyword rule turning a driver error into a localized hint.

    A rule matches when the lower-cased text contains any of ``any_of`` and,
    if given, any of ``and_any_of``.
    """

    any_of: tuple[str, ...]
    message: str
    and_any_of: tuple[str, ...] = ()

    def matches(self, text: str) -> bool:
        if not any(word in text for word in self.any_of):
            return False
        return not self.and_any_of or any(word in text for word in self.and_any_of)


DEFAULT_ERROR_PREFIX = "Erro ao executar consulta:"

# First match wins.
ERROR_HINTS: tuple[ErrorHint, ...] = (
    ErrorHint(
        ("syntax", "sintaxe"),
        "Erro de sintaxe SQL: A cláusula LIMIT não é suportada neste banco. "
        "Use SELECT TOP N para SQL Anywhere.",
        and_any_of=("limit",),
    ),
    ErrorHint(
        ("syntax", "sintaxe"),
        "Erro de sintaxe SQL: Verifique a sintaxe da sua consulta.",
    ),
    ErrorHint(
        ("column",),
        "Coluna não encontrada: Uma coluna na consulta não existe na tabela.",
        and_any_of=("not found", "unknown"),
    ),
    ErrorHint(
        ("table",),
        "Tabela não encontrada: Uma tabela na consulta não existe no banco.",
        and_any_of=("not found", "unknown"),
    ),
    ErrorHint(
        ("permission", "acesso negado", "access denied"),
        "Erro de permissão: Usuário não tem permissão para executar esta operação.",
    ),
    ErrorHint(
        ("timeout", "timed out"),
        "Timeout: A consulta demorou muito para executar e foi cancelada.",
    ),
    ErrorHint(
        ("connection",),
        "Conexão perdida: A conexão com o banco de dados foi perdida durante a consulta.",
        and_any_of=("lost", "closed"),
    ),
)


def friendly_error_message(error: BaseException | str) -> str:
    """Map a driver error onto a localized, user-facing message.

    The original driver text is always appended after the hint.
    """
    text = error if isinstance(error, str) else driver_error_text(error)
    lowered = text.lower()
    for hint in ERROR_HINTS:
        if hint.matches(lowered):
            return f"{hint.message} {text}"
    return f"{DEFAULT_ERROR_PREFIX} {text}"


__all__ = [
    "OdbcAgentError",
    "InvalidQueryError",
    "InvalidProfileIdError",
    "ProfileNotFoundError",
    "MissingDriverError",
    "DriverConnectionError",
    "QueryExecutionError",
    "ErrorHint",
    "ERROR_HINTS",
    "friendly_error_message",
    "driver_error_text",
    "odbc_error_details",
]
