"""Five-step connection checklist and ODBC driver discovery."""

from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

import pyodbc

from config import OdbcConstants
from db.profiles import ConnectionProfile

from .core import coerce_profile_id
from .errors import DriverConnectionError, OdbcAgentError, driver_error_text

logger = logging.getLogger(__name__)

DIAGNOSTIC_QUERY = "SELECT 1 AS teste"

_IPV4_RE = re.compile(
    r"^((25[0-5]|2[0-4][0-9]|1[0-9]{2}|[1-9][0-9]|[0-9])\.){3}"
    r"(25[0-5]|2[0-4][0-9]|1[0-9]{2}|[1-9][0-9]|[0-9])$"
)
_HOSTNAME_RE = re.compile(
    r"^(([a-zA-Z0-9]|[a-zA-Z0-9][a-zA-Z0-9\-]*[a-zA-Z0-9])\.)*"
    r"([A-Za-z0-9]|[A-Za-z0-9][A-Za-z0-9\-]*[A-Za-z0-9])$"
)


class CheckStatus(str, Enum):
    PENDING = "pending"
    OK = "ok"
    VERIFY = "verify"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class DiagnosticCheck:
    status: CheckStatus = CheckStatus.PENDING
    message: str = ""
    suggestion: str = ""


@dataclass
class ConnectionDiagnosis:
    """Outcome of :func:`diagnose_connection`, one check per area."""

    driver: DiagnosticCheck = field(default_factory=DiagnosticCheck)
    server: DiagnosticCheck = field(default_factory=DiagnosticCheck)
    credentials: DiagnosticCheck = field(default_factory=DiagnosticCheck)
    database: DiagnosticCheck = field(default_factory=DiagnosticCheck)
    result: DiagnosticCheck = field(default_factory=DiagnosticCheck)

    @property
    def ok(self) -> bool:
        return self.result.status is CheckStatus.OK

    def to_dict(self) -> dict[str, dict[str, str]]:
        data = asdict(self)
        for check in data.values():
            check["status"] = CheckStatus(check["status"]).value
        return data

    @classmethod
    def failed(cls, message: str) -> "ConnectionDiagnosis":
        """Every check in error, used when the checklist itself blew up."""
        during = "Erro durante verificação"
        return cls(
            driver=DiagnosticCheck(CheckStatus.ERROR, during),
            server=DiagnosticCheck(CheckStatus.ERROR, during),
            credentials=DiagnosticCheck(CheckStatus.ERROR, during),
            database=DiagnosticCheck(CheckStatus.ERROR, during),
            result=DiagnosticCheck(
                CheckStatus.ERROR,
                f"Erro ao realizar diagnóstico: {message}",
                "Tente novamente mais tarde ou contate o suporte",
            ),
        )


def list_available_drivers() -> list[str]:
    """Return the installed ODBC drivers, or a list of common ones."""
    try:
        drivers = list(pyodbc.drivers())
    except pyodbc.Error as exc:
        logger.warning(f"Could not list ODBC drivers: {exc}")
        drivers = []
    if not drivers:
        logger.info("No ODBC drivers reported; using the default driver list")
        return list(OdbcConstants.FALLBACK_DRIVERS)
    return drivers


def check_driver(profile: ConnectionProfile, drivers: list[str]) -> DiagnosticCheck:
    wanted = (profile.driver or "").lower()
    if wanted and any(wanted in name.lower() for name in drivers):
        return DiagnosticCheck(CheckStatus.OK, f"Driver '{profile.driver}' está disponível no sistema")
    return DiagnosticCheck(
        CheckStatus.ERROR,
        f"Driver '{profile.driver}' não encontrado entre os drivers disponíveis",
        f"Instale o driver '{profile.driver}' ou escolha um dos seguintes drivers disponíveis: "
        f"{', '.join(drivers)}",
    )


def check_server(profile: ConnectionProfile) -> DiagnosticCheck:
    server = profile.server
    if not server:
        return DiagnosticCheck(
            CheckStatus.ERROR,
            "Host/Servidor não especificado",
            "Forneça o endereço do servidor (IP ou nome)",
        )
    if _IPV4_RE.match(server) or _HOSTNAME_RE.match(server):
        return DiagnosticCheck(
            CheckStatus.VERIFY,
            f"Formato do servidor '{server}' parece válido",
            "Verifique se o servidor está online e acessível na rede",
        )
    return DiagnosticCheck(
        CheckStatus.WARNING,
        f"Formato do servidor '{server}' pode ser inválido",
        "Verifique se o endereço do servidor está correto",
    )


def check_credentials(profile: ConnectionProfile) -> DiagnosticCheck:
    if not profile.username or not profile.password:
        return DiagnosticCheck(
            CheckStatus.ERROR,
            "Usuário ou senha não fornecidos",
            "Preencha o usuário e senha para a conexão",
        )
    return DiagnosticCheck(
        CheckStatus.VERIFY,
        "Credenciais fornecidas, mas precisam ser validadas na conexão",
        "Verifique se o usuário e senha estão corretos",
    )


def check_database(profile: ConnectionProfile) -> DiagnosticCheck:
    if not profile.database:
        return DiagnosticCheck(
            CheckStatus.ERROR,
            "Nome do banco de dados não fornecido",
            "Preencha o nome do banco de dados",
        )
    return DiagnosticCheck(
        CheckStatus.VERIFY,
        f"Nome do banco '{profile.database}' fornecido, mas precisa ser validado",
        "Verifique se o nome do banco está correto e existe no servidor",
    )


# (keywords, message prefix, suggestion); first match wins.
_FAILURE_CLASSES: tuple[tuple[tuple[str, ...], str, str], ...] = (
    (
        ("driver", "dsn"),
        "Problema com driver ou DSN",
        "Verifique se o driver está instalado corretamente ou configure a DSN no Painel de Controle",
    ),
    (
        ("login", "password", "senha", "usuario", "auth"),
        "Problema com credenciais",
        "Verifique se o usuário e senha estão corretos",
    ),
    (
        ("server", "host", "connect", "network"),
        "Problema de conexão com o servidor",
        "Verifique se o servidor está online e acessível, e se a porta está correta",
    ),
    (
        ("database", "banco"),
        "Problema com o banco de dados",
        "Verifique se o nome do banco está correto e existe no servidor",
    ),
)


def classify_failure(text: str) -> DiagnosticCheck:
    """Turn a live-connection failure into a result check with a suggestion."""
    lowered = text.lower()
    for keywords, prefix, suggestion in _FAILURE_CLASSES:
        if any(word in lowered for word in keywords):
            return DiagnosticCheck(CheckStatus.ERROR, f"{prefix}: {text}", suggestion)
    return DiagnosticCheck(
        CheckStatus.ERROR,
        f"Falha na conexão: {text}",
        "Verifique todos os parâmetros de conexão e tente novamente",
    )


def check_live_connection(service: Any, profile: ConnectionProfile) -> DiagnosticCheck:
    """Connect, run the diagnostic probe and close."""
    connection = None
    try:
        connection = service.open_profile(profile)
        connection.query(DIAGNOSTIC_QUERY)
    except DriverConnectionError as exc:
        logger.error(f"Diagnostic connection failed: {exc}")
        return classify_failure(driver_error_text(exc.original_error))
    except pyodbc.Error as exc:
        logger.error(f"Diagnostic probe failed: {exc}")
        return classify_failure(driver_error_text(exc))
    except OdbcAgentError as exc:
        return classify_failure(str(exc))
    finally:
        if connection is not None:
            service.close_quietly(connection)

    return DiagnosticCheck(CheckStatus.OK, f"Conexão com '{profile.name}' estabelecida com sucesso")


def diagnose_connection(
    profile_id: Any,
    service: Any = None,
    list_drivers: Optional[Callable[[], list[str]]] = None,
) -> ConnectionDiagnosis:
    """Run the driver, server, credentials, database and live checks.

    Never raises; problems are reported inside the returned diagnosis.
    """
    if service is None:
        from .executor import OdbcService

        service = OdbcService()
    list_drivers = list_drivers or list_available_drivers
    diagnosis = ConnectionDiagnosis()

    try:
        pid = coerce_profile_id(profile_id)
        profile = service.store.get(pid)
        if profile is None:
            diagnosis.result = DiagnosticCheck(
                CheckStatus.ERROR,
                f"Conexão ID {pid} não encontrada no banco de dados",
                "Verifique o ID da conexão ou crie uma nova conexão",
            )
            return diagnosis

        logger.info(f"Diagnosing profile: {profile.describe()}")
        diagnosis.driver = check_driver(profile, list_drivers())
        diagnosis.server = check_server(profile)
        diagnosis.credentials = check_credentials(profile)
        diagnosis.database = check_database(profile)
        diagnosis.result = check_live_connection(service, profile)
    except Exception as exc:
        logger.exception("Connection diagnosis failed")
        return ConnectionDiagnosis.failed(str(exc))

    service.log_event(
        "info" if diagnosis.ok else "error",
        f"Diagnóstico da conexão {profile.name}: {diagnosis.result.message}",
    )
    return diagnosis


__all__ = [
    "CheckStatus",
    "DiagnosticCheck",
    "ConnectionDiagnosis",
    "DIAGNOSTIC_QUERY",
    "list_available_drivers",
    "classify_failure",
    "diagnose_connection",
]
