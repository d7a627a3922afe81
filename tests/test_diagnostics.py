import pyodbc
import pytest

from config import OdbcConstants
from odbc_agent import diagnostics
from odbc_agent.diagnostics import (
    CheckStatus,
    ConnectionDiagnosis,
    classify_failure,
    diagnose_connection,
    list_available_drivers,
)
from odbc_agent.executor import OdbcService
from tests.conftest import DummyConn, DummyConnector, odbc_error

DRIVERS = ["SQL Anywhere 17", "SQL Server"]


def _drivers():
    return list(DRIVERS)


def test_diagnose_connection_all_good(service, add_profile, dummy_conn):
    pid = add_profile()
    diagnosis = diagnose_connection(pid, service=service, list_drivers=_drivers)

    assert diagnosis.driver.status is CheckStatus.OK
    assert diagnosis.server.status is CheckStatus.VERIFY
    assert diagnosis.credentials.status is CheckStatus.VERIFY
    assert diagnosis.database.status is CheckStatus.VERIFY
    assert diagnosis.result.status is CheckStatus.OK
    assert diagnosis.result.message == "Conexão com 'Contabil' estabelecida com sucesso"
    assert diagnosis.ok
    assert dummy_conn.executed == ["SELECT 1 AS teste"]
    assert dummy_conn.closed


def test_diagnose_connection_missing_profile(service):
    diagnosis = diagnose_connection(55, service=service, list_drivers=_drivers)

    assert diagnosis.result.status is CheckStatus.ERROR
    assert diagnosis.result.message == "Conexão ID 55 não encontrada no banco de dados"
    for check in (diagnosis.driver, diagnosis.server, diagnosis.credentials, diagnosis.database):
        assert check.status is CheckStatus.PENDING


def test_diagnose_connection_reports_field_problems(service, add_profile):
    pid = add_profile(driver="Oracle ODBC Driver", server="bad host!", username=None, database=None)
    diagnosis = diagnose_connection(pid, service=service, list_drivers=_drivers)

    assert diagnosis.driver.status is CheckStatus.ERROR
    assert "SQL Anywhere 17, SQL Server" in diagnosis.driver.suggestion
    assert diagnosis.server.status is CheckStatus.WARNING
    assert diagnosis.credentials.status is CheckStatus.ERROR
    assert diagnosis.credentials.message == "Usuário ou senha não fornecidos"
    assert diagnosis.database.status is CheckStatus.ERROR


def test_diagnose_connection_missing_server(service, add_profile):
    pid = add_profile(server=None)
    diagnosis = diagnose_connection(pid, service=service, list_drivers=_drivers)
    assert diagnosis.server.status is CheckStatus.ERROR
    assert diagnosis.server.message == "Host/Servidor não especificado"


def test_diagnose_connection_hostname_is_valid(service, add_profile):
    pid = add_profile(server="db-01.empresa.local")
    diagnosis = diagnose_connection(pid, service=service, list_drivers=_drivers)
    assert diagnosis.server.status is CheckStatus.VERIFY


def test_diagnose_connection_classifies_login_failure(store, agent_settings, add_profile):
    service = OdbcService(
        store=store,
        settings=agent_settings,
        connect=DummyConnector(odbc_error("Login failed for user 'dba'", "28000")),
    )
    pid = add_profile()
    diagnosis = diagnose_connection(pid, service=service, list_drivers=_drivers)

    assert diagnosis.result.status is CheckStatus.ERROR
    assert diagnosis.result.message == "Problema com credenciais: Login failed for user 'dba'"
    assert not diagnosis.ok
    assert store.recent_events()[0]["level"] == "error"


def test_diagnose_connection_probe_failure_closes(store, agent_settings, add_profile):
    conn = DummyConn(error=odbc_error("Database 'contabil' does not exist"))
    service = OdbcService(store=store, settings=agent_settings, connect=DummyConnector(conn))
    pid = add_profile()
    diagnosis = diagnose_connection(pid, service=service, list_drivers=_drivers)

    assert diagnosis.result.message.startswith("Problema com o banco de dados:")
    assert conn.closed


def test_diagnose_connection_missing_driver_name(service, add_profile, connector):
    pid = add_profile(driver=None)
    diagnosis = diagnose_connection(pid, service=service, list_drivers=_drivers)
    assert diagnosis.driver.status is CheckStatus.ERROR
    assert diagnosis.result.message.startswith("Problema com driver ou DSN:")
    assert connector.calls == []


def test_diagnose_connection_unexpected_error(service, add_profile):
    pid = add_profile()

    def broken():
        raise RuntimeError("registry unavailable")

    diagnosis = diagnose_connection(pid, service=service, list_drivers=broken)

    data = diagnosis.to_dict()
    assert {check["status"] for check in data.values()} == {"error"}
    assert data["result"]["message"] == "Erro ao realizar diagnóstico: registry unavailable"


def test_diagnose_connection_simulated(service, add_profile, connector):
    pid = add_profile(simulated=True)
    diagnosis = diagnose_connection(pid, service=service, list_drivers=_drivers)
    assert diagnosis.ok
    assert connector.calls == []


@pytest.mark.parametrize(
    "text, prefix",
    [
        ("[unixODBC][Driver Manager]Data source name not found", "Problema com driver ou DSN"),
        ("Invalid password", "Problema com credenciais"),
        ("Could not connect to host", "Problema de conexão com o servidor"),
        ("Unknown database", "Problema com o banco de dados"),
        ("Something odd", "Falha na conexão"),
    ],
)
def test_classify_failure(text, prefix):
    check = classify_failure(text)
    assert check.status is CheckStatus.ERROR
    assert check.message == f"{prefix}: {text}"
    assert check.suggestion


def test_to_dict_uses_plain_status_values():
    data = ConnectionDiagnosis().to_dict()
    assert set(data) == {"driver", "server", "credentials", "database", "result"}
    assert data["driver"] == {"status": "pending", "message": "", "suggestion": ""}


def test_list_available_drivers_uses_driver_manager(monkeypatch):
    monkeypatch.setattr(diagnostics.pyodbc, "drivers", lambda: ["FreeTDS"])
    assert list_available_drivers() == ["FreeTDS"]


def test_list_available_drivers_falls_back_when_empty(monkeypatch):
    monkeypatch.setattr(diagnostics.pyodbc, "drivers", lambda: [])
    assert list_available_drivers() == list(OdbcConstants.FALLBACK_DRIVERS)


def test_list_available_drivers_falls_back_on_error(monkeypatch):
    def boom():
        raise pyodbc.Error("HY000", "no driver manager")

    monkeypatch.setattr(diagnostics.pyodbc, "drivers", boom)
    assert "SQL Anywhere 17" in list_available_drivers()
