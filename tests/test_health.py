from db.health import check_connection
from tests.conftest import DummyConn, DummyConnector, odbc_error


def test_check_connection_success():
    conn = DummyConn()
    connector = DummyConnector(conn)
    assert check_connection("DSN=x;", timeout=5, connect=connector) is True
    assert connector.calls == [("DSN=x;", 5)]
    assert conn.executed == ["SELECT 1 AS test"]
    assert conn.closed


def test_check_connection_connect_failure():
    connector = DummyConnector(odbc_error("Server not found"))
    assert check_connection("DSN=x;", connect=connector) is False


def test_check_connection_probe_failure_closes():
    conn = DummyConn(error=odbc_error("boom"))
    assert check_connection("DSN=x;", connect=DummyConnector(conn)) is False
    assert conn.closed


def test_check_connection_uses_pyodbc_by_default(monkeypatch):
    import pyodbc

    conn = DummyConn()
    monkeypatch.setattr(pyodbc, "connect", DummyConnector(conn))
    assert check_connection("DSN=x;", probe_query="SELECT 2") is True
    assert conn.executed == ["SELECT 2"]
