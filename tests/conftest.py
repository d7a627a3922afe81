import pyodbc
import pytest

from config import Settings
from db.connections import build_sqlite_url, dispose_engines, get_engine
from db.profiles import ConnectionProfile, ProfileStore
from odbc_agent.executor import OdbcService


class DummyCursor:
    def __init__(self, conn):
        self.conn = conn
        self.closed = False
        self.description = None

    def execute(self, sql, params=None):
        self.conn.executed.append(sql)
        if self.conn.error is not None and (self.conn.fail_sql is None or self.conn.fail_sql in sql):
            raise self.conn.error
        if self.conn.columns is not None:
            self.description = [(name, None, None, None, None, None, True) for name in self.conn.columns]

    def fetchall(self):
        return list(self.conn.rows)

    def close(self):
        self.closed = True


class DummyConn:
    def __init__(self, rows=None, columns=("id", "nome"), error=None, fail_sql=None):
        self.rows = rows if rows is not None else [(1, "Ana"), (2, "Bruno")]
        self.columns = columns
        self.error = error
        self.fail_sql = fail_sql
        self.executed = []
        self.cursors = []
        self.closed = False
        self.close_calls = 0

    def cursor(self):
        cursor = DummyCursor(self)
        self.cursors.append(cursor)
        return cursor

    def close(self):
        self.closed = True
        self.close_calls += 1


class DummyConnector:
    """Stands in for ``pyodbc.connect``.

    ``outcomes`` is consumed one entry per call; an exception entry is raised,
    anything else is returned. The last entry repeats.
    """

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes) or [DummyConn()]
        self.calls = []

    def __call__(self, conn_str, timeout=None):
        self.calls.append((conn_str, timeout))
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    @property
    def conn_strings(self):
        return [call[0] for call in self.calls]


def odbc_error(message, state="HY000"):
    return pyodbc.Error(state, message)


@pytest.fixture
def store(tmp_path):
    engine = get_engine(build_sqlite_url(str(tmp_path / "local.db")))
    yield ProfileStore(engine)
    dispose_engines()


@pytest.fixture
def agent_settings(tmp_path):
    return Settings(
        profile_db_path=str(tmp_path / "local.db"),
        app_name="TraySQL",
        connection_timeout=30,
    )


@pytest.fixture
def dummy_conn():
    return DummyConn()


@pytest.fixture
def connector(dummy_conn):
    return DummyConnector(dummy_conn)


@pytest.fixture
def service(store, agent_settings, connector):
    return OdbcService(store=store, settings=agent_settings, connect=connector)


@pytest.fixture
def add_profile(store):
    def _add(**overrides):
        values = {
            "name": "Contabil",
            "driver": "SQL Anywhere 17",
            "server": "192.168.0.10",
            "port": 2638,
            "database": "contabil",
            "username": "dba",
            "password": "sql",
        }
        values.update(overrides)
        return store.create(ConnectionProfile(**values))

    return _add
