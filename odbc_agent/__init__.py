"""ODBC pass-through agent: profiles, queries, error messages and diagnostics."""

from .core import (
    adapt_limit_clause,
    build_connection_string,
    coerce_profile_id,
    format_sql_value,
    mask_password,
    replace_query_params,
    validate_sql,
)
from .diagnostics import (
    CheckStatus,
    ConnectionDiagnosis,
    DiagnosticCheck,
    diagnose_connection,
    list_available_drivers,
)
from .errors import (
    DriverConnectionError,
    InvalidProfileIdError,
    InvalidQueryError,
    MissingDriverError,
    OdbcAgentError,
    ProfileNotFoundError,
    QueryExecutionError,
    friendly_error_message,
)
from .executor import ConnectionTestResult, OdbcConnection, OdbcService, QueryTestResult
from .formatting import format_results
from .simulated import SimulatedConnection

__all__ = [
    "adapt_limit_clause",
    "build_connection_string",
    "coerce_profile_id",
    "format_sql_value",
    "mask_password",
    "replace_query_params",
    "validate_sql",
    "CheckStatus",
    "ConnectionDiagnosis",
    "DiagnosticCheck",
    "diagnose_connection",
    "list_available_drivers",
    "DriverConnectionError",
    "InvalidProfileIdError",
    "InvalidQueryError",
    "MissingDriverError",
    "OdbcAgentError",
    "ProfileNotFoundError",
    "QueryExecutionError",
    "friendly_error_message",
    "ConnectionTestResult",
    "OdbcConnection",
    "OdbcService",
    "QueryTestResult",
    "format_results",
    "SimulatedConnection",
]
