"""Command line entry point for the ODBC agent.

Manage stored connection profiles, run pass-through queries and diagnose
connections without the desktop UI. Every command prints JSON to stdout.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Optional, Sequence

from config import settings
from db.profiles import ConnectionProfile, ProfileStore
from odbc_agent import (
    OdbcAgentError,
    OdbcService,
    diagnose_connection,
    format_results,
    list_available_drivers,
)
from utils.logging_helper import operation_counts, setup_logging

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="ODBC pass-through agent")
    parser.add_argument("--store", help="Path of the local profile database")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("profiles", help="List stored connection profiles")

    add = sub.add_parser("add-profile", help="Store a new connection profile")
    add.add_argument("name")
    add.add_argument("--driver")
    add.add_argument("--server")
    add.add_argument("--port", type=int)
    add.add_argument("--database")
    add.add_argument("--username")
    add.add_argument("--password")
    add.add_argument("--connection-string", dest="connection_string")
    add.add_argument("--dsn")
    add.add_argument("--params", help="Extra key=value; options for the connection string")
    add.add_argument("--simulated", action="store_true", help="Answer queries with canned data")

    query = sub.add_parser("query", help="Execute a query on a profile")
    query.add_argument("profile_id")
    query.add_argument("sql")
    query.add_argument(
        "--param",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Placeholder value; VALUE is parsed as JSON when possible",
    )
    query.add_argument("--raw", action="store_true", help="Skip parameter substitution and LIMIT rewriting")
    query.add_argument("--format", choices=("json", "csv", "excel"), default="json")

    test_conn = sub.add_parser("test-connection", help="Validate and try a stored profile")
    test_conn.add_argument("profile_id")

    test_query = sub.add_parser("test-query", help="Run a trial query")
    test_query.add_argument("profile_id")
    test_query.add_argument("sql")

    check = sub.add_parser("check", help="Report whether a profile can connect")
    check.add_argument("profile_id")

    diagnose = sub.add_parser("diagnose", help="Run the connection checklist")
    diagnose.add_argument("profile_id")

    sub.add_parser("drivers", help="List installed ODBC drivers")

    return parser.parse_args(argv)


def parse_params(pairs: Sequence[str]) -> dict[str, Any]:
    """Turn ``NAME=VALUE`` pairs into a parameter mapping."""
    params: dict[str, Any] = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name:
            raise ValueError(f"Parâmetro inválido: {pair!r} (use NOME=VALOR)")
        try:
            params[name] = json.loads(value)
        except json.JSONDecodeError:
            params[name] = value
    return params


def _emit(payload: Any) -> None:
    if isinstance(payload, str):
        print(payload)
    else:
        print(json.dumps(payload, indent=2, ensure_ascii=False, default=str))


def run_command(args: argparse.Namespace, service: OdbcService) -> int:
    if args.command == "profiles":
        _emit([profile.describe() for profile in service.store.list_profiles()])
        return 0

    if args.command == "add-profile":
        profile = ConnectionProfile(
            name=args.name,
            driver=args.driver,
            server=args.server,
            port=args.port,
            database=args.database,
            username=args.username,
            password=args.password,
            connection_string=args.connection_string,
            dsn=args.dsn,
            params=args.params,
            simulated=args.simulated,
        )
        _emit({"id": service.store.create(profile)})
        return 0

    if args.command == "query":
        if args.raw:
            rows = service.execute_raw_query(args.profile_id, args.sql)
        else:
            rows = service.execute_query(args.profile_id, args.sql, parse_params(args.param))
        _emit(format_results(rows, args.format))
        return 0

    if args.command == "test-connection":
        result = service.test_connection(args.profile_id)
        _emit({"success": result.success, "message": result.message})
        return 0 if result.success else 1

    if args.command == "test-query":
        result = service.test_query(args.sql, args.profile_id)
        _emit(
            {
                "success": result.success,
                "message": result.message,
                "data": result.data,
                "simulated": result.simulated,
            }
        )
        return 0 if result.success else 1

    if args.command == "check":
        active = service.verify_active_connection(args.profile_id)
        _emit({"active": active})
        return 0 if active else 1

    if args.command == "diagnose":
        diagnosis = diagnose_connection(args.profile_id, service=service)
        _emit(diagnosis.to_dict())
        return 0 if diagnosis.ok else 1

    if args.command == "drivers":
        _emit(list_available_drivers())
        return 0

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[Sequence[str]] = None, service: Optional[OdbcService] = None) -> int:
    args = parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else settings.log_level.upper())

    if service is None:
        from db.connections import get_store_engine

        store = ProfileStore(get_store_engine(args.store)) if args.store else ProfileStore()
        service = OdbcService(store=store)

    try:
        return run_command(args, service)
    except (OdbcAgentError, ValueError) as exc:
        logger.error(f"{args.command} failed: {exc}")
        _emit({"success": False, "message": str(exc)})
        return 1
    finally:
        logger.info(
            "Run completed - successes: %s failures: %s",
            operation_counts["success"],
            operation_counts["failure"],
        )


if __name__ == "__main__":
    sys.exit(main())
