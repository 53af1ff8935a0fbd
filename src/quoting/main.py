"""CLI entry point — verify the caller's role and run store diagnostics.

Usage:
    python -m src.quoting.main --email sales@example.com --password ...
    python -m src.quoting.main --check quotes --check receipts
    python -m src.quoting.main --sqlite data/quoting.db --user-id local-admin
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

from src.common.config import settings
from src.common.errors import AuthError
from src.common.logging import setup_logging

from .auth import Caller, RoleCheck, SupabaseAuth, verify_auth_role
from .diagnostics import CHECKS, DiagnosticResult, run_diagnostics
from .gateway import PersistenceGateway
from .stores import SQLiteStore, SupabaseStore, create_supabase_client

logger = logging.getLogger(__name__)


def _print_summary(role: RoleCheck | None, results: dict[str, DiagnosticResult]) -> None:
    """Print a human-readable summary of the diagnostics run."""
    print(f"\n{'=' * 60}")
    print("  Store diagnostics")
    print(f"{'=' * 60}")
    if role is not None:
        status = f"verified ({role.role})" if role.verified else f"NOT verified: {role.error}"
        print(f"  Role check:   {status}")
        print()

    print(f"  {'Check':<12} {'Result':<8}  Error")
    print(f"  {'-' * 12} {'-' * 8}  {'-' * 30}")
    for name, result in results.items():
        outcome = "ok" if result.success else "FAILED"
        print(f"  {name:<12} {outcome:<8}  {result.error or ''}")
    print()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Quoting store diagnostics — role check and per-table self-checks",
    )
    parser.add_argument(
        "--check",
        action="append",
        choices=sorted(CHECKS),
        help="Check to run (repeatable). Runs all checks if omitted.",
    )
    parser.add_argument(
        "--email",
        type=str,
        default=os.getenv("QUOTING_DIAG_EMAIL"),
        help="Sign in with this account before running checks",
    )
    parser.add_argument(
        "--password",
        type=str,
        default=os.getenv("QUOTING_DIAG_PASSWORD"),
        help="Password for --email",
    )
    parser.add_argument(
        "--sqlite",
        type=str,
        default=None,
        help="Run against a local SQLite store at this path instead of Supabase",
    )
    parser.add_argument(
        "--user-id",
        type=str,
        default="local-diagnostics",
        help="Caller id used with --sqlite",
    )
    args = parser.parse_args(argv)

    setup_logging(level=settings.log_level)

    role: RoleCheck | None = None
    if args.sqlite:
        store = SQLiteStore(args.sqlite)
        caller: Caller | None = Caller(id=args.user_id, role="admin")
    else:
        client = create_supabase_client()
        store = SupabaseStore(client=client)
        auth = SupabaseAuth(client)
        try:
            if args.email and args.password:
                auth.sign_in(args.email, args.password)
            caller = auth.get_user()
        except AuthError as e:
            print(f"\n  {e.message}\n")
            return 1
        role = verify_auth_role(auth)

    logger.info("Running diagnostics against %s", "SQLite" if args.sqlite else "Supabase")
    results = run_diagnostics(PersistenceGateway(store), caller, args.check)
    _print_summary(role, results)
    return 0 if all(r.success for r in results.values()) else 1


if __name__ == "__main__":
    sys.exit(main())
