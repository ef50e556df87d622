#!/usr/bin/env python3
"""
Ledger command line: database setup, chart seeding and ledger checks.

Reads configuration through ledger_config (``--config`` or $LEDGER_CONFIG,
with $LEDGER_DATABASE_URL overriding the database URL).

Usage:
    python3 scripts/ledger_cli.py init-db
    python3 scripts/ledger_cli.py seed-chart --company-id <uuid>
    python3 scripts/ledger_cli.py trial-balance --company-id <uuid> [--as-of 2024-12-31]
    python3 scripts/ledger_cli.py reconcile --company-id <uuid> [--repair]

Exit status is 0 on success, 1 on a usage/connection error and 2 when a
check (trial balance, reconciliation) finds a problem.
"""

import argparse
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path
from uuid import UUID

# ---------------------------------------------------------------------------
# Project root on sys.path
# ---------------------------------------------------------------------------
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from ledger_config import get_active_config  # noqa: E402
from ledger_config.bridges import (  # noqa: E402
    build_engine,
    build_posting_engine,
    build_reporting_config,
)
from ledger_kernel.db.engine import (  # noqa: E402
    create_tables,
    get_session_factory,
    session_scope,
)
from ledger_kernel.services.account_registry import AccountRegistry  # noqa: E402
from ledger_reports.service import ReportService  # noqa: E402

# Actor recorded on rows created from the command line.
SYSTEM_ACTOR_ID = UUID("00000000-0000-0000-0000-000000000001")

W = 72
AMT_W = 16


def _fmt(amount: Decimal) -> str:
    if amount < 0:
        return f"({-amount:,.2f})"
    return f"{amount:,.2f}"


def _status(label: str, ok: bool) -> str:
    return f"  [{'OK' if ok else 'FAIL'}] {label}"


# =============================================================================
# Commands
# =============================================================================


def cmd_init_db(args) -> int:
    create_tables()
    print("  Tables created.")
    return 0


def cmd_seed_chart(args) -> int:
    with session_scope() as session:
        created = AccountRegistry(session, args.company_id).seed_default_chart(
            actor_id=args.actor_id
        )
    print(f"  Created {len(created)} account(s).")
    for account in created:
        print(f"    {account.code}  {account.name}")
    return 0


def cmd_trial_balance(args) -> int:
    config = get_active_config()
    with session_scope() as session:
        report = ReportService(
            session, args.company_id, config=build_reporting_config(config)
        ).trial_balance(as_of_date=args.as_of)

    label_w = W - 2 * AMT_W - 2
    print("=" * W)
    print("  TRIAL BALANCE".center(W))
    print(f"As of {report.metadata.as_of_date}  {report.metadata.entity_name}".center(W))
    print("=" * W)
    print(f"  {'Account':<{label_w}}{'Debit':>{AMT_W}}{'Credit':>{AMT_W}}")
    for line in report.lines:
        dr = _fmt(line.debit_balance) if line.debit_balance else ""
        cr = _fmt(line.credit_balance) if line.credit_balance else ""
        label = f"{line.account_code}  {line.account_name}"
        print(f"  {label:<{label_w}}{dr:>{AMT_W}}{cr:>{AMT_W}}")
    print(f"  {'TOTALS':<{label_w}}{_fmt(report.total_debits):>{AMT_W}}"
          f"{_fmt(report.total_credits):>{AMT_W}}")
    print(_status("Debits = Credits", report.is_balanced))
    return 0 if report.is_balanced else 2


def cmd_reconcile(args) -> int:
    with session_scope() as session:
        results = AccountRegistry(session, args.company_id).reconcile_all()

    drifted = [r for r in results if not r.is_consistent]
    for result in results:
        mark = "OK" if result.is_consistent else "DRIFT"
        print(f"  [{mark:>5}] {result.account_code:<10}"
              f" cached {_fmt(result.cached):>{AMT_W}}"
              f" history {_fmt(result.recomputed):>{AMT_W}}")

    if drifted and args.repair:
        engine = build_posting_engine(
            get_active_config(), get_session_factory(), args.company_id
        )
        for result in drifted:
            engine.repair_balance(result.account_id, actor_id=args.actor_id)
            print(f"  Repaired {result.account_code}")
        return 0

    print(_status("Cached balances match history", not drifted))
    return 2 if drifted else 0


# =============================================================================
# Main
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Ledger maintenance commands.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config", type=Path, default=None,
        help="YAML configuration file (default: $LEDGER_CONFIG or built-in defaults)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    init_db = sub.add_parser("init-db", help="Create all ledger tables")
    init_db.set_defaults(func=cmd_init_db)

    def company_command(name: str, help_text: str):
        command = sub.add_parser(name, help=help_text)
        command.add_argument("--company-id", type=UUID, required=True)
        command.add_argument("--actor-id", type=UUID, default=SYSTEM_ACTOR_ID)
        return command

    seed = company_command("seed-chart", "Create the default chart of accounts")
    seed.set_defaults(func=cmd_seed_chart)

    tb = company_command("trial-balance", "Print the trial balance")
    tb.add_argument("--as-of", type=date.fromisoformat, default=None)
    tb.set_defaults(func=cmd_trial_balance)

    rec = company_command("reconcile", "Compare cached balances with history")
    rec.add_argument(
        "--repair", action="store_true",
        help="Rebuild drifted balances from posted history",
    )
    rec.set_defaults(func=cmd_reconcile)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        build_engine(get_active_config(args.config))
    except Exception as exc:
        print(f"  ERROR: Could not connect: {exc}", file=sys.stderr)
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
