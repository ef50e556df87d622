"""
ledger_cli end to end against a SQLite file configured through YAML.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import update

from ledger_config import reset_config
from ledger_config.loader import ENV_CONFIG_PATH, ENV_DATABASE_URL
from ledger_kernel.db.engine import get_session_factory, reset_engine, session_scope
from ledger_kernel.domain.dtos import LineSpec
from ledger_kernel.models.account import Account
from ledger_kernel.services.account_registry import AccountRegistry
from ledger_kernel.services.posting_engine import PostingEngine
from scripts.ledger_cli import main


@pytest.fixture
def cli_config(tmp_path, monkeypatch):
    monkeypatch.delenv(ENV_CONFIG_PATH, raising=False)
    monkeypatch.delenv(ENV_DATABASE_URL, raising=False)
    path = tmp_path / "ledger.yaml"
    path.write_text(
        f"database:\n  url: sqlite:///{tmp_path / 'cli.db'}\n"
        "reporting:\n  entity_name: CLI Test Co\n"
    )
    reset_config()
    yield str(path)
    reset_config()
    reset_engine()


@pytest.fixture
def company(cli_config):
    company_id = uuid4()
    assert main(["--config", cli_config, "init-db"]) == 0
    assert main(["--config", cli_config, "seed-chart", "--company-id", str(company_id)]) == 0
    return company_id


def _codes(company_id):
    with session_scope(get_session_factory()) as s:
        return {a.code: a.id for a in AccountRegistry(s, company_id).list_accounts()}


def test_seed_chart_reports_created_accounts(cli_config, capsys):
    company_id = uuid4()
    main(["--config", cli_config, "init-db"])
    main(["--config", cli_config, "seed-chart", "--company-id", str(company_id)])
    out = capsys.readouterr().out
    assert "Created 9 account(s)." in out
    assert "1000  Cash" in out

    main(["--config", cli_config, "seed-chart", "--company-id", str(company_id)])
    assert "Created 0 account(s)." in capsys.readouterr().out


def test_trial_balance_prints_totals(company, cli_config, capsys, test_actor_id):
    codes = _codes(company)
    PostingEngine(get_session_factory(), company).record(
        date(2024, 1, 5), "sale",
        [LineSpec.dr(codes["1000"], "1234.50"), LineSpec.cr(codes["4000"], "1234.50")],
        actor_id=test_actor_id,
    )
    capsys.readouterr()

    status = main([
        "--config", cli_config, "trial-balance",
        "--company-id", str(company), "--as-of", "2024-01-31",
    ])
    out = capsys.readouterr().out
    assert status == 0
    assert "CLI Test Co" in out
    assert "1,234.50" in out
    assert "[OK] Debits = Credits" in out


def test_reconcile_detects_and_repairs_drift(company, cli_config, capsys):
    codes = _codes(company)
    with session_scope(get_session_factory()) as s:
        s.execute(
            update(Account)
            .where(Account.id == codes["1000"])
            .values(balance=Decimal("3.00"), version=Account.version + 1)
        )

    args = ["--config", cli_config, "reconcile", "--company-id", str(company)]
    assert main(args) == 2
    assert "DRIFT" in capsys.readouterr().out

    assert main(args + ["--repair"]) == 0
    assert "Repaired 1000" in capsys.readouterr().out
    assert main(args) == 0


def test_missing_company_id_is_usage_error(cli_config):
    with pytest.raises(SystemExit) as exc_info:
        main(["--config", cli_config, "trial-balance"])
    assert exc_info.value.code == 2


def test_bad_config_returns_1(tmp_path, capsys):
    reset_config()
    try:
        path = tmp_path / "bad.yaml"
        path.write_text("posting:\n  tolerance: 1\n")
        assert main(["--config", str(path), "init-db"]) == 1
        assert "ERROR" in capsys.readouterr().err
    finally:
        reset_config()
