"""
Config -> Kernel Bridges.

Functions that convert a LedgerConfig into kernel and report inputs.  They
live in ledger_config (the producer) because the kernel must NEVER import
ledger_config.

Usage:
    from ledger_config import get_active_config
    from ledger_config.bridges import build_engine, build_posting_engine

    config = get_active_config()
    build_engine(config)
    engine = build_posting_engine(config, get_session_factory(), company_id)
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from ledger_config.schema import LedgerConfig
from ledger_kernel.db.engine import init_engine_from_url
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.posting_policy import PostingPolicy
from ledger_kernel.logging_config import configure_logging
from ledger_kernel.services.posting_engine import DependentsProbe, PostingEngine
from ledger_reports.config import ReportingConfig


def build_posting_policy(config: LedgerConfig) -> PostingPolicy:
    posting = config.posting
    return PostingPolicy(
        balance_tolerance=posting.balance_tolerance,
        max_attempts=posting.max_attempts,
        retry_backoff_seconds=posting.retry_backoff_seconds,
    )


def build_reporting_config(config: LedgerConfig) -> ReportingConfig:
    reporting = config.reporting
    return ReportingConfig(
        entity_name=reporting.entity_name,
        currency=reporting.currency,
        display_precision=reporting.display_precision,
        include_zero_balances=reporting.include_zero_balances,
        current_earnings_label=reporting.current_earnings_label,
    )


def configure_logging_from(config: LedgerConfig) -> None:
    """Configure kernel logging at the configured level (idempotent)."""
    configure_logging(level=getattr(logging, config.logging.level.upper()))


def build_engine(config: LedgerConfig) -> Engine:
    """Initialize the kernel's module-level engine from the database section."""
    configure_logging_from(config)
    db = config.database
    return init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
        pool_recycle=db.pool_recycle,
        sqlite_busy_timeout=db.sqlite_busy_timeout,
    )


def build_posting_engine(
    config: LedgerConfig,
    session_factory: sessionmaker[Session],
    company_id: UUID,
    clock: Clock | None = None,
    dependents_probe: DependentsProbe | None = None,
) -> PostingEngine:
    """PostingEngine for one company, with the configured posting policy."""
    return PostingEngine(
        session_factory,
        company_id,
        clock=clock,
        policy=build_posting_policy(config),
        dependents_probe=dependents_probe,
    )
