"""
Report Service (``ledger_reports.service``).

Responsibility
--------------
Orchestrates report generation -- trial balance, balance sheet, profit &
loss, receivable/payable aging and the ledger diagnostic -- by bridging
the kernel ``LedgerSelector`` to the pure transformation functions in
``statements.py``.  This is a **read-only** service: nothing is flushed
or committed.

Architecture position
---------------------
**Reports layer** -- thin glue above the kernel.  Constructor:
``session`` + ``company_id`` + ``clock`` + ``config``.  All figures are
replayed from posted journal lines inside the caller's session, which is
the consistent snapshot for one report.

Invariants enforced
-------------------
* Read-only -- no mutations to accounts or entries.
* All monetary amounts use ``Decimal`` -- NEVER ``float``.
* Report metadata carries the generation timestamp from the injected clock.

Failure modes
-------------
* Selector query failure -> exception propagates.
* ``end_date < start_date`` -> ``ValueError`` before any query.
* Empty ledger -> empty, balanced reports.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.logging_config import get_logger
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_reports.config import ReportingConfig
from ledger_reports.models import (
    AgingReport,
    BalanceSheetReport,
    LedgerDiagnostic,
    OpenItem,
    ProfitAndLossReport,
    ReportMetadata,
    ReportType,
    TrialBalanceReport,
)
from ledger_reports.statements import (
    build_aging,
    build_balance_sheet,
    build_profit_and_loss,
    build_trial_balance,
    check_trial_balance,
)

logger = get_logger("reports.service")


class ReportService:
    """
    Company-scoped report generation.

    Contract
    --------
    * Every public method returns a typed, frozen report DTO.
    * All methods are read-only.

    Guarantees
    ----------
    * No financial logic lives here; ``statements.py`` does the math.
    * Clock is injectable for deterministic metadata.

    Non-goals
    ---------
    * Does NOT post, repair or reconcile (kernel services do).
    * Does NOT track open items; aging inputs come from the caller.
    """

    def __init__(
        self,
        session: Session,
        company_id: UUID,
        clock: Clock | None = None,
        config: ReportingConfig | None = None,
    ):
        self._session = session
        self._company_id = company_id
        self._clock = clock or SystemClock()
        self._config = config or ReportingConfig.with_defaults()
        self._ledger = LedgerSelector(session, company_id)

    def _build_metadata(
        self,
        report_type: ReportType,
        as_of_date: date,
        period_start: date | None = None,
        period_end: date | None = None,
    ) -> ReportMetadata:
        """Build report metadata with injected clock timestamp."""
        return ReportMetadata(
            report_type=report_type,
            entity_name=self._config.entity_name,
            currency=self._config.currency,
            as_of_date=as_of_date,
            generated_at=self._clock.now().isoformat(),
            period_start=period_start,
            period_end=period_end,
        )

    # =========================================================================
    # Public API
    # =========================================================================

    def trial_balance(self, as_of_date: date | None = None) -> TrialBalanceReport:
        """
        Generate a trial balance as of a date (default: today per clock).

        Returns:
            TrialBalanceReport; ``is_balanced`` holds for any ledger built
            through the posting engine.
        """
        as_of = as_of_date or self._clock.today()
        report = build_trial_balance(
            self._ledger.balances(as_of=as_of),
            self._build_metadata(ReportType.TRIAL_BALANCE, as_of),
            self._config,
        )
        logger.info(
            "trial_balance_generated",
            extra={
                "as_of_date": as_of.isoformat(),
                "line_count": len(report.lines),
                "is_balanced": report.is_balanced,
            },
        )
        return report

    def balance_sheet(self, as_of_date: date | None = None) -> BalanceSheetReport:
        """Generate a balance sheet with a current-earnings equity line."""
        as_of = as_of_date or self._clock.today()
        report = build_balance_sheet(
            self._ledger.balances(as_of=as_of),
            self._build_metadata(ReportType.BALANCE_SHEET, as_of),
            self._config,
        )
        logger.info(
            "balance_sheet_generated",
            extra={
                "as_of_date": as_of.isoformat(),
                "total_assets": str(report.total_assets),
                "is_balanced": report.is_balanced,
            },
        )
        return report

    def profit_and_loss(
        self,
        start_date: date,
        end_date: date,
    ) -> ProfitAndLossReport:
        """
        Generate a P&L over ``start_date..end_date`` (both inclusive).

        Raises:
            ValueError: end_date before start_date.
        """
        if end_date < start_date:
            raise ValueError(
                f"end_date {end_date} is before start_date {start_date}"
            )
        report = build_profit_and_loss(
            self._ledger.balances(as_of=end_date, start_date=start_date),
            self._build_metadata(
                ReportType.PROFIT_AND_LOSS,
                end_date,
                period_start=start_date,
                period_end=end_date,
            ),
            self._config,
        )
        logger.info(
            "profit_and_loss_generated",
            extra={
                "start_date": start_date.isoformat(),
                "end_date": end_date.isoformat(),
                "net_income": str(report.net_income),
            },
        )
        return report

    def receivables_aging(
        self, items: Iterable[OpenItem], as_of_date: date | None = None
    ) -> AgingReport:
        return self._aging(ReportType.RECEIVABLES_AGING, items, as_of_date)

    def payables_aging(
        self, items: Iterable[OpenItem], as_of_date: date | None = None
    ) -> AgingReport:
        return self._aging(ReportType.PAYABLES_AGING, items, as_of_date)

    def _aging(
        self,
        report_type: ReportType,
        items: Iterable[OpenItem],
        as_of_date: date | None,
    ) -> AgingReport:
        as_of = as_of_date or self._clock.today()
        report = build_aging(
            items, as_of, self._build_metadata(report_type, as_of), self._config
        )
        logger.info(
            "aging_generated",
            extra={
                "report_type": report_type.value,
                "as_of_date": as_of.isoformat(),
                "item_count": len(report.lines),
                "total_outstanding": str(report.total_outstanding),
            },
        )
        return report

    def ledger_diagnostic(self, as_of_date: date | None = None) -> LedgerDiagnostic:
        """Ledger-wide debits vs credits; logs an error when they differ."""
        debits, credits = self._ledger.total_debits_credits(as_of_date)
        return check_trial_balance(debits, credits, as_of_date)
