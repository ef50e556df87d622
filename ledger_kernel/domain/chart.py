"""
Default chart of accounts for a new company.

Pure data.  AccountRegistry.seed_default_chart() materializes it, skipping
codes the company already uses.
"""

from __future__ import annotations

from dataclasses import dataclass

CASH = "1000"
ACCOUNTS_RECEIVABLE = "1100"
INVENTORY = "1500"
ACCOUNTS_PAYABLE = "2000"
TAX_PAYABLE = "2100"
OWNERS_EQUITY = "3000"
SALES_REVENUE = "4000"
COST_OF_GOODS_SOLD = "5000"
OPERATING_EXPENSES = "5100"


@dataclass(frozen=True)
class ChartAccount:
    code: str
    name: str
    account_type: str


DEFAULT_CHART: tuple[ChartAccount, ...] = (
    ChartAccount(CASH, "Cash", "asset"),
    ChartAccount(ACCOUNTS_RECEIVABLE, "Accounts Receivable", "asset"),
    ChartAccount(INVENTORY, "Inventory", "asset"),
    ChartAccount(ACCOUNTS_PAYABLE, "Accounts Payable", "liability"),
    ChartAccount(TAX_PAYABLE, "Tax Payable", "liability"),
    ChartAccount(OWNERS_EQUITY, "Owner's Equity", "equity"),
    ChartAccount(SALES_REVENUE, "Sales Revenue", "revenue"),
    ChartAccount(COST_OF_GOODS_SOLD, "Cost of Goods Sold", "expense"),
    ChartAccount(OPERATING_EXPENSES, "Operating Expenses", "expense"),
)
