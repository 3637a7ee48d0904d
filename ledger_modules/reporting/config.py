"""
Reporting Configuration Schema.

Section layouts of the income statement and balance sheet plus report
formatting options.  Account classification uses PGC code prefixes; the
income-statement layout can be replaced from ``ledger_config``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Self

from ledger_kernel.domain.report_layout import (
    DEFAULT_INCOME_STATEMENT_LAYOUT,
    BalanceSheetLayout,
    IncomeSection,
    IncomeStatementLayout,
    ResultBlock,
    SectionKind,
)
from ledger_kernel.logging_config import get_logger

logger = get_logger("modules.reporting.config")

DEFAULT_DIARIO_PAGE_SIZE = 1000


@dataclass
class ReportingConfig:
    """
    Configuration schema for the reporting module.

    Controls statement layouts, formatting, and pagination.
    """

    income_statement: IncomeStatementLayout = DEFAULT_INCOME_STATEMENT_LAYOUT
    balance_sheet: BalanceSheetLayout = field(default_factory=BalanceSheetLayout)

    # Entity name and currency shown on reports
    entity_name: str = "Empresa"
    currency: str = "EUR"

    # Rounding precision for display
    display_precision: int = 2

    # Default page size of the libro diario
    diario_page_size: int = DEFAULT_DIARIO_PAGE_SIZE

    # Summarized income statement: sections that are cost of sales and
    # depreciation; every other operating expense is an operating cost
    cost_of_sales_keys: tuple[str, ...] = ("aprovisionamientos",)
    depreciation_keys: tuple[str, ...] = ("amortizaciones",)

    def __post_init__(self):
        if self.display_precision < 0:
            raise ValueError("display_precision cannot be negative")
        if self.diario_page_size < 1:
            raise ValueError("diario_page_size must be positive")
        if len(self.currency) != 3:
            raise ValueError("currency must be a 3-letter ISO 4217 code")

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with standard defaults."""
        logger.info("reporting_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """
        Create config from a dictionary.

        ``income_statement`` may be a list of section mappings (key, label,
        kind, block, prefixes, exclude_prefixes); ``balance_sheet`` a
        mapping of BalanceSheetLayout fields.
        """
        data = dict(data)
        sections = data.get("income_statement")
        if isinstance(sections, (list, tuple)):
            data["income_statement"] = IncomeStatementLayout(
                sections=tuple(
                    IncomeSection(
                        key=s["key"],
                        label=s.get("label", s["key"]),
                        kind=SectionKind(s["kind"]),
                        block=ResultBlock(s["block"]),
                        prefixes=tuple(str(p) for p in s["prefixes"]),
                        exclude_prefixes=tuple(str(p) for p in s.get("exclude_prefixes", ())),
                    )
                    for s in sections
                )
            )
        if isinstance(data.get("balance_sheet"), dict):
            data["balance_sheet"] = BalanceSheetLayout(
                **{k: tuple(v) if isinstance(v, list) else v for k, v in data["balance_sheet"].items()}
            )
        for key in ("cost_of_sales_keys", "depreciation_keys"):
            if isinstance(data.get(key), list):
                data[key] = tuple(data[key])
        logger.info(
            "reporting_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)
