"""
ledger_config -- default configuration and the PGC seed chart.

Responsibility:
    Public entrypoints for the YAML-backed configuration a new ledger
    starts from: fiscal settings (flags, numbering, default accounts,
    subsidiary rules, treasury map), the income-statement layout, and the
    PGC 2007 seed chart.

Architecture position:
    Configuration -- sits above ``ledger_kernel`` and beside
    ``ledger_modules``.  The kernel MUST NEVER import from
    ``ledger_config``; bridges here translate YAML into kernel dataclasses.
    Per-ledger settings live in each ledger's database once initialized
    (``FiscalConfigService``); these files are only the starting point.

Failure modes:
    - ``FileNotFoundError`` for a missing file.
    - ``ValueError`` / ``KeyError`` for invalid content.

Audit relevance:
    Every load emits a ``ledger_config_loaded`` log entry carrying the
    config id, version and checksum.
"""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path

from ledger_config.bridges import (
    build_chart_seed,
    build_fiscal_settings,
    build_income_statement_layout,
)
from ledger_config.loader import load_yaml_file, parse_chart, parse_defaults
from ledger_config.schema import LedgerDefaultsDef
from ledger_kernel.domain.report_layout import IncomeStatementLayout
from ledger_kernel.domain.settings import ChartSeedAccount, FiscalSettings

_logger = logging.getLogger("ledger_kernel.config")

_PACKAGE_DIR = Path(__file__).parent
DEFAULTS_PATH = _PACKAGE_DIR / "defaults.yaml"
PGC_2007_PATH = _PACKAGE_DIR / "charts" / "pgc_2007.yaml"


def load_defaults(path: Path | None = None) -> LedgerDefaultsDef:
    """Parse a defaults file (default: the bundled defaults.yaml)."""
    source = Path(path) if path is not None else DEFAULTS_PATH
    defaults = parse_defaults(load_yaml_file(source))
    _logger.info(
        "ledger_config_loaded",
        extra={
            "config_id": defaults.config_id,
            "config_version": defaults.version,
            "checksum": defaults.checksum,
            "path": str(source),
        },
    )
    return defaults


def get_default_settings(path: Path | None = None, fallback_year: int | None = None) -> FiscalSettings:
    """
    FiscalSettings for a new ledger.

    Args:
        path: Defaults file; the bundled one when omitted.
        fallback_year: Active fiscal year if the file leaves it null;
            defaults to the current calendar year.
    """
    year = fallback_year if fallback_year is not None else date.today().year
    return build_fiscal_settings(load_defaults(path), fallback_year=year)


def get_income_statement_layout(path: Path | None = None) -> IncomeStatementLayout:
    """Income-statement section layout from a defaults file."""
    return build_income_statement_layout(load_defaults(path))


def load_chart_seed(path: Path | None = None) -> tuple[ChartSeedAccount, ...]:
    """Seed chart accounts (default: PGC 2007)."""
    source = Path(path) if path is not None else PGC_2007_PATH
    chart = parse_chart(load_yaml_file(source))
    _logger.info(
        "chart_seed_loaded",
        extra={"chart": chart.chart, "account_count": len(chart.accounts)},
    )
    return build_chart_seed(chart)


__all__ = [
    "DEFAULTS_PATH",
    "PGC_2007_PATH",
    "get_default_settings",
    "get_income_statement_layout",
    "load_chart_seed",
    "load_defaults",
]
