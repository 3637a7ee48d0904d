"""
Reporting module: Spanish statutory books and statements.

    libro_diario               -> LibroDiarioReport
    libro_mayor                -> LibroMayorReport
    sumas_y_saldos             -> SumasYSaldosReport
    balance_situacion          -> BalanceSituacionReport
    cuenta_resultados          -> CuentaResultadosReport
    cuenta_resultados_resumida -> CuentaResultadosResumida
"""

from ledger_modules.reporting.config import ReportingConfig
from ledger_modules.reporting.models import (
    BalanceSection,
    BalanceSituacionReport,
    CuentaResultadosReport,
    CuentaResultadosResumida,
    DiarioLine,
    DiarioTotals,
    IncomeStatementSection,
    LibroDiarioReport,
    LibroMayorReport,
    MayorAccount,
    MayorMovement,
    ReportMetadata,
    ReportType,
    StatementLine,
    SumasYSaldosReport,
    SumasYSaldosResumen,
    SumasYSaldosRow,
    render_to_dict,
)
from ledger_modules.reporting.service import ReportingService

__all__ = [
    "BalanceSection",
    "BalanceSituacionReport",
    "CuentaResultadosReport",
    "CuentaResultadosResumida",
    "DiarioLine",
    "DiarioTotals",
    "IncomeStatementSection",
    "LibroDiarioReport",
    "LibroMayorReport",
    "MayorAccount",
    "MayorMovement",
    "ReportMetadata",
    "ReportType",
    "ReportingConfig",
    "ReportingService",
    "StatementLine",
    "SumasYSaldosReport",
    "SumasYSaldosResumen",
    "SumasYSaldosRow",
    "render_to_dict",
]
