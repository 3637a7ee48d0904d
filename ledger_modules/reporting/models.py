"""
Statutory Report Models (``ledger_modules.reporting.models``).

Responsibility
--------------
Frozen dataclass value objects for the Spanish statutory books and
statements: libro diario, libro mayor, balance de sumas y saldos, balance
de situación and cuenta de pérdidas y ganancias (full and summarized).
Field names follow the Spanish books the export layer writes
(``suma_debe``, ``saldo_deudor``, ``cuadrado`` ...).

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Built by the
pure functions in ``statements.py`` and returned by ``ReportingService``.

Invariants enforced
-------------------
* All models are ``frozen=True``.
* All monetary fields are ``Decimal`` rounded to the display precision.
* Reconciliation flags (``cuadrado*``) are computed on unrounded sums and
  reported next to the discrepancy, never suppressed.

Audit relevance
---------------
* ``ReportMetadata`` carries generation timestamp and parameters for
  report reproducibility.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from ledger_kernel.domain.classification import AccountType, Nature
from ledger_kernel.domain.dtos import EntryOrigin, EntryStatus


class ReportType(str, Enum):
    """Types of statutory reports."""

    LIBRO_DIARIO = "libro_diario"
    LIBRO_MAYOR = "libro_mayor"
    SUMAS_Y_SALDOS = "sumas_y_saldos"
    BALANCE_SITUACION = "balance_situacion"
    CUENTA_RESULTADOS = "cuenta_resultados"
    CUENTA_RESULTADOS_RESUMIDA = "cuenta_resultados_resumida"


def render_to_dict(obj: object) -> Any:
    """
    Convert any report dataclass to plain data for JSON serialization.

    Handles:
    - Decimal -> str (preserving precision)
    - UUID -> str
    - date -> ISO format string
    - Enum -> .value
    - Nested frozen dataclasses -> nested dicts
    - Tuples -> lists
    """
    if obj is None:
        return None
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (Decimal, UUID)):
        return str(obj)
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, (list, tuple)):
        return [render_to_dict(item) for item in obj]
    if isinstance(obj, dict):
        return {str(k): render_to_dict(v) for k, v in obj.items()}
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: render_to_dict(getattr(obj, f.name)) for f in dataclasses.fields(obj)}
    if isinstance(obj, (str, int, float, bool)):
        return obj
    return str(obj)


class _Serializable:
    def to_dict(self) -> dict[str, Any]:
        return render_to_dict(self)


# =========================================================================
# Report Metadata
# =========================================================================


@dataclass(frozen=True)
class ReportMetadata(_Serializable):
    """Metadata attached to every report."""

    report_type: ReportType
    entity_name: str
    currency: str
    generated_at: str  # ISO timestamp from the injected clock
    date_from: date | None = None
    date_to: date | None = None
    parameters: tuple[tuple[str, str], ...] = ()


# =========================================================================
# Libro Diario
# =========================================================================


@dataclass(frozen=True)
class DiarioLine(_Serializable):
    """One journal line with its entry's metadata."""

    numero: int | None
    fecha: date
    ejercicio: int
    concepto: str
    origen: EntryOrigin
    estado: EntryStatus
    orden: int
    cuenta_codigo: str
    cuenta_nombre: str
    debe: Decimal
    haber: Decimal
    concepto_linea: str | None
    tercero_nombre: str | None
    documento_ref: str | None


@dataclass(frozen=True)
class DiarioTotals(_Serializable):
    """Grand totals over the whole filtered line set."""

    total_debe: Decimal
    total_haber: Decimal
    num_asientos: int
    num_lineas: int
    cuadrado: bool
    diferencia: Decimal


@dataclass(frozen=True)
class LibroDiarioReport(_Serializable):
    metadata: ReportMetadata
    lineas: tuple[DiarioLine, ...]
    totales: DiarioTotals
    pagina: int
    tamano_pagina: int
    total_paginas: int


# =========================================================================
# Libro Mayor
# =========================================================================


@dataclass(frozen=True)
class MayorMovement(_Serializable):
    """One in-range movement with the running balance after it."""

    fecha: date
    numero: int | None
    concepto: str
    concepto_linea: str | None
    debe: Decimal
    haber: Decimal
    saldo: Decimal
    tercero_nombre: str | None = None
    documento_ref: str | None = None


@dataclass(frozen=True)
class MayorAccount(_Serializable):
    """Ledger of one account; balances on the account's natural side."""

    cuenta_codigo: str
    cuenta_nombre: str
    naturaleza: Nature
    saldo_inicial: Decimal
    movimientos: tuple[MayorMovement, ...]
    total_debe: Decimal
    total_haber: Decimal
    saldo_final: Decimal


@dataclass(frozen=True)
class LibroMayorReport(_Serializable):
    metadata: ReportMetadata
    cuentas: tuple[MayorAccount, ...]
    total_debe: Decimal
    total_haber: Decimal


# =========================================================================
# Balance de Sumas y Saldos
# =========================================================================


@dataclass(frozen=True)
class SumasYSaldosRow(_Serializable):
    """Sums and balance of one account or code prefix."""

    codigo: str
    nombre: str
    tipo: AccountType
    nivel: int
    suma_debe: Decimal
    suma_haber: Decimal
    saldo_deudor: Decimal
    saldo_acreedor: Decimal


@dataclass(frozen=True)
class SumasYSaldosResumen(_Serializable):
    """Grand totals with two independent reconciliation checks."""

    total_debe: Decimal
    total_haber: Decimal
    total_saldo_deudor: Decimal
    total_saldo_acreedor: Decimal
    cuadrado_sumas: bool
    cuadrado_saldos: bool
    diferencia_sumas: Decimal
    diferencia_saldos: Decimal


@dataclass(frozen=True)
class SumasYSaldosReport(_Serializable):
    metadata: ReportMetadata
    cuentas: tuple[SumasYSaldosRow, ...]
    resumen: SumasYSaldosResumen


# =========================================================================
# Balance de Situación
# =========================================================================


@dataclass(frozen=True)
class StatementLine(_Serializable):
    """One line of a statement section (account or aggregated code)."""

    codigo: str
    nombre: str
    importe: Decimal


@dataclass(frozen=True)
class BalanceSection(_Serializable):
    key: str
    nombre: str
    lineas: tuple[StatementLine, ...]
    total: Decimal


@dataclass(frozen=True)
class BalanceSituacionReport(_Serializable):
    """Assets against equity plus liabilities at a cutoff date."""

    metadata: ReportMetadata
    activo_no_corriente: BalanceSection
    activo_corriente: BalanceSection
    patrimonio_neto: BalanceSection
    pasivo_no_corriente: BalanceSection
    pasivo_corriente: BalanceSection
    total_activo: Decimal
    total_patrimonio_neto: Decimal
    total_pasivo: Decimal
    total_patrimonio_neto_y_pasivo: Decimal
    resultado_ejercicio: Decimal
    resultados_anteriores: Decimal
    cuadrado: bool
    diferencia: Decimal


# =========================================================================
# Cuenta de Pérdidas y Ganancias
# =========================================================================


@dataclass(frozen=True)
class IncomeStatementSection(_Serializable):
    key: str
    nombre: str
    tipo: str  # "income" | "expense"
    bloque: str  # "explotacion" | "financiero" | "impuesto"
    lineas: tuple[StatementLine, ...]
    total: Decimal


@dataclass(frozen=True)
class CuentaResultadosReport(_Serializable):
    metadata: ReportMetadata
    secciones: tuple[IncomeStatementSection, ...]
    total_ingresos: Decimal
    total_gastos: Decimal
    resultado_explotacion: Decimal
    resultado_financiero: Decimal
    resultado_antes_impuestos: Decimal
    impuesto_beneficios: Decimal
    resultado_ejercicio: Decimal
    # Same dates one year earlier
    ejercicio_anterior: CuentaResultadosReport | None = None

    def seccion(self, key: str) -> IncomeStatementSection:
        for section in self.secciones:
            if section.key == key:
                return section
        raise KeyError(key)


@dataclass(frozen=True)
class CuentaResultadosResumida(_Serializable):
    """Management summary of the income statement."""

    metadata: ReportMetadata
    ventas: Decimal
    coste_ventas: Decimal
    margen_bruto: Decimal
    gastos_operativos: Decimal
    ebitda: Decimal
    amortizaciones: Decimal
    resultado_explotacion: Decimal
    resultado_financiero: Decimal
    resultado_antes_impuestos: Decimal
    impuestos: Decimal
    resultado_neto: Decimal
