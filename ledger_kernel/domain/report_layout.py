"""
Report layout -- section maps for the PGC financial statements.

Responsibility:
    Declares which account-code prefixes feed each income-statement
    section and each balance-sheet bucket.  The report builders consume
    these; ``ledger_config`` can replace the income-statement layout from
    YAML.

Architecture position:
    Kernel > Domain -- pure data, zero I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SectionKind(str, Enum):
    """Sign convention of an income-statement section."""

    INCOME = "income"  # credit - debit
    EXPENSE = "expense"  # debit - credit


class ResultBlock(str, Enum):
    """Which intermediate result a section contributes to."""

    OPERATING = "explotacion"
    FINANCIAL = "financiero"
    TAX = "impuesto"


@dataclass(frozen=True)
class IncomeSection:
    """One income-statement section, e.g. 'gastos_personal' <- 64."""

    key: str
    label: str
    kind: SectionKind
    block: ResultBlock
    prefixes: tuple[str, ...]
    exclude_prefixes: tuple[str, ...] = ()

    def matches(self, code: str) -> bool:
        if any(code.startswith(p) for p in self.exclude_prefixes):
            return False
        return any(code.startswith(p) for p in self.prefixes)


@dataclass(frozen=True)
class IncomeStatementLayout:
    """Ordered income-statement sections; first matching section wins."""

    sections: tuple[IncomeSection, ...]

    def __post_init__(self) -> None:
        keys = [s.key for s in self.sections]
        if len(keys) != len(set(keys)):
            raise ValueError(f"Duplicate income statement section keys: {keys}")

    def section(self, key: str) -> IncomeSection:
        for section in self.sections:
            if section.key == key:
                return section
        raise KeyError(key)

    def section_for(self, code: str) -> IncomeSection | None:
        for section in self.sections:
            if section.matches(code):
                return section
        return None

    def keys(self, block: ResultBlock | None = None, kind: SectionKind | None = None) -> tuple[str, ...]:
        return tuple(
            s.key
            for s in self.sections
            if (block is None or s.block == block) and (kind is None or s.kind == kind)
        )


DEFAULT_INCOME_STATEMENT_LAYOUT = IncomeStatementLayout(
    sections=(
        IncomeSection(
            "importe_neto_cifra_negocios", "Importe neto de la cifra de negocios",
            SectionKind.INCOME, ResultBlock.OPERATING, ("70", "71"),
        ),
        IncomeSection(
            "otros_ingresos_explotacion", "Otros ingresos de explotación",
            SectionKind.INCOME, ResultBlock.OPERATING, ("73", "74", "75", "77", "79"),
        ),
        IncomeSection(
            "aprovisionamientos", "Aprovisionamientos",
            SectionKind.EXPENSE, ResultBlock.OPERATING, ("60", "61"),
        ),
        IncomeSection(
            "gastos_personal", "Gastos de personal",
            SectionKind.EXPENSE, ResultBlock.OPERATING, ("64",),
        ),
        IncomeSection(
            "otros_gastos_explotacion", "Otros gastos de explotación",
            SectionKind.EXPENSE, ResultBlock.OPERATING, ("62", "63", "65", "69"),
            exclude_prefixes=("630",),
        ),
        IncomeSection(
            "amortizaciones", "Amortización del inmovilizado",
            SectionKind.EXPENSE, ResultBlock.OPERATING, ("68",),
        ),
        IncomeSection(
            "ingresos_financieros", "Ingresos financieros",
            SectionKind.INCOME, ResultBlock.FINANCIAL, ("76",),
        ),
        IncomeSection(
            "gastos_financieros", "Gastos financieros",
            SectionKind.EXPENSE, ResultBlock.FINANCIAL, ("66", "67"),
        ),
        IncomeSection(
            "impuesto_beneficios", "Impuesto sobre beneficios",
            SectionKind.EXPENSE, ResultBlock.TAX, ("630",),
        ),
    )
)


@dataclass(frozen=True)
class BalanceSheetLayout:
    """
    Prefix rules for the balance-sheet buckets.

    Groups 4 and 5 split by account type: asset-typed accounts are current
    assets, liability-typed accounts current liabilities.
    """

    non_current_assets: tuple[str, ...] = ("2",)
    current_assets: tuple[str, ...] = ("3",)
    equity: tuple[str, ...] = ("10", "11", "12", "13")
    non_current_liabilities: tuple[str, ...] = ("14", "15", "16", "17", "18", "19")
    split_by_type: tuple[str, ...] = ("4", "5")
    result_groups: tuple[str, ...] = ("6", "7")
    # Where the year's result is shown inside equity
    result_account: str = "129"
    result_label: str = "Resultado del ejercicio"
    prior_result_account: str = "120"
    prior_result_label: str = "Resultados de ejercicios anteriores pendientes de aplicar"
