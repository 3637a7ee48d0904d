"""
Configuration Loader (``ledger_config.loader``).

Responsibility
--------------
Loads YAML files and parses them into typed ``ledger_config.schema``
dataclass instances.  Callers use the entrypoints in
``ledger_config/__init__.py``; this module is the parsing layer under them.

Invariants enforced
-------------------
* All parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; no silent defaults for required fields.
* Every parsed object is a frozen dataclass from ``schema.py``.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the
  parsed data for configuration identity.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Bad values (non-digit codes, unknown roles or kinds)  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import (
    ChartAccountDef,
    ChartDef,
    DefaultAccountsDef,
    FiscalFlagsDef,
    IncomeSectionDef,
    LedgerDefaultsDef,
    NumberingDef,
    SubsidiaryRuleDef,
)

TREASURY_ROLES = frozenset({"cash", "bank", "card"})
SECTION_KINDS = frozenset({"income", "expense"})
SECTION_BLOCKS = frozenset({"explotacion", "financiero", "impuesto"})
ACCOUNT_TYPES = frozenset({"asset", "liability", "equity", "income", "expense"})
NATURES = frozenset({"debit", "credit"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON form of a parsed YAML document."""
    canonical = json.dumps(data, sort_keys=True, default=str, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _code(value: Any, where: str) -> str:
    code = str(value)
    if not code.isdigit():
        raise ValueError(f"{where}: account code must be digits, got {value!r}")
    return code


def _optional_code(value: Any, where: str) -> str | None:
    return None if value is None else _code(value, where)


def parse_default_accounts(data: dict[str, Any]) -> DefaultAccountsDef:
    """Parse the ``default_accounts`` mapping."""
    return DefaultAccountsDef(
        sales=_code(data["sales"], "default_accounts.sales"),
        purchases=_code(data["purchases"], "default_accounts.purchases"),
        vat_output={
            str(rate): _code(code, f"default_accounts.vat_output.{rate}")
            for rate, code in (data.get("vat_output") or {}).items()
        },
        vat_output_generic=_code(
            data.get("vat_output_generic", "4770"), "default_accounts.vat_output_generic"
        ),
        vat_input={
            str(rate): _code(code, f"default_accounts.vat_input.{rate}")
            for rate, code in (data.get("vat_input") or {}).items()
        },
        vat_input_generic=_code(
            data.get("vat_input_generic", "4720"), "default_accounts.vat_input_generic"
        ),
        withholding_receivable=_code(
            data.get("withholding_receivable", "4730"),
            "default_accounts.withholding_receivable",
        ),
        withholding_payable=_code(
            data.get("withholding_payable", "4751"),
            "default_accounts.withholding_payable",
        ),
        cash=_optional_code(data.get("cash"), "default_accounts.cash"),
        bank=_optional_code(data.get("bank"), "default_accounts.bank"),
        card=_optional_code(data.get("card"), "default_accounts.card"),
    )


def parse_income_section(data: dict[str, Any]) -> IncomeSectionDef:
    """Parse one income-statement section."""
    kind = data["kind"]
    if kind not in SECTION_KINDS:
        raise ValueError(f"income_statement.{data['key']}: unknown kind {kind!r}")
    block = data["block"]
    if block not in SECTION_BLOCKS:
        raise ValueError(f"income_statement.{data['key']}: unknown block {block!r}")
    prefixes = tuple(str(p) for p in data["prefixes"])
    if not prefixes:
        raise ValueError(f"income_statement.{data['key']}: prefixes cannot be empty")
    return IncomeSectionDef(
        key=data["key"],
        label=data.get("label", data["key"]),
        kind=kind,
        block=block,
        prefixes=prefixes,
        exclude_prefixes=tuple(str(p) for p in data.get("exclude_prefixes", ())),
    )


def parse_defaults(data: dict[str, Any]) -> LedgerDefaultsDef:
    """
    Parse ``defaults.yaml``.

    Raises:
        KeyError: a required key is missing.
        ValueError: a value is out of range.
    """
    fiscal = data.get("fiscal") or {}
    numbering = data.get("numbering") or {}

    next_number = int(numbering.get("next_entry_number", 1))
    if next_number < 1:
        raise ValueError(f"numbering.next_entry_number must be >= 1, got {next_number}")

    rules = []
    for party_type, rule in (data.get("subsidiary_rules") or {}).items():
        prefix = _code(rule["prefix"], f"subsidiary_rules.{party_type}.prefix")
        length = int(rule["length"])
        if length <= len(prefix):
            raise ValueError(
                f"subsidiary_rules.{party_type}: length {length} leaves no room "
                f"after prefix {prefix}"
            )
        rules.append(SubsidiaryRuleDef(party_type=str(party_type), prefix=prefix, length=length))

    treasury = {str(k): str(v) for k, v in (data.get("treasury_by_method") or {}).items()}
    unknown_roles = set(treasury.values()) - TREASURY_ROLES
    if unknown_roles:
        raise ValueError(f"treasury_by_method: unknown roles {sorted(unknown_roles)}")

    return LedgerDefaultsDef(
        config_id=data["config_id"],
        version=int(data["version"]),
        fiscal=FiscalFlagsDef(
            active_fiscal_year=fiscal.get("active_fiscal_year"),
            auto_posting_enabled=bool(fiscal.get("auto_posting_enabled", True)),
            allow_unbalanced_entries=bool(fiscal.get("allow_unbalanced_entries", False)),
            enforce_period_locks=bool(fiscal.get("enforce_period_locks", True)),
        ),
        numbering=NumberingDef(
            reset_yearly=bool(numbering.get("reset_yearly", True)),
            next_entry_number=next_number,
        ),
        default_accounts=parse_default_accounts(data["default_accounts"]),
        subsidiary_rules=tuple(rules),
        treasury_by_method=treasury,
        income_statement=tuple(
            parse_income_section(section) for section in data.get("income_statement") or ()
        ),
        checksum=compute_checksum(data),
    )


def parse_chart(data: dict[str, Any]) -> ChartDef:
    """
    Parse a seed chart file.

    Raises:
        KeyError: an account entry misses a field.
        ValueError: bad code, type or nature, or a duplicate code.
    """
    accounts = []
    seen: set[str] = set()
    for entry in data["accounts"]:
        code = _code(entry["code"], "accounts")
        if code in seen:
            raise ValueError(f"accounts: duplicate code {code}")
        seen.add(code)
        if entry["type"] not in ACCOUNT_TYPES:
            raise ValueError(f"accounts.{code}: unknown type {entry['type']!r}")
        if entry["nature"] not in NATURES:
            raise ValueError(f"accounts.{code}: unknown nature {entry['nature']!r}")
        accounts.append(
            ChartAccountDef(
                code=code,
                name=entry["name"],
                type=entry["type"],
                nature=entry["nature"],
                postable=bool(entry.get("postable", True)),
            )
        )
    return ChartDef(chart=data.get("chart", "custom"), accounts=tuple(accounts))
