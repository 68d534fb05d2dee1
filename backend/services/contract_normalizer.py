"""
Contract input layer: every contract payload normalizes to ContractTerm.

Accepts: records loaded from the local store or remote database (camelCase
keys), manual form payloads, and extraction output with free-text categories.
Never raises for field-level problems; returns warnings and missing fields so
the caller can flag a contract as incomplete.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, Iterable, List, Tuple

from pydantic import BaseModel, Field

from models import ContractTerm, coerce_category, parse_lenient_date

_LOG = logging.getLogger(__name__)


class InputSource(str, Enum):
    STORE = "store"
    MANUAL = "manual"
    EXTRACTION = "extraction"


class NormalizedContract(BaseModel):
    """A ContractTerm plus whatever the normalizer had to default or drop."""
    contract: ContractTerm
    source: InputSource = InputSource.STORE
    schedulable: bool = True
    missing_fields: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


_DATE_KEYS = (
    ("start_date", "startDate"),
    ("first_expiration_date", "firstExpirationDate"),
    ("early_termination_date", "earlyTerminationDate"),
)


def _first(data: Dict[str, Any], *keys: str) -> Any:
    # First key present wins, even with a None value, as with AliasChoices on ContractTerm.
    for key in keys:
        if key in data:
            return data[key]
    return None


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _field_warnings(data: Dict[str, Any]) -> Tuple[List[str], List[str]]:
    """Return (missing_fields, warnings) for values the model will default or drop."""
    missing: List[str] = []
    warnings: List[str] = []

    for field, camel in _DATE_KEYS:
        raw = _first(data, field, camel)
        if _is_blank(raw):
            if field == "start_date":
                missing.append(field)
            continue
        if parse_lenient_date(raw) is None:
            if field == "start_date":
                missing.append(field)
                warnings.append(f"start_date {raw!r} is not a valid date; contract is not schedulable.")
            else:
                warnings.append(f"{field} {raw!r} is not a valid date; ignored.")

    raw_category = _first(data, "category", "contract_type", "contractType")
    if _is_blank(raw_category):
        missing.append("category")
        warnings.append("category missing; used 4+4 year durations.")
    elif coerce_category(raw_category) is None:
        warnings.append(f"category {raw_category!r} not recognized; used 4+4 year durations.")

    for field, camel in (("notice_months_owner", "noticeMonthsOwner"), ("notice_months_tenant", "noticeMonthsTenant")):
        raw = _first(data, field, camel)
        if _is_blank(raw):
            continue
        try:
            int(float(raw))
        except (TypeError, ValueError, OverflowError):
            warnings.append(f"{field} {raw!r} is not a number; used the 6 month default.")
    return missing, warnings


def _dict_to_contract(data: Dict[str, Any]) -> ContractTerm:
    """Build ContractTerm from a flat dict (API payload, stored record or manual form)."""
    payload = dict(data)
    if _is_blank(payload.get("id")):
        payload["id"] = ""
    return ContractTerm.model_validate(payload)


def normalize_contract(
    payload: Dict[str, Any] | ContractTerm,
    source: InputSource = InputSource.STORE,
) -> NormalizedContract:
    """Normalize one contract payload. Field problems become warnings."""
    if isinstance(payload, ContractTerm):
        data = payload.model_dump(mode="json")
    else:
        data = dict(payload)

    missing, warnings = _field_warnings(data)
    contract = _dict_to_contract(data)
    if not contract.id:
        missing.append("id")
    schedulable = contract.start_date is not None
    if warnings:
        _LOG.debug("contract normalized with warnings id=%s warnings=%s", contract.id, warnings)
    return NormalizedContract(
        contract=contract,
        source=source,
        schedulable=schedulable,
        missing_fields=missing,
        warnings=warnings,
    )


def normalize_contracts(
    payloads: Iterable[Dict[str, Any] | ContractTerm],
    source: InputSource = InputSource.STORE,
) -> Tuple[List[ContractTerm], List[str], List[str]]:
    """
    Normalize a collection, preserving order.

    Returns (contracts, excluded_ids, warnings). Excluded ids are active contracts
    whose start date cannot be read; they stay in `contracts` (the engine skips
    them) so callers can show them as incomplete.
    """
    contracts: List[ContractTerm] = []
    excluded: List[str] = []
    warnings: List[str] = []
    for payload in payloads:
        result = normalize_contract(payload, source)
        contracts.append(result.contract)
        if result.contract.is_active and not result.schedulable:
            excluded.append(result.contract.id)
        label = result.contract.id or "<no id>"
        warnings.extend(f"contract {label}: {w}" for w in result.warnings)
    return contracts, excluded, warnings
