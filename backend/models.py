from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class ContractCategory(str, Enum):
    FREE_MARKET = "free_market_residential"
    RENT_CONTROLLED = "rent_controlled_residential"
    TRANSITORY = "transitory"
    COMMERCIAL = "commercial"
    STUDENT = "student_housing"


class ClientSide(str, Enum):
    OWNER = "owner"
    TENANT = "tenant"


class DeadlineKind(str, Enum):
    EXPIRATION = "expiration"
    NOTICE_CUTOFF = "notice-cutoff"
    TAX_FILING = "tax-filing"


class UrgencyLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# Ordered from least to most pressing.
URGENCY_RANK = {
    UrgencyLevel.LOW: 0,
    UrgencyLevel.MEDIUM: 1,
    UrgencyLevel.HIGH: 2,
    UrgencyLevel.CRITICAL: 3,
}

_TRUTHY = {"true", "1", "yes", "si", "sì", "on", "active", "cedolare", "cedolare_secca"}

_DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%d.%m.%Y", "%Y/%m/%d")


def parse_lenient_date(value: Any) -> Optional[date]:
    """Parse a date from a date, datetime or string; None when it cannot be read."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    head = text.replace("Z", "+00:00").split("T")[0][:10]
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(head, fmt).date()
        except ValueError:
            continue
    return None


def coerce_flag(value: Any) -> bool:
    """Coerce stored booleans ("true", 1, "si", None...) to bool. Never raises."""
    if value is True or value is False:
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return value == 1
    return str(value).strip().lower() in _TRUTHY


def coerce_category(value: Any) -> Optional[ContractCategory]:
    """Map a category enum or free-text label to ContractCategory; None when unrecognized."""
    if value is None:
        return None
    if isinstance(value, ContractCategory):
        return value
    s = str(value).strip().lower().replace("-", " ").replace("_", " ")
    if not s:
        return None
    for cat in ContractCategory:
        if cat.value.replace("_", " ") == s:
            return cat
    if "3+2" in s or "concordato" in s or "rent controlled" in s:
        return ContractCategory.RENT_CONTROLLED
    if "6+6" in s or "commerc" in s:
        return ContractCategory.COMMERCIAL
    if "transit" in s:
        return ContractCategory.TRANSITORY
    if "student" in s or "studenti" in s:
        return ContractCategory.STUDENT
    if "4+4" in s or "libero" in s or "free market" in s:
        return ContractCategory.FREE_MARKET
    return None


def coerce_client_side(value: Any) -> ClientSide:
    if isinstance(value, ClientSide):
        return value
    s = str(value or "").strip().lower()
    if s in ("tenant", "conduttore"):
        return ClientSide.TENANT
    return ClientSide.OWNER


class ContractTerm(BaseModel):
    """
    Scheduling view of a lease contract.

    Dates are parsed leniently: a value that cannot be read becomes None rather
    than failing validation. A contract without a start date is not schedulable.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    start_date: Optional[date] = Field(
        default=None, validation_alias=AliasChoices("start_date", "startDate")
    )
    first_expiration_date: Optional[date] = Field(
        default=None,
        validation_alias=AliasChoices("first_expiration_date", "firstExpirationDate"),
    )
    early_termination_date: Optional[date] = Field(
        default=None,
        validation_alias=AliasChoices("early_termination_date", "earlyTerminationDate"),
    )
    category: Optional[ContractCategory] = Field(
        default=None, validation_alias=AliasChoices("category", "contract_type", "contractType")
    )
    is_active: bool = Field(default=True, validation_alias=AliasChoices("is_active", "isActive"))
    client_side: ClientSide = Field(
        default=ClientSide.OWNER, validation_alias=AliasChoices("client_side", "clientSide")
    )
    notice_months_owner: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("notice_months_owner", "noticeMonthsOwner")
    )
    notice_months_tenant: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("notice_months_tenant", "noticeMonthsTenant")
    )
    tax_exempt_regime: bool = Field(
        default=False,
        validation_alias=AliasChoices("tax_exempt_regime", "cedolare_secca", "cedolareSecca"),
    )

    # Display context carried onto deadline records
    property_address: str = Field(
        default="", validation_alias=AliasChoices("property_address", "propertyAddress")
    )
    owner_name: str = Field(default="", validation_alias=AliasChoices("owner_name", "ownerName"))
    tenant_name: str = Field(default="", validation_alias=AliasChoices("tenant_name", "tenantName"))
    annual_rent: float = Field(default=0.0, validation_alias=AliasChoices("annual_rent", "annualRent"))

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("start_date", "first_expiration_date", "early_termination_date", mode="before")
    @classmethod
    def lenient_dates(cls, v: Any) -> Optional[date]:
        return parse_lenient_date(v)

    @field_validator("category", mode="before")
    @classmethod
    def lenient_category(cls, v: Any) -> Optional[ContractCategory]:
        return coerce_category(v)

    @field_validator("client_side", mode="before")
    @classmethod
    def lenient_client_side(cls, v: Any) -> ClientSide:
        return coerce_client_side(v)

    @field_validator("is_active", "tax_exempt_regime", mode="before")
    @classmethod
    def lenient_flags(cls, v: Any) -> bool:
        return coerce_flag(v)

    @field_validator("notice_months_owner", "notice_months_tenant", mode="before")
    @classmethod
    def lenient_months(cls, v: Any) -> Optional[int]:
        if v is None or v == "":
            return None
        try:
            return int(float(v))
        except (TypeError, ValueError, OverflowError):
            return None

    @field_validator("annual_rent", mode="before")
    @classmethod
    def lenient_rent(cls, v: Any) -> float:
        try:
            return float(v or 0)
        except (TypeError, ValueError):
            return 0.0

    @field_validator("property_address", "owner_name", "tenant_name", mode="before")
    @classmethod
    def blank_text(cls, v: Any) -> str:
        return "" if v is None else str(v).strip()


class DeadlineRecord(BaseModel):
    """One derived deadline. Built fresh on every scheduling pass."""

    id: str
    contract_id: str
    kind: DeadlineKind
    date: date
    urgency: UrgencyLevel
    label: str
    client_side: ClientSide = ClientSide.OWNER
    property_address: str = ""
    owner_name: str = ""
    tenant_name: str = ""


@dataclass(frozen=True)
class ExpirationCursor:
    """Result of advancing a contract's expiration through its renewal cycles."""
    date: date
    renewal_count: int = 0
    expired: bool = False
    capped: bool = False

    @property
    def renewed(self) -> bool:
        return self.renewal_count > 0


class CursorInfo(BaseModel):
    date: date
    renewal_count: int
    renewed: bool
    expired: bool
    capped: bool
    early_termination: bool


class ContractPreview(BaseModel):
    """Single-contract preview shown while a contract is being edited."""
    contract_id: str
    schedulable: bool
    initial_term_years: int
    renewal_term_years: int
    notice_period_months: int
    cursor: Optional[CursorInfo] = None
    deadlines: List[DeadlineRecord] = Field(default_factory=list)


# --- HTTP request / response bodies ---


class ScheduleRequest(BaseModel):
    contracts: List[dict] = Field(default_factory=list)
    now: Optional[date] = None


class CalendarEventsRequest(ScheduleRequest):
    limit: Optional[int] = Field(default=None, ge=1)


class PreviewRequest(BaseModel):
    contract: dict
    now: Optional[date] = None


class ScheduleResponse(BaseModel):
    now: date
    deadlines: List[DeadlineRecord] = Field(default_factory=list)
    excluded_contract_ids: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class MonthWorkload(BaseModel):
    year: int
    month: int
    count: int


class PortfolioSummary(BaseModel):
    active_contracts: int
    annual_revenue: float
    pressing_deadlines: int
    workload: List[MonthWorkload] = Field(default_factory=list)
