"""Pydantic domain models for DuoSpend."""

from datetime import UTC, datetime, tzinfo
from decimal import Decimal
from enum import Enum

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

from .money import ZERO, sum_amounts, to_cents

BudgetMap = dict[str, Decimal]

# ============================================================================
# Ledger Models
# ============================================================================


class PartnerRole(str, Enum):
    """One of the two fixed roles in a shared ledger."""

    PARTNER_1 = "PARTNER_1"
    PARTNER_2 = "PARTNER_2"

    @property
    def other(self) -> "PartnerRole":
        """The opposite partner."""
        if self is PartnerRole.PARTNER_1:
            return PartnerRole.PARTNER_2
        return PartnerRole.PARTNER_1


class Split(BaseModel):
    """A fragment of a transaction attributed to one category."""

    model_config = ConfigDict(frozen=True)

    category: str = Field(min_length=1)
    amount: Decimal = Field(ge=0)

    @field_validator("amount")
    @classmethod
    def _quantize(cls, value: Decimal) -> Decimal:
        return to_cents(value)


class Transaction(BaseModel):
    """A shared expense paid by one partner.

    ``total_amount`` is derived from ``splits`` and cannot be set. Edits are
    modelled as delete + recreate, so instances are frozen.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    date: datetime
    description: str = ""
    payer: PartnerRole
    splits: tuple[Split, ...] = Field(min_length=1)

    @field_validator("date")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Naive timestamps are interpreted as UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_amount(self) -> Decimal:
        """Sum of all split amounts."""
        return sum_amounts(split.amount for split in self.splits)


class CategoryDefinition(BaseModel):
    """A registered spending category."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    color: str = "#64748b"
    icon: str = ""


class PartnerProfile(BaseModel):
    """Display names for both partners. Purely cosmetic."""

    partner_1: str = "Partner 1"
    partner_2: str = "Partner 2"

    def name_for(self, role: PartnerRole) -> str:
        """Get the display name for a role."""
        if role is PartnerRole.PARTNER_1:
            return self.partner_1
        return self.partner_2

    def role_for(self, name_or_role: str) -> PartnerRole:
        """
        Resolve a display name or role value to a role.

        Args:
            name_or_role: A display name (case-insensitive), a role value
                such as "PARTNER_1", or the shorthands "1"/"2"

        Returns:
            The matching partner role

        Raises:
            ValueError: If nothing matches
        """
        key = name_or_role.strip().lower()
        aliases = {
            "1": PartnerRole.PARTNER_1,
            "2": PartnerRole.PARTNER_2,
            "p1": PartnerRole.PARTNER_1,
            "p2": PartnerRole.PARTNER_2,
            PartnerRole.PARTNER_1.value.lower(): PartnerRole.PARTNER_1,
            PartnerRole.PARTNER_2.value.lower(): PartnerRole.PARTNER_2,
            self.partner_1.lower(): PartnerRole.PARTNER_1,
            self.partner_2.lower(): PartnerRole.PARTNER_2,
        }
        if key not in aliases:
            raise ValueError(
                f"Unknown partner '{name_or_role}'. "
                f"Use {self.partner_1!r}, {self.partner_2!r}, 1 or 2."
            )
        return aliases[key]


class SplitRatio(BaseModel):
    """Agreed share of combined spending carried by each partner."""

    model_config = ConfigDict(frozen=True)

    partner_1: Decimal = Field(default=Decimal("0.5"), ge=0, le=1)

    @property
    def partner_2(self) -> Decimal:
        return Decimal("1") - self.partner_1

    def share_of(self, role: PartnerRole) -> Decimal:
        """Get the share carried by a role."""
        if role is PartnerRole.PARTNER_1:
            return self.partner_1
        return self.partner_2


class Window(BaseModel):
    """A half-open time window ``[start, end)``."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @model_validator(mode="after")
    def _check_order(self) -> "Window":
        if self.end <= self.start:
            raise ValueError("Window end must be after its start")
        return self

    def contains(self, moment: datetime) -> bool:
        """Return True if ``start <= moment < end``."""
        return self.start <= moment < self.end

    @classmethod
    def for_month(cls, year: int, month: int, tz: tzinfo = UTC) -> "Window":
        """Window covering one calendar month in the given timezone."""
        start = datetime(year, month, 1, tzinfo=tz)
        if month == 12:
            end = datetime(year + 1, 1, 1, tzinfo=tz)
        else:
            end = datetime(year, month + 1, 1, tzinfo=tz)
        return cls(start=start, end=end)

    @classmethod
    def for_year(cls, year: int, tz: tzinfo = UTC) -> "Window":
        """Window covering one calendar year in the given timezone."""
        return cls(
            start=datetime(year, 1, 1, tzinfo=tz),
            end=datetime(year + 1, 1, 1, tzinfo=tz),
        )

    @classmethod
    def current_month(cls, tz: tzinfo = UTC) -> "Window":
        """Window covering the current calendar month."""
        now = datetime.now(tz)
        return cls.for_month(now.year, now.month, tz)


# ============================================================================
# Derived Views
# ============================================================================


class EquityResult(BaseModel):
    """Settlement position of the two partners over a window."""

    paid: dict[PartnerRole, Decimal]
    combined_total: Decimal
    owing_partner: PartnerRole | None = None  # None = balanced
    owed_amount: Decimal = ZERO

    @property
    def is_balanced(self) -> bool:
        return self.owing_partner is None

    @property
    def owed_partner(self) -> PartnerRole | None:
        """The partner who should receive the transfer."""
        return self.owing_partner.other if self.owing_partner else None


class CategorySpend(BaseModel):
    """Spend against limit for one category."""

    category: str
    spent: Decimal
    limit: Decimal
    over_budget: bool


class BudgetReport(BaseModel):
    """Per-category and aggregate budget position over a window."""

    categories: list[CategorySpend]
    total_spent: Decimal
    total_limit: Decimal
    remaining: Decimal


class CategoryYearRow(BaseModel):
    """Twelve monthly totals for one category."""

    category: str
    months: list[Decimal]

    @property
    def total(self) -> Decimal:
        return sum_amounts(self.months)


class YearlySummary(BaseModel):
    """Month-by-category spending for one calendar year."""

    year: int
    rows: list[CategoryYearRow]
    grand_totals: list[Decimal]
    share_partner: PartnerRole
    share_ratio: Decimal
    share_totals: list[Decimal]

    @property
    def grand_total(self) -> Decimal:
        return sum_amounts(self.grand_totals)

    @property
    def share_total(self) -> Decimal:
        return to_cents(self.grand_total * self.share_ratio)


# ============================================================================
# Sync Models
# ============================================================================


class SyncStatus(str, Enum):
    """Outcome of a sync invocation that did not raise."""

    SUCCESS = "success"
    SKIPPED = "skipped"


class SyncSnapshot(BaseModel):
    """Full transaction and budget state reported by the remote store."""

    transactions: list[Transaction] = Field(default_factory=list)
    budgets: BudgetMap = Field(default_factory=dict)


class SyncResult(BaseModel):
    """State the caller must adopt after a sync."""

    status: SyncStatus
    transactions: list[Transaction]
    budgets: BudgetMap
    synced_at: datetime | None = None
