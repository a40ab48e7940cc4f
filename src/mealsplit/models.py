"""Pydantic domain models for MealSplit."""

import re
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

_MONTH_FIRST = re.compile(r"(?P<month>[0-9]{1,2})-(?P<year>[0-9]{4})")
_YEAR_FIRST = re.compile(r"(?P<year>[0-9]{4})-(?P<month>[0-9]{1,2})")

# ============================================================================
# Accounting period
# ============================================================================


class Period(BaseModel):
    """An accounting month, identified by (month, year)."""

    model_config = ConfigDict(frozen=True)

    month: int = Field(ge=1, le=12)
    year: int = Field(ge=1, le=9999)

    @classmethod
    def parse(cls, value: str) -> "Period":
        """
        Parse a period from "M-YYYY" or "YYYY-MM".

        Raises:
            ValueError: If the string matches neither format or the month
                is out of range
        """
        text = value.strip()
        if match := _YEAR_FIRST.fullmatch(text):
            return cls(month=int(match["month"]), year=int(match["year"]))
        if match := _MONTH_FIRST.fullmatch(text):
            return cls(month=int(match["month"]), year=int(match["year"]))
        raise ValueError(f"Unsupported period: {value!r} (use M-YYYY or YYYY-MM)")

    @classmethod
    def from_date(cls, day: date) -> "Period":
        """Return the period containing a calendar date."""
        return cls(month=day.month, year=day.year)

    @classmethod
    def current(cls) -> "Period":
        """Return the period for today."""
        return cls.from_date(date.today())

    def contains(self, day: date) -> bool:
        """Check whether a calendar date falls inside this period."""
        return day.month == self.month and day.year == self.year

    @property
    def key(self) -> str:
        """Storage-style key, e.g. "2025-03"."""
        return f"{self.year:04d}-{self.month:02d}"

    @property
    def label(self) -> str:
        """Human-readable label, e.g. "March 2025"."""
        return date(self.year, self.month, 1).strftime("%B %Y")

    def __str__(self) -> str:
        return self.key


# ============================================================================
# Stored records
# ============================================================================


class Member(BaseModel):
    """A household member."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str


class ExpenseRecord(BaseModel):
    """An expense paid by a member on behalf of the household."""

    id: int
    member_id: int
    amount: Decimal
    description: str = ""
    period: Period
    created_at: datetime = Field(default_factory=datetime.now)


class MealRecord(BaseModel):
    """A member's meal count for one calendar day.

    The store keeps at most one record per (member_id, meal_date); logging
    the same day again replaces the count.
    """

    id: int
    member_id: int
    meal_date: date
    count: int
    period: Period
    created_at: datetime = Field(default_factory=datetime.now)


# ============================================================================
# Derived models (never persisted)
# ============================================================================


class SettlementEntry(BaseModel):
    """One member's line in a settlement report."""

    member_id: int
    member_name: str
    total_expenses: Decimal
    total_meals: int
    meal_cost: Decimal  # total_meals x per_meal_price
    balance: Decimal  # positive: household owes the member


class SettlementReport(BaseModel):
    """Settlement for one period, entries ordered by member id."""

    period: Period | None = None
    entries: list[SettlementEntry] = Field(default_factory=list)
    total_expenses: Decimal = Decimal("0")
    total_meals: int = 0
    per_meal_price: Decimal = Decimal("0")

    @property
    def balance_sum(self) -> Decimal:
        """Sum of all balances; zero (within rounding) when meals were logged."""
        return sum((entry.balance for entry in self.entries), Decimal("0"))

    def entry_for(self, member_id: int) -> SettlementEntry | None:
        """Get the entry for a member, if the member is on the roster."""
        for entry in self.entries:
            if entry.member_id == member_id:
                return entry
        return None


class MemberStatement(BaseModel):
    """A member's own view of a period: their records and their balance."""

    member: Member
    period: Period
    expenses: list[ExpenseRecord]
    meals: list[MealRecord]
    entry: SettlementEntry
    per_meal_price: Decimal


class PeriodExport(BaseModel):
    """JSON backup of everything recorded for one period."""

    version: str
    exported_at: datetime = Field(default_factory=datetime.now)
    period: Period
    members: list[Member]
    expenses: list[ExpenseRecord]
    meals: list[MealRecord]
    settlement: SettlementReport
