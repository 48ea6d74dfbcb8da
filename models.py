"""
models.py
---------
Domain records shared by the classifier, the aggregation engine, the
storage layer and the API.  Records are immutable pydantic models; edits
produce a new instance via ``model_copy(update=...)``.

Dates are kept as timezone-naive calendar dates.  Anything carrying a
time of day is reduced to its date, after converting aware values into
``APP_TIMEZONE`` so a late-evening entry never lands on the next day.
"""

from __future__ import annotations

import calendar
import datetime as dt
import re
import uuid
from decimal import Decimal
from enum import Enum
from typing import NamedTuple, Optional
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict, Field, field_validator

from config import APP_TIMEZONE

UNCATEGORIZED = "Uncategorized"
MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


def to_calendar_date(value) -> dt.date:
    """Normalize a date-like value to a naive calendar date."""
    if isinstance(value, dt.datetime):
        if value.tzinfo is not None:
            value = value.astimezone(ZoneInfo(APP_TIMEZONE))
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if len(text) > 10:
            return to_calendar_date(dt.datetime.fromisoformat(text))
        return dt.date.fromisoformat(text)
    raise ValueError(f"Unsupported date value: {value!r}")


def month_key(day: dt.date) -> str:
    return f"{day.year:04d}-{day.month:02d}"


def parse_month(value) -> str:
    """Accept ``YYYY-MM`` or any date and return the ``YYYY-MM`` key."""
    if isinstance(value, (dt.date, dt.datetime)):
        return month_key(to_calendar_date(value))
    text = str(value).strip()
    if not MONTH_RE.match(text):
        raise ValueError(f"Month must be formatted YYYY-MM, got {value!r}")
    return text


class Period(NamedTuple):
    start: dt.date
    end: dt.date

    @classmethod
    def for_month(cls, month) -> "Period":
        key = parse_month(month)
        year, mon = int(key[:4]), int(key[5:])
        last_day = calendar.monthrange(year, mon)[1]
        return cls(dt.date(year, mon, 1), dt.date(year, mon, last_day))

    def contains(self, day: dt.date) -> bool:
        return self.start <= day <= self.end


class Transaction(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    date: dt.date
    category: str = UNCATEGORIZED
    subcategory: str = UNCATEGORIZED
    amount: Decimal = Field(..., ge=0)
    description: str = ""
    type: TransactionType = TransactionType.EXPENSE

    @field_validator("date", mode="before")
    @classmethod
    def _calendar_date(cls, value):
        return to_calendar_date(value)

    @field_validator("description", mode="before")
    @classmethod
    def _blank_description(cls, value):
        return value or ""

    @property
    def is_classified(self) -> bool:
        return bool(self.category) and self.category != UNCATEGORIZED

    @property
    def month(self) -> str:
        return month_key(self.date)


class Budget(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: str
    amount: Decimal = Field(..., ge=0)
    month: str

    @field_validator("month", mode="before")
    @classmethod
    def _month_key(cls, value):
        return parse_month(value)


class Classification(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: str
    subcategory: str
    type: TransactionType
    confidence: float = Field(..., ge=0.0, le=1.0)


# --- Derived aggregates (never persisted) ---

class MonthlyTotals(BaseModel):
    month: str
    income: Decimal = Decimal(0)
    expenses: Decimal = Decimal(0)
    budgeted_income: Decimal = Decimal(0)
    budgeted_expenses: Decimal = Decimal(0)

    @property
    def surplus(self) -> Decimal:
        return self.income - self.expenses


class BudgetVariance(BaseModel):
    amount: Decimal
    percentage: Decimal
    is_over: bool


class BudgetLine(BaseModel):
    category: str
    type: Optional[TransactionType]
    actual: Decimal
    budget: Decimal
    variance: BudgetVariance


class KPIs(BaseModel):
    net_worth: Decimal
    avg_monthly_income: Decimal
    avg_monthly_expense: Decimal
    savings_ratio: Decimal
    debt_to_income_ratio: Decimal
