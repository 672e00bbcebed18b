"""Domain models - pure Python dataclasses representing budget entities"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import ClassVar, List, Optional, Union

INCOME = "income"
EXPENSE = "expense"
ENTRY_TYPES = (INCOME, EXPENSE)

MONTHLY = "monthly"
WEEKLY = "weekly"
BIWEEKLY = "biweekly"
FREQUENCIES = (MONTHLY, WEEKLY, BIWEEKLY)


@dataclass
class OneTimeEntry:
    """A single dated income or expense"""

    id: str
    type: str  # "income" or "expense"
    category: str
    description: str
    amount_cents: int
    due_date: date
    is_paid: bool = False
    paid_on: Optional[date] = None


@dataclass
class RecurringRule:
    """A billing/income rule that repeats on a fixed cadence"""

    id: str
    type: str
    category: str
    description: str
    amount_cents: int
    frequency: str  # "monthly" | "weekly" | "biweekly"
    start_anchor: date
    dom: Optional[int] = None  # 1-31, monthly only
    dow: Optional[int] = None  # 1-7 (Monday=1), weekly/biweekly only
    active: bool = True
    end_date: Optional[date] = None


@dataclass
class Override:
    """Per-occurrence exception, keyed by the unmodified occurrence date"""

    rule_id: str
    occurrence_date: date
    effective_date: Optional[date] = None  # set only when postponed
    is_paid: bool = False
    paid_on: Optional[date] = None
    skipped: bool = False
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class ResolvedOccurrence:
    """An occurrence after its override (if any) has been applied"""

    effective_date: date
    is_paid: bool
    paid_on: Optional[date]


@dataclass(frozen=True)
class OneTimeRow:
    """Materialized one-time entry"""

    kind: ClassVar[str] = "one_time"

    entry_id: str
    type: str
    category: str
    description: str
    amount_cents: int
    due_date: date
    effective_date: date
    is_paid: bool
    paid_on: Optional[date]
    overdue: bool
    due_today: bool

    @property
    def occurrence_id(self) -> str:
        return self.entry_id

    @property
    def status(self) -> str:
        return row_status(self)


@dataclass(frozen=True)
class RecurringRow:
    """Materialized occurrence of a recurring rule.

    ``due_date`` is the date the rule scheduled; ``effective_date`` is where
    the occurrence lands after a postponement. The occurrence id is built from
    the former so it survives any number of postponements.
    """

    kind: ClassVar[str] = "recurring"

    rule_id: str
    type: str
    category: str
    description: str
    amount_cents: int
    due_date: date
    effective_date: date
    is_paid: bool
    paid_on: Optional[date]
    overdue: bool
    due_today: bool

    @property
    def occurrence_id(self) -> str:
        return occurrence_key(self.rule_id, self.due_date)

    @property
    def status(self) -> str:
        return row_status(self)


UnifiedRow = Union[OneTimeRow, RecurringRow]


@dataclass(frozen=True)
class Totals:
    """Window totals for the budget header"""

    total_income_cents: int
    total_expenses_cents: int
    remaining_to_pay_cents: int  # Unpaid expenses only


@dataclass(frozen=True)
class Snapshot:
    """Merged, sorted obligations for one window"""

    window_start: date
    window_end: date
    today: date
    rows: List[UnifiedRow]
    totals: Totals


@dataclass(frozen=True)
class DashboardKpis:
    bills_due_today: int
    overdue_bills: int


def occurrence_key(rule_id: str, occurrence_date: date) -> str:
    """Stable identity of one recurring occurrence"""
    return f"{rule_id}:{occurrence_date.isoformat()}"


def row_status(row: UnifiedRow) -> str:
    if row.is_paid:
        return "Paid"
    if row.overdue:
        return "Overdue"
    return "Pending"
