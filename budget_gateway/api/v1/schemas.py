"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field
from datetime import date
from typing import List, Literal, Optional

EntryType = Literal["income", "expense"]
Frequency = Literal["monthly", "weekly", "biweekly"]


class EntryRequest(BaseModel):
    """Request body for POST /v1/entries (omit id to create)"""

    user_id: str = Field(..., min_length=1, description="User identifier")
    id: Optional[str] = Field(None, description="Existing entry id to update")
    type: EntryType
    category: str = "other"
    description: str = ""
    amount_cents: int = Field(..., ge=0, description="Amount in cents")
    due_date: date


class EntryResponse(BaseModel):
    id: str
    type: EntryType
    category: str
    description: str
    amount_cents: int
    due_date: date
    is_paid: bool
    paid_on: Optional[date] = None


class RuleRequest(BaseModel):
    """Request body for POST /v1/rules (omit id to create)

    Cadence consistency (dom for monthly, dow for weekly/biweekly) is checked
    by the domain layer so the error message names the rule.
    """

    user_id: str = Field(..., min_length=1, description="User identifier")
    id: Optional[str] = Field(None, description="Existing rule id to update")
    type: EntryType
    category: str = "other"
    description: str = ""
    amount_cents: int = Field(..., ge=0, description="Amount in cents")
    frequency: Frequency
    dom: Optional[int] = Field(None, description="Day of month 1-31 (monthly)")
    dow: Optional[int] = Field(None, description="ISO weekday 1-7, Monday=1 (weekly/biweekly)")
    start_anchor: date
    end_date: Optional[date] = None
    active: bool = True


class RuleResponse(BaseModel):
    id: str
    type: EntryType
    category: str
    description: str
    amount_cents: int
    frequency: Frequency
    dom: Optional[int] = None
    dow: Optional[int] = None
    start_anchor: date
    end_date: Optional[date] = None
    active: bool


class PaidRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    paid_on: date


class PostponeEntryRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    new_date: date


class PostponeOccurrenceRequest(BaseModel):
    """Omit new_date to push the occurrence to the rule's next cycle"""

    user_id: str = Field(..., min_length=1)
    new_date: Optional[date] = None


class SkipRequest(BaseModel):
    user_id: str = Field(..., min_length=1)


class OverrideResponse(BaseModel):
    rule_id: str
    occurrence_date: date
    occurrence_id: str
    effective_date: date
    is_paid: bool
    paid_on: Optional[date] = None
    skipped: bool


class RowSchema(BaseModel):
    """Single materialized obligation"""

    occurrence_id: str
    kind: Literal["one_time", "recurring"]
    rule_id: Optional[str] = None
    type: EntryType
    category: str
    description: str
    amount_cents: int
    due_date: date
    effective_date: date
    is_paid: bool
    paid_on: Optional[date] = None
    overdue: bool
    due_today: bool
    status: Literal["Paid", "Overdue", "Pending"]


class TotalsSchema(BaseModel):
    total_income_cents: int
    total_expenses_cents: int
    remaining_to_pay_cents: int


class SnapshotResponse(BaseModel):
    """Response for GET /v1/snapshot and /v1/snapshot/month"""

    user_id: str
    window_start: date
    window_end: date
    today: date
    rows: List[RowSchema]
    totals: TotalsSchema


class KpiResponse(BaseModel):
    """Response for GET /v1/dashboard/kpis"""

    user_id: str
    today: date
    bills_due_today: int
    overdue_bills: int


class WeekResponse(BaseModel):
    """Response for GET /v1/dashboard/week"""

    user_id: str
    window_start: date
    window_end: date
    rows: List[RowSchema]


def row_schema(row) -> RowSchema:
    """Flatten a OneTimeRow/RecurringRow into its wire shape"""
    return RowSchema(
        occurrence_id=row.occurrence_id,
        kind=row.kind,
        rule_id=getattr(row, "rule_id", None),
        type=row.type,
        category=row.category,
        description=row.description,
        amount_cents=row.amount_cents,
        due_date=row.due_date,
        effective_date=row.effective_date,
        is_paid=row.is_paid,
        paid_on=row.paid_on,
        overdue=row.overdue,
        due_today=row.due_today,
        status=row.status,
    )
