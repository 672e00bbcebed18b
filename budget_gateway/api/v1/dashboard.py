"""GET /v1/dashboard/* - Personal dashboard bill KPIs and week-at-a-glance"""

import time
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request

from budget_gateway.api.v1.schemas import KpiResponse, WeekResponse, row_schema
from budget_gateway.api.v1.snapshot import load_snapshot
from budget_gateway.api.dependencies import (
    get_entry_repository,
    get_rule_repository,
    get_override_repository,
    get_request_id,
    resolve_today,
)
from budget_gateway.infrastructure.database.repositories import EntryRepository, RuleRepository, OverrideRepository
from budget_gateway.domain.snapshot import dashboard_kpis, upcoming_unpaid
from budget_gateway.infrastructure.observability.metrics import record_snapshot
from budget_gateway.infrastructure.observability.logging import log_snapshot
from budget_gateway.config import settings
from budget_gateway.utils.date_utils import add_days, month_window

router = APIRouter()


@router.get("/dashboard/kpis", response_model=KpiResponse)
def get_kpis(
    request: Request,
    user_id: str = Query(..., min_length=1, description="User identifier"),
    today: Optional[date] = Query(None, description="Local calendar date; defaults to today"),
    entry_repo: EntryRepository = Depends(get_entry_repository),
    rule_repo: RuleRepository = Depends(get_rule_repository),
    override_repo: OverrideRepository = Depends(get_override_repository),
):
    """
    Bills due today and overdue bills within the current month.

    Counts unpaid expenses only, on their effective (post-postponement) date.
    """
    request_id = get_request_id(request)
    start_time = time.time()
    today = resolve_today(today)
    window_start, window_end = month_window(today.year, today.month)
    snapshot = load_snapshot(
        user_id, window_start, window_end, today, entry_repo, rule_repo, override_repo, request_id=request_id
    )

    duration_ms = (time.time() - start_time) * 1000
    record_snapshot("kpis", len(snapshot.rows))
    log_snapshot(request_id, user_id, "kpis", window_start, window_end, len(snapshot.rows), duration_ms)

    kpis = dashboard_kpis(snapshot.rows)
    return KpiResponse(
        user_id=user_id,
        today=today,
        bills_due_today=kpis.bills_due_today,
        overdue_bills=kpis.overdue_bills,
    )


@router.get("/dashboard/week", response_model=WeekResponse)
def get_week(
    request: Request,
    user_id: str = Query(..., min_length=1, description="User identifier"),
    today: Optional[date] = Query(None, description="Local calendar date; defaults to today"),
    entry_repo: EntryRepository = Depends(get_entry_repository),
    rule_repo: RuleRepository = Depends(get_rule_repository),
    override_repo: OverrideRepository = Depends(get_override_repository),
):
    """Unpaid expenses falling between today and the end of the week view"""
    request_id = get_request_id(request)
    start_time = time.time()
    today = resolve_today(today)
    window_end = add_days(today, settings.week_days - 1)
    snapshot = load_snapshot(
        user_id, today, window_end, today, entry_repo, rule_repo, override_repo, request_id=request_id
    )

    duration_ms = (time.time() - start_time) * 1000
    record_snapshot("week", len(snapshot.rows))
    log_snapshot(request_id, user_id, "week", today, window_end, len(snapshot.rows), duration_ms)

    return WeekResponse(
        user_id=user_id,
        window_start=today,
        window_end=window_end,
        rows=[row_schema(r) for r in upcoming_unpaid(snapshot.rows)],
    )
