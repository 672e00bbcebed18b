"""GET /v1/snapshot - Materialized obligations for a date window"""

import time
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from budget_gateway.api.v1.schemas import SnapshotResponse, TotalsSchema, row_schema
from budget_gateway.api.dependencies import (
    get_entry_repository,
    get_rule_repository,
    get_override_repository,
    get_request_id,
    resolve_today,
)
from budget_gateway.infrastructure.database.repositories import EntryRepository, RuleRepository, OverrideRepository
from budget_gateway.domain.models import Snapshot
from budget_gateway.domain.snapshot import compute_snapshot
from budget_gateway.domain.exceptions import InvalidRuleError
from budget_gateway.infrastructure.observability.metrics import record_snapshot, invalid_rule_counter
from budget_gateway.infrastructure.observability.logging import log_snapshot, log_invalid_rule
from budget_gateway.utils.date_utils import month_window, parse_month

router = APIRouter()


def load_snapshot(
    user_id: str,
    window_start: date,
    window_end: date,
    today: date,
    entry_repo: EntryRepository,
    rule_repo: RuleRepository,
    override_repo: OverrideRepository,
    request_id: Optional[str] = None,
) -> Snapshot:
    """
    Load a user's budget data and run the snapshot engine over it.

    Raises:
        HTTPException: 422 when a stored rule is malformed
    """
    entries = entry_repo.list_for_user(user_id, window_start, window_end)
    rules = rule_repo.list_for_user(user_id)
    overrides = override_repo.list_for_user(user_id)

    try:
        return compute_snapshot(entries, rules, overrides, window_start, window_end, today)
    except InvalidRuleError as e:
        invalid_rule_counter.inc()
        log_invalid_rule(request_id, user_id, e.rule_id, e.reason)
        raise HTTPException(status_code=422, detail=str(e))


def _snapshot_response(user_id: str, snapshot: Snapshot) -> SnapshotResponse:
    return SnapshotResponse(
        user_id=user_id,
        window_start=snapshot.window_start,
        window_end=snapshot.window_end,
        today=snapshot.today,
        rows=[row_schema(r) for r in snapshot.rows],
        totals=TotalsSchema(
            total_income_cents=snapshot.totals.total_income_cents,
            total_expenses_cents=snapshot.totals.total_expenses_cents,
            remaining_to_pay_cents=snapshot.totals.remaining_to_pay_cents,
        ),
    )


@router.get("/snapshot", response_model=SnapshotResponse)
def get_snapshot(
    request: Request,
    user_id: str = Query(..., min_length=1, description="User identifier"),
    window_start: date = Query(..., description="First day of the window (inclusive)"),
    window_end: date = Query(..., description="Last day of the window (inclusive)"),
    today: Optional[date] = Query(None, description="Local calendar date; defaults to today"),
    entry_repo: EntryRepository = Depends(get_entry_repository),
    rule_repo: RuleRepository = Depends(get_rule_repository),
    override_repo: OverrideRepository = Depends(get_override_repository),
):
    """
    Compute the budget snapshot for an arbitrary window.

    An inverted window (end before start) returns an empty row set.
    """
    request_id = get_request_id(request)
    start_time = time.time()
    snapshot = load_snapshot(
        user_id, window_start, window_end, resolve_today(today),
        entry_repo, rule_repo, override_repo, request_id=request_id,
    )

    duration_ms = (time.time() - start_time) * 1000
    record_snapshot("window", len(snapshot.rows))
    log_snapshot(request_id, user_id, "window", window_start, window_end, len(snapshot.rows), duration_ms)

    return _snapshot_response(user_id, snapshot)


@router.get("/snapshot/month", response_model=SnapshotResponse)
def get_month_snapshot(
    request: Request,
    user_id: str = Query(..., min_length=1, description="User identifier"),
    month: str = Query(..., description="Calendar month, YYYY-MM"),
    today: Optional[date] = Query(None, description="Local calendar date; defaults to today"),
    entry_repo: EntryRepository = Depends(get_entry_repository),
    rule_repo: RuleRepository = Depends(get_rule_repository),
    override_repo: OverrideRepository = Depends(get_override_repository),
):
    """Snapshot for one whole calendar month (the budget page view)"""
    try:
        year, month_num = parse_month(month)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid month format, expected YYYY-MM")

    request_id = get_request_id(request)
    start_time = time.time()
    window_start, window_end = month_window(year, month_num)
    snapshot = load_snapshot(
        user_id, window_start, window_end, resolve_today(today),
        entry_repo, rule_repo, override_repo, request_id=request_id,
    )

    duration_ms = (time.time() - start_time) * 1000
    record_snapshot("month", len(snapshot.rows))
    log_snapshot(request_id, user_id, "month", window_start, window_end, len(snapshot.rows), duration_ms)

    return _snapshot_response(user_id, snapshot)
