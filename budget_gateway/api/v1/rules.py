"""/v1/rules - Recurring rule writes and per-occurrence overrides"""

import logging
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from budget_gateway.api.v1.schemas import (
    RuleRequest,
    RuleResponse,
    PaidRequest,
    PostponeOccurrenceRequest,
    SkipRequest,
    OverrideResponse,
)
from budget_gateway.api.dependencies import (
    get_rule_repository,
    get_override_repository,
    get_request_id,
    parse_uuid,
)
from budget_gateway.infrastructure.database.session import get_db
from budget_gateway.infrastructure.database.repositories import RuleRepository, OverrideRepository
from budget_gateway.domain.models import RecurringRule, Override, occurrence_key
from budget_gateway.domain.recurrence import is_occurrence, next_cycle_date
from budget_gateway.domain.exceptions import InvalidRuleError, RuleNotFoundError
from budget_gateway.infrastructure.observability.metrics import record_mutation, invalid_rule_counter
from budget_gateway.infrastructure.observability.logging import log_mutation, log_invalid_rule

router = APIRouter()


def _rule_response(rule: RecurringRule) -> RuleResponse:
    return RuleResponse(
        id=rule.id,
        type=rule.type,
        category=rule.category,
        description=rule.description,
        amount_cents=rule.amount_cents,
        frequency=rule.frequency,
        dom=rule.dom,
        dow=rule.dow,
        start_anchor=rule.start_anchor,
        end_date=rule.end_date,
        active=rule.active,
    )


def _override_response(override: Override) -> OverrideResponse:
    return OverrideResponse(
        rule_id=override.rule_id,
        occurrence_date=override.occurrence_date,
        occurrence_id=occurrence_key(override.rule_id, override.occurrence_date),
        effective_date=override.effective_date or override.occurrence_date,
        is_paid=override.is_paid,
        paid_on=override.paid_on,
        skipped=override.skipped,
    )


def _load_occurrence_rule(
    rule_repo: RuleRepository, user_id: str, rule_id: str, occurrence_date: date, request_id: str
) -> RecurringRule:
    """
    Fetch the rule behind an occurrence and check the date is really one of its occurrences.

    Overrides are keyed by the scheduled date, so accepting an arbitrary date
    would create an override nothing ever matches.
    """
    rule = rule_repo.get_rule(user_id, parse_uuid(rule_id, "rule"))
    if rule is None:
        raise HTTPException(status_code=404, detail=f"Rule {rule_id} not found")

    try:
        scheduled = is_occurrence(rule, occurrence_date)
    except InvalidRuleError as e:
        invalid_rule_counter.inc()
        log_invalid_rule(request_id, user_id, e.rule_id, e.reason)
        raise HTTPException(status_code=422, detail=str(e))

    if not scheduled:
        raise HTTPException(
            status_code=422,
            detail=f"{occurrence_date.isoformat()} is not a scheduled occurrence of rule {rule_id}",
        )
    return rule


@router.post("/rules", response_model=RuleResponse)
def upsert_rule(
    request_body: RuleRequest,
    request: Request,
    db: Session = Depends(get_db),
    rule_repo: RuleRepository = Depends(get_rule_repository),
):
    """
    Create a recurring rule, or update it when the body carries an id.

    Malformed cadences (dom outside 1-31, dow outside 1-7, or the field for
    the other frequency set) are rejected with 422, never clamped.
    """
    request_id = get_request_id(request)
    rule_id = parse_uuid(request_body.id, "rule") if request_body.id else None

    try:
        rule = rule_repo.upsert_rule(
            user_id=request_body.user_id,
            rule_id=rule_id,
            type_=request_body.type,
            category=request_body.category,
            description=request_body.description,
            amount_cents=request_body.amount_cents,
            frequency=request_body.frequency,
            start_anchor=request_body.start_anchor,
            dom=request_body.dom,
            dow=request_body.dow,
            end_date=request_body.end_date,
            active=request_body.active,
        )
        db.commit()

    except InvalidRuleError as e:
        db.rollback()
        invalid_rule_counter.inc()
        log_invalid_rule(request_id, request_body.user_id, e.rule_id, e.reason)
        raise HTTPException(status_code=422, detail=str(e))

    except RuleNotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    record_mutation("upsert_rule")
    log_mutation(request_id, request_body.user_id, "upsert_rule", rule.id)
    return _rule_response(rule)


@router.delete("/rules/{rule_id}")
def delete_rule(
    rule_id: str,
    request: Request,
    user_id: str = Query(..., min_length=1, description="User identifier"),
    db: Session = Depends(get_db),
    rule_repo: RuleRepository = Depends(get_rule_repository),
):
    """Delete a rule; overrides recorded against it are left in place and ignored"""
    request_id = get_request_id(request)
    rule_uuid = parse_uuid(rule_id, "rule")

    try:
        rule_repo.delete_rule(user_id, rule_uuid)
        db.commit()

    except RuleNotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    record_mutation("delete_rule")
    log_mutation(request_id, user_id, "delete_rule", rule_id)
    return {"status": "deleted", "id": rule_id}


@router.post("/rules/{rule_id}/occurrences/{occurrence_date}/paid", response_model=OverrideResponse)
def mark_occurrence_paid(
    rule_id: str,
    occurrence_date: date,
    request_body: PaidRequest,
    request: Request,
    db: Session = Depends(get_db),
    rule_repo: RuleRepository = Depends(get_rule_repository),
    override_repo: OverrideRepository = Depends(get_override_repository),
):
    """Mark one occurrence paid; a postponed date on it is kept"""
    request_id = get_request_id(request)
    _load_occurrence_rule(rule_repo, request_body.user_id, rule_id, occurrence_date, request_id)
    rule_uuid = parse_uuid(rule_id, "rule")

    try:
        override = override_repo.mark_occurrence_paid(
            request_body.user_id, rule_uuid, occurrence_date, request_body.paid_on
        )
        db.commit()

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    record_mutation("mark_occurrence_paid")
    occurrence_id = occurrence_key(override.rule_id, override.occurrence_date)
    log_mutation(request_id, request_body.user_id, "mark_occurrence_paid", occurrence_id)
    return _override_response(override)


@router.post("/rules/{rule_id}/occurrences/{occurrence_date}/postpone", response_model=OverrideResponse)
def postpone_occurrence(
    rule_id: str,
    occurrence_date: date,
    request_body: PostponeOccurrenceRequest,
    request: Request,
    db: Session = Depends(get_db),
    rule_repo: RuleRepository = Depends(get_rule_repository),
    override_repo: OverrideRepository = Depends(get_override_repository),
):
    """
    Move one occurrence to a new effective date.

    Without ``new_date`` the occurrence moves one cadence step past where it
    currently sits, so repeated postpones keep walking forward. The occurrence
    keeps its identity (rule id + scheduled date) throughout.
    """
    request_id = get_request_id(request)
    rule = _load_occurrence_rule(rule_repo, request_body.user_id, rule_id, occurrence_date, request_id)
    rule_uuid = parse_uuid(rule_id, "rule")

    new_date = request_body.new_date
    if new_date is None:
        existing = override_repo.get_override(request_body.user_id, rule_uuid, occurrence_date)
        current = existing.effective_date if existing and existing.effective_date else occurrence_date
        try:
            new_date = next_cycle_date(rule, current)
        except (OverflowError, ValueError):
            raise HTTPException(
                status_code=422,
                detail=f"No cycle of rule {rule_id} after {current.isoformat()}",
            )

    try:
        override = override_repo.postpone_occurrence(request_body.user_id, rule_uuid, occurrence_date, new_date)
        db.commit()

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    record_mutation("postpone_occurrence")
    occurrence_id = occurrence_key(override.rule_id, override.occurrence_date)
    log_mutation(request_id, request_body.user_id, "postpone_occurrence", occurrence_id)
    return _override_response(override)


@router.post("/rules/{rule_id}/occurrences/{occurrence_date}/skip", response_model=OverrideResponse)
def skip_occurrence(
    rule_id: str,
    occurrence_date: date,
    request_body: SkipRequest,
    request: Request,
    db: Session = Depends(get_db),
    rule_repo: RuleRepository = Depends(get_rule_repository),
    override_repo: OverrideRepository = Depends(get_override_repository),
):
    """Suppress one occurrence in every window"""
    request_id = get_request_id(request)
    _load_occurrence_rule(rule_repo, request_body.user_id, rule_id, occurrence_date, request_id)
    rule_uuid = parse_uuid(rule_id, "rule")

    try:
        override = override_repo.skip_occurrence(request_body.user_id, rule_uuid, occurrence_date)
        db.commit()

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    record_mutation("skip_occurrence")
    occurrence_id = occurrence_key(override.rule_id, override.occurrence_date)
    log_mutation(request_id, request_body.user_id, "skip_occurrence", occurrence_id)
    return _override_response(override)