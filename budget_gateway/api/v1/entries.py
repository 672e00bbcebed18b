"""/v1/entries - One-time entry writes (upsert, delete, mark paid, postpone)"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from budget_gateway.api.v1.schemas import EntryRequest, EntryResponse, PaidRequest, PostponeEntryRequest
from budget_gateway.api.dependencies import get_entry_repository, get_request_id, parse_uuid
from budget_gateway.infrastructure.database.session import get_db
from budget_gateway.infrastructure.database.repositories import EntryRepository
from budget_gateway.domain.models import OneTimeEntry
from budget_gateway.domain.exceptions import EntryNotFoundError
from budget_gateway.infrastructure.observability.metrics import record_mutation
from budget_gateway.infrastructure.observability.logging import log_mutation

router = APIRouter()


def _entry_response(entry: OneTimeEntry) -> EntryResponse:
    return EntryResponse(
        id=entry.id,
        type=entry.type,
        category=entry.category,
        description=entry.description,
        amount_cents=entry.amount_cents,
        due_date=entry.due_date,
        is_paid=entry.is_paid,
        paid_on=entry.paid_on,
    )


@router.post("/entries", response_model=EntryResponse)
def upsert_entry(
    request_body: EntryRequest,
    request: Request,
    db: Session = Depends(get_db),
    entry_repo: EntryRepository = Depends(get_entry_repository),
):
    """Create a one-time entry, or update it when the body carries an id"""
    request_id = get_request_id(request)
    entry_id = parse_uuid(request_body.id, "entry") if request_body.id else None

    try:
        entry = entry_repo.upsert_entry(
            user_id=request_body.user_id,
            entry_id=entry_id,
            type_=request_body.type,
            category=request_body.category,
            description=request_body.description,
            amount_cents=request_body.amount_cents,
            due_date=request_body.due_date,
        )
        db.commit()

    except EntryNotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    record_mutation("upsert_entry")
    log_mutation(request_id, request_body.user_id, "upsert_entry", entry.id)
    return _entry_response(entry)


@router.delete("/entries/{entry_id}")
def delete_entry(
    entry_id: str,
    request: Request,
    user_id: str = Query(..., min_length=1, description="User identifier"),
    db: Session = Depends(get_db),
    entry_repo: EntryRepository = Depends(get_entry_repository),
):
    request_id = get_request_id(request)
    entry_uuid = parse_uuid(entry_id, "entry")

    try:
        entry_repo.delete_entry(user_id, entry_uuid)
        db.commit()

    except EntryNotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    record_mutation("delete_entry")
    log_mutation(request_id, user_id, "delete_entry", entry_id)
    return {"status": "deleted", "id": entry_id}


@router.post("/entries/{entry_id}/paid", response_model=EntryResponse)
def mark_entry_paid(
    entry_id: str,
    request_body: PaidRequest,
    request: Request,
    db: Session = Depends(get_db),
    entry_repo: EntryRepository = Depends(get_entry_repository),
):
    request_id = get_request_id(request)
    entry_uuid = parse_uuid(entry_id, "entry")

    try:
        entry = entry_repo.mark_entry_paid(request_body.user_id, entry_uuid, request_body.paid_on)
        db.commit()

    except EntryNotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    record_mutation("mark_entry_paid")
    log_mutation(request_id, request_body.user_id, "mark_entry_paid", entry_id)
    return _entry_response(entry)


@router.post("/entries/{entry_id}/postpone", response_model=EntryResponse)
def postpone_entry(
    entry_id: str,
    request_body: PostponeEntryRequest,
    request: Request,
    db: Session = Depends(get_db),
    entry_repo: EntryRepository = Depends(get_entry_repository),
):
    """Move a one-time entry to a new due date"""
    request_id = get_request_id(request)
    entry_uuid = parse_uuid(entry_id, "entry")

    try:
        entry = entry_repo.postpone_entry(request_body.user_id, entry_uuid, request_body.new_date)
        db.commit()

    except EntryNotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    record_mutation("postpone_entry")
    log_mutation(request_id, request_body.user_id, "postpone_entry", entry_id)
    return _entry_response(entry)
