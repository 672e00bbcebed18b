"""Dependency injection for FastAPI endpoints"""

import uuid
from datetime import date
from typing import Optional
from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session
from budget_gateway.config import settings
from budget_gateway.infrastructure.database.session import get_db
from budget_gateway.infrastructure.database.repositories import (
    EntryRepository,
    RuleRepository,
    OverrideRepository,
)
from budget_gateway.utils.date_utils import local_today


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_entry_repository(db: Session = Depends(get_db)) -> EntryRepository:
    """Provide one-time entry repository bound to the request session"""
    return EntryRepository(db)


def get_rule_repository(db: Session = Depends(get_db)) -> RuleRepository:
    """Provide recurring rule repository bound to the request session"""
    return RuleRepository(db)


def get_override_repository(db: Session = Depends(get_db)) -> OverrideRepository:
    """Provide override repository bound to the request session"""
    return OverrideRepository(db)


def resolve_today(today: Optional[date]) -> date:
    """Caller-supplied calendar date, else today in the configured timezone"""
    return today or local_today(settings.timezone)


def parse_uuid(value: str, label: str) -> uuid.UUID:
    """Parse a path/body identifier, 400 on malformed input"""
    try:
        return uuid.UUID(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {label} ID format")
