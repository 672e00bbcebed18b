"""Override resolution - applies postpone/pay/skip exceptions to raw occurrences"""

from datetime import date, datetime, timezone
from typing import Dict, Iterable, Optional, Tuple
from budget_gateway.domain.models import Override, RecurringRule, ResolvedOccurrence

OverrideKey = Tuple[str, date]

_NEVER = datetime.min.replace(tzinfo=timezone.utc)


def index_overrides(overrides: Iterable[Override]) -> Dict[OverrideKey, Override]:
    """
    Build the (rule_id, occurrence_date) -> override lookup.

    If the same key shows up more than once the most recently updated
    override wins; overrides without ``updated_at`` lose to any that have one.
    """
    index: Dict[OverrideKey, Override] = {}
    for override in overrides:
        key = (override.rule_id, override.occurrence_date)
        current = index.get(key)
        if current is None or _updated(override) >= _updated(current):
            index[key] = override
    return index


def _updated(override: Override) -> datetime:
    """updated_at as an aware UTC instant; naive values are taken to be UTC"""
    if override.updated_at is None:
        return _NEVER
    if override.updated_at.tzinfo is None:
        return override.updated_at.replace(tzinfo=timezone.utc)
    return override.updated_at.astimezone(timezone.utc)


def resolve(
    rule: RecurringRule,
    occurrence_date: date,
    override: Optional[Override],
) -> Optional[ResolvedOccurrence]:
    """
    Apply an override to one raw occurrence.

    Returns None when the occurrence is skipped. Postponing only moves the
    effective date; ``occurrence_date`` stays the identity of the occurrence.
    """
    if override is None:
        return ResolvedOccurrence(effective_date=occurrence_date, is_paid=False, paid_on=None)

    if override.skipped:
        return None

    return ResolvedOccurrence(
        effective_date=override.effective_date or occurrence_date,
        is_paid=override.is_paid,
        paid_on=override.paid_on,
    )
