"""Recurring rule expansion - raw occurrence dates for a window, ignoring overrides"""

from datetime import date, timedelta
from typing import List
from budget_gateway.domain.models import (
    RecurringRule,
    ENTRY_TYPES,
    FREQUENCIES,
    MONTHLY,
    WEEKLY,
    BIWEEKLY,
)
from budget_gateway.domain.exceptions import InvalidRuleError
from budget_gateway.utils.date_utils import (
    clamp_dom,
    iter_months,
    days_to_weekday,
    add_months_clamped,
)

BIWEEKLY_INTERVAL_DAYS = 14


def validate_rule(rule: RecurringRule) -> None:
    """
    Reject rules whose cadence fields do not match their frequency.

    Nothing is clamped here: a dom of 32 or a weekly rule carrying a dom
    is reported, not repaired.

    Raises:
        InvalidRuleError: describing the first problem found
    """
    if rule.frequency not in FREQUENCIES:
        raise InvalidRuleError(rule.id, f"unknown frequency {rule.frequency!r}")
    if rule.type not in ENTRY_TYPES:
        raise InvalidRuleError(rule.id, f"unknown type {rule.type!r}")
    if rule.amount_cents < 0:
        raise InvalidRuleError(rule.id, "amount must not be negative")

    if rule.frequency == MONTHLY:
        if rule.dom is None or not 1 <= rule.dom <= 31:
            raise InvalidRuleError(rule.id, f"monthly rule needs dom in 1-31, got {rule.dom!r}")
        if rule.dow is not None:
            raise InvalidRuleError(rule.id, "monthly rule must not set dow")
    else:
        if rule.dow is None or not 1 <= rule.dow <= 7:
            raise InvalidRuleError(rule.id, f"{rule.frequency} rule needs dow in 1-7, got {rule.dow!r}")
        if rule.dom is not None:
            raise InvalidRuleError(rule.id, f"{rule.frequency} rule must not set dom")

    if rule.end_date is not None and rule.end_date < rule.start_anchor:
        raise InvalidRuleError(rule.id, "end_date is before start_anchor")


def expand(rule: RecurringRule, window_start: date, window_end: date) -> List[date]:
    """
    Raw occurrence dates of ``rule`` inside [window_start, window_end].

    Results are ascending and duplicate-free, never before the rule's
    start_anchor and never after its end_date. The rule is assumed valid
    (see ``validate_rule``).

    Cadence:
    - monthly: ``dom`` clamped to each month's last day, so dom=31 lands on
      Feb 28/29 and Apr 30 rather than skipping those months
    - weekly: every ``dow`` on or after the start
    - biweekly: every 14 days from the first ``dow`` on or after start_anchor,
      so any window reproduces the same absolute dates

    Example:
        biweekly dow=1, start_anchor=2025-01-06, window 2025-01-01..2025-02-28
        -> [2025-01-06, 2025-01-20, 2025-02-03, 2025-02-17]
    """
    if not rule.active:
        return []

    lower = max(rule.start_anchor, window_start)
    upper = window_end if rule.end_date is None else min(window_end, rule.end_date)
    if lower > upper:
        return []

    if rule.frequency == MONTHLY:
        dates = []
        for year, month in iter_months(lower, upper):
            candidate = clamp_dom(year, month, rule.dom)
            if lower <= candidate <= upper:
                dates.append(candidate)
        return dates

    # Stepping is done on day ordinals so a window ending at date.max never
    # builds a date past it
    if rule.frequency == WEEKLY:
        first = lower.toordinal() + days_to_weekday(lower, rule.dow)
        interval = 7
    else:
        # Cadence is pinned to the first matching weekday of the rule, not the window
        anchor = rule.start_anchor.toordinal() + days_to_weekday(rule.start_anchor, rule.dow)
        periods = -(-(lower.toordinal() - anchor) // BIWEEKLY_INTERVAL_DAYS)
        first = anchor + max(periods, 0) * BIWEEKLY_INTERVAL_DAYS
        interval = BIWEEKLY_INTERVAL_DAYS

    return [date.fromordinal(o) for o in range(first, upper.toordinal() + 1, interval)]


def next_cycle_date(rule: RecurringRule, occurrence_date: date) -> date:
    """
    Date one cadence step after ``occurrence_date`` (postpone-to-next-cycle target).

    Raises:
        OverflowError, ValueError: the next cycle would fall after date.max
    """
    if rule.frequency == WEEKLY:
        return occurrence_date + timedelta(days=7)
    if rule.frequency == BIWEEKLY:
        return occurrence_date + timedelta(days=BIWEEKLY_INTERVAL_DAYS)
    dom = rule.dom if rule.dom is not None else occurrence_date.day
    return add_months_clamped(occurrence_date.year, occurrence_date.month, 1, dom)


def is_occurrence(rule: RecurringRule, candidate: date) -> bool:
    """True if ``rule`` schedules an occurrence on exactly ``candidate``"""
    validate_rule(rule)
    return expand(rule, candidate, candidate) == [candidate]
