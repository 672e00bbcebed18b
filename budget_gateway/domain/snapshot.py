"""Snapshot assembly - the merged, sorted obligation set for a date window"""

from datetime import date
from typing import Dict, Iterable, List, Sequence
from budget_gateway.domain.models import (
    OneTimeEntry,
    RecurringRule,
    Override,
    OneTimeRow,
    RecurringRow,
    UnifiedRow,
    Totals,
    Snapshot,
    DashboardKpis,
    EXPENSE,
    INCOME,
)
from budget_gateway.domain.recurrence import expand, validate_rule
from budget_gateway.domain.overrides import index_overrides, resolve


def compute_snapshot(
    entries: Sequence[OneTimeEntry],
    rules: Sequence[RecurringRule],
    overrides: Sequence[Override],
    window_start: date,
    window_end: date,
    today: date,
) -> Snapshot:
    """
    Materialize every obligation that applies inside [window_start, window_end].

    Flow:
    1. One-time entries due inside the window
    2. Each rule expanded over the window, each raw date passed through its
       override; skipped occurrences vanish and postponed ones are kept only
       if their new date is still inside the window. Occurrences scheduled
       outside the window but postponed into it are picked up too, so every
       occurrence shows in exactly the window holding its effective date
    3. Concatenate, drop repeated occurrence ids
    4. Sort by (effective_date, description, occurrence_id)

    Inputs are already filtered by tenant and are never mutated. An inverted
    window yields an empty snapshot.

    Raises:
        InvalidRuleError: if any rule is malformed
    """
    if window_start > window_end:
        return Snapshot(window_start, window_end, today, [], compute_totals([]))

    for rule in rules:
        validate_rule(rule)

    rows: List[UnifiedRow] = []

    for entry in entries:
        if window_start <= entry.due_date <= window_end:
            rows.append(_one_time_row(entry, today))

    override_index = index_overrides(overrides)
    moved_in = _postponed_into_window(override_index.values(), window_start, window_end)
    for rule in rules:
        occurrence_dates = expand(rule, window_start, window_end)
        # Scheduled outside the window but postponed into it
        occurrence_dates += [d for d in moved_in.get(rule.id, []) if expand(rule, d, d) == [d]]

        for occurrence_date in occurrence_dates:
            resolved = resolve(rule, occurrence_date, override_index.get((rule.id, occurrence_date)))
            if resolved is None:
                continue
            if not window_start <= resolved.effective_date <= window_end:
                continue
            rows.append(
                RecurringRow(
                    rule_id=rule.id,
                    type=rule.type,
                    category=rule.category,
                    description=rule.description,
                    amount_cents=rule.amount_cents,
                    due_date=occurrence_date,
                    effective_date=resolved.effective_date,
                    is_paid=resolved.is_paid,
                    paid_on=resolved.paid_on,
                    overdue=_is_overdue(rule.type, resolved.is_paid, resolved.effective_date, today),
                    due_today=_is_due_today(rule.type, resolved.is_paid, resolved.effective_date, today),
                )
            )

    rows = _sorted(_unique(rows))
    return Snapshot(window_start, window_end, today, rows, compute_totals(rows))


def _postponed_into_window(
    overrides: Iterable[Override], window_start: date, window_end: date
) -> Dict[str, List[date]]:
    """Scheduled dates, per rule, whose postponed date lands inside the window"""
    moved_in: Dict[str, List[date]] = {}
    for override in overrides:
        if override.effective_date is None:
            continue
        if window_start <= override.occurrence_date <= window_end:
            continue
        if window_start <= override.effective_date <= window_end:
            moved_in.setdefault(override.rule_id, []).append(override.occurrence_date)
    return moved_in


def _one_time_row(entry: OneTimeEntry, today: date) -> OneTimeRow:
    return OneTimeRow(
        entry_id=entry.id,
        type=entry.type,
        category=entry.category,
        description=entry.description,
        amount_cents=entry.amount_cents,
        due_date=entry.due_date,
        effective_date=entry.due_date,
        is_paid=entry.is_paid,
        paid_on=entry.paid_on,
        overdue=_is_overdue(entry.type, entry.is_paid, entry.due_date, today),
        due_today=_is_due_today(entry.type, entry.is_paid, entry.due_date, today),
    )


def _is_overdue(type_: str, is_paid: bool, effective_date: date, today: date) -> bool:
    return type_ == EXPENSE and not is_paid and effective_date < today


def _is_due_today(type_: str, is_paid: bool, effective_date: date, today: date) -> bool:
    return type_ == EXPENSE and not is_paid and effective_date == today


def _unique(rows: Iterable[UnifiedRow]) -> List[UnifiedRow]:
    seen = set()
    unique = []
    for row in rows:
        key = (row.kind, row.occurrence_id)
        if key in seen:
            continue
        seen.add(key)
        unique.append(row)
    return unique


def _sorted(rows: Iterable[UnifiedRow]) -> List[UnifiedRow]:
    return sorted(rows, key=lambda r: (r.effective_date, r.description, r.occurrence_id, r.kind))


def compute_totals(rows: Iterable[UnifiedRow]) -> Totals:
    """Income, expenses and the unpaid-expense remainder for a set of rows"""
    total_income = 0
    total_expenses = 0
    remaining = 0
    for row in rows:
        if row.type == INCOME:
            total_income += row.amount_cents
        else:
            total_expenses += row.amount_cents
            if not row.is_paid:
                remaining += row.amount_cents
    return Totals(
        total_income_cents=total_income,
        total_expenses_cents=total_expenses,
        remaining_to_pay_cents=remaining,
    )


def dashboard_kpis(rows: Iterable[UnifiedRow]) -> DashboardKpis:
    """Count of unpaid bills due today and of overdue bills"""
    rows = list(rows)
    return DashboardKpis(
        bills_due_today=sum(1 for r in rows if r.due_today),
        overdue_bills=sum(1 for r in rows if r.overdue),
    )


def upcoming_unpaid(rows: Iterable[UnifiedRow]) -> List[UnifiedRow]:
    """Unpaid expenses, in snapshot order (the "this week" grid)"""
    return [r for r in rows if r.type == EXPENSE and not r.is_paid]


def deduplicate_rows(*row_sets: Iterable[UnifiedRow]) -> List[UnifiedRow]:
    """
    Merge rows from overlapping window queries into one set.

    Rows are matched by occurrence id; when the same occurrence appears in
    several sets the one from the later set wins, so pass sets oldest first.
    """
    merged = {}
    for rows in row_sets:
        for row in rows:
            merged[(row.kind, row.occurrence_id)] = row
    return _sorted(merged.values())
