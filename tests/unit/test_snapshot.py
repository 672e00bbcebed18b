"""Unit tests for snapshot assembly"""

import copy
import pytest
from dataclasses import replace
from datetime import date, timedelta
from budget_gateway.domain.models import OneTimeEntry, RecurringRule, Override, OneTimeRow, RecurringRow
from budget_gateway.domain.snapshot import (
    compute_snapshot,
    compute_totals,
    dashboard_kpis,
    upcoming_unpaid,
    deduplicate_rows,
)
from budget_gateway.domain.exceptions import InvalidRuleError


def test_monthly_dom_31_february_scenario(rent_rule: RecurringRule):
    """Test rule{monthly, dom=31, $100 expense} over Feb 2025 gives one row on the 28th"""
    snapshot = compute_snapshot([], [rent_rule], [], date(2025, 2, 1), date(2025, 2, 28), date(2025, 2, 1))

    assert len(snapshot.rows) == 1
    row = snapshot.rows[0]
    assert isinstance(row, RecurringRow)
    assert row.effective_date == date(2025, 2, 28)
    assert row.due_date == date(2025, 2, 28)
    assert row.amount_cents == 10000
    assert row.occurrence_id == "rule-rent:2025-02-28"


def test_biweekly_scenario(paycheck_rule: RecurringRule):
    snapshot = compute_snapshot([], [paycheck_rule], [], date(2025, 1, 1), date(2025, 2, 28), date(2025, 1, 1))

    assert [r.effective_date for r in snapshot.rows] == [
        date(2025, 1, 6),
        date(2025, 1, 20),
        date(2025, 2, 3),
        date(2025, 2, 17),
    ]


def test_one_time_and_recurring_same_date_are_distinct(rent_rule: RecurringRule):
    """Test an entry and a rule occurrence on the same day stay two rows"""
    rule = replace(rent_rule, dom=1)
    entry = OneTimeEntry(
        id="entry-1",
        type="expense",
        category="bill",
        description="Rent",
        amount_cents=10000,
        due_date=date(2025, 11, 1),
    )

    snapshot = compute_snapshot([entry], [rule], [], date(2025, 11, 1), date(2025, 11, 1), date(2025, 11, 1))

    assert len(snapshot.rows) == 2
    assert {r.kind for r in snapshot.rows} == {"one_time", "recurring"}
    assert len({r.occurrence_id for r in snapshot.rows}) == 2


def test_overdue_flag(sample_entries: list[OneTimeEntry]):
    """Test an unpaid expense before today is overdue, the paid version is not"""
    today = date(2025, 11, 10)
    car = sample_entries[0]

    unpaid = compute_snapshot([car], [], [], date(2025, 11, 1), date(2025, 11, 30), today).rows[0]
    assert unpaid.overdue is True
    assert unpaid.status == "Overdue"

    paid_car = replace(car, is_paid=True, paid_on=date(2025, 11, 9))
    paid = compute_snapshot([paid_car], [], [], date(2025, 11, 1), date(2025, 11, 30), today).rows[0]
    assert paid.overdue is False
    assert paid.status == "Paid"


def test_income_is_never_overdue(sample_entries: list[OneTimeEntry]):
    refund = sample_entries[2]
    row = compute_snapshot([refund], [], [], date(2025, 11, 1), date(2025, 11, 30), date(2025, 12, 1)).rows[0]

    assert row.overdue is False
    assert row.due_today is False
    assert row.status == "Pending"


def test_due_today_flag(gym_rule: RecurringRule):
    today = date(2025, 11, 14)
    snapshot = compute_snapshot([], [gym_rule], [], date(2025, 11, 1), date(2025, 11, 30), today)

    due_today = [r for r in snapshot.rows if r.due_today]
    assert [r.effective_date for r in due_today] == [today]
    assert all(not r.due_today for r in snapshot.rows if r.effective_date != today)


def test_postpone_then_pay_keeps_one_row(rent_rule: RecurringRule):
    """Test postponing an occurrence and then paying it yields one row with the same id"""
    override = Override(
        rule_id="rule-rent",
        occurrence_date=date(2025, 3, 31),
        effective_date=date(2025, 4, 7),
        is_paid=True,
        paid_on=date(2025, 4, 6),
    )

    snapshot = compute_snapshot(
        [], [rent_rule], [override], date(2025, 3, 1), date(2025, 4, 30), date(2025, 4, 10)
    )
    march_rows = [r for r in snapshot.rows if r.occurrence_id == "rule-rent:2025-03-31"]

    assert len(march_rows) == 1
    assert march_rows[0].effective_date == date(2025, 4, 7)
    assert march_rows[0].due_date == date(2025, 3, 31)
    assert march_rows[0].is_paid is True
    assert march_rows[0].overdue is False
    assert [r.effective_date for r in snapshot.rows] == [date(2025, 4, 7), date(2025, 4, 30)]


def test_postponed_out_of_window_is_excluded(rent_rule: RecurringRule):
    override = Override(rule_id="rule-rent", occurrence_date=date(2025, 3, 31), effective_date=date(2025, 4, 7))
    snapshot = compute_snapshot([], [rent_rule], [override], date(2025, 3, 1), date(2025, 3, 31), date(2025, 3, 1))

    assert snapshot.rows == []


def test_postponed_into_window_is_included(rent_rule: RecurringRule):
    """Test an occurrence scheduled last month but postponed into this one shows up here"""
    override = Override(rule_id="rule-rent", occurrence_date=date(2025, 3, 31), effective_date=date(2025, 4, 7))
    snapshot = compute_snapshot([], [rent_rule], [override], date(2025, 4, 1), date(2025, 4, 30), date(2025, 4, 1))

    assert [(r.occurrence_id, r.effective_date) for r in snapshot.rows] == [
        ("rule-rent:2025-03-31", date(2025, 4, 7)),
        ("rule-rent:2025-04-30", date(2025, 4, 30)),
    ]


def test_postponed_override_on_non_occurrence_date_is_ignored(rent_rule: RecurringRule):
    """Test an override keyed on a date the rule never schedules stays inert"""
    override = Override(rule_id="rule-rent", occurrence_date=date(2025, 3, 15), effective_date=date(2025, 4, 7))
    snapshot = compute_snapshot([], [rent_rule], [override], date(2025, 4, 1), date(2025, 4, 30), date(2025, 4, 1))

    assert [r.effective_date for r in snapshot.rows] == [date(2025, 4, 30)]


def test_skipped_occurrence_never_appears(rent_rule: RecurringRule):
    skip = Override(rule_id="rule-rent", occurrence_date=date(2025, 3, 31), skipped=True)

    for start, end in [
        (date(2025, 3, 1), date(2025, 3, 31)),
        (date(2025, 3, 31), date(2025, 3, 31)),
        (date(2025, 1, 1), date(2025, 12, 31)),
    ]:
        snapshot = compute_snapshot([], [rent_rule], [skip], start, end, start)
        assert "rule-rent:2025-03-31" not in {r.occurrence_id for r in snapshot.rows}


def test_skipped_postponed_occurrence_never_appears(rent_rule: RecurringRule):
    skip = Override(
        rule_id="rule-rent",
        occurrence_date=date(2025, 3, 31),
        effective_date=date(2025, 4, 7),
        skipped=True,
    )
    snapshot = compute_snapshot([], [rent_rule], [skip], date(2025, 4, 1), date(2025, 4, 30), date(2025, 4, 1))

    assert [r.occurrence_id for r in snapshot.rows] == ["rule-rent:2025-04-30"]


def test_orphaned_override_is_inert(rent_rule: RecurringRule):
    orphans = [
        Override(rule_id="deleted-rule", occurrence_date=date(2025, 3, 31), skipped=True),
        Override(rule_id="deleted-rule", occurrence_date=date(2025, 2, 28), effective_date=date(2025, 3, 5)),
    ]
    with_orphans = compute_snapshot(
        [], [rent_rule], orphans, date(2025, 3, 1), date(2025, 3, 31), date(2025, 3, 1)
    )
    without = compute_snapshot([], [rent_rule], [], date(2025, 3, 1), date(2025, 3, 31), date(2025, 3, 1))

    assert with_orphans.rows == without.rows


def test_idempotent_and_inputs_untouched(rent_rule, paycheck_rule, gym_rule, sample_entries):
    rules = [gym_rule, rent_rule, paycheck_rule]
    overrides = [
        Override(rule_id="rule-gym", occurrence_date=date(2025, 11, 7), effective_date=date(2025, 11, 8)),
        Override(rule_id="rule-rent", occurrence_date=date(2025, 11, 30), is_paid=True, paid_on=date(2025, 11, 29)),
    ]
    before = copy.deepcopy((sample_entries, rules, overrides))

    first = compute_snapshot(sample_entries, rules, overrides, date(2025, 11, 1), date(2025, 11, 30), date(2025, 11, 10))
    second = compute_snapshot(sample_entries, rules, overrides, date(2025, 11, 1), date(2025, 11, 30), date(2025, 11, 10))

    assert first == second
    assert [r.occurrence_id for r in first.rows] == [r.occurrence_id for r in second.rows]
    assert (sample_entries, rules, overrides) == before


def test_rows_sorted_by_effective_date_then_description():
    entries = [
        OneTimeEntry(id="3", type="expense", category="bill", description="Water", amount_cents=1, due_date=date(2025, 5, 2)),
        OneTimeEntry(id="1", type="expense", category="bill", description="Power", amount_cents=1, due_date=date(2025, 5, 2)),
        OneTimeEntry(id="2", type="expense", category="bill", description="Zoo", amount_cents=1, due_date=date(2025, 5, 1)),
    ]
    snapshot = compute_snapshot(entries, [], [], date(2025, 5, 1), date(2025, 5, 31), date(2025, 5, 1))

    assert [r.description for r in snapshot.rows] == ["Zoo", "Power", "Water"]


def test_entries_outside_window_are_dropped(sample_entries: list[OneTimeEntry]):
    snapshot = compute_snapshot(sample_entries, [], [], date(2025, 11, 6), date(2025, 11, 12), date(2025, 11, 6))
    assert [r.occurrence_id for r in snapshot.rows] == ["entry-phone"]


def test_duplicate_entries_are_collapsed(sample_entries: list[OneTimeEntry]):
    doubled = sample_entries + sample_entries
    snapshot = compute_snapshot(doubled, [], [], date(2025, 11, 1), date(2025, 11, 30), date(2025, 11, 1))
    assert len(snapshot.rows) == 3


def test_one_time_row_has_no_rule_id(sample_entries: list[OneTimeEntry]):
    row = compute_snapshot(sample_entries[:1], [], [], date(2025, 11, 1), date(2025, 11, 30), date(2025, 11, 1)).rows[0]

    assert isinstance(row, OneTimeRow)
    assert not hasattr(row, "rule_id")
    assert row.occurrence_id == "entry-car"


def test_inverted_window_returns_empty(rent_rule, sample_entries):
    snapshot = compute_snapshot(sample_entries, [rent_rule], [], date(2025, 11, 30), date(2025, 11, 1), date(2025, 11, 1))

    assert snapshot.rows == []
    assert snapshot.totals.total_expenses_cents == 0


def test_malformed_rule_is_surfaced(rent_rule: RecurringRule):
    bad = replace(rent_rule, id="rule-bad", dom=32)

    with pytest.raises(InvalidRuleError) as exc_info:
        compute_snapshot([], [rent_rule, bad], [], date(2025, 3, 1), date(2025, 3, 31), date(2025, 3, 1))
    assert exc_info.value.rule_id == "rule-bad"


def test_adjacent_windows_partition_with_postponements(rent_rule, paycheck_rule, gym_rule):
    """Test [a,b] and [b+1,c] split [a,c] exactly, even across a postponement"""
    rules = [rent_rule, paycheck_rule, gym_rule]
    overrides = [
        # Crosses the boundary between the two windows
        Override(rule_id="rule-rent", occurrence_date=date(2025, 6, 30), effective_date=date(2025, 7, 3)),
        Override(rule_id="rule-pay", occurrence_date=date(2025, 2, 3), skipped=True),
    ]
    a, b, c = date(2025, 1, 1), date(2025, 6, 30), date(2025, 12, 31)
    today = date(2025, 6, 1)

    first = compute_snapshot([], rules, overrides, a, b, today).rows
    second = compute_snapshot([], rules, overrides, b + timedelta(days=1), c, today).rows
    whole = compute_snapshot([], rules, overrides, a, c, today).rows

    first_ids = {r.occurrence_id for r in first}
    second_ids = {r.occurrence_id for r in second}
    assert not first_ids & second_ids
    assert first_ids | second_ids == {r.occurrence_id for r in whole}
    assert "rule-rent:2025-06-30" in second_ids


def test_totals(sample_entries: list[OneTimeEntry]):
    snapshot = compute_snapshot(sample_entries, [], [], date(2025, 11, 1), date(2025, 11, 30), date(2025, 11, 10))

    assert snapshot.totals.total_income_cents == 80000
    assert snapshot.totals.total_expenses_cents == 51000
    assert snapshot.totals.remaining_to_pay_cents == 45000


def test_compute_totals_empty():
    totals = compute_totals([])
    assert (totals.total_income_cents, totals.total_expenses_cents, totals.remaining_to_pay_cents) == (0, 0, 0)


def test_dashboard_kpis(gym_rule: RecurringRule, sample_entries: list[OneTimeEntry]):
    """Test KPI counts on 2025-11-14: car repair and the Nov 7 gym fee overdue, today's gym fee due"""
    snapshot = compute_snapshot(
        sample_entries, [gym_rule], [], date(2025, 11, 1), date(2025, 11, 30), date(2025, 11, 14)
    )
    kpis = dashboard_kpis(snapshot.rows)

    assert kpis.bills_due_today == 1
    assert kpis.overdue_bills == 2


def test_upcoming_unpaid_filters_income_and_paid(gym_rule, sample_entries):
    snapshot = compute_snapshot(
        sample_entries, [gym_rule], [], date(2025, 11, 10), date(2025, 11, 20), date(2025, 11, 10)
    )
    upcoming = upcoming_unpaid(snapshot.rows)

    assert [r.occurrence_id for r in upcoming] == ["rule-gym:2025-11-14"]


def test_deduplicate_rows_across_overlapping_windows(rent_rule: RecurringRule):
    """Test merging overlapping window results keeps one row per occurrence"""
    today = date(2025, 3, 1)
    march = compute_snapshot([], [rent_rule], [], date(2025, 3, 1), date(2025, 4, 15), today).rows
    april = compute_snapshot([], [rent_rule], [], date(2025, 3, 20), date(2025, 4, 30), today).rows

    merged = deduplicate_rows(march, april)

    assert [r.occurrence_id for r in merged] == ["rule-rent:2025-03-31", "rule-rent:2025-04-30"]


def test_deduplicate_rows_later_set_wins(rent_rule: RecurringRule):
    window = (date(2025, 3, 1), date(2025, 4, 30))
    before = compute_snapshot([], [rent_rule], [], *window, date(2025, 3, 1)).rows
    paid = Override(rule_id="rule-rent", occurrence_date=date(2025, 3, 31), is_paid=True, paid_on=date(2025, 3, 31))
    after = compute_snapshot([], [rent_rule], [paid], *window, date(2025, 3, 1)).rows

    merged = deduplicate_rows(before, after)

    assert len(merged) == 2
    assert merged[0].is_paid is True


def test_window_ending_at_last_representable_date(gym_rule, paycheck_rule, rent_rule):
    """Test a snapshot running to date.max completes without overflow"""
    snapshot = compute_snapshot(
        [], [gym_rule, paycheck_rule, rent_rule], [], date(9999, 12, 1), date.max, date(9999, 12, 1)
    )

    gym_dates = [r.effective_date for r in snapshot.rows if r.rule_id == "rule-gym"]
    assert gym_dates[-1] == date.max
    assert len(gym_dates) == 5
    assert all(r.effective_date <= date.max for r in snapshot.rows)
