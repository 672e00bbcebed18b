"""Data access layer for budget entities.

Repositories hand out domain dataclasses, never ORM rows, so the snapshot
engine only ever sees already-loaded plain collections. Writes flush; the
caller owns the commit.
"""

import uuid
from datetime import date
from typing import List, Optional
from sqlalchemy.orm import Session
from budget_gateway.infrastructure.database.models import BudgetEntry, BudgetRule, BudgetRuleOverride
from budget_gateway.domain.models import OneTimeEntry, RecurringRule, Override
from budget_gateway.domain.exceptions import EntryNotFoundError, RuleNotFoundError
from budget_gateway.domain.recurrence import validate_rule


class EntryRepository:
    """Repository for one-time entries"""

    def __init__(self, db: Session):
        self.db = db

    def list_for_user(
        self,
        user_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[OneTimeEntry]:
        """Entries for a user, optionally limited to a due-date range"""
        query = self.db.query(BudgetEntry).filter(BudgetEntry.user_id == user_id)
        if start is not None:
            query = query.filter(BudgetEntry.due_date >= start)
        if end is not None:
            query = query.filter(BudgetEntry.due_date <= end)
        return [_entry_to_domain(e) for e in query.order_by(BudgetEntry.due_date).all()]

    def upsert_entry(
        self,
        user_id: str,
        entry_id: Optional[uuid.UUID],
        type_: str,
        category: str,
        description: str,
        amount_cents: int,
        due_date: date,
    ) -> OneTimeEntry:
        """Create an entry, or update it in place when ``entry_id`` is given"""
        if entry_id is None:
            db_entry = BudgetEntry(user_id=user_id)
            self.db.add(db_entry)
        else:
            db_entry = self._get(user_id, entry_id)

        db_entry.type = type_
        db_entry.category = category
        db_entry.description = description
        db_entry.amount_cents = amount_cents
        db_entry.due_date = due_date
        self.db.flush()
        return _entry_to_domain(db_entry)

    def delete_entry(self, user_id: str, entry_id: uuid.UUID) -> None:
        self.db.delete(self._get(user_id, entry_id))
        self.db.flush()

    def mark_entry_paid(self, user_id: str, entry_id: uuid.UUID, paid_on: date) -> OneTimeEntry:
        db_entry = self._get(user_id, entry_id)
        db_entry.paid_on = paid_on
        self.db.flush()
        return _entry_to_domain(db_entry)

    def postpone_entry(self, user_id: str, entry_id: uuid.UUID, new_date: date) -> OneTimeEntry:
        """Move a one-time entry to a new due date"""
        db_entry = self._get(user_id, entry_id)
        db_entry.due_date = new_date
        self.db.flush()
        return _entry_to_domain(db_entry)

    def _get(self, user_id: str, entry_id: uuid.UUID) -> BudgetEntry:
        db_entry = (
            self.db.query(BudgetEntry)
            .filter(BudgetEntry.id == entry_id, BudgetEntry.user_id == user_id)
            .first()
        )
        if db_entry is None:
            raise EntryNotFoundError(f"Entry {entry_id} not found")
        return db_entry


class RuleRepository:
    """Repository for recurring rules"""

    def __init__(self, db: Session):
        self.db = db

    def list_for_user(self, user_id: str) -> List[RecurringRule]:
        """All rules for a user, inactive included (expansion skips those)"""
        rules = (
            self.db.query(BudgetRule)
            .filter(BudgetRule.user_id == user_id)
            .order_by(BudgetRule.created_at, BudgetRule.id)
            .all()
        )
        return [_rule_to_domain(r) for r in rules]

    def get_rule(self, user_id: str, rule_id: uuid.UUID) -> Optional[RecurringRule]:
        db_rule = self._find(user_id, rule_id)
        return _rule_to_domain(db_rule) if db_rule else None

    def upsert_rule(
        self,
        user_id: str,
        rule_id: Optional[uuid.UUID],
        type_: str,
        category: str,
        description: str,
        amount_cents: int,
        frequency: str,
        start_anchor: date,
        dom: Optional[int] = None,
        dow: Optional[int] = None,
        end_date: Optional[date] = None,
        active: bool = True,
    ) -> RecurringRule:
        """
        Create or update a rule.

        The rule is validated before anything is written.

        Raises:
            InvalidRuleError: rule fields are inconsistent
            RuleNotFoundError: ``rule_id`` given but unknown for this user
        """
        validate_rule(
            RecurringRule(
                id=str(rule_id) if rule_id else "new",
                type=type_,
                category=category,
                description=description,
                amount_cents=amount_cents,
                frequency=frequency,
                start_anchor=start_anchor,
                dom=dom,
                dow=dow,
                active=active,
                end_date=end_date,
            )
        )

        if rule_id is None:
            db_rule = BudgetRule(user_id=user_id)
            self.db.add(db_rule)
        else:
            db_rule = self._find(user_id, rule_id)
            if db_rule is None:
                raise RuleNotFoundError(f"Rule {rule_id} not found")

        db_rule.type = type_
        db_rule.category = category
        db_rule.description = description
        db_rule.amount_cents = amount_cents
        db_rule.frequency = frequency
        db_rule.dom = dom
        db_rule.dow = dow
        db_rule.start_anchor = start_anchor
        db_rule.end_date = end_date
        db_rule.active = active
        self.db.flush()
        return _rule_to_domain(db_rule)

    def delete_rule(self, user_id: str, rule_id: uuid.UUID) -> None:
        """Delete a rule; its overrides stay behind and become inert"""
        db_rule = self._find(user_id, rule_id)
        if db_rule is None:
            raise RuleNotFoundError(f"Rule {rule_id} not found")
        self.db.delete(db_rule)
        self.db.flush()

    def _find(self, user_id: str, rule_id: uuid.UUID) -> Optional[BudgetRule]:
        return (
            self.db.query(BudgetRule)
            .filter(BudgetRule.id == rule_id, BudgetRule.user_id == user_id)
            .first()
        )


class OverrideRepository:
    """Repository for per-occurrence overrides.

    One row per (user, rule, occurrence_date), created on the first mutation.
    Later mutations only touch their own column, so postponing keeps payment
    state and paying keeps the postponed date.
    """

    def __init__(self, db: Session):
        self.db = db

    def list_for_user(self, user_id: str) -> List[Override]:
        overrides = self.db.query(BudgetRuleOverride).filter(BudgetRuleOverride.user_id == user_id).all()
        return [_override_to_domain(o) for o in overrides]

    def mark_occurrence_paid(
        self, user_id: str, rule_id: uuid.UUID, occurrence_date: date, paid_on: date
    ) -> Override:
        db_override = self._get_or_create(user_id, rule_id, occurrence_date)
        db_override.paid_on = paid_on
        self.db.flush()
        return _override_to_domain(db_override)

    def postpone_occurrence(
        self, user_id: str, rule_id: uuid.UUID, occurrence_date: date, new_date: date
    ) -> Override:
        db_override = self._get_or_create(user_id, rule_id, occurrence_date)
        # Postponing back onto the scheduled date clears the postponement
        db_override.new_date = None if new_date == occurrence_date else new_date
        self.db.flush()
        return _override_to_domain(db_override)

    def skip_occurrence(self, user_id: str, rule_id: uuid.UUID, occurrence_date: date) -> Override:
        db_override = self._get_or_create(user_id, rule_id, occurrence_date)
        db_override.skipped = True
        self.db.flush()
        return _override_to_domain(db_override)

    def get_override(self, user_id: str, rule_id: uuid.UUID, occurrence_date: date) -> Optional[Override]:
        db_override = self._find(user_id, rule_id, occurrence_date)
        return _override_to_domain(db_override) if db_override else None

    def _find(self, user_id: str, rule_id: uuid.UUID, occurrence_date: date) -> Optional[BudgetRuleOverride]:
        return (
            self.db.query(BudgetRuleOverride)
            .filter(
                BudgetRuleOverride.user_id == user_id,
                BudgetRuleOverride.rule_id == rule_id,
                BudgetRuleOverride.occurrence_date == occurrence_date,
            )
            .first()
        )

    def _get_or_create(self, user_id: str, rule_id: uuid.UUID, occurrence_date: date) -> BudgetRuleOverride:
        db_override = self._find(user_id, rule_id, occurrence_date)
        if db_override is None:
            db_override = BudgetRuleOverride(
                user_id=user_id,
                rule_id=rule_id,
                occurrence_date=occurrence_date,
                skipped=False,
            )
            self.db.add(db_override)
        return db_override


def _entry_to_domain(db_entry: BudgetEntry) -> OneTimeEntry:
    return OneTimeEntry(
        id=str(db_entry.id),
        type=db_entry.type,
        category=db_entry.category,
        description=db_entry.description,
        amount_cents=db_entry.amount_cents,
        due_date=db_entry.due_date,
        is_paid=db_entry.paid_on is not None,
        paid_on=db_entry.paid_on,
    )


def _rule_to_domain(db_rule: BudgetRule) -> RecurringRule:
    return RecurringRule(
        id=str(db_rule.id),
        type=db_rule.type,
        category=db_rule.category,
        description=db_rule.description,
        amount_cents=db_rule.amount_cents,
        frequency=db_rule.frequency,
        start_anchor=db_rule.start_anchor,
        dom=db_rule.dom,
        dow=db_rule.dow,
        active=db_rule.active,
        end_date=db_rule.end_date,
    )


def _override_to_domain(db_override: BudgetRuleOverride) -> Override:
    return Override(
        rule_id=str(db_override.rule_id),
        occurrence_date=db_override.occurrence_date,
        effective_date=db_override.new_date,
        is_paid=db_override.paid_on is not None,
        paid_on=db_override.paid_on,
        skipped=db_override.skipped,
        updated_at=db_override.updated_at,
    )
