"""SQLAlchemy ORM models for budget entries, rules and rule overrides"""

import uuid
from sqlalchemy import Column, BigInteger, Boolean, DateTime, Date, Integer, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class BudgetEntry(Base):
    """One-time income or expense"""

    __tablename__ = "budget_entries"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    type = Column(Text, nullable=False)
    category = Column(Text, nullable=False, default="other")
    description = Column(Text, nullable=False, default="")
    amount_cents = Column(BigInteger, nullable=False)
    due_date = Column(Date, nullable=False, index=True)
    paid_on = Column(Date, nullable=True)  # NULL means unpaid
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class BudgetRule(Base):
    """Recurring billing/income rule"""

    __tablename__ = "budget_rules"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    type = Column(Text, nullable=False)
    category = Column(Text, nullable=False, default="other")
    description = Column(Text, nullable=False, default="")
    amount_cents = Column(BigInteger, nullable=False)
    frequency = Column(Text, nullable=False)
    dom = Column(Integer, nullable=True)
    dow = Column(Integer, nullable=True)
    start_anchor = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class BudgetRuleOverride(Base):
    """Exception for one occurrence of a rule.

    No foreign key to budget_rules: deleting a rule leaves its overrides behind,
    where they are simply never matched again.
    """

    __tablename__ = "budget_rule_overrides"
    __table_args__ = (UniqueConstraint("user_id", "rule_id", "occurrence_date", name="uq_override_occurrence"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    rule_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    occurrence_date = Column(Date, nullable=False)
    new_date = Column(Date, nullable=True)  # Set when postponed
    paid_on = Column(Date, nullable=True)
    skipped = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
