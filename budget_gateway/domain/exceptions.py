"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidRuleError(DomainException):
    """Recurring rule is misconfigured (bad frequency, dom/dow, amount or bounds)"""

    def __init__(self, rule_id: str, reason: str):
        super().__init__(f"Rule {rule_id}: {reason}")
        self.rule_id = rule_id
        self.reason = reason


class EntryNotFoundError(DomainException):
    """One-time entry does not exist for this user"""

    pass


class RuleNotFoundError(DomainException):
    """Recurring rule does not exist for this user"""

    pass
