"""Structured JSON logging for snapshot reads and budget writes"""

import logging
import sys
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger
from budget_gateway.config import settings


class BudgetJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter stamping every record with UTC time, level and service name"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Send JSON lines to stdout; SQLAlchemy engine chatter stays at WARNING"""
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(BudgetJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s"))
    root.addHandler(handler)

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def log_snapshot(
    request_id: str,
    user_id: str,
    view: str,
    window_start: date,
    window_end: date,
    row_count: int,
    duration_ms: float,
) -> None:
    """One line per computed snapshot: which view, which window, how many rows"""
    logging.info(
        "Snapshot computed",
        extra={
            "request_id": request_id,
            "user_id": user_id,
            "step": "snapshot_complete",
            "view": view,
            "window_start": window_start.isoformat(),
            "window_end": window_end.isoformat(),
            "row_count": row_count,
            "duration_ms": round(duration_ms, 2),
        },
    )


def log_mutation(request_id: str, user_id: str, action: str, target_id: str) -> None:
    """Log a write to entries, rules or overrides"""
    logging.info(
        "Budget mutation applied",
        extra={
            "request_id": request_id,
            "user_id": user_id,
            "step": "mutation",
            "action": action,
            "target_id": target_id,
        },
    )


def log_invalid_rule(request_id: Optional[str], user_id: str, rule_id: str, reason: str) -> None:
    """Warn about a rule rejected as malformed, on write or while expanding"""
    logging.warning(
        "Invalid recurring rule",
        extra={
            "request_id": request_id,
            "user_id": user_id,
            "step": "rule_validation",
            "rule_id": rule_id,
            "reason": reason,
        },
    )
