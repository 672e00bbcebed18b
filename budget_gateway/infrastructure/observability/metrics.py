"""Prometheus metrics for snapshot volume, budget mutations and rule errors"""

from prometheus_client import Counter, Histogram

# Snapshot metrics
snapshot_counter = Counter(
    "budget_snapshot_total",
    "Total budget snapshots computed",
    ["view"],  # window | month | kpis | week
)

snapshot_rows_histogram = Histogram(
    "budget_snapshot_rows",
    "Rows materialized per snapshot",
    buckets=[0, 5, 10, 25, 50, 100, 250, 500],
)

# Mutation metrics
mutation_counter = Counter(
    "budget_mutation_total",
    "Writes to entries, rules and overrides",
    ["action"],
)

invalid_rule_counter = Counter(
    "budget_invalid_rule_total",
    "Rules rejected as malformed",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_snapshot(view: str, row_count: int) -> None:
    """Record snapshot metrics for monitoring query volume and result size"""
    snapshot_counter.labels(view=view).inc()
    snapshot_rows_histogram.observe(row_count)


def record_mutation(action: str) -> None:
    mutation_counter.labels(action=action).inc()
