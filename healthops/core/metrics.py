"""
Prometheus instruments, exposed through the /metrics ASGI app mounted in main.
"""
from prometheus_client import Counter, Histogram

BULK_RUNS = Counter(
    "bulk_operation_runs_total",
    "Bulk operation runs by entity type, operation and terminal status",
    ["entity_type", "operation", "status"],
)

BULK_ITEMS = Counter(
    "bulk_operation_items_total",
    "Bulk operation items by outcome",
    ["entity_type", "operation", "outcome"],
)

BULK_RUN_SECONDS = Histogram(
    "bulk_operation_duration_seconds",
    "Wall time of a bulk operation run",
    ["entity_type", "operation"],
)

HEALTH_CALCULATIONS = Counter(
    "health_score_calculations_total",
    "Health score calculations by resulting status tier",
    ["health_status"],
)

HEALTH_OVERALL_SCORE = Histogram(
    "health_score_overall",
    "Distribution of computed overall health scores",
    buckets=(10, 20, 30, 40, 50, 60, 70, 80, 90, 100),
)
