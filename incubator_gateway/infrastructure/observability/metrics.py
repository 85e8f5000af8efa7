"""Prometheus metrics for monitoring deposit lookups, cache behaviour and ledger RPC health"""

from prometheus_client import Counter, Histogram

# Deposit lookup metrics
deposit_lookup_counter = Counter(
    "incubator_deposit_lookup_total",
    "Total deposit lookups served",
    ["outcome"],  # cache_hit | ledger | stale_fallback | failed
)

deposit_pipeline_histogram = Histogram(
    "incubator_deposit_pipeline_seconds",
    "Time to scan the incubator history and aggregate one wallet",
    buckets=[0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0],
)

# Ledger RPC metrics
ledger_rpc_latency_histogram = Histogram(
    "ledger_rpc_latency_seconds",
    "Ledger JSON-RPC response time",
    ["method"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

ledger_rpc_failure_counter = Counter(
    "ledger_rpc_failures_total",
    "Failed ledger JSON-RPC calls",
    ["method"],
)

detail_batch_counter = Counter(
    "ledger_detail_batches_total",
    "Transaction detail batches fetched",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_lookup(outcome: str) -> None:
    """Record the outcome of one deposit lookup"""
    deposit_lookup_counter.labels(outcome=outcome).inc()
