"""Prometheus metrics for the API and the mint pipeline."""

from prometheus_client import Counter, Histogram

# HTTP metrics
REQUESTS_TOTAL = Counter(
    "pinmint_http_requests_total",
    "Total number of HTTP requests",
    labelnames=["method", "path"],
)

RESPONSES_TOTAL = Counter(
    "pinmint_http_responses_total",
    "Total number of HTTP responses",
    labelnames=["status_code"],
)

# Pipeline metrics
MINTS_TOTAL = Counter(
    "pinmint_mints_total",
    "Total number of mint invocations by outcome",
    ["outcome"],  # success, success_without_token, or an error category
)

PIN_ATTEMPTS = Counter(
    "pinmint_pin_attempts_total",
    "Total number of pinning attempts",
    ["outcome"],  # pinned, skipped, retry, failed
)

MINT_STAGE_SECONDS = Histogram(
    "pinmint_mint_stage_seconds",
    "Time spent in each mint pipeline stage",
    ["stage"],  # pin, submit, confirm
    buckets=(0.1, 0.5, 1, 2.5, 5, 10, 30, 60, 120, 300),
)

CORRELATION_WRITES = Counter(
    "pinmint_correlation_writes_total",
    "Total number of correlation record writes",
    ["status"],  # stored, failed
)
