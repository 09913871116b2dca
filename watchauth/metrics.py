"""Prometheus metrics for the watch authenticator."""

from prometheus_client import Counter, Histogram, Info

# Application info
app_info = Info("watchauth", "Watch authenticator application info")
app_info.info({"version": "0.1.0", "name": "watchauth"})

# Matching metrics
match_requests_total = Counter(
    "match_requests_total",
    "Total number of reference match requests",
    ["outcome"],
)

match_duration_seconds = Histogram(
    "match_duration_seconds",
    "Time spent scoring candidates for a match request",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

match_candidates_scanned = Histogram(
    "match_candidates_scanned",
    "Number of reference candidates scored per match request",
    buckets=[0, 1, 5, 10, 25, 50, 100],
)

# Reference library metrics
reference_writes_total = Counter(
    "reference_writes_total",
    "Total number of reference watch writes",
    ["operation"],
)

# History metrics
history_appends_total = Counter(
    "history_appends_total",
    "Total number of analysis history rows appended",
)

# Extraction metrics
extraction_requests_total = Counter(
    "extraction_requests_total",
    "Total number of AI photo extraction calls",
    ["status"],
)

extraction_duration_seconds = Histogram(
    "extraction_duration_seconds",
    "Time spent waiting on the AI photo extraction provider",
    buckets=[1.0, 2.5, 5.0, 10.0, 20.0, 30.0, 60.0],
)

# Database metrics
db_errors_total = Counter(
    "db_errors_total",
    "Total number of database operations that failed",
    ["operation"],
)
