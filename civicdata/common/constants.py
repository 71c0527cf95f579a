"""Application constants."""

USER_AGENT = "civicdata/1.0 (+nyc-health-equity; contact: configured-email)"
SYNTHETIC_PROVENANCE = "synthetic"
SOURCES_CONFIG_FILENAME = "sources.yml"
DEFAULT_ATTEMPT_TIMEOUT_SECONDS = 8.0
DEFAULT_SYNTHETIC_COUNT = 25
EXIT_SUCCESS = 0
EXIT_PARTIAL = 10
EXIT_HARD_FAIL = 20
JSON_LOG_FIELDS = (
    "timestamp",
    "run_id",
    "component",
    "source",
    "strategy",
    "event",
    "status",
    "attempt",
    "duration_ms",
    "rows_in",
    "rows_out",
    "rejected",
    "error_code",
    "message",
)
