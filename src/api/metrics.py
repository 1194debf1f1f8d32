from prometheus_client import Counter, Histogram, Gauge, REGISTRY


# we check if they are already registered to avoid errors during hot reloads or test runs
def get_or_create_metric(name, documentation, metric_type, **kwargs):
    try:
        # Try to create it
        return metric_type(name, documentation, **kwargs)
    except ValueError:
        # If it already exists, retrieve it from the registry
        return REGISTRY._names_to_collectors[name]


REQUESTS_TOTAL = get_or_create_metric(
    "dayshift_requests_total",
    "Total requests",
    Counter,
    labelnames=["endpoint", "status"],
)

REQUEST_LATENCY_SECONDS = get_or_create_metric(
    "dayshift_request_latency_seconds",
    "Request latency",
    Histogram,
    labelnames=["endpoint"],
)

LATE_SHIFTS_TOTAL = get_or_create_metric(
    "dayshift_late_shifts_total",
    "Late-shift requests by outcome",
    Counter,
    labelnames=["outcome"],
)

CONFLICTS_DETECTED_TOTAL = get_or_create_metric(
    "dayshift_conflicts_detected_total", "Conflicts found after late shifts", Counter
)

SUGGESTIONS_TOTAL = get_or_create_metric(
    "dayshift_suggestions_total",
    "Suggestions produced, by kind",
    Counter,
    labelnames=["kind"],
)

COMPLETIONS_RECORDED_TOTAL = get_or_create_metric(
    "dayshift_completions_recorded_total", "Actual durations recorded", Counter
)

LEARN_SAVE_FAILURES_TOTAL = get_or_create_metric(
    "dayshift_learn_save_failures_total", "Failed writes of learning stats", Counter
)

LEARN_KEYS = get_or_create_metric(
    "dayshift_learn_keys", "Activity keys with learned durations", Gauge
)
