from prometheus_client import Counter, Histogram, REGISTRY


# we check if they are already registered to avoid errors during hot reloads or test runs
def get_or_create_metric(name, documentation, metric_type, **kwargs):
    try:
        # Try to create it
        return metric_type(name, documentation, **kwargs)
    except ValueError:
        # If it already exists, retrieve it from the registry
        return REGISTRY._names_to_collectors[name]


REQUESTS_TOTAL = get_or_create_metric(
    "smart_calendar_requests_total",
    "Total requests",
    Counter,
    labelnames=["endpoint", "status"],
)

REQUEST_LATENCY_SECONDS = get_or_create_metric(
    "smart_calendar_request_latency_seconds",
    "Request latency",
    Histogram,
    labelnames=["endpoint"],
)

EVENTS_CREATED_TOTAL = get_or_create_metric(
    "smart_calendar_events_created_total", "Events created in the calendar", Counter
)

SUBMISSION_FAILURES_TOTAL = get_or_create_metric(
    "smart_calendar_submission_failures_total",
    "Failed submissions by error type",
    Counter,
    labelnames=["error"],
)

FORCED_LOGOUTS_TOTAL = get_or_create_metric(
    "smart_calendar_forced_logouts_total",
    "Sessions dropped after the provider answered 401",
    Counter,
)
