from prometheus_client import Counter, Histogram

_HTTP_LABELS = ["method", "path", "status"]

REQUEST_COUNT = Counter("http_requests_total", "Total HTTP requests", _HTTP_LABELS)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    _HTTP_LABELS,
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)
REQUEST_ERRORS = Counter("http_request_errors_total", "Total HTTP 5xx responses", _HTTP_LABELS)

# outcome: ok, not_found, blocked, updated, not_updated, added, not_added, invalid
CRUD_ACTIONS = Counter(
    "crud_actions_total",
    "CRUD widget actions handled",
    ["widget", "action", "outcome"],
)


def observe_crud_action(widget: str, action: str, outcome: str = "ok") -> None:
    CRUD_ACTIONS.labels(widget=widget, action=action, outcome=outcome).inc()
