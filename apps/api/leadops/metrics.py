from __future__ import annotations

import re

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.requests import Request


http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)

lead_assignments_total = Counter(
    "lead_assignments_total",
    "Lead assignment attempts by mode and outcome",
    ["mode", "outcome"],
)

lead_assignment_duration_seconds = Histogram(
    "lead_assignment_duration_seconds",
    "Lead assignment transaction duration in seconds",
    ["mode"],
)

enquiry_activities_total = Counter(
    "enquiry_activities_total",
    "Total enquiry activities recorded by type",
    ["activity_type"],
)

job_lead_status_updates_total = Counter(
    "job_lead_status_updates_total",
    "Total job lead status updates by target status",
    ["status"],
)

notifications_sent_total = Counter(
    "notifications_sent_total",
    "Total notifications persisted by type",
    ["notification_type"],
)

notifications_failed_total = Counter(
    "notifications_failed_total",
    "Total notifications that could not be persisted",
    ["notification_type"],
)


_UUID_RE = re.compile(
    r"\b[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[1-5][0-9a-fA-F]{3}-[89abAB][0-9a-fA-F]{3}-[0-9a-fA-F]{12}\b"
)
_INT_RE = re.compile(r"/\d+\b")
_PATH_PARAM_RE = re.compile(r"\{[^{}]+\}")


def _normalize_route_template(path: str) -> str:
    return _PATH_PARAM_RE.sub("{id}", path)


def _sanitize_path(path: str) -> str:
    without_uuids = _UUID_RE.sub("{id}", path)
    return _INT_RE.sub("/{id}", without_uuids)


def resolve_http_path_label(request: Request) -> str:
    route = request.scope.get("route")
    if route is not None:
        path_format = getattr(route, "path_format", None)
        if isinstance(path_format, str) and path_format:
            return _normalize_route_template(path_format)
        route_path = getattr(route, "path", None)
        if isinstance(route_path, str) and route_path:
            return _normalize_route_template(route_path)
    return _sanitize_path(request.url.path)


def observe_http_request(method: str, path: str, status: int, duration: float) -> None:
    http_requests_total.labels(method=method, path=path, status=str(status)).inc()
    http_request_duration_seconds.labels(method=method, path=path).observe(duration)


def observe_lead_assignment(mode: str, outcome: str, duration: float | None = None) -> None:
    lead_assignments_total.labels(mode=mode, outcome=outcome).inc()
    if duration is not None:
        lead_assignment_duration_seconds.labels(mode=mode).observe(duration)


def observe_enquiry_activity(activity_type: str) -> None:
    enquiry_activities_total.labels(activity_type=activity_type).inc()


def observe_job_lead_status_update(status: str) -> None:
    job_lead_status_updates_total.labels(status=status).inc()


def observe_notification_sent(notification_type: str) -> None:
    notifications_sent_total.labels(notification_type=notification_type).inc()


def observe_notification_failed(notification_type: str) -> None:
    notifications_failed_total.labels(notification_type=notification_type).inc()


def generate_metrics_payload() -> bytes:
    return generate_latest()


def metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
