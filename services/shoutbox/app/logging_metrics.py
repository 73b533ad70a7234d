from __future__ import annotations

import contextvars
import json
import logging
from datetime import datetime, timezone
from typing import Any, MutableMapping

from fastapi import APIRouter, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from .buffer_store import RejectReason

UNMATCHED_ROUTE = "unmatched"

registry = CollectorRegistry()
req_counter = Counter(
    "shoutbox_requests_total",
    "Requests by route template",
    ["route", "method", "status"],
    registry=registry,
)
latency_hist = Histogram(
    "shoutbox_latency_seconds",
    "Request latency by route template",
    ["route"],
    registry=registry,
    buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1),
)

messages_accepted_total = Counter(
    "shoutbox_messages_accepted_total", "Messages admitted to the buffer", registry=registry
)
messages_rejected_total = Counter(
    "shoutbox_messages_rejected_total",
    "Messages refused by the admission policy",
    ["reason"],
    registry=registry,
)
buffer_messages = Gauge(
    "shoutbox_buffer_messages", "Messages currently held in the buffer", registry=registry
)
readiness_gauge = Gauge(
    "shoutbox_readiness", "Readiness status (1=ready, 0=not ready)", registry=registry
)

# Known reasons exported at zero so dashboards see them before the first rejection
for _reason in RejectReason:
    messages_rejected_total.labels(reason=_reason.value)


def set_ready() -> None:
    readiness_gauge.set(1)


def set_unready() -> None:
    readiness_gauge.set(0)


def route_label(scope: MutableMapping[str, Any]) -> str:
    """Route template the router matched, so label cardinality stays bounded."""
    route = scope.get("route")
    return getattr(route, "path", None) or UNMATCHED_ROUTE


def observe_request(route: str, method: str, status: int, elapsed: float) -> None:
    latency_hist.labels(route=route).observe(elapsed)
    req_counter.labels(route=route, method=method, status=str(status)).inc()


def record_admission(buffer_len: int, reason: RejectReason | None = None) -> None:
    if reason is None:
        messages_accepted_total.inc()
    else:
        messages_rejected_total.labels(reason=reason.value).inc()
    buffer_messages.set(buffer_len)


correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id", default=None
)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        cid = correlation_id.get()
        if cid:
            payload["correlation_id"] = cid
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def setup_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    root.handlers.clear()
    h = logging.StreamHandler()
    h.setFormatter(JsonFormatter())
    root.addHandler(h)
    root.setLevel(level.upper())
    # uvicorn's access log duplicates the request metrics
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


metrics_router = APIRouter()


@metrics_router.get("/metrics")
def metrics() -> Response:
    return Response(content=generate_latest(registry), media_type=CONTENT_TYPE_LATEST)
