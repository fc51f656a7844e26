from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from leadops.api.routes import router as api_router
from leadops.core.config import get_settings
from leadops.core.events import DomainEvent, event_bus
from leadops.logging import configure_logging
from leadops.middleware.correlation_id import CorrelationIdMiddleware
from leadops.middleware.request_logging import RequestLoggingMiddleware
from leadops.otel import get_fastapi_server_request_hook, setup_otel


configure_logging()
logger = logging.getLogger("leadops.lifecycle")
_subscriptions_registered = False

_domain_event_types = [
    "enquiry.created",
    "enquiry.deleted",
    "enquiry.status_changed",
    "enquiry.assigned",
    "enquiries.bulk_assigned",
    "job_order.created",
    "job_order.reassigned",
    "job_order.deleted",
    "job_lead.status_updated",
]


def _on_system_started(event: DomainEvent) -> None:
    logger.info("system_event", extra={"event_name": event.name})


def _on_domain_event(event: DomainEvent) -> None:
    logger.debug("domain_event", extra={"event_name": event.name})


@asynccontextmanager
async def lifespan(app: FastAPI):
    global _subscriptions_registered
    if not _subscriptions_registered:
        event_bus.subscribe("system.started", _on_system_started)
        for event_name in _domain_event_types:
            event_bus.subscribe(event_name, _on_domain_event)
        _subscriptions_registered = True
    event_bus.publish("system.started", {"service": "leadops-api"})
    yield


settings = get_settings()

app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)
app.include_router(api_router)

if settings.otel_enabled:
    setup_otel(settings.otel_service_name, settings)

if not getattr(app, "_is_instrumented_by_opentelemetry", False):
    FastAPIInstrumentor().instrument_app(app, server_request_hook=get_fastapi_server_request_hook())
