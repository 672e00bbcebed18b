"""FastAPI application factory for the budget gateway"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from budget_gateway.api.middleware import RequestIDMiddleware, MetricsMiddleware
from budget_gateway.api.v1 import snapshot, dashboard, entries, rules
from budget_gateway.infrastructure.observability.logging import setup_logging
from budget_gateway.config import settings
from budget_gateway.utils.date_utils import local_today

setup_logging(settings.log_level)

V1_ROUTERS = [
    (snapshot.router, "snapshot"),
    (dashboard.router, "dashboard"),
    (entries.router, "entries"),
    (rules.router, "rules"),
]


def create_app() -> FastAPI:
    """Build the app: tracing and latency middleware, health, metrics and the /v1 routes"""
    app = FastAPI(
        title="Budget Gateway",
        description="Recurring bills expansion and budget snapshot service",
        version="0.1.0",
    )

    # Last added runs first, so every request has an id before it is timed
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    def health_check():
        """Liveness plus the calendar date snapshots default to"""
        return {
            "status": "ok",
            "service": settings.service_name,
            "timezone": settings.timezone,
            "today": local_today(settings.timezone).isoformat(),
        }

    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    for router, tag in V1_ROUTERS:
        app.include_router(router, prefix="/v1", tags=[tag])

    return app


app = create_app()
