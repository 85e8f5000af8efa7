"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from incubator_gateway.api.middleware import RequestIDMiddleware, MetricsMiddleware
from incubator_gateway.api.v1 import deposits, incubator
from incubator_gateway.infrastructure.observability.logging import setup_logging
from incubator_gateway.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Incubator Gateway",
        description="Incubator deposit tracking read API",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(deposits.router, prefix="/v1", tags=["deposits"])
    app.include_router(incubator.router, prefix="/v1", tags=["incubator"])

    return app


app = create_app()
