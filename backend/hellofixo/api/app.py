"""
FastAPI application entry point with health check route.
"""
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from fastapi.exceptions import RequestValidationError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from hellofixo.api.routes import bookings, catalog, location, partners, profile, quotes, referrals, wallet
from hellofixo.api.middleware.error_handler import (
    AppException,
    app_exception_handler,
    upstream_error_handler,
    validation_exception_handler,
    http_exception_handler,
    unhandled_exception_handler,
)
from hellofixo.clients.http import UpstreamError
from hellofixo.clients.public_apis import GeocoderClient, PostalClient
from hellofixo.clients.supabase import SupabaseGateway
from hellofixo.lib.logging import get_logger, set_correlation_id
from hellofixo.lib.metrics import get_metrics_collector
from hellofixo.lib.settings import settings

logger = get_logger(__name__)


# Correlation ID middleware
class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add correlation_id to all requests for distributed tracing.
    Accepts X-Correlation-ID from incoming requests or generates a new one,
    and forwards it on every outbound call made while handling the request.
    """

    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get("X-Correlation-ID", str(uuid.uuid4()))

        request.state.correlation_id = correlation_id
        set_correlation_id(correlation_id)

        logger.info(
            "Incoming request",
            extra={
                "correlation_id": correlation_id,
                "method": request.method,
                "path": request.url.path,
                "client": request.client.host if request.client else None,
            }
        )

        try:
            response = await call_next(request)
        finally:
            set_correlation_id(None)

        response.headers["X-Correlation-ID"] = correlation_id

        logger.info(
            "Response sent",
            extra={
                "correlation_id": correlation_id,
                "status_code": response.status_code,
            }
        )

        return response


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager: one set of remote clients per process.
    """
    logger.info(f"{settings.app_name} starting up...")
    app.state.gateway = SupabaseGateway()
    app.state.postal = PostalClient()
    app.state.geocoder = GeocoderClient()
    try:
        yield
    finally:
        await app.state.gateway.aclose()
        await app.state.postal.aclose()
        await app.state.geocoder.aclose()
        logger.info(f"{settings.app_name} shutting down...")


app = FastAPI(
    title=settings.app_name,
    version="1.0.0",
    description="Booking, pricing, serviceability and partner onboarding APIs for doorstep repairs",
    lifespan=lifespan,
)


# CORS middleware - configure allowed origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Correlation ID middleware
app.add_middleware(CorrelationIdMiddleware)


# Register exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(UpstreamError, upstream_error_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)


# Include routers
app.include_router(catalog.router)
app.include_router(location.router)
app.include_router(referrals.router)
app.include_router(bookings.router)
app.include_router(quotes.router)
app.include_router(wallet.router)
app.include_router(profile.router)
app.include_router(partners.router)


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


@app.get("/metrics", include_in_schema=False)
def metrics_endpoint():
    """
    Prometheus-compatible metrics endpoint.

    Metrics exposed:
    - bookings_submitted_total: Booking submissions by outcome
    - referral_checks_total: Referral verifications by result
    - serviceability_checks_total: Pincode checks by result
    - upstream_requests_total: Remote calls by service and outcome

    Returns:
        Prometheus text format metrics
    """
    metrics = get_metrics_collector()
    return PlainTextResponse(
        content=metrics.export_prometheus(),
        media_type="text/plain; version=0.0.4",
    )
