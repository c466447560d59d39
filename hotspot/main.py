"""
Main FastAPI application for the hotspot payment backend.
Serves intake, gateway webhook, customer status, router bridge, admin,
health and metrics.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

from hotspot.api.middleware import install_request_middleware
from hotspot.api.routes import admin, health, payments, router as router_bridge, status, webhook
from hotspot.core.errors import AuthError, HotspotError
from hotspot.core.logging import configure_logging
from hotspot.utils.metrics import router as metrics_router


logger = logging.getLogger(__name__)

configure_logging()

app = FastAPI(
    title="Hotspot Payment Backend",
    description="Payment-to-provisioning pipeline for the WiFi hotspot",
    version="1.0.0",
)

install_request_middleware(app)


@app.exception_handler(HotspotError)
async def hotspot_error_handler(request: Request, exc: HotspotError):
    if isinstance(exc, AuthError) and exc.status_code == 403:
        return Response(status_code=403)
    content = {"error": exc.code}
    if exc.status_code < 500:
        content["detail"] = exc.message
    else:
        logger.error(
            "request_failed",
            extra={"path": request.url.path, "error": exc.code, "status_code": exc.status_code},
        )
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"error": "validation_error", "detail": "invalid request"},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled_error", extra={"path": request.url.path})
    return JSONResponse(status_code=500, content={"error": "internal_error"})


# Routers
app.include_router(health.router, tags=["health"])
app.include_router(payments.router)
app.include_router(webhook.router)
app.include_router(status.router)
app.include_router(router_bridge.router)
app.include_router(admin.router)
app.include_router(metrics_router)
