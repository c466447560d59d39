"""
Request middleware: request id, access log line and the hard per-request
deadline. A request that outlives the deadline gets a 504; the handler
thread finishes its current store transaction on its own.
"""
import asyncio
import logging
import time
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from hotspot.core.config import settings

logger = logging.getLogger("hotspot.access")


def install_request_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = request.headers.get(settings.request_id_header) or uuid4().hex
        request.state.request_id = request_id
        start = time.perf_counter()
        try:
            response = await asyncio.wait_for(
                call_next(request), timeout=settings.request_timeout_seconds
            )
        except asyncio.TimeoutError:
            logger.error(
                "request_timeout",
                extra={"request_id": request_id, "path": request.url.path, "method": request.method},
            )
            response = JSONResponse(status_code=504, content={"error": "timeout"})
        latency_ms = round((time.perf_counter() - start) * 1000, 1)
        response.headers[settings.request_id_header] = request_id
        logger.info(
            "request_completed",
            extra={
                "request_id": request_id,
                "path": request.url.path,
                "method": request.method,
                "status_code": response.status_code,
                "latency_ms": latency_ms,
                "client_ip": request.client.host if request.client else None,
            },
        )
        return response
