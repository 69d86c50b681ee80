import time
import uuid
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

logger = logging.getLogger("task_api.access")


class AccessLogMiddleware(BaseHTTPMiddleware):
    """
    Request id propagation plus access logging.

    With `enabled=False` nothing is logged. With `errors_only=True` only
    finished requests with status >= 400 (and crashes) are logged.
    """

    def __init__(self, app: ASGIApp, enabled: bool = True, errors_only: bool = False):
        super().__init__(app)
        self.enabled = enabled
        self.errors_only = errors_only

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        start = time.perf_counter()
        quiet = not self.enabled
        verbose = self.enabled and not self.errors_only

        # attach to request for other layers later
        request.state.request_id = request_id

        if verbose:
            logger.info(
                "request.start",
                extra={
                    "category": "http",
                    "event": "request.start",
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "query": str(request.url.query),
                    "client": request.client.host if request.client else None,
                },
            )

        try:
            response: Response = await call_next(request)
        except Exception:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            if not quiet:
                logger.exception(
                    "request.error",
                    extra={
                        "category": "http",
                        "event": "request.error",
                        "request_id": request_id,
                        "method": request.method,
                        "path": request.url.path,
                        "duration_ms": duration_ms,
                    },
                )
            raise

        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms}ms"

        if verbose or (not quiet and response.status_code >= 400):
            logger.info(
                f"[{request.method}] {request.url.path} {response.status_code} - Execution time: {duration_ms} ms",
                extra={
                    "category": "http",
                    "event": "request.end",
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                },
            )
        return response
