from __future__ import annotations
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from task_api.domain.errors import AppError, TooManyRequestsError

logger = logging.getLogger("task_api.errors")


def _request_id(request: Request):
    return getattr(request.state, "request_id", None)


def _describe(error: dict) -> str:
    loc = [str(p) for p in error.get("loc", ()) if p not in ("body", "query", "path", "header")]
    msg = error.get("msg", "Invalid value")
    return f"{'.'.join(loc)}: {msg}" if loc else msg


def register_error_handlers(app: FastAPI, *, expose_errors: bool = False) -> None:
    @app.exception_handler(AppError)
    async def _app_error(request: Request, exc: AppError):
        logger.info(
            "request.rejected",
            extra={
                "category": "errors",
                "event": "request.rejected",
                "request_id": _request_id(request),
                "error": type(exc).__name__,
                "status_code": exc.status_code,
                "detail": exc.message,
            },
        )
        headers = None
        if isinstance(exc, TooManyRequestsError):
            headers = {"Retry-After": str(exc.retry_after)}
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": exc.message},
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "error": "Validation failed",
                "errors": [_describe(e) for e in exc.errors()],
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        error = "Route not found" if exc.status_code == 404 else str(exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": error},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        logger.exception(
            "request.crash",
            extra={"category": "errors", "event": "request.crash", "request_id": _request_id(request)},
        )
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": str(exc) if expose_errors else "Internal server error",
            },
        )
