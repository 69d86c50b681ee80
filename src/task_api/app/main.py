from typing import Optional
import logging

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from task_api.app.errors import register_error_handlers
from task_api.app.middleware.access_log import AccessLogMiddleware
from task_api.app.middleware.rate_limit import SlidingWindowLimiter
from task_api.app.routes import tasks
from task_api.config import Settings, load_settings
from task_api.infra.db.task_repo_memory import InMemoryTaskRepo
from task_api.observability.logging import setup_logging
from task_api.services.task_service import TaskService

logger = logging.getLogger("task_api.system")


def build_rate_limiters(settings: Settings) -> dict:
    return {
        "api": SlidingWindowLimiter(
            "api",
            settings.rate_limit_max_requests,
            settings.rate_limit_window_seconds,
            "Too many requests from this IP, please try again later.",
        ),
        "mutation": SlidingWindowLimiter(
            "mutation",
            settings.mutation_limit_max_requests,
            settings.rate_limit_window_seconds,
            "Too many write operations from this IP, please try again later.",
        ),
        "critical": SlidingWindowLimiter(
            "critical",
            settings.critical_limit_max_requests,
            settings.critical_limit_window_seconds,
            "Too many critical operations from this IP, please try again later.",
        ),
    }


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()
    setup_logging(settings)
    logger.info(
        "system.start",
        extra={"category": "system", "event": "system.start", "app_env": settings.app_env},
    )

    app = FastAPI(
        title="Task Management API",
        description="Create, filter, sort and paginate tasks.",
        version="1.0.0",
        docs_url="/api-docs",
    )
    app.state.settings = settings

    # --- in-memory wiring: one store and one service per app ---
    repo = InMemoryTaskRepo()
    app.state.task_service = TaskService(repo)
    app.state.rate_limiters = build_rate_limiters(settings)

    app.add_middleware(
        AccessLogMiddleware,
        enabled=not settings.is_test,
        errors_only=settings.is_production,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "x-user-role", "x-user-id"],
    )
    register_error_handlers(app, expose_errors=settings.is_development)

    # Routers
    app.include_router(tasks.router, prefix=settings.api_prefix)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


def serve() -> None:
    settings = load_settings()
    app = create_app(settings)
    logger.info(
        "system.listen",
        extra={"category": "system", "event": "system.listen", "host": settings.host, "port": settings.port},
    )
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    serve()
