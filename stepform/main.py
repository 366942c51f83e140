from __future__ import annotations

import logging
import os
from typing import Callable, Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text as sql_text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException

from stepform.config import AppConfig, load_config
from stepform.db.base import get_engine
from stepform.db.migrations_runner import apply_migrations
from stepform.http.problem import (
    handle_http_exception,
    handle_request_validation_error,
    handle_unexpected_error,
)
from stepform.http.request_id import RequestIdMiddleware
from stepform.logging_setup import configure_logging
from stepform.routes import api_router

logger = logging.getLogger(__name__)


def _health_check() -> Callable[[], dict]:
    def check() -> dict:
        try:
            with get_engine().connect() as conn:
                conn.execute(sql_text("SELECT 1"))
            return {"status": "ok", "db": True}
        except SQLAlchemyError as e:
            logger.error("Health DB check failed", exc_info=True)
            return {"status": "degraded", "db": False, "reason": str(e)}

    return check


def create_app(config: Optional[AppConfig] = None) -> FastAPI:
    configure_logging()
    cfg = config or load_config()
    app = FastAPI(title="stepform")

    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors.origins,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["content-type"],
        expose_headers=["X-Request-Id"],
    )

    # Apply migrations on startup unless disabled (tests apply them explicitly)
    @app.on_event("startup")
    def _startup_migrations() -> None:
        flag = os.getenv("AUTO_APPLY_MIGRATIONS", "1").strip().lower()
        if flag in {"0", "false", "no", "off"}:
            logger.info("AUTO_APPLY_MIGRATIONS disabled; skipping migrations at startup")
            return
        logger.info("Initialize db schema")
        apply_migrations(get_engine())

    app.include_router(api_router)

    health_check = _health_check()

    @app.get("/health")
    def health():  # pragma: no cover - trivial
        return health_check()

    return app


# Intentionally do not instantiate the app at import time to prevent side effects.
