from __future__ import annotations

from contextlib import asynccontextmanager
import logging
import time
import uuid

from fastapi import FastAPI, Request

from access_catalog_app.logging import setup_app_logging
from access_catalog_app.web.core.runtime import get_catalog, get_config
from access_catalog_app.web.http.exception_handlers import register_exception_handlers
from access_catalog_app.web.routers import router as web_router

LOGGER = logging.getLogger(__name__)
REQUEST_LOGGER = logging.getLogger("access_catalog_app.requests")


def create_app() -> FastAPI:
    setup_app_logging()
    config = get_config()

    @asynccontextmanager
    async def _app_lifespan(_app: FastAPI):
        snapshot = get_catalog().snapshot()
        LOGGER.info(
            "Access catalog ready. env=%s seed=%s identities=%s roles=%s facts=%s",
            config.env,
            config.seed_path or "-",
            len(snapshot.directory.identity_map),
            len(snapshot.directory.role_map),
            len(snapshot.policies.fact_list),
        )
        yield

    app = FastAPI(title="Access Catalog", lifespan=_app_lifespan)

    @app.middleware("http")
    async def _request_id_middleware(request: Request, call_next):
        request_id = str(request.headers.get("x-request-id", "")).strip() or uuid.uuid4().hex[:12]
        request.state.request_id = request_id
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000.0
        response.headers.setdefault("X-Request-ID", request_id)
        REQUEST_LOGGER.debug(
            "Request complete. request_id=%s method=%s path=%s status=%s elapsed_ms=%.1f",
            request_id,
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response

    register_exception_handlers(app)
    app.include_router(web_router)
    return app
