from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException as StarletteHTTPException

from access_catalog_app.core.errors import AccessCatalogError
from access_catalog_app.web.http.errors import ApiError, api_error_response, normalize_exception

LOGGER = logging.getLogger(__name__)


def _error_response(request: Request, exc: Exception):
    spec = normalize_exception(exc)
    return api_error_response(
        request,
        status_code=spec.status_code,
        code=spec.code,
        message=spec.message,
        details=spec.details,
    )


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AccessCatalogError)
    async def _access_catalog_exception_handler(request: Request, exc: AccessCatalogError):
        return _error_response(request, exc)

    @app.exception_handler(ApiError)
    async def _api_exception_handler(request: Request, exc: ApiError):
        return _error_response(request, exc)

    @app.exception_handler(StarletteHTTPException)
    async def _http_exception_handler(request: Request, exc: StarletteHTTPException):
        return _error_response(request, exc)

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception):
        LOGGER.exception("Unhandled request error. path=%s", request.url.path)
        return _error_response(request, exc)
