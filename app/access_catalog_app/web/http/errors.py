from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from access_catalog_app.core.errors import AccessDeniedError, InvalidRequest, UnknownIdentity, UnknownRole
from access_catalog_app.web.core.runtime import get_config

ERROR_CODE_BAD_REQUEST = "BAD_REQUEST"
ERROR_CODE_NOT_FOUND = "NOT_FOUND"
ERROR_CODE_FORBIDDEN = "FORBIDDEN"
ERROR_CODE_INTERNAL = "INTERNAL_SERVER_ERROR"


@dataclass(frozen=True)
class ApiErrorSpec:
    status_code: int
    code: str
    message: str
    details: dict[str, Any] | None = None


class ApiError(RuntimeError):
    def __init__(
        self,
        *,
        status_code: int,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = int(status_code)
        self.code = str(code)
        self.message = str(message)
        self.details = details


def request_id_from_request(request: Request) -> str:
    request_id = str(getattr(request.state, "request_id", "") or "").strip()
    if request_id:
        return request_id
    from_header = str(request.headers.get("x-request-id", "")).strip()
    return from_header or "-"


def _include_details() -> bool:
    try:
        return get_config().error_include_details
    except RuntimeError:
        return False


def build_api_error_payload(
    *,
    code: str,
    message: str,
    request_id: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "ok": False,
        "error": {
            "code": str(code),
            "message": str(message),
        },
        "request_id": str(request_id or "-"),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if details and _include_details():
        payload["error"]["details"] = details
    return payload


def api_error_response(
    request: Request,
    *,
    status_code: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    request_id = request_id_from_request(request)
    payload = build_api_error_payload(
        code=code,
        message=message,
        request_id=request_id,
        details=details,
    )
    headers = {"X-Request-ID": request_id}
    return JSONResponse(payload, status_code=int(status_code), headers=headers)


def normalize_exception(exc: Exception) -> ApiErrorSpec:
    if isinstance(exc, ApiError):
        return ApiErrorSpec(
            status_code=exc.status_code,
            code=exc.code,
            message=exc.message,
            details=exc.details,
        )

    if isinstance(exc, (UnknownIdentity, UnknownRole)):
        return ApiErrorSpec(
            status_code=404,
            code=ERROR_CODE_NOT_FOUND,
            message=str(exc),
            details={"reason": str(exc)},
        )

    if isinstance(exc, AccessDeniedError):
        return ApiErrorSpec(
            status_code=403,
            code=ERROR_CODE_FORBIDDEN,
            message=str(exc),
            details={"decisions": [decision.as_dict() for decision in exc.decisions]},
        )

    if isinstance(exc, InvalidRequest):
        return ApiErrorSpec(
            status_code=400,
            code=ERROR_CODE_BAD_REQUEST,
            message=str(exc) or "Request parameters are invalid.",
            details={"reason": str(exc)},
        )

    if isinstance(exc, StarletteHTTPException):
        code = ERROR_CODE_INTERNAL
        if exc.status_code == 400:
            code = ERROR_CODE_BAD_REQUEST
        elif exc.status_code == 403:
            code = ERROR_CODE_FORBIDDEN
        elif exc.status_code == 404:
            code = ERROR_CODE_NOT_FOUND
        return ApiErrorSpec(
            status_code=int(exc.status_code),
            code=code,
            message=str(exc.detail or "HTTP request failed."),
            details={"reason": str(exc.detail or "")},
        )

    return ApiErrorSpec(
        status_code=500,
        code=ERROR_CODE_INTERNAL,
        message="An unexpected error occurred.",
        details={"reason": str(exc), "type": exc.__class__.__name__},
    )
