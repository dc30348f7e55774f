from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from access_catalog_app.web.core.runtime import get_catalog
from access_catalog_app.web.routers.common import read_json_body, required_text

router = APIRouter(prefix="/api/access")


@router.post("/evaluate")
async def api_evaluate(request: Request):
    payload = await read_json_body(request)
    decision = get_catalog().evaluate(
        required_text(payload, "identity"),
        required_text(payload, "action"),
        required_text(payload, "securable"),
    )
    return JSONResponse({"ok": True, "decision": decision.as_dict()})


@router.post("/columns")
async def api_authorize_columns(request: Request):
    payload = await read_json_body(request)
    decisions = get_catalog().authorize_columns(
        required_text(payload, "identity"),
        required_text(payload, "action"),
        required_text(payload, "object"),
        payload.get("columns") or [],
    )
    return JSONResponse(
        {
            "ok": True,
            "allowed": all(decision.allowed for decision in decisions.values()),
            "columns": {column: decision.as_dict() for column, decision in decisions.items()},
        }
    )
