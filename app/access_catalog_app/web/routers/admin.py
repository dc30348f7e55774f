from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from access_catalog_app.backend.reporting import facts_frame, memberships_frame, principals_frame
from access_catalog_app.core.security import EFFECT_ALLOW
from access_catalog_app.web.core.runtime import get_catalog, get_config
from access_catalog_app.web.http.errors import ERROR_CODE_FORBIDDEN, ApiError
from access_catalog_app.web.routers.common import read_json_body, required_text

router = APIRouter(prefix="/api/admin")


def _require_admin_api() -> None:
    if not get_config().admin_api_enabled:
        raise ApiError(
            status_code=403,
            code=ERROR_CODE_FORBIDDEN,
            message="The provisioning API is disabled. Set ACCESS_ADMIN_API_ENABLED=true to enable it.",
        )


def _actions(payload: dict) -> object:
    if payload.get("actions"):
        return payload["actions"]
    return [required_text(payload, "action")]


@router.get("/principals")
def api_list_principals():
    _require_admin_api()
    catalog = get_catalog()
    return JSONResponse(
        {
            "ok": True,
            "principals": principals_frame(catalog).to_dict("records"),
            "memberships": memberships_frame(catalog).to_dict("records"),
        }
    )


@router.post("/identities")
async def api_create_identity(request: Request):
    _require_admin_api()
    payload = await read_json_body(request)
    created = get_catalog().create_identity(
        required_text(payload, "name"),
        login=str(payload.get("login") or ""),
        roles=payload.get("roles") or (),
    )
    return JSONResponse({"ok": True, "created": created}, status_code=201 if created else 200)


@router.delete("/identities/{identity_name}")
def api_drop_identity(identity_name: str):
    _require_admin_api()
    return JSONResponse({"ok": True, "dropped": get_catalog().drop_identity(identity_name)})


@router.post("/roles")
async def api_create_role(request: Request):
    _require_admin_api()
    payload = await read_json_body(request)
    created = get_catalog().create_role(required_text(payload, "name"))
    return JSONResponse({"ok": True, "created": created}, status_code=201 if created else 200)


@router.delete("/roles/{role_name}")
def api_drop_role(role_name: str):
    _require_admin_api()
    return JSONResponse({"ok": True, "dropped": get_catalog().drop_role(role_name)})


@router.post("/memberships")
async def api_add_membership(request: Request):
    _require_admin_api()
    payload = await read_json_body(request)
    changed = get_catalog().add_membership(required_text(payload, "identity"), required_text(payload, "role"))
    return JSONResponse({"ok": True, "changed": changed})


@router.delete("/memberships")
async def api_remove_membership(request: Request):
    _require_admin_api()
    payload = await read_json_body(request)
    changed = get_catalog().remove_membership(required_text(payload, "identity"), required_text(payload, "role"))
    return JSONResponse({"ok": True, "changed": changed})


@router.get("/facts")
def api_list_facts():
    _require_admin_api()
    return JSONResponse({"ok": True, "facts": facts_frame(get_catalog()).to_dict("records")})


@router.post("/grants")
async def api_grant(request: Request):
    _require_admin_api()
    payload = await read_json_body(request)
    facts = get_catalog().grant_privileges(
        required_text(payload, "principal"),
        _actions(payload),
        required_text(payload, "securable"),
        columns=payload.get("columns") or None,
        effect=str(payload.get("effect") or EFFECT_ALLOW),
    )
    return JSONResponse({"ok": True, "facts": [fact.as_dict() for fact in facts]}, status_code=201)


@router.delete("/grants")
async def api_revoke(request: Request):
    _require_admin_api()
    payload = await read_json_body(request)
    removed = get_catalog().revoke_privileges(
        required_text(payload, "principal"),
        _actions(payload),
        required_text(payload, "securable"),
        columns=payload.get("columns") or None,
    )
    return JSONResponse({"ok": True, "removed": removed})
