from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from access_catalog_app.web.core.runtime import get_catalog, get_config

router = APIRouter(prefix="/api")


@router.get("/health")
def api_health():
    config = get_config()
    snapshot = get_catalog().snapshot()
    payload = {
        "ok": True,
        "env": config.env,
        "seeded": config.has_seed,
        "admin_api_enabled": config.admin_api_enabled,
        "counts": {
            "identities": len(snapshot.directory.identity_map),
            "roles": len(snapshot.directory.role_map),
            "facts": len(snapshot.policies.fact_list),
        },
    }
    return JSONResponse(payload, status_code=200)
