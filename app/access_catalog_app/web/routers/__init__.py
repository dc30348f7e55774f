from fastapi import APIRouter

from access_catalog_app.web.routers.access import router as access_router
from access_catalog_app.web.routers.admin import router as admin_router
from access_catalog_app.web.routers.system import router as system_router


router = APIRouter()
router.include_router(system_router)
router.include_router(access_router)
router.include_router(admin_router)
