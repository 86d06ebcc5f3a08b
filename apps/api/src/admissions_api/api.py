from fastapi import APIRouter

from admissions_api.modules.admissions import router as admissions_router
from admissions_api.modules.admissions.admin_router import router as admin_admissions_router

api_router = APIRouter()

api_router.include_router(admissions_router, prefix="/admissions", tags=["Admissions"])

api_router.include_router(
    admin_admissions_router,
    prefix="/admin/admissions",
    tags=["Admin - Admissions"],
)
