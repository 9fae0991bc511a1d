from fastapi import APIRouter
from app.api.v1.routes.auth import router as auth_router
from app.api.v1.routes.public import router as public_router
from app.api.v1.routes.admin import router as admin_router
from app.api.v1.routes.calendar import router as calendar_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth_router)
api_router.include_router(public_router)
api_router.include_router(admin_router)
api_router.include_router(calendar_router)
