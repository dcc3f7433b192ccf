from fastapi import APIRouter

from duri_tracking.api.routes import auth, companies, health, notifications, trackings, users

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["Auth"])
api_router.include_router(trackings.router, prefix="/asana", tags=["Trackings"])
api_router.include_router(companies.router, prefix="", tags=["Companies"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
api_router.include_router(users.router, prefix="/admin/users", tags=["Users"])
api_router.include_router(health.router, prefix="", tags=["Health"])

__all__ = ["api_router"]
