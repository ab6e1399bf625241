from fastapi import APIRouter

from gifit.web.routers.exports import router as exports_router
from gifit.web.routers.uploads import router as uploads_router

api_router = APIRouter(
    prefix="/api",
)

api_router.include_router(
    uploads_router,
)

api_router.include_router(
    exports_router,
)

__all__ = ["api_router"]
