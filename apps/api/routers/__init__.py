from fastapi import APIRouter

from .analysis import router as analysis_router
from .groups import router as groups_router
from .health import router as health_router
from .users import router as users_router


api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(users_router)
api_router.include_router(analysis_router)
api_router.include_router(groups_router)

__all__ = ["api_router"]
