from fastapi import APIRouter

from .auth import router as auth_router
from .documents import router as documents_router
from .entities import router as entities_router
from .health import router as health_router
from .storage import router as storage_router

router = APIRouter(prefix="/v1")
router.include_router(auth_router)
router.include_router(documents_router)
router.include_router(entities_router)
router.include_router(storage_router)
router.include_router(health_router)
