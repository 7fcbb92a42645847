from fastapi import APIRouter, Depends

from cabinet.api.deps import get_services
from cabinet.core.bootstrap import ServiceContainer
from cabinet.core.settings import settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(services: ServiceContainer = Depends(get_services)):
    store_ok = await services.kv.ping()
    return {
        "status": "ok",
        "service": "tutor-cabinet-api",
        "env": settings.app_env,
        "store": "ok" if store_ok else "degraded",
    }
