from fastapi import APIRouter

from courier_dispatch.api.routes import dev, optimization, routes, utils
from courier_dispatch.core.config import settings

api_router = APIRouter()
api_router.include_router(optimization.router)
api_router.include_router(routes.router)
api_router.include_router(utils.router)

if settings.ENVIRONMENT == "local":
    api_router.include_router(dev.router)
