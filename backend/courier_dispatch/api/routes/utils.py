from fastapi import APIRouter

from courier_dispatch.core.config import settings

router = APIRouter(tags=["utils"])


@router.get("/health")
def health_check():
    return {"status": "healthy", "service": settings.PROJECT_NAME}


@router.get("/version")
def version_info():
    return {
        "version": "0.1.0",
        "api_version": "v1",
        "features": [
            "chunked_best_insertion",
            "legacy_optimizer",
            "travel_cache",
            "route_enrichment",
            "route_map",
        ],
    }
