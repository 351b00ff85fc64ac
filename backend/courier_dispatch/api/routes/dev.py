from typing import Any

from fastapi import APIRouter

from courier_dispatch.api.deps import SessionDep
from courier_dispatch.models.optimization_models import SeedJobsRequest, SeedJobsResult
from courier_dispatch.services.seeding import seed_mock_jobs

router = APIRouter(prefix="/dev", tags=["dev"])


@router.post("/seed-jobs", response_model=SeedJobsResult)
def seed_jobs(session: SessionDep, request: SeedJobsRequest) -> Any:
    """
    Create pending mock jobs scattered around a center point.
    """
    return seed_mock_jobs(session=session, request=request)
