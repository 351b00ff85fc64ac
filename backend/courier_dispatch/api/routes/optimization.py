from typing import Any

from fastapi import APIRouter

from courier_dispatch.api.deps import ResolverDep, SessionDep
from courier_dispatch.models.optimization_models import (
    LegacyOptimizeRequest,
    LegacyOptimizeResult,
    OptimizeRequest,
    OptimizeResult,
)
from courier_dispatch.services.legacy_optimizer import LegacyOptimizer
from courier_dispatch.services.optimization import ChunkScheduler

router = APIRouter(prefix="/optimization", tags=["optimization"])


@router.post("/optimize", response_model=OptimizeResult)
async def optimize_routes(
    session: SessionDep,
    resolver: ResolverDep,
    request: OptimizeRequest,
) -> Any:
    """
    Assign jobs to agents by chunked greedy best insertion.

    Agents are processed in chunks of `chunk_size`; jobs assigned by an
    earlier chunk are not offered to later ones.
    """
    scheduler = ChunkScheduler(session, resolver)
    return await scheduler.optimize(request)


@router.post("/legacy", response_model=LegacyOptimizeResult)
async def optimize_routes_legacy(
    session: SessionDep,
    resolver: ResolverDep,
    request: LegacyOptimizeRequest,
) -> Any:
    """
    Plan all pending jobs over the given agents, appending each job to the
    agent that can start it earliest.
    """
    optimizer = LegacyOptimizer(session, resolver)
    return await optimizer.optimize(request)
