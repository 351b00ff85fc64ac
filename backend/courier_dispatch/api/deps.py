from collections.abc import AsyncGenerator, Generator
from typing import Annotated

from fastapi import Depends
from sqlmodel import Session

from courier_dispatch.core.db import engine
from courier_dispatch.services.directions_service import DirectionsService
from courier_dispatch.services.travel_cache import TravelCache
from courier_dispatch.services.travel_cost import TravelCostResolver


def get_db() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


SessionDep = Annotated[Session, Depends(get_db)]


async def get_directions() -> AsyncGenerator[DirectionsService, None]:
    directions = DirectionsService()
    try:
        yield directions
    finally:
        await directions.close()


DirectionsDep = Annotated[DirectionsService, Depends(get_directions)]


def get_resolver(session: SessionDep, directions: DirectionsDep) -> TravelCostResolver:
    return TravelCostResolver(TravelCache(session), directions)


ResolverDep = Annotated[TravelCostResolver, Depends(get_resolver)]
