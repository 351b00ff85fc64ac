from typing import Any, Optional

from fastapi import APIRouter, HTTPException

from courier_dispatch import crud
from courier_dispatch.api.deps import DirectionsDep, SessionDep
from courier_dispatch.models.optimization_models import (
    EnrichAllRequest,
    EnrichAllResult,
    EnrichRouteRequest,
    EnrichRouteResult,
)
from courier_dispatch.models.route_models import Route, StopPublic, StopUpdate
from courier_dispatch.services.directions_service import decode_polyline
from courier_dispatch.services.route_enrichment import RouteEnricher

router = APIRouter(prefix="/routes", tags=["routes"])

# Used when a route has no usable coordinates (Bangkok metro area)
DEFAULT_BOUNDS = {
    "north": 14.0,
    "south": 13.5,
    "east": 100.9,
    "west": 100.3,
}


@router.post("/enrich-all", response_model=EnrichAllResult)
async def enrich_all_routes(
    session: SessionDep,
    directions: DirectionsDep,
    request: EnrichAllRequest,
) -> Any:
    """
    Backfill leg geometry for many routes, least recently updated first
    unless explicit `route_ids` are given.
    """
    enricher = RouteEnricher(session, directions)
    return await enricher.enrich_all(request)


@router.post("/{route_id}/enrich", response_model=EnrichRouteResult)
async def enrich_route(
    route_id: str,
    session: SessionDep,
    directions: DirectionsDep,
    request: Optional[EnrichRouteRequest] = None,
) -> Any:
    """
    Backfill leg geometry for one route.
    """
    request = request or EnrichRouteRequest()
    enricher = RouteEnricher(session, directions)
    return await enricher.enrich(
        route_id,
        force=request.force,
        leg_concurrency=request.leg_concurrency,
        short_hop_meters=request.short_hop_meters,
    )


@router.get("/{route_id}/map", response_model=dict)
def get_route_map(route_id: str, session: SessionDep) -> Any:
    """
    Ordered stops with their leg travel, polylines decoded for drawing.
    """
    route = session.get(Route, route_id)
    if not route:
        raise HTTPException(status_code=404, detail="Route not found")

    stops = crud.get_route_stops(session=session, route_id=route_id)

    bounds = {
        "north": -90.0,
        "south": 90.0,
        "east": -180.0,
        "west": 180.0,
    }

    def extend(lat: Optional[float], lng: Optional[float]) -> None:
        if lat is None or lng is None:
            return
        bounds["north"] = max(bounds["north"], lat)
        bounds["south"] = min(bounds["south"], lat)
        bounds["east"] = max(bounds["east"], lng)
        bounds["west"] = min(bounds["west"], lng)

    stop_data = []
    for stop in stops:
        path = decode_polyline(stop.travel_polyline) if stop.travel_polyline else []
        stop_data.append(
            {
                "job_id": stop.job_id,
                "position": stop.position,
                "lat": stop.lat,
                "lng": stop.lng,
                "status": stop.status,
                "is_depot": stop.is_depot,
                "eta": stop.eta.isoformat() if stop.eta else None,
                "travel": {
                    "distance_meters": stop.travel_distance_meters,
                    "duration_seconds": stop.travel_duration_seconds,
                    "polyline": stop.travel_polyline,
                    "path": [[lat, lng] for lat, lng in path],
                }
                if stop.travel_from_lat is not None
                else None,
            }
        )
        extend(stop.lat, stop.lng)
        for lat, lng in path:
            extend(lat, lng)

    if bounds["north"] == -90.0:
        bounds = dict(DEFAULT_BOUNDS)

    return {
        "route": {
            "id": route.id,
            "agent_id": route.agent_id,
            "date": route.date,
            "status": route.status,
            "distance_meters": route.distance_meters,
            "duration_seconds": route.duration_seconds,
            "updated_at": route.updated_at.isoformat(),
        },
        "stops": stop_data,
        "bounds": bounds,
    }


@router.patch("/{route_id}/stops/{job_id}", response_model=StopPublic)
def update_route_stop(
    route_id: str,
    job_id: str,
    session: SessionDep,
    stop_in: StopUpdate,
) -> Any:
    """
    Update a stop's progress fields.
    """
    db_stop = crud.get_stop(session=session, route_id=route_id, job_id=job_id)
    if not db_stop:
        raise HTTPException(status_code=404, detail="Stop not found")
    return crud.update_stop(session=session, db_stop=db_stop, stop_in=stop_in)
