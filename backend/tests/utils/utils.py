from datetime import datetime, timedelta
from typing import Any, Callable, Optional

import httpx
import polyline as pl
from sqlmodel import Session

from courier_dispatch.models.fleet_models import Agent, Job
from courier_dispatch.models.route_models import Route, Stop
from courier_dispatch.services.directions_service import DirectionsService
from courier_dispatch.services.travel_cache import TravelCache
from courier_dispatch.services.travel_cost import TravelCostResolver

NOW = datetime(2025, 12, 15, 8, 0, 0)

DEPOT_A = (13.7563, 100.5018)
DEPOT_B = (13.75, 100.49)


def create_agent(db: Session, agent_id: str, lat: Optional[float], lng: Optional[float], **kwargs: Any) -> Agent:
    agent = Agent(id=agent_id, start_lat=lat, start_lng=lng, **kwargs)
    db.add(agent)
    db.commit()
    return agent


def create_job(db: Session, job_id: str, lat: Optional[float], lng: Optional[float], **kwargs: Any) -> Job:
    job = Job(id=job_id, lat=lat, lng=lng, **kwargs)
    db.add(job)
    db.commit()
    return job


def window(start: datetime, end: datetime) -> dict[str, str]:
    return {"start": start.isoformat() + "Z", "end": end.isoformat() + "Z"}


def create_route_with_stops(
    db: Session,
    route_id: str,
    points: list[Optional[tuple[float, float]]],
    updated_at: Optional[datetime] = None,
    company_id: Optional[str] = None,
) -> Route:
    route = Route(
        id=route_id,
        agent_id="m1",
        company_id=company_id,
        date="2025-12-15",
        updated_at=updated_at or NOW,
    )
    db.add(route)
    for position, point in enumerate(points):
        db.add(
            Stop(
                route_id=route_id,
                job_id=f"{route_id}-j{position}",
                position=position,
                lat=point[0] if point else None,
                lng=point[1] if point else None,
            )
        )
    db.commit()
    return route


def directions_payload(
    distance: int = 1500,
    duration: int = 300,
    duration_in_traffic: Optional[int] = None,
    points: Optional[list[tuple[float, float]]] = None,
) -> dict[str, Any]:
    leg: dict[str, Any] = {
        "distance": {"value": distance},
        "duration": {"value": duration},
    }
    if duration_in_traffic is not None:
        leg["duration_in_traffic"] = {"value": duration_in_traffic}
    encoded = pl.encode(points or [DEPOT_A, DEPOT_B])
    return {
        "status": "OK",
        "routes": [{"legs": [leg], "overview_polyline": {"points": encoded}}],
    }


class RecordingHandler:
    """httpx.MockTransport handler that records requests and replays one response."""

    def __init__(self, status_code: int = 200, json: Any = None, text: Optional[str] = None):
        self.status_code = status_code
        self.json = json if json is not None else directions_payload()
        self.text = text
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.text is not None:
            return httpx.Response(self.status_code, text=self.text)
        return httpx.Response(self.status_code, json=self.json)

    @property
    def calls(self) -> int:
        return len(self.requests)


def make_directions(
    handler: Optional[Callable[[httpx.Request], httpx.Response]] = None,
    api_key: str = "test-key",
) -> DirectionsService:
    handler = handler or RecordingHandler()
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return DirectionsService(api_key=api_key, base_url="https://directions.test/json", client=client)


def make_resolver(
    db: Session,
    directions: Optional[DirectionsService] = None,
    ttl: Optional[timedelta] = None,
) -> TravelCostResolver:
    return TravelCostResolver(TravelCache(db, ttl=ttl), directions or make_directions(api_key=""))
