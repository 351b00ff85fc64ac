import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Optional

from sqlmodel import Session

from courier_dispatch import crud
from courier_dispatch.core.config import settings
from courier_dispatch.models.fleet_models import Agent, Job
from courier_dispatch.models.optimization_models import (
    LegacyOptimizeRequest,
    LegacyOptimizeResult,
)
from courier_dispatch.models.route_models import (
    Assignment,
    Route,
    RouteStatus,
    Stop,
    StopStatus,
)
from courier_dispatch.services.errors import NotFoundError
from courier_dispatch.services.geo import (
    LatLng,
    next_feasible_start,
    to_location,
    utcnow,
)
from courier_dispatch.services.insertion import JobSpec, job_spec_from_record, sort_jobs
from courier_dispatch.services.travel_cost import TravelCostResolver, TravelQuote
from courier_dispatch.services.validation import validation_service

logger = logging.getLogger(__name__)

DEFAULT_SHIFT_HOURS = 12


@dataclass
class _PlannedLeg:
    job: JobSpec
    eta: datetime
    origin: LatLng
    quote: TravelQuote
    service_seconds: int


@dataclass
class _AgentCursor:
    agent_id: str
    time: datetime
    position: LatLng
    shift_end: datetime
    legs: list[_PlannedLeg] = field(default_factory=list)
    total_distance: int = 0
    total_duration: int = 0


def normalize_job_windows(job: Job, route_date: str) -> Optional[list[dict[str, Any]]]:
    """Fold a legacy single ``time_window`` into ``time_windows``.

    Missing bounds default to the start/end of ``route_date``.
    """
    if job.time_windows:
        return job.time_windows
    single = job.time_window or {}
    if not (single.get("start") or single.get("end")):
        return None
    return [
        {
            "start": single.get("start") or f"{route_date}T00:00:00Z",
            "end": single.get("end") or f"{route_date}T23:59:59Z",
        }
    ]


class LegacyOptimizer:
    """Whole-fleet append-only planner.

    Each job goes to the agent that can start serving it earliest from where
    that agent currently is; the agent's cursor then moves to the job.
    """

    def __init__(self, session: Session, resolver: TravelCostResolver):
        self.session = session
        self.resolver = resolver

    def _cursor_for(self, agent: Agent, now: datetime) -> _AgentCursor:
        depot = to_location(agent.start_lat, agent.start_lng)
        if depot is None:
            depot = LatLng(settings.DEFAULT_DEPOT_LAT, settings.DEFAULT_DEPOT_LNG)
            logger.warning(f"Agent {agent.id} has no start location, using default depot {depot.as_tuple()}")
        start = agent.shift_start or now
        end = agent.shift_end or start + timedelta(hours=DEFAULT_SHIFT_HOURS)
        return _AgentCursor(agent_id=agent.id, time=start, position=depot, shift_end=end)

    async def optimize(
        self, request: LegacyOptimizeRequest, *, now: Optional[datetime] = None
    ) -> LegacyOptimizeResult:
        agent_ids = validation_service.require_id_list(request.agent_ids, "agent_ids")
        now = now or utcnow()
        route_date = request.date or now.date().isoformat()

        agents = crud.get_agents_by_ids(session=self.session, agent_ids=agent_ids)
        if not agents:
            raise NotFoundError("No agents found")

        records = crud.get_pending_jobs(session=self.session, company_id=request.company_id)
        if not records:
            logger.info("Legacy optimize: no pending jobs")
            return LegacyOptimizeResult(date=route_date)

        jobs: list[JobSpec] = []
        for record in records:
            spec = job_spec_from_record(record, normalize_job_windows(record, route_date))
            if spec is None:
                logger.warning(f"Job {record.id} has no valid location, leaving unassigned")
                continue
            jobs.append(spec)
        jobs = sort_jobs(jobs)

        logger.info(
            f"Legacy optimize start: {len(agents)} agents, {len(records)} pending jobs, date {route_date}"
        )

        cursors = [self._cursor_for(agent, now) for agent in agents]
        assigned = 0
        for job in jobs:
            best: Optional[tuple[_AgentCursor, datetime, TravelQuote]] = None
            for cursor in cursors:
                quote = await self.resolver.resolve(
                    cursor.position, job.location, cursor.time, settings.SHORT_HOP_METERS
                )
                arrival = cursor.time + timedelta(seconds=quote.duration_seconds)
                start = next_feasible_start(arrival, list(job.windows))
                if start is None or start > cursor.shift_end:
                    continue
                if best is None or start < best[1]:
                    best = (cursor, start, quote)

            if best is None:
                continue

            cursor, start, quote = best
            service = (
                job.service_seconds
                if job.service_seconds is not None
                else settings.DEFAULT_SERVICE_SECONDS
            )
            cursor.legs.append(
                _PlannedLeg(
                    job=job, eta=start, origin=cursor.position, quote=quote, service_seconds=service
                )
            )
            cursor.time = start + timedelta(seconds=service)
            cursor.position = job.location
            cursor.total_distance += quote.distance_meters
            cursor.total_duration += quote.duration_seconds
            assigned += 1

        route_ids = self._persist(cursors, request.company_id, route_date, now)

        result = LegacyOptimizeResult(
            date=route_date,
            routes_created=len(route_ids),
            route_ids=route_ids,
            assigned_count=assigned,
            unassigned_count=len(records) - assigned,
        )
        logger.info(
            f"Legacy optimize done: {result.routes_created} routes, "
            f"{result.assigned_count} assigned, {result.unassigned_count} unassigned"
        )
        return result

    def _persist(
        self,
        cursors: list[_AgentCursor],
        company_id: Optional[str],
        route_date: str,
        now: datetime,
    ) -> list[str]:
        route_ids: list[str] = []
        for cursor in cursors:
            if not cursor.legs:
                continue

            route_id = str(uuid.uuid4())
            self.session.add(
                Route(
                    id=route_id,
                    agent_id=cursor.agent_id,
                    company_id=company_id,
                    date=route_date,
                    status=RouteStatus.PLANNED,
                    distance_meters=cursor.total_distance,
                    duration_seconds=cursor.total_duration,
                    created_at=now,
                    updated_at=now,
                )
            )

            for position, leg in enumerate(cursor.legs):
                self.session.add(
                    Stop(
                        route_id=route_id,
                        job_id=leg.job.id,
                        position=position,
                        lat=leg.job.location.lat,
                        lng=leg.job.location.lng,
                        service_seconds=leg.service_seconds,
                        status=StopStatus.PLANNED,
                        eta=leg.eta,
                        travel_from_lat=leg.origin.lat,
                        travel_from_lng=leg.origin.lng,
                        travel_to_lat=leg.job.location.lat,
                        travel_to_lng=leg.job.location.lng,
                        travel_distance_meters=leg.quote.distance_meters,
                        travel_duration_seconds=leg.quote.duration_seconds,
                        travel_polyline=leg.quote.polyline,
                        updated_at=now,
                    )
                )
                crud.upsert_assignment(
                    session=self.session,
                    assignment=Assignment(
                        id=f"{cursor.agent_id}_{leg.job.id}",
                        agent_id=cursor.agent_id,
                        job_id=leg.job.id,
                        route_id=route_id,
                        position=position,
                        created_at=now,
                        updated_at=now,
                    ),
                )
                crud.mark_job_assigned(
                    session=self.session, job_id=leg.job.id, agent_id=cursor.agent_id, now=now
                )

            route_ids.append(route_id)

        self.session.commit()
        return route_ids
