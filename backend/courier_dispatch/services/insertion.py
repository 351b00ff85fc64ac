"""Greedy best-insertion assignment of jobs onto agents' routes.

Jobs are taken one at a time in priority order. For each job every agent and
every position in that agent's in-memory route is priced as

    travel(before, job) + travel(job, after) + service - travel(before, after)

and the job is inserted at the cheapest position. Routes mutate as jobs are
inserted, so later jobs see earlier insertions. This is a single pass; nothing
is revisited.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional

from sqlmodel import Session

from courier_dispatch import crud
from courier_dispatch.models.fleet_models import Agent, Job
from courier_dispatch.models.route_models import (
    RETURN_DEPOT_JOB_ID,
    Assignment,
    Route,
    RouteStatus,
    Stop,
    StopStatus,
)
from courier_dispatch.services.geo import (
    LatLng,
    TimeWindow,
    parse_agent_hint,
    parse_time_windows,
    to_location,
    utcnow,
    windows_expired,
)
from courier_dispatch.services.travel_cost import TravelCostResolver

logger = logging.getLogger(__name__)

# A candidate must beat the running best by more than this to replace it outright
STRICT_IMPROVEMENT_SECONDS = 1


@dataclass(frozen=True)
class AgentSpec:
    id: str
    depot: LatLng
    return_to_base: bool = False
    company_id: Optional[str] = None


@dataclass(frozen=True)
class JobSpec:
    id: str
    location: LatLng
    priority: int = 0
    service_seconds: Optional[int] = None
    windows: tuple[TimeWindow, ...] = ()
    hint: frozenset[str] = frozenset()
    company_id: Optional[str] = None

    @property
    def first_window_start(self) -> Optional[datetime]:
        return self.windows[0].start if self.windows else None


@dataclass(frozen=True)
class InsertionConfig:
    short_hop_meters: float
    tie_nudge_seconds: float
    service_seconds_default: int
    ignore_windows: bool = False


@dataclass
class _Candidate:
    agent_id: str
    position: int
    delta: float


@dataclass
class AssignmentOutcome:
    assigned_count: int = 0
    assigned_ids: list[str] = field(default_factory=list)
    cache_hits: int = 0
    cache_misses: int = 0
    # agent id -> ordered jobs; only agents of this pass
    routes: dict[str, list[JobSpec]] = field(default_factory=dict)


def agent_spec_from_record(agent: Agent) -> Optional[AgentSpec]:
    depot = to_location(agent.start_lat, agent.start_lng)
    if depot is None:
        return None
    return AgentSpec(
        id=agent.id,
        depot=depot,
        return_to_base=bool(agent.return_to_base),
        company_id=agent.company_id,
    )


def job_spec_from_record(job: Job, windows: Optional[list] = None) -> Optional[JobSpec]:
    location = to_location(job.lat, job.lng)
    if location is None:
        return None
    raw_windows = job.time_windows if windows is None else windows
    return JobSpec(
        id=job.id,
        location=location,
        priority=job.priority or 0,
        service_seconds=job.service_seconds,
        windows=tuple(parse_time_windows(raw_windows)),
        hint=parse_agent_hint(job.agent_hint),
        company_id=job.company_id,
    )


def sort_jobs(jobs: Iterable[JobSpec]) -> list[JobSpec]:
    """Priority descending, then earliest window start; windowless jobs last."""
    return sorted(
        jobs,
        key=lambda j: (
            -j.priority,
            j.first_window_start is None,
            j.first_window_start or datetime.min,
        ),
    )


class InsertionAssignmentEngine:
    def __init__(self, session: Session, resolver: TravelCostResolver):
        self.session = session
        self.resolver = resolver

    async def assign(
        self,
        jobs: list[JobSpec],
        agents: list[AgentSpec],
        already_assigned: set[str],
        config: InsertionConfig,
        *,
        now: Optional[datetime] = None,
        route_date: Optional[str] = None,
    ) -> AssignmentOutcome:
        """Plan insertions for ``jobs`` over ``agents`` and persist the result.

        ``jobs`` must already be ordered with :func:`sort_jobs`. Jobs listed in
        ``already_assigned`` are skipped.
        """
        now = now or utcnow()
        outcome = await self.plan(jobs, agents, already_assigned, config, now=now)
        self.persist(outcome, agents, config, now=now, route_date=route_date)
        return outcome

    async def plan(
        self,
        jobs: list[JobSpec],
        agents: list[AgentSpec],
        already_assigned: set[str],
        config: InsertionConfig,
        *,
        now: datetime,
    ) -> AssignmentOutcome:
        outcome = AssignmentOutcome(routes={agent.id: [] for agent in agents})
        agents_by_id = {agent.id: agent for agent in agents}

        for job in jobs:
            if job.id in already_assigned or job.id in outcome.assigned_ids:
                continue

            expired = not config.ignore_windows and windows_expired(list(job.windows), now)

            service = (
                job.service_seconds
                if job.service_seconds is not None
                else config.service_seconds_default
            )

            best: Optional[_Candidate] = None
            for agent in agents:
                seq = outcome.routes[agent.id]
                for position in range(len(seq) + 1):
                    before = agent.depot if position == 0 else seq[position - 1].location
                    after = seq[position].location if position < len(seq) else None

                    delta = await self._insertion_delta(
                        before, job.location, after, service, config, now, outcome
                    )
                    if expired:
                        # priced and counted, never placed
                        continue
                    best = self._pick(best, _Candidate(agent.id, position, delta), job, config)

            if best is None:
                if expired:
                    logger.debug(f"Job {job.id}: every time window has expired, leaving unassigned")
                continue

            outcome.routes[best.agent_id].insert(best.position, job)
            outcome.assigned_ids.append(job.id)
            outcome.assigned_count += 1
            logger.debug(
                f"Job {job.id} -> agent {best.agent_id} at {best.position} "
                f"(+{best.delta:.0f}s, depot {agents_by_id[best.agent_id].depot.as_tuple()})"
            )

        return outcome

    async def _insertion_delta(
        self,
        before: LatLng,
        target: LatLng,
        after: Optional[LatLng],
        service: int,
        config: InsertionConfig,
        now: datetime,
        outcome: AssignmentOutcome,
    ) -> float:
        seconds_in = await self._travel(before, target, config, now, outcome)
        if after is None:
            return seconds_in + service
        seconds_out = await self._travel(target, after, config, now, outcome)
        seconds_removed = await self._travel(before, after, config, now, outcome)
        return seconds_in + seconds_out + service - seconds_removed

    async def _travel(
        self,
        origin: LatLng,
        destination: LatLng,
        config: InsertionConfig,
        now: datetime,
        outcome: AssignmentOutcome,
    ) -> int:
        result = await self.resolver.resolve_travel_seconds(
            origin,
            destination,
            reference_time=now,
            short_hop_meters=config.short_hop_meters,
        )
        if result.was_cached:
            outcome.cache_hits += 1
        else:
            outcome.cache_misses += 1
        return result.seconds

    @staticmethod
    def _pick(
        best: Optional[_Candidate],
        candidate: _Candidate,
        job: JobSpec,
        config: InsertionConfig,
    ) -> _Candidate:
        if best is None or candidate.delta < best.delta - STRICT_IMPROVEMENT_SECONDS:
            return candidate
        if abs(candidate.delta - best.delta) <= config.tie_nudge_seconds:
            if candidate.agent_id in job.hint and best.agent_id not in job.hint:
                return candidate
        return best

    def persist(
        self,
        outcome: AssignmentOutcome,
        agents: list[AgentSpec],
        config: InsertionConfig,
        *,
        now: datetime,
        route_date: Optional[str] = None,
    ) -> list[str]:
        """Write route, stop, assignment and job status records. Returns route ids."""
        route_date = route_date or now.date().isoformat()
        route_ids: list[str] = []

        for agent in agents:
            seq = outcome.routes.get(agent.id) or []
            if not seq:
                continue

            route_id = f"{agent.id}_{route_date}"
            crud.upsert_route(
                session=self.session,
                route=Route(
                    id=route_id,
                    agent_id=agent.id,
                    company_id=agent.company_id,
                    date=route_date,
                    status=RouteStatus.ASSIGNED,
                    updated_at=now,
                ),
            )

            for position, job in enumerate(seq):
                crud.upsert_stop(
                    session=self.session,
                    stop=Stop(
                        route_id=route_id,
                        job_id=job.id,
                        position=position,
                        lat=job.location.lat,
                        lng=job.location.lng,
                        service_seconds=(
                            job.service_seconds
                            if job.service_seconds is not None
                            else config.service_seconds_default
                        ),
                        status=StopStatus.PLANNED,
                        updated_at=now,
                    ),
                )
                crud.upsert_assignment(
                    session=self.session,
                    assignment=Assignment(
                        id=f"{agent.id}_{job.id}",
                        agent_id=agent.id,
                        job_id=job.id,
                        route_id=route_id,
                        position=position,
                        created_at=now,
                        updated_at=now,
                    ),
                )
                crud.mark_job_assigned(
                    session=self.session, job_id=job.id, agent_id=agent.id, now=now
                )

            if agent.return_to_base:
                crud.upsert_stop(
                    session=self.session,
                    stop=Stop(
                        route_id=route_id,
                        job_id=RETURN_DEPOT_JOB_ID,
                        position=len(seq),
                        lat=agent.depot.lat,
                        lng=agent.depot.lng,
                        status=StopStatus.PLANNED,
                        is_depot=True,
                        updated_at=now,
                    ),
                )

            route_ids.append(route_id)

        self.session.commit()
        logger.info(
            f"Persisted {len(route_ids)} routes with {outcome.assigned_count} assigned jobs"
        )
        return route_ids
