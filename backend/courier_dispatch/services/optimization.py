import asyncio
import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Awaitable, Callable, Optional

from sqlmodel import Session

from courier_dispatch import crud
from courier_dispatch.core.config import settings
from courier_dispatch.models.optimization_models import OptimizeRequest, OptimizeResult
from courier_dispatch.services.errors import NotFoundError
from courier_dispatch.services.geo import utcnow
from courier_dispatch.services.insertion import (
    AgentSpec,
    InsertionAssignmentEngine,
    InsertionConfig,
    JobSpec,
    agent_spec_from_record,
    job_spec_from_record,
    sort_jobs,
)
from courier_dispatch.services.travel_cost import TravelCostResolver
from courier_dispatch.services.validation import validation_service

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OptimizeConfig:
    service_seconds_default: int
    short_hop_meters: float
    tie_nudge_seconds: float
    chunk_size: int
    chunk_delay_ms: int
    ignore_windows: bool = False

    @classmethod
    def from_request(cls, request: OptimizeRequest) -> "OptimizeConfig":
        v = validation_service
        return cls(
            service_seconds_default=v.int_knob(
                request.service_seconds_default, settings.DEFAULT_SERVICE_SECONDS, 0, 3600
            ),
            short_hop_meters=v.knob(request.short_hop_meters, settings.SHORT_HOP_METERS, 0, 200),
            tie_nudge_seconds=v.knob(request.tie_nudge_seconds, settings.TIE_NUDGE_SECONDS, 0, 600),
            chunk_size=v.int_knob(request.chunk_size, settings.CHUNK_SIZE, 1, 10),
            chunk_delay_ms=v.int_knob(request.chunk_delay_ms, settings.CHUNK_DELAY_MS, 0, 5000),
            ignore_windows=bool(request.ignore_windows),
        )

    def insertion_config(self) -> InsertionConfig:
        return InsertionConfig(
            short_hop_meters=self.short_hop_meters,
            tie_nudge_seconds=self.tie_nudge_seconds,
            service_seconds_default=self.service_seconds_default,
            ignore_windows=self.ignore_windows,
        )


def chunk_agents(agents: list[AgentSpec], size: int) -> list[list[AgentSpec]]:
    return [agents[i : i + size] for i in range(0, len(agents), size)]


class ChunkScheduler:
    """Runs the insertion engine over bounded groups of agents, one group at a time.

    Jobs assigned by an earlier group are never offered to a later one. A group
    that fails is logged and contributes nothing; the remaining groups still run.
    """

    def __init__(
        self,
        session: Session,
        resolver: TravelCostResolver,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.session = session
        self.engine = InsertionAssignmentEngine(session, resolver)
        self._sleep = sleep

    def load_agents(self, agent_ids: list[str], company_id: Optional[str]) -> list[AgentSpec]:
        records = crud.get_agents_by_ids(session=self.session, agent_ids=agent_ids)
        agents: list[AgentSpec] = []
        for record in records:
            spec = agent_spec_from_record(record)
            if spec is None:
                logger.warning(f"Agent {record.id} has no valid start location, skipping")
                continue
            if spec.company_id is None and company_id:
                spec = AgentSpec(spec.id, spec.depot, spec.return_to_base, company_id)
            agents.append(spec)
        return agents

    def load_jobs(self, job_ids: list[str]) -> list[JobSpec]:
        records = crud.get_jobs_by_ids(session=self.session, job_ids=job_ids)
        jobs: list[JobSpec] = []
        for record in records:
            spec = job_spec_from_record(record)
            if spec is None:
                logger.warning(f"Job {record.id} has no valid location, skipping")
                continue
            jobs.append(spec)
        return jobs

    async def optimize(
        self, request: OptimizeRequest, *, now: Optional[datetime] = None
    ) -> OptimizeResult:
        agent_ids = validation_service.require_id_list(request.agent_ids, "agent_ids")
        job_ids = validation_service.require_id_list(request.job_ids, "job_ids")
        config = OptimizeConfig.from_request(request)
        now = now or utcnow()

        logger.info(
            f"Optimize start: {len(agent_ids)} agents, {len(job_ids)} jobs, config={asdict(config)}"
        )

        agents = self.load_agents(agent_ids, request.company_id)
        jobs = self.load_jobs(job_ids)
        if not agents:
            raise NotFoundError("No valid agents found for the requested ids")
        if not jobs:
            raise NotFoundError("No valid jobs found for the requested ids")

        jobs = sort_jobs(jobs)
        chunks = chunk_agents(agents, config.chunk_size)
        insertion_config = config.insertion_config()

        result = OptimizeResult(chunk_count=len(chunks))
        assigned: set[str] = set()

        for index, chunk in enumerate(chunks, start=1):
            try:
                outcome = await self.engine.assign(
                    jobs,
                    chunk,
                    assigned,
                    insertion_config,
                    now=now,
                    route_date=request.date,
                )
            except Exception as e:
                self.session.rollback()
                logger.error(f"Chunk {index}/{len(chunks)} failed: {str(e)}")
            else:
                assigned.update(outcome.assigned_ids)
                result.assigned_job_ids.extend(outcome.assigned_ids)
                result.assigned_count += outcome.assigned_count
                result.cache_hits += outcome.cache_hits
                result.cache_misses += outcome.cache_misses
                logger.info(
                    f"Chunk {index}/{len(chunks)} complete: {outcome.assigned_count} assigned "
                    f"(total {result.assigned_count}, hits {result.cache_hits}, misses {result.cache_misses})"
                )

            if index < len(chunks) and config.chunk_delay_ms > 0:
                await self._sleep(config.chunk_delay_ms / 1000)

        logger.info(
            f"Optimize done: {result.assigned_count} assigned in {result.chunk_count} chunks, "
            f"hits {result.cache_hits}, misses {result.cache_misses}"
        )
        return result
