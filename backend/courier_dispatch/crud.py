from datetime import datetime
from typing import Any, Optional, Sequence

from sqlmodel import Session, col, select

from courier_dispatch.models.fleet_models import Agent, Job, JobStatus
from courier_dispatch.models.route_models import Assignment, Route, Stop, StopUpdate
from courier_dispatch.services.geo import utcnow


# ============= AGENTS / JOBS =============
def get_agents_by_ids(*, session: Session, agent_ids: Sequence[str]) -> list[Agent]:
    """Agents in the order of ``agent_ids``; unknown ids are dropped."""
    if not agent_ids:
        return []
    rows = session.exec(select(Agent).where(col(Agent.id).in_(list(agent_ids)))).all()
    by_id = {agent.id: agent for agent in rows}
    return [by_id[agent_id] for agent_id in agent_ids if agent_id in by_id]


def get_jobs_by_ids(*, session: Session, job_ids: Sequence[str]) -> list[Job]:
    """Jobs in the order of ``job_ids``; unknown ids are dropped."""
    if not job_ids:
        return []
    rows = session.exec(select(Job).where(col(Job.id).in_(list(job_ids)))).all()
    by_id = {job.id: job for job in rows}
    return [by_id[job_id] for job_id in job_ids if job_id in by_id]


def get_pending_jobs(*, session: Session, company_id: Optional[str] = None) -> list[Job]:
    statement = select(Job).where(Job.status == JobStatus.PENDING)
    if company_id:
        statement = statement.where(Job.company_id == company_id)
    return list(session.exec(statement.order_by(col(Job.id))).all())


def mark_job_assigned(
    *, session: Session, job_id: str, agent_id: str, now: Optional[datetime] = None
) -> Optional[Job]:
    job = session.get(Job, job_id)
    if job is None:
        return None
    job.status = JobStatus.ASSIGNED
    job.assigned_to = agent_id
    job.updated_at = now or utcnow()
    session.add(job)
    return job


# ============= ROUTES / STOPS =============
def upsert_route(*, session: Session, route: Route) -> Route:
    existing = session.get(Route, route.id)
    if existing is None:
        session.add(route)
        return route
    existing.sqlmodel_update(
        route.model_dump(exclude={"id", "created_at"}, exclude_none=True)
    )
    session.add(existing)
    return existing


def upsert_stop(*, session: Session, stop: Stop) -> Stop:
    return session.merge(stop)


def upsert_assignment(*, session: Session, assignment: Assignment) -> Assignment:
    existing = session.get(Assignment, assignment.id)
    if existing is not None:
        assignment.created_at = existing.created_at
    return session.merge(assignment)


def get_route_stops(*, session: Session, route_id: str) -> list[Stop]:
    statement = (
        select(Stop).where(Stop.route_id == route_id).order_by(col(Stop.position))
    )
    return list(session.exec(statement).all())


def get_stop(*, session: Session, route_id: str, job_id: str) -> Optional[Stop]:
    return session.get(Stop, (route_id, job_id))


def update_stop_travel(
    *, session: Session, stop: Stop, travel: dict[str, Any], now: Optional[datetime] = None
) -> Stop:
    stop.sqlmodel_update(travel)
    stop.updated_at = now or utcnow()
    session.add(stop)
    session.commit()
    return stop


def update_stop(*, session: Session, db_stop: Stop, stop_in: StopUpdate) -> Stop:
    stop_data = stop_in.model_dump(exclude_unset=True)
    db_stop.sqlmodel_update(stop_data, update={"updated_at": utcnow()})
    session.add(db_stop)
    session.commit()
    session.refresh(db_stop)
    return db_stop


def touch_route(*, session: Session, route_id: str, now: Optional[datetime] = None) -> None:
    route = session.get(Route, route_id)
    if route is None:
        return
    route.updated_at = now or utcnow()
    session.add(route)
    session.commit()


def list_routes_for_enrichment(
    *,
    session: Session,
    company_id: Optional[str] = None,
    updated_before: Optional[datetime] = None,
    limit: int = 20,
) -> list[str]:
    """Route ids ordered by least recently updated first."""
    statement = select(Route.id)
    if company_id:
        statement = statement.where(Route.company_id == company_id)
    if updated_before is not None:
        statement = statement.where(col(Route.updated_at) < updated_before)
    statement = statement.order_by(col(Route.updated_at), col(Route.id)).limit(limit)
    return list(session.exec(statement).all())
