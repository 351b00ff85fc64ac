import logging
import math
import random
import uuid
from datetime import datetime, timedelta
from typing import Optional

from sqlmodel import Session

from courier_dispatch.models.fleet_models import Job, JobStatus
from courier_dispatch.models.optimization_models import SeedJobsRequest, SeedJobsResult
from courier_dispatch.services.errors import InvalidArgumentError
from courier_dispatch.services.geo import LatLng, utcnow
from courier_dispatch.services.validation import validation_service

logger = logging.getLogger(__name__)

METERS_PER_DEGREE_LAT = 111320.0
DEFAULT_SEED_COUNT = 12
DEFAULT_SEED_RADIUS_METERS = 2500
SEED_WINDOW = timedelta(hours=6)


def random_point_within(center: LatLng, radius_meters: float, rng: random.Random) -> LatLng:
    """Uniform angle, uniform distance; points cluster toward the center."""
    angle = rng.random() * 2 * math.pi
    distance = rng.random() * radius_meters
    d_lat = distance * math.cos(angle) / METERS_PER_DEGREE_LAT
    d_lng = distance * math.sin(angle) / (
        METERS_PER_DEGREE_LAT * math.cos(math.radians(center.lat))
    )
    return LatLng(center.lat + d_lat, center.lng + d_lng)


def seed_mock_jobs(
    *,
    session: Session,
    request: SeedJobsRequest,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> SeedJobsResult:
    if request.center is None:
        raise InvalidArgumentError("center.lat/lng required")
    center = validation_service.require_location(request.center.lat, request.center.lng, "center")
    count = validation_service.int_knob(request.count, DEFAULT_SEED_COUNT, 1, 200)
    radius = validation_service.knob(request.radius_meters, DEFAULT_SEED_RADIUS_METERS, 100, 10000)
    rng = rng or random.Random()
    now = now or utcnow()

    window = [{"start": now.isoformat() + "Z", "end": (now + SEED_WINDOW).isoformat() + "Z"}]
    job_ids: list[str] = []
    for i in range(count):
        point = random_point_within(center, radius, rng)
        job = Job(
            id=str(uuid.uuid4()),
            title=f"Mock Job #{i + 1}",
            address="TBD",
            lat=point.lat,
            lng=point.lng,
            priority=1,
            status=JobStatus.PENDING,
            company_id=request.company_id,
            agent_hint=request.agent_id,
            time_windows=window,
            created_at=now,
            updated_at=now,
        )
        session.add(job)
        job_ids.append(job.id)
    session.commit()

    logger.info(f"Seeded {len(job_ids)} mock jobs around {center.as_tuple()} (radius {radius:.0f}m)")
    return SeedJobsResult(created=len(job_ids), job_ids=job_ids, agent_id=request.agent_id)
