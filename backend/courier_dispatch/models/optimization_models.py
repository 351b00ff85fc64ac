from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class Location(SQLModel):
    lat: float
    lng: float


# ============= OPTIMIZE (CHUNKED BEST INSERTION) =============
class OptimizeRequest(SQLModel):
    # Lists are validated by the service so that empty input maps to a 400
    agent_ids: Optional[list[str]] = None
    job_ids: Optional[list[str]] = None
    company_id: Optional[str] = None
    date: Optional[str] = None

    # Knobs are clamped server side, see services.optimization.OptimizeConfig
    service_seconds_default: Optional[float] = None
    short_hop_meters: Optional[float] = None
    tie_nudge_seconds: Optional[float] = None
    chunk_size: Optional[float] = None
    chunk_delay_ms: Optional[float] = None
    ignore_windows: bool = False


class OptimizeResult(SQLModel):
    assigned_count: int = 0
    chunk_count: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    assigned_job_ids: list[str] = Field(default_factory=list)


# ============= LEGACY SINGLE-SHOT OPTIMIZER =============
class LegacyOptimizeRequest(SQLModel):
    agent_ids: Optional[list[str]] = None
    date: Optional[str] = None
    company_id: Optional[str] = None


class LegacyOptimizeResult(SQLModel):
    date: str
    routes_created: int = 0
    route_ids: list[str] = Field(default_factory=list)
    assigned_count: int = 0
    unassigned_count: int = 0


# ============= ROUTE ENRICHMENT =============
class EnrichRouteRequest(SQLModel):
    force: bool = False
    leg_concurrency: Optional[float] = None
    short_hop_meters: Optional[float] = None


class EnrichRouteResult(SQLModel):
    route_id: str
    updated_stops: int = 0
    cache_hits: int = 0
    cache_misses: int = 0


class EnrichAllRequest(SQLModel):
    route_ids: Optional[list[str]] = None
    company_id: Optional[str] = None
    updated_before: Optional[datetime] = None
    limit: Optional[float] = None
    force: bool = False
    route_concurrency: Optional[float] = None
    leg_concurrency: Optional[float] = None
    short_hop_meters: Optional[float] = None


class EnrichAllResult(SQLModel):
    routes_processed: int = 0
    routes_total: int = 0
    updated_stops: int = 0
    cache_hits: int = 0
    cache_misses: int = 0


# ============= DEV SEEDING =============
class SeedJobsRequest(SQLModel):
    center: Optional[Location] = None
    count: Optional[float] = None
    radius_meters: Optional[float] = None
    agent_id: Optional[str] = None
    company_id: Optional[str] = None


class SeedJobsResult(SQLModel):
    created: int = 0
    job_ids: list[str] = Field(default_factory=list)
    agent_id: Optional[str] = None
