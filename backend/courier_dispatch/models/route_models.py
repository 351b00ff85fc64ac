from datetime import datetime
from enum import Enum
from typing import ClassVar, Optional

from sqlmodel import Field, SQLModel

RETURN_DEPOT_JOB_ID = "returnDepot"


class RouteStatus(str, Enum):
    PLANNED = "planned"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class StopStatus(str, Enum):
    PLANNED = "planned"
    ARRIVED = "arrived"
    COMPLETED = "completed"
    SKIPPED = "skipped"


# ============= ROUTE MODELS =============
class Route(SQLModel, table=True):
    __tablename__: ClassVar[str] = "routes"

    id: str = Field(primary_key=True, max_length=128)
    agent_id: str = Field(index=True, max_length=64)
    company_id: Optional[str] = Field(default=None, index=True, max_length=64)
    date: Optional[str] = Field(default=None, max_length=10)  # YYYY-MM-DD
    status: RouteStatus = RouteStatus.PLANNED

    # Totals, filled by the legacy optimizer
    distance_meters: Optional[int] = Field(default=None, ge=0)
    duration_seconds: Optional[int] = Field(default=None, ge=0)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, index=True)


# ============= STOP MODELS =============
class StopBase(SQLModel):
    position: int = Field(ge=0)
    lat: Optional[float] = None
    lng: Optional[float] = None
    service_seconds: Optional[int] = Field(default=None, ge=0)
    status: StopStatus = StopStatus.PLANNED
    eta: Optional[datetime] = None
    is_depot: bool = False

    arrived_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    notes: Optional[str] = Field(default=None, max_length=1000)

    # Travel of the leg that ends at this stop
    travel_from_lat: Optional[float] = None
    travel_from_lng: Optional[float] = None
    travel_to_lat: Optional[float] = None
    travel_to_lng: Optional[float] = None
    travel_distance_meters: Optional[int] = Field(default=None, ge=0)
    travel_duration_seconds: Optional[int] = Field(default=None, ge=0)
    travel_polyline: Optional[str] = None


class Stop(StopBase, table=True):
    __tablename__: ClassVar[str] = "stops"

    route_id: str = Field(primary_key=True, max_length=128)
    job_id: str = Field(primary_key=True, max_length=64)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def has_complete_travel(self) -> bool:
        return (
            bool(self.travel_polyline)
            and self.travel_from_lat is not None
            and self.travel_from_lng is not None
            and self.travel_to_lat is not None
            and self.travel_to_lng is not None
        )


class StopPublic(StopBase):
    route_id: str
    job_id: str
    updated_at: datetime


class StopUpdate(SQLModel):
    status: Optional[StopStatus] = None
    eta: Optional[datetime] = None
    arrived_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    notes: Optional[str] = Field(default=None, max_length=1000)


# ============= ASSIGNMENT MODELS =============
class Assignment(SQLModel, table=True):
    __tablename__: ClassVar[str] = "assignments"

    id: str = Field(primary_key=True, max_length=160)  # "{agent_id}_{job_id}"
    agent_id: str = Field(index=True, max_length=64)
    job_id: str = Field(index=True, max_length=64)
    route_id: Optional[str] = Field(default=None, max_length=128)
    position: Optional[int] = None
    status: str = Field(default="assigned", max_length=32)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
