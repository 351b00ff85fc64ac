from datetime import datetime
from enum import Enum
from typing import ClassVar, Optional

from sqlalchemy import JSON
from sqlmodel import Column, Field, SQLModel


class JobStatus(str, Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class VehicleType(str, Enum):
    BIKE = "bike"
    CAR = "car"
    FOOT = "foot"


# ============= AGENT (MESSENGER) MODELS =============
class AgentBase(SQLModel):
    display_name: Optional[str] = Field(default=None, max_length=255)
    company_id: Optional[str] = Field(default=None, index=True, max_length=64)
    vehicle_type: Optional[VehicleType] = None

    # Start depot; also the return point when return_to_base is set
    start_lat: Optional[float] = None
    start_lng: Optional[float] = None
    return_to_base: bool = False

    shift_start: Optional[datetime] = None
    shift_end: Optional[datetime] = None


class Agent(AgentBase, table=True):
    __tablename__: ClassVar[str] = "agents"

    id: str = Field(primary_key=True, max_length=64)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


# ============= JOB MODELS =============
class JobBase(SQLModel):
    title: Optional[str] = Field(default=None, max_length=255)
    address: Optional[str] = Field(default=None, max_length=500)
    company_id: Optional[str] = Field(default=None, index=True, max_length=64)

    lat: Optional[float] = None
    lng: Optional[float] = None

    # Higher value = more urgent; missing counts as 0
    priority: Optional[int] = None
    service_seconds: Optional[int] = Field(default=None, ge=0)

    # Free text, e.g. "m1, m2"
    agent_hint: Optional[str] = Field(default=None, max_length=500)


class Job(JobBase, table=True):
    __tablename__: ClassVar[str] = "jobs"

    id: str = Field(primary_key=True, max_length=64)

    # [{"start": ISO-8601, "end": ISO-8601}, ...]
    time_windows: Optional[list[dict]] = Field(default=None, sa_column=Column(JSON))
    # Legacy single window {"start": ..., "end": ...}
    time_window: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    status: JobStatus = Field(default=JobStatus.PENDING, index=True)
    assigned_to: Optional[str] = Field(default=None, max_length=64)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
