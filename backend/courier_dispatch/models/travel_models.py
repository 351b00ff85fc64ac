from datetime import datetime
from typing import ClassVar, Optional

from sqlmodel import Field, SQLModel


class TravelCacheEntry(SQLModel, table=True):
    """Cached travel quote for an (origin, destination, 15-minute bucket) key."""

    __tablename__: ClassVar[str] = "travel_cache"

    key: str = Field(primary_key=True, max_length=128)
    from_lat: float
    from_lng: float
    to_lat: float
    to_lng: float
    bucket: int = Field(index=True)

    distance_meters: int = Field(ge=0)
    duration_seconds: int = Field(ge=0)
    polyline: Optional[str] = None

    updated_at: datetime = Field(default_factory=datetime.utcnow, index=True)
