import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlmodel import Session, col, delete, func, select

from courier_dispatch.core.config import settings
from courier_dispatch.models.travel_models import TravelCacheEntry
from courier_dispatch.services.geo import LatLng, utcnow

logger = logging.getLogger(__name__)


def _round6(value: float) -> float:
    return round(float(value), 6)


class TravelCache:
    """Keyed store of travel quotes bucketed by departure time.

    Entries older than the TTL read as absent but are left in place; a later
    write for the same key overwrites them.
    """

    def __init__(
        self,
        session: Session,
        ttl: Optional[timedelta] = None,
        bucket_minutes: Optional[int] = None,
    ):
        self.session = session
        self.ttl = ttl or timedelta(hours=settings.TRAVEL_CACHE_TTL_HOURS)
        self.bucket_minutes = bucket_minutes or settings.TRAVEL_CACHE_BUCKET_MINUTES

    def bucket_for(self, at: datetime) -> int:
        if at.tzinfo is None:
            at = at.replace(tzinfo=timezone.utc)
        return math.floor(at.timestamp() / (self.bucket_minutes * 60))

    def make_key(self, origin: LatLng, destination: LatLng, at: datetime) -> str:
        return (
            f"{_round6(origin.lat)},{_round6(origin.lng)}"
            f"|{_round6(destination.lat)},{_round6(destination.lng)}"
            f"|{self.bucket_for(at)}"
        )

    def get(
        self,
        origin: LatLng,
        destination: LatLng,
        at: datetime,
        now: Optional[datetime] = None,
    ) -> Optional[TravelCacheEntry]:
        entry = self.session.get(TravelCacheEntry, self.make_key(origin, destination, at))
        if entry is None:
            return None
        if (now or utcnow()) - entry.updated_at > self.ttl:
            return None
        return entry

    def put(
        self,
        origin: LatLng,
        destination: LatLng,
        at: datetime,
        *,
        distance_meters: int,
        duration_seconds: int,
        polyline: Optional[str],
        now: Optional[datetime] = None,
    ) -> TravelCacheEntry:
        """Create or overwrite the entry for this key (merge write)."""
        entry = TravelCacheEntry(
            key=self.make_key(origin, destination, at),
            from_lat=_round6(origin.lat),
            from_lng=_round6(origin.lng),
            to_lat=_round6(destination.lat),
            to_lng=_round6(destination.lng),
            bucket=self.bucket_for(at),
            distance_meters=int(distance_meters),
            duration_seconds=int(duration_seconds),
            polyline=polyline,
            updated_at=now or utcnow(),
        )
        merged = self.session.merge(entry)
        self.session.commit()
        return merged

    def count_expired(self, now: Optional[datetime] = None) -> int:
        cutoff = (now or utcnow()) - self.ttl
        statement = select(func.count()).select_from(TravelCacheEntry).where(
            col(TravelCacheEntry.updated_at) < cutoff
        )
        return self.session.exec(statement).one()

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        cutoff = (now or utcnow()) - self.ttl
        result = self.session.exec(  # type: ignore[call-overload]
            delete(TravelCacheEntry).where(col(TravelCacheEntry.updated_at) < cutoff)
        )
        self.session.commit()
        removed = result.rowcount or 0
        logger.info(f"Purged {removed} expired travel cache entries")
        return removed
