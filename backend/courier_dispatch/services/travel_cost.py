import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from courier_dispatch.core.config import settings
from courier_dispatch.services.directions_service import DirectionsService
from courier_dispatch.services.geo import LatLng, estimate_seconds, haversine_meters, utcnow
from courier_dispatch.services.travel_cache import TravelCache

logger = logging.getLogger(__name__)


class Provenance(str, Enum):
    CACHE_HIT = "cache-hit"
    SHORT_HOP = "short-hop"
    PROVIDER = "provider"
    FALLBACK = "fallback-estimate"


@dataclass(frozen=True)
class TravelQuote:
    distance_meters: int
    duration_seconds: int
    polyline: Optional[str]
    provenance: Provenance

    @property
    def was_cached(self) -> bool:
        # Short hops count as hits in the accounting
        return self.provenance in (Provenance.CACHE_HIT, Provenance.SHORT_HOP)


@dataclass(frozen=True)
class TravelSeconds:
    seconds: int
    was_cached: bool


class TravelCostResolver:
    """Resolves distance/duration/geometry between two points.

    Order of lookup: short hop, cache, routing provider, straight-line
    estimate. ``resolve`` never raises; every failure degrades to the
    estimate.
    """

    def __init__(
        self,
        cache: TravelCache,
        directions: DirectionsService,
        fallback_speed_kmh: Optional[float] = None,
    ):
        self.cache = cache
        self.directions = directions
        self.fallback_speed_kmh = fallback_speed_kmh or settings.FALLBACK_SPEED_KMH

    def fallback_quote(self, crow_meters: float) -> TravelQuote:
        return TravelQuote(
            distance_meters=round(crow_meters),
            duration_seconds=estimate_seconds(crow_meters, self.fallback_speed_kmh),
            polyline=None,
            provenance=Provenance.FALLBACK,
        )

    async def resolve(
        self,
        origin: LatLng,
        destination: LatLng,
        reference_time: datetime,
        short_hop_meters: float,
    ) -> TravelQuote:
        crow = haversine_meters(origin, destination)
        if crow <= short_hop_meters:
            return TravelQuote(
                distance_meters=round(crow),
                duration_seconds=0,
                polyline=None,
                provenance=Provenance.SHORT_HOP,
            )

        try:
            entry = self.cache.get(origin, destination, reference_time)
        except SQLAlchemyError as e:
            logger.warning(f"Travel cache read failed, treating as miss: {e}")
            self.cache.session.rollback()
            entry = None

        if entry is not None:
            return TravelQuote(
                distance_meters=entry.distance_meters,
                duration_seconds=entry.duration_seconds,
                polyline=entry.polyline,
                provenance=Provenance.CACHE_HIT,
            )

        try:
            result = await self.directions.get_route(
                origin, destination, departure_time=reference_time
            )
        except Exception as e:
            logger.warning(f"Directions lookup raised, using estimate: {e!r}")
            result = None

        if result is None:
            logger.debug(
                f"Fallback estimate for {origin.as_tuple()} -> {destination.as_tuple()}"
            )
            return self.fallback_quote(crow)

        try:
            self.cache.put(
                origin,
                destination,
                reference_time,
                distance_meters=result.distance_meters,
                duration_seconds=result.duration_seconds,
                polyline=result.polyline,
            )
        except SQLAlchemyError as e:
            logger.warning(f"Travel cache write failed: {e}")
            self.cache.session.rollback()

        return TravelQuote(
            distance_meters=result.distance_meters,
            duration_seconds=result.duration_seconds,
            polyline=result.polyline,
            provenance=Provenance.PROVIDER,
        )

    async def resolve_travel_seconds(
        self,
        origin: LatLng,
        destination: LatLng,
        *,
        reference_time: Optional[datetime] = None,
        short_hop_meters: Optional[float] = None,
    ) -> TravelSeconds:
        quote = await self.resolve(
            origin,
            destination,
            reference_time or utcnow(),
            settings.SHORT_HOP_METERS if short_hop_meters is None else short_hop_meters,
        )
        return TravelSeconds(seconds=quote.duration_seconds, was_cached=quote.was_cached)
