"""Backfill leg geometry on routes that were already built.

A leg runs from stop ``i-1`` to stop ``i`` and its travel is stored on stop
``i``. There is no leg from the depot to the first stop.
"""

import logging
from dataclasses import dataclass
from functools import partial
from typing import Optional

from sqlmodel import Session

from courier_dispatch import crud
from courier_dispatch.core.config import settings
from courier_dispatch.models.optimization_models import (
    EnrichAllRequest,
    EnrichAllResult,
    EnrichRouteResult,
)
from courier_dispatch.models.route_models import Route, Stop
from courier_dispatch.services.directions_service import DirectionsService
from courier_dispatch.services.errors import InvalidArgumentError, NotFoundError
from courier_dispatch.services.geo import (
    LatLng,
    estimate_seconds,
    haversine_meters,
    to_location,
)
from courier_dispatch.services.task_pool import BoundedTaskPool
from courier_dispatch.services.validation import validation_service

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LegOutcome:
    updated: bool = False
    hit: bool = False
    miss: bool = False


SKIPPED = LegOutcome()


class RouteEnricher:
    def __init__(
        self,
        session: Session,
        directions: DirectionsService,
        fallback_speed_kmh: Optional[float] = None,
    ):
        self.session = session
        self.directions = directions
        self.fallback_speed_kmh = fallback_speed_kmh or settings.FALLBACK_SPEED_KMH

    def _write_travel(
        self,
        stop: Stop,
        origin: LatLng,
        destination: LatLng,
        distance_meters: int,
        duration_seconds: int,
        polyline: Optional[str],
    ) -> None:
        crud.update_stop_travel(
            session=self.session,
            stop=stop,
            travel={
                "travel_from_lat": origin.lat,
                "travel_from_lng": origin.lng,
                "travel_to_lat": destination.lat,
                "travel_to_lng": destination.lng,
                "travel_distance_meters": distance_meters,
                "travel_duration_seconds": duration_seconds,
                "travel_polyline": polyline,
            },
        )

    async def _enrich_leg(
        self, route_id: str, prev: Stop, curr: Stop, force: bool, short_hop_meters: float
    ) -> LegOutcome:
        origin = to_location(prev.lat, prev.lng)
        destination = to_location(curr.lat, curr.lng)
        if origin is None or destination is None:
            return SKIPPED

        if not force and curr.has_complete_travel:
            return LegOutcome(hit=True)

        crow = haversine_meters(origin, destination)
        if crow <= short_hop_meters:
            self._write_travel(curr, origin, destination, round(crow), 0, None)
            return LegOutcome(updated=True, hit=True)

        try:
            result = await self.directions.get_route(origin, destination)
        except Exception as e:
            logger.warning(
                f"Route {route_id} stop {curr.job_id}: directions failed, straight-line fallback ({e!r})"
            )
            result = None

        if result is not None:
            self._write_travel(
                curr,
                origin,
                destination,
                result.distance_meters,
                result.duration_seconds,
                result.polyline,
            )
        else:
            self._write_travel(
                curr,
                origin,
                destination,
                round(crow),
                estimate_seconds(crow, self.fallback_speed_kmh),
                None,
            )
        return LegOutcome(updated=True, miss=True)

    async def enrich(
        self,
        route_id: str,
        *,
        force: bool = False,
        leg_concurrency: Optional[float] = None,
        short_hop_meters: Optional[float] = None,
    ) -> EnrichRouteResult:
        if not route_id or not route_id.strip():
            raise InvalidArgumentError("route_id is required")
        if self.session.get(Route, route_id) is None:
            raise NotFoundError(f"Route {route_id} not found")

        concurrency = validation_service.int_knob(
            leg_concurrency, settings.LEG_CONCURRENCY, 1, 10
        )
        short_hop = validation_service.knob(
            short_hop_meters, settings.SHORT_HOP_METERS, 0, 200
        )
        result = EnrichRouteResult(route_id=route_id)

        stops = crud.get_route_stops(session=self.session, route_id=route_id)
        if len(stops) < 2:
            logger.warning(f"Route {route_id}: not enough stops to enrich ({len(stops)})")
            return result

        pool = BoundedTaskPool(concurrency, cancel_on_error=True)
        for prev, curr in zip(stops, stops[1:]):
            pool.submit(self._enrich_leg, route_id, prev, curr, force, short_hop)
        outcomes: list[LegOutcome] = await pool.join()

        for outcome in outcomes:
            result.updated_stops += int(outcome.updated)
            result.cache_hits += int(outcome.hit)
            result.cache_misses += int(outcome.miss)

        crud.touch_route(session=self.session, route_id=route_id)
        logger.info(
            f"Route {route_id} enriched: {result.updated_stops} updated, "
            f"hits {result.cache_hits}, misses {result.cache_misses}"
        )
        return result

    def select_routes(self, request: EnrichAllRequest) -> list[str]:
        limit = validation_service.int_knob(request.limit, settings.ENRICH_ROUTE_LIMIT, 1, 500)
        explicit = validation_service.optional_id_list(request.route_ids, "route_ids")
        if explicit is not None:
            return explicit[:limit]
        return crud.list_routes_for_enrichment(
            session=self.session,
            company_id=request.company_id,
            updated_before=request.updated_before,
            limit=limit,
        )

    async def enrich_all(self, request: EnrichAllRequest) -> EnrichAllResult:
        route_concurrency = validation_service.int_knob(
            request.route_concurrency, settings.ROUTE_CONCURRENCY, 1, 10
        )
        route_ids = self.select_routes(request)
        result = EnrichAllResult(routes_total=len(route_ids))

        logger.info(
            f"Enrich all start: {len(route_ids)} routes, route concurrency {route_concurrency}"
        )

        pool = BoundedTaskPool(route_concurrency)
        for route_id in route_ids:
            pool.submit(
                partial(
                    self.enrich,
                    route_id,
                    force=request.force,
                    leg_concurrency=request.leg_concurrency,
                    short_hop_meters=request.short_hop_meters,
                )
            )
        outcomes = await pool.join(return_exceptions=True)

        for route_id, outcome in zip(route_ids, outcomes):
            if isinstance(outcome, BaseException):
                self.session.rollback()
                logger.error(f"Route {route_id} enrichment failed: {str(outcome)}")
                continue
            result.routes_processed += 1
            result.updated_stops += outcome.updated_stops
            result.cache_hits += outcome.cache_hits
            result.cache_misses += outcome.cache_misses

        logger.info(
            f"Enrich all done: {result.routes_processed}/{result.routes_total} routes, "
            f"{result.updated_stops} stops updated, hits {result.cache_hits}, misses {result.cache_misses}"
        )
        return result
