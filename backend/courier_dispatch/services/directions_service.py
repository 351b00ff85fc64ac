import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, List, Optional, Tuple

import httpx
import polyline as pl

from courier_dispatch.core.config import settings
from courier_dispatch.services.geo import LatLng, utcnow

logger = logging.getLogger(__name__)


def decode_polyline(encoded_polyline: str) -> List[Tuple[float, float]]:
    """Decode a polyline string into latitude/longitude coordinates, [] if malformed."""
    try:
        return pl.decode(encoded_polyline)
    except (IndexError, TypeError, ValueError):
        return []


@dataclass(frozen=True)
class DirectionsResult:
    distance_meters: int
    duration_seconds: int
    polyline: Optional[str]


class DirectionsService:
    """Thin async client for the Google Directions JSON API.

    Every failure mode (missing key, transport error, timeout, non-OK status,
    unparsable payload) is reported as ``None`` so callers can fall back.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = settings.GOOGLE_MAPS_API_KEY if api_key is None else api_key
        self.base_url = base_url or settings.DIRECTIONS_BASE_URL
        self.client = client or httpx.AsyncClient(
            timeout=timeout or settings.DIRECTIONS_TIMEOUT_SECONDS
        )
        self._warned_missing_key = False

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def get_route(
        self,
        origin: LatLng,
        destination: LatLng,
        departure_time: Optional[datetime] = None,
    ) -> Optional[DirectionsResult]:
        """Driving route between two points, traffic-aware when a departure time is given."""
        if not self.api_key:
            if not self._warned_missing_key:
                logger.warning("GOOGLE_MAPS_API_KEY is not set; directions lookups are disabled")
                self._warned_missing_key = True
            return None

        params = {
            "origin": f"{origin.lat},{origin.lng}",
            "destination": f"{destination.lat},{destination.lng}",
            "mode": "driving",
            "key": self.api_key,
        }
        if departure_time is not None:
            # The API rejects departure times in the past
            departure = max(departure_time, utcnow())
            params["departure_time"] = str(int(departure.replace(tzinfo=timezone.utc).timestamp()))
            params["traffic_model"] = "best_guess"

        try:
            response = await self.client.get(
                self.base_url, params=params, headers={"Accept": "application/json"}
            )
        except httpx.HTTPError as e:
            logger.warning(f"Directions request failed: {e!r}")
            return None

        if response.status_code != 200:
            logger.warning(
                f"Directions HTTP {response.status_code}: {response.text[:200]}"
            )
            return None

        try:
            data = response.json()
        except ValueError:
            logger.warning("Directions response is not valid JSON")
            return None

        return self._parse_directions(data)

    def _parse_directions(self, data: Any) -> Optional[DirectionsResult]:
        if not isinstance(data, dict):
            return None

        status = data.get("status")
        if status is not None and status != "OK":
            logger.warning(
                f"Directions status {status}: {data.get('error_message') or 'no message'}"
            )
            return None

        try:
            route = data["routes"][0]
            leg = route["legs"][0]
            distance = int(leg["distance"]["value"])
            duration_block = leg.get("duration_in_traffic") or leg["duration"]
            duration = int(duration_block["value"])
        except (KeyError, IndexError, TypeError, ValueError):
            logger.warning("Directions response is missing route/leg data")
            return None

        encoded = (route.get("overview_polyline") or {}).get("points") or None
        if encoded is not None and not self.decode_polyline(encoded):
            logger.warning("Directions response carries an undecodable polyline")
            return None

        return DirectionsResult(
            distance_meters=max(0, distance),
            duration_seconds=max(0, duration),
            polyline=encoded,
        )

    def decode_polyline(self, encoded_polyline: str) -> List[Tuple[float, float]]:
        return decode_polyline(encoded_polyline)

    def encode_polyline(self, coordinates: List[Tuple[float, float]]) -> str:
        """Encode latitude/longitude coordinates into a polyline string."""
        return pl.encode(coordinates)

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()
