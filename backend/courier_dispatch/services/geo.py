"""Geo and time helpers shared by the optimizers and the route enricher."""

import math
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional

EARTH_RADIUS_M = 6371000.0
EXPIRED_WINDOW_GRACE = timedelta(minutes=5)

_HINT_SPLIT = re.compile(r"[,\s]+")


@dataclass(frozen=True)
class LatLng:
    lat: float
    lng: float

    def as_tuple(self) -> tuple[float, float]:
        return (self.lat, self.lng)


@dataclass(frozen=True)
class TimeWindow:
    start: datetime
    end: datetime


def is_valid_location(lat: Any, lng: Any) -> bool:
    if isinstance(lat, bool) or isinstance(lng, bool):
        return False
    if not isinstance(lat, (int, float)) or not isinstance(lng, (int, float)):
        return False
    if not (math.isfinite(lat) and math.isfinite(lng)):
        return False
    return -90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0


def to_location(lat: Any, lng: Any) -> Optional[LatLng]:
    """Build a LatLng, or None when the coordinates are missing or out of range."""
    if not is_valid_location(lat, lng):
        return None
    return LatLng(float(lat), float(lng))


def haversine_meters(a: LatLng, b: LatLng) -> float:
    """Great-circle distance in meters."""
    lat1, lng1, lat2, lng2 = map(math.radians, [a.lat, a.lng, b.lat, b.lng])
    dlat = lat2 - lat1
    dlng = lng2 - lng1
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(h)))


def estimate_seconds(meters: float, speed_kmh: float = 30.0) -> int:
    """Coarse drive time for a straight-line distance, never below one second."""
    speed_mps = speed_kmh * 1000.0 / 3600.0
    return max(1, round(meters / speed_mps))


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def coerce_number(value: Any, default: float) -> float:
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def utcnow() -> datetime:
    """Naive UTC now, the representation stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string or datetime into a naive UTC datetime."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_time_windows(raw: Optional[Iterable[Any]]) -> list[TimeWindow]:
    """Normalize raw {start, end} dicts, dropping unparsable entries, sorted by start."""
    windows: list[TimeWindow] = []
    for item in raw or []:
        if not isinstance(item, dict):
            continue
        start = parse_datetime(item.get("start"))
        end = parse_datetime(item.get("end"))
        if start is None or end is None:
            continue
        windows.append(TimeWindow(start=start, end=end))
    windows.sort(key=lambda w: w.start)
    return windows


def windows_expired(windows: list[TimeWindow], now: datetime) -> bool:
    """True only when every window ended more than the grace period before now.

    This is a not-yet-expired check; arrival inside the window is not verified.
    """
    if not windows:
        return False
    latest_end = max(w.end for w in windows)
    return latest_end < now - EXPIRED_WINDOW_GRACE


def next_feasible_start(arrival: datetime, windows: list[TimeWindow]) -> Optional[datetime]:
    """Earliest service start at or after arrival inside the first usable window."""
    if not windows:
        return arrival
    for window in windows:
        if arrival <= window.end:
            start = max(arrival, window.start)
            if start <= window.end:
                return start
    return None


def parse_agent_hint(hint: Optional[str]) -> frozenset[str]:
    if not hint:
        return frozenset()
    return frozenset(part.strip() for part in _HINT_SPLIT.split(hint) if part.strip())
