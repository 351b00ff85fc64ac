from datetime import timedelta

from sqlmodel import Session, select

from courier_dispatch.models.travel_models import TravelCacheEntry
from courier_dispatch.services.geo import LatLng
from courier_dispatch.services.travel_cache import TravelCache
from scripts.purge_travel_cache import _purge
from tests.utils.utils import NOW

ORIGIN = LatLng(13.7563, 100.5018)
DESTINATION = LatLng(13.75, 100.49)


def _seed(db: Session) -> None:
    cache = TravelCache(db)
    cache.put(ORIGIN, DESTINATION, NOW, distance_meters=1, duration_seconds=1, polyline=None,
              now=NOW - timedelta(hours=30))
    cache.put(DESTINATION, ORIGIN, NOW, distance_meters=2, duration_seconds=2, polyline=None,
              now=NOW - timedelta(hours=2))


def test_dry_run_only_counts(db: Session) -> None:
    _seed(db)

    assert _purge(db, ttl_hours=24, dry_run=True, now=NOW) == 1
    assert len(db.exec(select(TravelCacheEntry)).all()) == 2


def test_purge_uses_given_ttl(db: Session) -> None:
    _seed(db)

    assert _purge(db, ttl_hours=1, dry_run=False, now=NOW) == 2
    assert db.exec(select(TravelCacheEntry)).all() == []
