from datetime import datetime, timedelta

from sqlmodel import Session, select

from courier_dispatch.models.travel_models import TravelCacheEntry
from courier_dispatch.services.geo import LatLng, utcnow
from courier_dispatch.services.travel_cache import TravelCache

ORIGIN = LatLng(13.75630012, 100.50180049)
DESTINATION = LatLng(13.75, 100.49)


def test_key_rounds_to_six_decimals_and_buckets_by_fifteen_minutes(db: Session) -> None:
    cache = TravelCache(db)
    at = datetime(2025, 12, 15, 8, 7, 0)
    key = cache.make_key(ORIGIN, DESTINATION, at)

    assert key.startswith("13.7563,100.5018|13.75,100.49|")
    assert cache.bucket_for(at) == cache.bucket_for(datetime(2025, 12, 15, 8, 14, 59))
    assert cache.bucket_for(at) != cache.bucket_for(datetime(2025, 12, 15, 8, 15, 0))


def test_put_then_get_returns_stored_values(db: Session) -> None:
    cache = TravelCache(db)
    at = utcnow()
    cache.put(ORIGIN, DESTINATION, at, distance_meters=1500, duration_seconds=300, polyline="abc")

    entry = cache.get(ORIGIN, DESTINATION, at)

    assert entry is not None
    assert (entry.distance_meters, entry.duration_seconds, entry.polyline) == (1500, 300, "abc")


def test_get_misses_other_bucket(db: Session) -> None:
    cache = TravelCache(db)
    at = utcnow()
    cache.put(ORIGIN, DESTINATION, at, distance_meters=1500, duration_seconds=300, polyline=None)

    assert cache.get(ORIGIN, DESTINATION, at + timedelta(minutes=30)) is None
    assert cache.get(DESTINATION, ORIGIN, at) is None


def test_repeated_writes_converge_on_one_entry(db: Session) -> None:
    cache = TravelCache(db)
    at = utcnow()
    for _ in range(3):
        cache.put(ORIGIN, DESTINATION, at, distance_meters=1500, duration_seconds=300, polyline="p")

    rows = db.exec(select(TravelCacheEntry)).all()
    assert len(rows) == 1
    assert rows[0].duration_seconds == 300


def test_entry_older_than_ttl_reads_as_absent_but_is_kept(db: Session) -> None:
    cache = TravelCache(db)
    at = utcnow()
    cache.put(
        ORIGIN,
        DESTINATION,
        at,
        distance_meters=1500,
        duration_seconds=300,
        polyline=None,
        now=utcnow() - timedelta(hours=25),
    )

    assert cache.get(ORIGIN, DESTINATION, at) is None
    assert db.get(TravelCacheEntry, cache.make_key(ORIGIN, DESTINATION, at)) is not None


def test_purge_expired_removes_only_stale_entries(db: Session) -> None:
    cache = TravelCache(db)
    at = utcnow()
    cache.put(ORIGIN, DESTINATION, at, distance_meters=1, duration_seconds=1, polyline=None,
              now=utcnow() - timedelta(hours=30))
    cache.put(DESTINATION, ORIGIN, at, distance_meters=2, duration_seconds=2, polyline=None)

    assert cache.purge_expired() == 1
    assert cache.get(DESTINATION, ORIGIN, at) is not None
