from datetime import timedelta

import polyline as pl
from fastapi.testclient import TestClient
from sqlmodel import Session

from courier_dispatch.core.config import settings
from courier_dispatch.models.fleet_models import Job
from courier_dispatch.models.route_models import Stop
from tests.utils.utils import NOW, create_route_with_stops

STOPS = [(13.70, 100.50), (13.71, 100.50), (13.72, 100.50)]


def test_enrich_route_uses_fallback_without_api_key(client: TestClient, db: Session) -> None:
    create_route_with_stops(db, "r1", STOPS)

    response = client.post(f"{settings.API_V1_STR}/routes/r1/enrich", json={"force": False})

    assert response.status_code == 200
    content = response.json()
    assert content == {"route_id": "r1", "updated_stops": 2, "cache_hits": 0, "cache_misses": 2}


def test_enrich_route_without_body(client: TestClient, db: Session) -> None:
    create_route_with_stops(db, "r1", STOPS)

    response = client.post(f"{settings.API_V1_STR}/routes/r1/enrich")

    assert response.status_code == 200
    assert response.json()["updated_stops"] == 2


def test_enrich_unknown_route_is_404(client: TestClient) -> None:
    response = client.post(f"{settings.API_V1_STR}/routes/missing/enrich", json={})

    assert response.status_code == 404


def test_enrich_all(client: TestClient, db: Session) -> None:
    create_route_with_stops(db, "r1", STOPS, updated_at=NOW - timedelta(days=1))
    create_route_with_stops(db, "r2", STOPS[:2], updated_at=NOW)

    response = client.post(
        f"{settings.API_V1_STR}/routes/enrich-all",
        json={"limit": 10, "route_concurrency": 50},
    )

    assert response.status_code == 200
    content = response.json()
    assert content["routes_total"] == 2
    assert content["routes_processed"] == 2
    assert content["updated_stops"] == 3


def test_route_map_decodes_polylines_and_bounds(client: TestClient, db: Session) -> None:
    create_route_with_stops(db, "r1", STOPS[:2])
    stop = db.get(Stop, ("r1", "r1-j1"))
    stop.travel_from_lat, stop.travel_from_lng = STOPS[0]
    stop.travel_to_lat, stop.travel_to_lng = STOPS[1]
    stop.travel_polyline = pl.encode([STOPS[0], (13.705, 100.51), STOPS[1]])
    db.add(stop)
    db.commit()

    response = client.get(f"{settings.API_V1_STR}/routes/r1/map")

    assert response.status_code == 200
    content = response.json()
    assert [s["job_id"] for s in content["stops"]] == ["r1-j0", "r1-j1"]
    assert content["stops"][0]["travel"] is None
    assert content["stops"][1]["travel"]["path"][1] == [13.705, 100.51]
    assert content["bounds"] == {"north": 13.71, "south": 13.70, "east": 100.51, "west": 100.50}


def test_route_map_without_coordinates_uses_default_bounds(client: TestClient, db: Session) -> None:
    create_route_with_stops(db, "r1", [None])

    response = client.get(f"{settings.API_V1_STR}/routes/r1/map")

    assert response.status_code == 200
    assert response.json()["bounds"]["north"] == 14.0


def test_route_map_unknown_route_is_404(client: TestClient) -> None:
    assert client.get(f"{settings.API_V1_STR}/routes/missing/map").status_code == 404


def test_update_stop(client: TestClient, db: Session) -> None:
    create_route_with_stops(db, "r1", STOPS[:1])

    response = client.patch(
        f"{settings.API_V1_STR}/routes/r1/stops/r1-j0",
        json={"status": "completed", "notes": "left at reception"},
    )

    assert response.status_code == 200
    content = response.json()
    assert content["status"] == "completed"
    assert content["notes"] == "left at reception"
    assert content["position"] == 0


def test_update_missing_stop_is_404(client: TestClient) -> None:
    response = client.patch(
        f"{settings.API_V1_STR}/routes/r1/stops/nope",
        json={"status": "arrived"},
    )

    assert response.status_code == 404


def test_seed_jobs(client: TestClient, db: Session) -> None:
    response = client.post(
        f"{settings.API_V1_STR}/dev/seed-jobs",
        json={"center": {"lat": 13.7563, "lng": 100.5018}, "count": 5, "agent_id": "m1"},
    )

    assert response.status_code == 200
    content = response.json()
    assert content["created"] == 5
    assert content["agent_id"] == "m1"
    job = db.get(Job, content["job_ids"][0])
    assert job.agent_hint == "m1"
    assert job.time_windows


def test_seed_jobs_clamps_count_and_rejects_bad_center(client: TestClient) -> None:
    many = client.post(
        f"{settings.API_V1_STR}/dev/seed-jobs",
        json={"center": {"lat": 13.7563, "lng": 100.5018}, "count": 1000},
    )
    bad = client.post(
        f"{settings.API_V1_STR}/dev/seed-jobs",
        json={"center": {"lat": 200, "lng": 100.5018}},
    )
    missing = client.post(f"{settings.API_V1_STR}/dev/seed-jobs", json={})

    assert many.json()["created"] == 200
    assert bad.status_code == 400
    assert missing.status_code == 400
