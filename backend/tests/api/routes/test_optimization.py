from fastapi.testclient import TestClient
from sqlmodel import Session

from courier_dispatch.core.config import settings
from courier_dispatch.models.fleet_models import Job, JobStatus
from courier_dispatch.models.route_models import Route
from tests.utils.utils import DEPOT_A, DEPOT_B, create_agent, create_job


def test_optimize_assigns_jobs(client: TestClient, db: Session) -> None:
    create_agent(db, "m1", *DEPOT_A)
    create_agent(db, "m2", *DEPOT_B)
    create_job(db, "j1", 13.7573, 100.5018, priority=3)
    create_job(db, "j2", 13.7490, 100.4900, priority=1)

    response = client.post(
        f"{settings.API_V1_STR}/optimization/optimize",
        json={
            "agent_ids": ["m1", "m2"],
            "job_ids": ["j1", "j2"],
            "date": "2025-12-15",
            "chunk_delay_ms": 0,
        },
    )

    assert response.status_code == 200
    content = response.json()
    assert content["assigned_count"] == 2
    assert content["chunk_count"] == 1
    assert content["cache_hits"] + content["cache_misses"] > 0
    assert db.get(Route, "m1_2025-12-15") is not None
    job = db.get(Job, "j2")
    assert job.status == JobStatus.ASSIGNED
    assert job.assigned_to == "m2"


def test_optimize_rejects_empty_id_lists(client: TestClient) -> None:
    response = client.post(
        f"{settings.API_V1_STR}/optimization/optimize",
        json={"agent_ids": [], "job_ids": ["j1"]},
    )

    assert response.status_code == 400
    assert "agent_ids" in response.json()["detail"]


def test_optimize_unknown_ids_is_404(client: TestClient) -> None:
    response = client.post(
        f"{settings.API_V1_STR}/optimization/optimize",
        json={"agent_ids": ["ghost"], "job_ids": ["nothing"]},
    )

    assert response.status_code == 404


def test_optimize_body_type_errors_are_422(client: TestClient) -> None:
    response = client.post(
        f"{settings.API_V1_STR}/optimization/optimize",
        json={"agent_ids": "m1", "job_ids": ["j1"]},
    )

    assert response.status_code == 422
    assert response.json()["errors"]


def test_legacy_optimize(client: TestClient, db: Session) -> None:
    create_agent(db, "m1", *DEPOT_A)
    create_job(db, "j1", 13.7573, 100.5018)

    response = client.post(
        f"{settings.API_V1_STR}/optimization/legacy",
        json={"agent_ids": ["m1"], "date": "2025-12-15"},
    )

    assert response.status_code == 200
    content = response.json()
    assert content["date"] == "2025-12-15"
    assert content["routes_created"] == 1
    assert content["assigned_count"] == 1
    assert content["unassigned_count"] == 0

