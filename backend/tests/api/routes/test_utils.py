from fastapi.routing import APIRoute
from fastapi.testclient import TestClient

from courier_dispatch.core.config import settings
from courier_dispatch.main import custom_generate_unique_id


def test_health(client: TestClient) -> None:
    response = client.get(f"{settings.API_V1_STR}/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": settings.PROJECT_NAME}


def test_version(client: TestClient) -> None:
    response = client.get(f"{settings.API_V1_STR}/version")

    assert response.status_code == 200
    assert "chunked_best_insertion" in response.json()["features"]


def test_openapi_operation_ids_are_unique(client: TestClient) -> None:
    response = client.get(f"{settings.API_V1_STR}/openapi.json")

    assert response.status_code == 200
    operation_ids = [
        operation["operationId"]
        for path in response.json()["paths"].values()
        for operation in path.values()
    ]
    assert "utils-health_check" in operation_ids
    assert "optimization-optimize_routes" in operation_ids
    assert len(operation_ids) == len(set(operation_ids))


def test_unique_id_for_untagged_route_uses_name() -> None:
    def ping() -> dict:
        return {}

    assert custom_generate_unique_id(APIRoute("/ping", endpoint=ping)) == "ping"
