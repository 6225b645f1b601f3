from fastapi.testclient import TestClient


def test_healthcheck_returns_ok(client: TestClient) -> None:
    response = client.get("/v1/health/")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_workspace_health_with_mock_client(client: TestClient) -> None:
    response = client.get("/v1/health/workspace")
    assert response.status_code == 200
    assert response.json() == {"workspace_available": True}


def test_root_reports_service_metadata(client: TestClient) -> None:
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["service"] == "Figure Desk API"


def test_request_id_is_echoed(client: TestClient) -> None:
    response = client.get("/v1/health/", headers={"X-Request-ID": "abc123"})
    assert response.headers["X-Request-ID"] == "abc123"

    generated = client.get("/v1/health/")
    assert len(generated.headers["X-Request-ID"]) == 12
