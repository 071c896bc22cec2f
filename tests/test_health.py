from fastapi.testclient import TestClient


def _headers(user_id: str, role: str) -> dict[str, str]:
    return {"X-User-Id": user_id, "X-User-Role": role}


def test_health_endpoint(client: TestClient) -> None:
    response = client.get("/api/v1/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_root_endpoint(client: TestClient) -> None:
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["status"] == "running"


def test_me_requires_identity_headers(client: TestClient) -> None:
    response = client.get("/api/v1/me")

    assert response.status_code == 401


def test_me_rejects_unknown_role(client: TestClient) -> None:
    response = client.get("/api/v1/me", headers=_headers("u-1", "Guest"))

    assert response.status_code == 401


def test_me_returns_identity_and_grants(client: TestClient) -> None:
    response = client.get("/api/v1/me", headers=_headers("pm-1", "projectmanager"))

    assert response.status_code == 200
    assert response.json() == {"id": "pm-1", "role": "ProjectManager", "grants": []}


def test_readiness_checks_database(client: TestClient) -> None:
    response = client.get("/api/v1/health/ready")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database": "ok"}
