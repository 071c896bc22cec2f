from __future__ import annotations

from fastapi.testclient import TestClient

ADMIN = {"X-User-Id": "admin-1", "X-User-Role": "Admin"}


def _headers(user_id: str, role: str) -> dict[str, str]:
    return {"X-User-Id": user_id, "X-User-Role": role}


def _create_project(client: TestClient, *, manager: str = "pm-1") -> str:
    response = client.post(
        "/api/v1/projects",
        headers=ADMIN,
        json={"title": "Apollo", "projectManager": manager, "members": ["tm-1"]},
    )
    assert response.status_code == 201
    return response.json()["id"]


def _assign(client: TestClient, project_id: str, user_id: str, permissions: list[str], headers=ADMIN):
    return client.post(
        "/api/v1/permissions/assign",
        headers=headers,
        json={"projectId": project_id, "userId": user_id, "permissions": permissions},
    )


def test_assign_and_read_grant(client: TestClient) -> None:
    project_id = _create_project(client)

    assigned = _assign(client, project_id, "tm-1", ["view", "edit", "view"])
    assert assigned.status_code == 200
    assert assigned.json() == {"projectId": project_id, "userId": "tm-1", "permissions": ["view", "edit"]}

    fetched = client.get(
        "/api/v1/permissions/by-project-and-user",
        headers=ADMIN,
        params={"projectId": project_id, "userId": "tm-1"},
    )
    assert fetched.status_code == 200
    assert fetched.json()["permissions"] == ["view", "edit"]


def test_assign_replaces_grant_wholesale(client: TestClient) -> None:
    project_id = _create_project(client)
    _assign(client, project_id, "tm-1", ["view", "edit"])

    replaced = _assign(client, project_id, "tm-1", ["manage_tasks"])

    assert replaced.status_code == 200
    listing = client.get(f"/api/v1/permissions/by-project/{project_id}", headers=ADMIN)
    assert listing.json()["items"] == [{"projectId": project_id, "userId": "tm-1", "permissions": ["manage_tasks"]}]


def test_assign_rejects_empty_and_unknown_permissions(client: TestClient) -> None:
    project_id = _create_project(client)

    empty = _assign(client, project_id, "tm-1", [])
    blank = _assign(client, project_id, "tm-1", ["  "])
    unknown = _assign(client, project_id, "tm-1", ["fly"])

    assert empty.status_code == 422
    assert blank.status_code == 422
    assert unknown.status_code == 422


def test_assign_to_missing_project_is_not_found(client: TestClient) -> None:
    response = _assign(client, "missing", "tm-1", ["view"])

    assert response.status_code == 404


def test_missing_grant_is_not_found(client: TestClient) -> None:
    project_id = _create_project(client)

    response = client.get(
        "/api/v1/permissions/by-project-and-user",
        headers=ADMIN,
        params={"projectId": project_id, "userId": "tm-9"},
    )

    assert response.status_code == 404


def test_only_grant_admins_can_assign(client: TestClient) -> None:
    project_id = _create_project(client)
    _assign(client, project_id, "tm-1", ["full_access_limited"])

    limited = _assign(client, project_id, "tm-2", ["view"], headers=_headers("tm-1", "TeamMember"))
    other_pm = _assign(client, project_id, "tm-2", ["view"], headers=_headers("pm-2", "ProjectManager"))
    owner = _assign(client, project_id, "tm-2", ["view"], headers=_headers("pm-1", "ProjectManager"))

    assert limited.status_code == 403
    assert other_pm.status_code == 403
    assert owner.status_code == 200

    _assign(client, project_id, "tm-1", ["admin"])
    delegated = _assign(client, project_id, "tm-3", ["view"], headers=_headers("tm-1", "TeamMember"))
    assert delegated.status_code == 200


def test_team_member_reads_own_grants_only(client: TestClient) -> None:
    project_id = _create_project(client)
    _assign(client, project_id, "tm-1", ["view"])
    _assign(client, project_id, "tm-2", ["edit"])
    tm1 = _headers("tm-1", "TeamMember")

    own = client.get(
        "/api/v1/permissions/by-project-and-user",
        headers=tm1,
        params={"projectId": project_id, "userId": "tm-1"},
    )
    foreign = client.get(
        "/api/v1/permissions/by-project-and-user",
        headers=tm1,
        params={"projectId": project_id, "userId": "tm-2"},
    )
    by_user = client.get("/api/v1/permissions/by-user/tm-1", headers=tm1)
    by_other_user = client.get("/api/v1/permissions/by-user/tm-2", headers=tm1)

    assert own.status_code == 200
    assert foreign.status_code == 403
    assert by_user.json()["items"] == [{"projectId": project_id, "userId": "tm-1", "permissions": ["view"]}]
    assert by_other_user.status_code == 403


def test_grant_unlocks_task_creation(client: TestClient) -> None:
    project_id = _create_project(client)
    payload = {"projectId": project_id, "text": "Loose end"}
    tm1 = _headers("tm-1", "TeamMember")

    before = client.post("/api/v1/task", headers=tm1, json=payload)
    _assign(client, project_id, "tm-1", ["manage_tasks"])
    after = client.post("/api/v1/task", headers=tm1, json=payload)

    assert before.status_code == 403
    assert after.status_code == 201
    assert after.json()["deliverableId"] is None


def test_me_lists_grants(client: TestClient) -> None:
    project_id = _create_project(client)
    _assign(client, project_id, "tm-1", ["view"])

    response = client.get("/api/v1/me", headers=_headers("tm-1", "TeamMember"))

    assert response.json()["grants"] == [{"projectId": project_id, "permissions": ["view"]}]
