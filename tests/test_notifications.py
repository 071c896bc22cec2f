from __future__ import annotations

import logging

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.orm import Session

from projecthub.core.errors import TransientInfrastructureError
from projecthub.models.entities import NotificationMessage
from projecthub.services.notification_service import NotificationDispatcher, UserNotification

ADMIN = {"X-User-Id": "admin-1", "X-User-Role": "Admin"}


class _RecordingPublisher:
    def __init__(self) -> None:
        self.published: list[UserNotification] = []

    def publish(self, notification: UserNotification) -> None:
        self.published.append(notification)


class _BrokenPublisher:
    def publish(self, notification: UserNotification) -> None:
        raise TransientInfrastructureError("broker unavailable")


class _UnreachablePublisher:
    def publish(self, notification: UserNotification) -> None:
        raise ConnectionError("broker unreachable")


def _events(db: Session, user_id: str) -> list[str]:
    rows = db.scalars(select(NotificationMessage).where(NotificationMessage.user_id == user_id)).all()
    return [row.event_type for row in rows]


def test_send_many_dedupes_and_skips_blank_recipients() -> None:
    publisher = _RecordingPublisher()
    dispatcher = NotificationDispatcher(publisher)

    sent = dispatcher.send_many(
        ["tm-1", None, "", "tm-2", "tm-1"],
        event_type="ProjectUpdated",
        project_id="p-1",
        message="Project changed",
    )

    assert sent == 2
    assert [item.user_id for item in publisher.published] == ["tm-1", "tm-2"]
    assert publisher.published[0].to_payload() == {
        "eventType": "ProjectUpdated",
        "userId": "tm-1",
        "projectId": "p-1",
        "message": "Project changed",
    }


def test_publish_failure_is_logged_and_swallowed(caplog: pytest.LogCaptureFixture) -> None:
    dispatcher = NotificationDispatcher(_BrokenPublisher())

    with caplog.at_level(logging.WARNING, logger="projecthub.services.notification_service"):
        sent = dispatcher.send(UserNotification("TaskCreated", "tm-1", "p-1", "hello"))

    assert sent is False
    assert "Dropping TaskCreated notification for user tm-1" in caplog.text


def test_unexpected_publisher_error_is_swallowed(caplog: pytest.LogCaptureFixture) -> None:
    dispatcher = NotificationDispatcher(_UnreachablePublisher())

    with caplog.at_level(logging.WARNING, logger="projecthub.services.notification_service"):
        sent = dispatcher.send(UserNotification("TaskStatusChanged", "tm-2", "p-1", "moved"))

    assert sent is False
    assert "Dropping TaskStatusChanged notification for user tm-2" in caplog.text
    assert "broker unreachable" in caplog.text


def test_disabled_dispatcher_publishes_nothing() -> None:
    publisher = _RecordingPublisher()

    sent = NotificationDispatcher(publisher, enabled=False).send(UserNotification("TaskCreated", "tm-1", None, "x"))

    assert sent is False
    assert publisher.published == []


def test_mutations_fan_out_to_outbox(client: TestClient, db_session: Session) -> None:
    project = client.post(
        "/api/v1/projects",
        headers=ADMIN,
        json={"title": "Apollo", "projectManager": "pm-1", "members": ["tm-1", "tm-2"]},
    ).json()
    phase = client.post("/api/v1/phase", headers=ADMIN, json={"projectId": project["id"], "title": "Build"}).json()
    deliverable = client.post(
        "/api/v1/deliverable",
        headers=ADMIN,
        json={"projectId": project["id"], "deliverablePhaseId": phase["id"], "title": "API", "assignee": ["tm-2"]},
    ).json()
    task = client.post(
        "/api/v1/task",
        headers=ADMIN,
        json={"projectId": project["id"], "deliverableId": deliverable["id"], "text": "Schema", "assignee": "tm-1"},
    ).json()

    client.put(f"/api/v1/task/{task['id']}/status", headers=ADMIN, json="done")

    assert _events(db_session, "tm-1") == [
        "UserAssignedToProject",
        "DeliverablePhaseCreated",
        "TaskCreated",
        "TaskStatusChanged",
        "DeliverablePhaseStatusChanged",
    ]
    assert _events(db_session, "tm-2") == [
        "UserAssignedToProject",
        "DeliverablePhaseCreated",
        "DeliverableCreated",
        "DeliverableStatusChanged",
        "DeliverablePhaseStatusChanged",
    ]
    assert _events(db_session, "pm-1") == [
        "ProjectManagerAssigned",
        "DeliverablePhaseCreatedManager",
        "DeliverablePhaseStatusChangedManager",
        "ProjectProgressChanged",
    ]


def test_broken_outbox_does_not_fail_mutation(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    def explode(self, notification: UserNotification) -> None:
        raise TransientInfrastructureError("outbox down")

    monkeypatch.setattr("projecthub.services.notification_service.OutboxPublisher.publish", explode)

    response = client.post(
        "/api/v1/projects",
        headers=ADMIN,
        json={"title": "Apollo", "projectManager": "pm-1", "members": ["tm-1"]},
    )

    assert response.status_code == 201
    assert client.get(f"/api/v1/projects/{response.json()['id']}", headers=ADMIN).status_code == 200
