from __future__ import annotations

from datetime import date

import httpx
import pytest
from fastapi.testclient import TestClient

from projecthub.client.gateway import GatewayResult, HttpStatusGateway
from projecthub.client.mirror import (
    BoardFilters,
    BoardItem,
    BoardViewer,
    MoveOutcome,
    MoveRefusedError,
    StatusBoard,
)
from projecthub.core.access import EntityKind
from projecthub.core.auth import AppRole, RequestUserContext
from projecthub.models.entities import Priority, WorkStatus

TODO = WorkStatus.TODO
IN_PROGRESS = WorkStatus.IN_PROGRESS
DONE = WorkStatus.DONE

ADMIN_VIEWER = BoardViewer(context=RequestUserContext(user_id="admin-1", role=AppRole.ADMIN))


class _FakeGateway:
    def __init__(self, *, succeed: bool = True) -> None:
        self.succeed = succeed
        self.calls: list[tuple[EntityKind, str, WorkStatus]] = []

    def update_status(self, kind: EntityKind, item_id: str, status: WorkStatus) -> GatewayResult:
        self.calls.append((kind, item_id, status))
        return GatewayResult(success=self.succeed, message=None if self.succeed else "rejected")


def _items() -> list[BoardItem]:
    return [
        BoardItem(id="T1", title="Write API docs", status=TODO, project_id="p-1", assignee_ids=("tm-1",)),
        BoardItem(id="T2", title="Fix login", status=IN_PROGRESS, project_id="p-1", priority=Priority.HIGH),
        BoardItem(id="T3", title="Draft API schema", status=TODO, project_id="p-1", due_date=date(2026, 5, 1)),
    ]


def _board(gateway: _FakeGateway | None = None, viewer: BoardViewer = ADMIN_VIEWER) -> StatusBoard:
    board = StatusBoard(EntityKind.TASK, viewer, gateway)
    board.load(_items())
    return board


def _ids(items: list[BoardItem]) -> list[str]:
    return [item.id for item in items]


def test_failed_move_restores_all_three_views() -> None:
    board = _board(_FakeGateway(succeed=False))
    board.set_filters(BoardFilters(search="api"))

    outcome = board.move("T3", DONE)

    assert outcome is MoveOutcome.ROLLED_BACK
    assert _ids(board.columns[TODO]) == ["T1", "T3"]
    assert _ids(board.columns[DONE]) == []
    assert _ids(board.filtered[TODO]) == ["T1", "T3"]
    assert _ids(board.filtered[DONE]) == []
    assert board.get("T3").status is TODO
    assert [item.status for item in board.items] == [TODO, IN_PROGRESS, TODO]


def test_rollback_applies_filters_changed_during_move() -> None:
    board = _board()

    pending = board.start_move("T3", DONE)
    board.set_filters(BoardFilters(search="docs"))
    outcome = board.complete_move(pending, succeeded=False)

    assert outcome is MoveOutcome.ROLLED_BACK
    assert _ids(board.columns[TODO]) == ["T1", "T3"]
    assert _ids(board.filtered[TODO]) == ["T1"]
    assert _ids(board.filtered[DONE]) == []
    for status in (TODO, IN_PROGRESS, DONE):
        assert board.filtered[status] == [item for item in board.columns[status] if board.filters.matches(item)]


def test_successful_move_updates_every_view() -> None:
    gateway = _FakeGateway()
    board = _board(gateway)

    outcome = board.move("T1", IN_PROGRESS)

    assert outcome is MoveOutcome.COMMITTED
    assert gateway.calls == [(EntityKind.TASK, "T1", IN_PROGRESS)]
    assert _ids(board.columns[IN_PROGRESS]) == ["T2", "T1"]
    assert _ids(board.filtered[IN_PROGRESS]) == ["T2", "T1"]
    assert board.get("T1").status is IN_PROGRESS


def test_move_to_same_column_is_noop() -> None:
    gateway = _FakeGateway()
    board = _board(gateway)

    assert board.move("T1", TODO) is MoveOutcome.COMMITTED
    assert gateway.calls == []


def test_reorder_is_local_only() -> None:
    gateway = _FakeGateway()
    board = _board(gateway)

    board.reorder("T3", 0)

    assert _ids(board.columns[TODO]) == ["T3", "T1"]
    assert gateway.calls == []


def test_superseded_failure_reverts_only_its_item() -> None:
    board = _board()
    first = board.start_move("T1", DONE)
    board.start_move("T2", DONE)

    outcome = board.complete_move(first, succeeded=False)

    assert outcome is MoveOutcome.ITEM_REVERTED
    assert _ids(board.columns[TODO]) == ["T1", "T3"]
    assert _ids(board.columns[DONE]) == ["T2"]
    assert board.get("T2").status is DONE


def test_stale_failure_for_item_moved_again_is_discarded() -> None:
    board = _board()
    first = board.start_move("T1", IN_PROGRESS)
    second = board.start_move("T1", DONE)

    assert board.complete_move(first, succeeded=False) is MoveOutcome.DISCARDED
    assert board.get("T1").status is DONE

    assert board.complete_move(second, succeeded=False) is MoveOutcome.ROLLED_BACK
    assert board.get("T1").status is IN_PROGRESS


def test_filters_project_the_board() -> None:
    board = _board()

    board.set_filters(BoardFilters(priority=Priority.HIGH))
    assert _ids(board.filtered[IN_PROGRESS]) == ["T2"]
    assert _ids(board.filtered[TODO]) == []

    board.set_filters(BoardFilters(assignee_id="tm-1"))
    assert _ids(board.filtered[TODO]) == ["T1"]

    board.set_filters(BoardFilters(due_date=date(2026, 5, 1), project_id="p-1"))
    assert _ids(board.filtered[TODO]) == ["T3"]
    assert len(board.items) == 3


def test_team_member_drag_is_checked_locally() -> None:
    viewer = BoardViewer(context=RequestUserContext(user_id="tm-1", role=AppRole.TEAM_MEMBER))
    gateway = _FakeGateway()
    board = _board(gateway, viewer)

    with pytest.raises(MoveRefusedError):
        board.start_move("T3", DONE)

    assert board.move("T1", DONE) is MoveOutcome.COMMITTED
    assert _ids(board.columns[TODO]) == ["T3"]


def test_grant_allows_team_member_drag() -> None:
    viewer = BoardViewer(
        context=RequestUserContext(user_id="tm-2", role=AppRole.TEAM_MEMBER),
        grants={"p-1": frozenset({"edit"})},
    )
    board = _board(_FakeGateway(), viewer)

    assert board.move("T3", DONE) is MoveOutcome.COMMITTED


def test_http_gateway_against_api(client: TestClient) -> None:
    client.headers.update({"X-User-Id": "admin-1", "X-User-Role": "Admin"})
    project = client.post("/api/v1/projects", json={"title": "Apollo"}).json()
    task = client.post("/api/v1/task", json={"projectId": project["id"], "text": "Ship it"}).json()
    board = StatusBoard(EntityKind.TASK, ADMIN_VIEWER, HttpStatusGateway(client))
    board.load(
        [
            BoardItem(id=task["id"], title=task["text"], status=TODO, project_id=project["id"]),
            BoardItem(id="ghost", title="Deleted elsewhere", status=TODO, project_id=project["id"]),
        ]
    )

    assert board.move(task["id"], DONE) is MoveOutcome.COMMITTED
    assert client.get(f"/api/v1/task/{task['id']}").json()["status"] == "done"

    assert board.move("ghost", IN_PROGRESS) is MoveOutcome.ROLLED_BACK
    assert _ids(board.columns[TODO]) == ["ghost"]


def test_http_gateway_reports_transport_errors() -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    gateway = HttpStatusGateway(httpx.Client(transport=httpx.MockTransport(refuse), base_url="http://api.test"))

    result = gateway.update_status(EntityKind.DELIVERABLE, "d-1", DONE)

    assert result.success is False
    assert "connection refused" in (result.message or "")


def test_http_gateway_surfaces_error_detail() -> None:
    def reject(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/v1/phase/ph-1/status"
        assert request.content == b'"done"'
        return httpx.Response(403, json={"detail": "nope"})

    gateway = HttpStatusGateway(httpx.Client(transport=httpx.MockTransport(reject), base_url="http://api.test"))

    assert gateway.update_status(EntityKind.PHASE, "ph-1", DONE) == GatewayResult(success=False, message="nope")
