"""Client-side optimistic mirror of a status board.

The board keeps three views of one collection in step: the full board grouped
into status columns, the same columns narrowed by the active filters, and a
flat list. A cross-column move is applied to all three immediately and sent
to the server afterwards; a failed request puts the views back.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Protocol

from projecthub.core.access import AccessScope, EntityKind, ProjectLike, can_drag
from projecthub.core.auth import RequestUserContext
from projecthub.models.entities import Priority, WorkStatus

logger = logging.getLogger(__name__)

COLUMN_ORDER: tuple[WorkStatus, ...] = (WorkStatus.TODO, WorkStatus.IN_PROGRESS, WorkStatus.DONE)


@dataclass(frozen=True)
class BoardItem:
    """One card on the board: a phase, deliverable or task."""

    id: str
    title: str
    status: WorkStatus
    project_id: str | None = None
    assignee_ids: tuple[str, ...] = ()
    priority: Priority | None = None
    due_date: date | None = None
    deliverable_id: str | None = None
    phase_id: str | None = None


@dataclass(frozen=True)
class BoardFilters:
    search: str = ""
    assignee_id: str | None = None
    project_id: str | None = None
    deliverable_id: str | None = None
    phase_id: str | None = None
    priority: Priority | None = None
    due_date: date | None = None

    def matches(self, item: BoardItem) -> bool:
        needle = self.search.strip().lower()
        if needle and needle not in item.title.lower():
            return False
        if self.assignee_id and self.assignee_id not in item.assignee_ids:
            return False
        if self.project_id and item.project_id != self.project_id:
            return False
        if self.deliverable_id and item.deliverable_id != self.deliverable_id:
            return False
        if self.phase_id and item.phase_id != self.phase_id:
            return False
        if self.priority is not None and item.priority != self.priority:
            return False
        if self.due_date is not None and item.due_date != self.due_date:
            return False
        return True


@dataclass(frozen=True)
class BoardViewer:
    """Who is looking at the board and what they hold in each project."""

    context: RequestUserContext
    projects: Mapping[str, ProjectLike] = field(default_factory=dict)
    grants: Mapping[str, frozenset[str]] = field(default_factory=dict)

    def scope(self, project_id: str | None) -> AccessScope:
        project = self.projects.get(project_id) if project_id else None
        grant = self.grants.get(project_id, frozenset()) if project_id else frozenset()
        return AccessScope(context=self.context, project=project, grant=frozenset(grant))

    def can_move(self, kind: EntityKind, item: BoardItem) -> bool:
        assignee = self.context.user_id if self.context.user_id in item.assignee_ids else None
        return can_drag(self.scope(item.project_id), kind, assignee_id=assignee)


class StatusGateway(Protocol):
    def update_status(self, kind: EntityKind, item_id: str, status: WorkStatus): ...


class MoveRefusedError(Exception):
    """The viewer may not move this item."""


class MoveOutcome(str, enum.Enum):
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    ITEM_REVERTED = "item_reverted"
    DISCARDED = "discarded"


@dataclass(frozen=True)
class BoardSnapshot:
    columns: dict[WorkStatus, tuple[BoardItem, ...]]
    flat: tuple[BoardItem, ...]


@dataclass(frozen=True)
class PendingMove:
    item_id: str
    previous_status: WorkStatus
    new_status: WorkStatus
    revision: int
    snapshot: BoardSnapshot


def _empty_columns() -> dict[WorkStatus, list[BoardItem]]:
    return {status: [] for status in COLUMN_ORDER}


class StatusBoard:
    """Optimistic board for one entity kind."""

    def __init__(
        self,
        kind: EntityKind,
        viewer: BoardViewer,
        gateway: StatusGateway | None = None,
        *,
        filters: BoardFilters | None = None,
    ) -> None:
        self.kind = kind
        self.viewer = viewer
        self.gateway = gateway
        self.filters = filters or BoardFilters()
        self._columns = _empty_columns()
        self._filtered = _empty_columns()
        self._flat: list[BoardItem] = []
        self._revision = 0
        self._item_revisions: dict[str, int] = {}

    # ---------- Views ----------
    @property
    def columns(self) -> dict[WorkStatus, list[BoardItem]]:
        return {status: list(items) for status, items in self._columns.items()}

    @property
    def filtered(self) -> dict[WorkStatus, list[BoardItem]]:
        return {status: list(items) for status, items in self._filtered.items()}

    @property
    def items(self) -> list[BoardItem]:
        return list(self._flat)

    @property
    def revision(self) -> int:
        return self._revision

    def get(self, item_id: str) -> BoardItem | None:
        return next((item for item in self._flat if item.id == item_id), None)

    def load(self, items: Iterable[BoardItem]) -> None:
        self._flat = list(items)
        self._columns = _empty_columns()
        for item in self._flat:
            self._columns[item.status].append(item)
        self._rebuild_filtered()
        self._bump()

    def set_filters(self, filters: BoardFilters) -> None:
        self.filters = filters
        self._rebuild_filtered()

    def _rebuild_filtered(self) -> None:
        self._filtered = {
            status: [item for item in items if self.filters.matches(item)]
            for status, items in self._columns.items()
        }

    def _bump(self, *item_ids: str) -> int:
        self._revision += 1
        for item_id in item_ids:
            self._item_revisions[item_id] = self._revision
        return self._revision

    def _snapshot(self) -> BoardSnapshot:
        return BoardSnapshot(
            columns={status: tuple(items) for status, items in self._columns.items()},
            flat=tuple(self._flat),
        )

    def _restore(self, snapshot: BoardSnapshot) -> None:
        self._columns = {status: list(items) for status, items in snapshot.columns.items()}
        self._flat = list(snapshot.flat)
        self._rebuild_filtered()

    # ---------- Mutations ----------
    def _place(self, item_id: str, status: WorkStatus, *, column_index: int | None = None) -> None:
        """Move one item to ``status`` in every view."""

        current = self.get(item_id)
        if current is None:
            return
        updated = replace(current, status=status)

        self._flat = [updated if item.id == item_id else item for item in self._flat]

        self._columns[current.status] = [item for item in self._columns[current.status] if item.id != item_id]
        target = self._columns[status]
        if column_index is None or column_index > len(target):
            target.append(updated)
        else:
            target.insert(max(0, column_index), updated)

        for affected in {current.status, status}:
            self._filtered[affected] = [item for item in self._columns[affected] if self.filters.matches(item)]

    def reorder(self, item_id: str, new_index: int) -> None:
        """Reposition an item inside its own column. Never reaches the server."""

        item = self.get(item_id)
        if item is None:
            raise KeyError(item_id)

        column = [entry for entry in self._columns[item.status] if entry.id != item_id]
        column.insert(max(0, min(new_index, len(column))), item)
        self._columns[item.status] = column
        self._filtered[item.status] = [entry for entry in column if self.filters.matches(entry)]
        self._bump(item_id)

    def start_move(self, item_id: str, new_status: WorkStatus) -> PendingMove | None:
        """Apply a cross-column move locally and return the ticket to settle it.

        Returns ``None`` when the item already sits in ``new_status``.
        """

        item = self.get(item_id)
        if item is None:
            raise KeyError(item_id)
        if item.status == new_status:
            return None
        if not self.viewer.can_move(self.kind, item):
            raise MoveRefusedError(f"Not allowed to move {self.kind.value} {item_id}.")

        snapshot = self._snapshot()
        self._place(item_id, new_status)
        revision = self._bump(item_id)
        return PendingMove(
            item_id=item_id,
            previous_status=item.status,
            new_status=new_status,
            revision=revision,
            snapshot=snapshot,
        )

    def complete_move(self, move: PendingMove, succeeded: bool) -> MoveOutcome:
        if succeeded:
            return MoveOutcome.COMMITTED

        if self._revision == move.revision:
            self._restore(move.snapshot)
            logger.info("Rolled back %s %s to %s", self.kind.value, move.item_id, move.previous_status.value)
            return MoveOutcome.ROLLED_BACK

        if self._item_revisions.get(move.item_id) != move.revision:
            logger.debug("Discarding stale failure for %s %s", self.kind.value, move.item_id)
            return MoveOutcome.DISCARDED

        previous_index = next(
            (
                index
                for index, entry in enumerate(move.snapshot.columns[move.previous_status])
                if entry.id == move.item_id
            ),
            None,
        )
        self._place(move.item_id, move.previous_status, column_index=previous_index)
        self._bump(move.item_id)
        logger.info("Reverted %s %s to %s", self.kind.value, move.item_id, move.previous_status.value)
        return MoveOutcome.ITEM_REVERTED

    def move(self, item_id: str, new_status: WorkStatus) -> MoveOutcome:
        """Move an item and settle it against the gateway in one call."""

        if self.gateway is None:
            raise RuntimeError("No status gateway configured for this board.")

        pending = self.start_move(item_id, new_status)
        if pending is None:
            return MoveOutcome.COMMITTED
        result = self.gateway.update_status(self.kind, item_id, new_status)
        return self.complete_move(pending, result.success)
