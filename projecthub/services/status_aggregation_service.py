"""Status aggregation engine for the Project → Phase → Deliverable → Task tree.

Two operations exist and they are not interchangeable:

* derivation (``set_task_status`` and the ``recompute_*`` helpers) climbs the
  tree and re-derives every ancestor from its *current* children;
* override (``set_deliverable_status`` / ``set_phase_status``) writes the
  target directly, forces every owned descendant to the same value and then
  climbs like derivation does.

Every step re-reads children from the session instead of applying a delta,
so running the same cascade twice yields the same state and concurrent
cascades converge once the last one finishes. No locks are taken.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy.orm import Session

from projecthub.core.errors import InvalidStateError, NotFoundError
from projecthub.models.entities import Deliverable, DeliverablePhase, Project, Task, WorkStatus
from projecthub.repositories.hierarchy_repository import HierarchyRepository

logger = logging.getLogger(__name__)


def parse_status(value: str | WorkStatus) -> WorkStatus:
    """Validate a raw status value before anything is persisted."""

    if isinstance(value, WorkStatus):
        return value
    normalized = value.strip().lower() if isinstance(value, str) else value
    try:
        return WorkStatus(normalized)
    except ValueError as exc:
        allowed = ", ".join(member.value for member in WorkStatus)
        raise InvalidStateError(f"Unrecognized status {value!r}; expected one of: {allowed}.") from exc


def derive_deliverable_status(statuses: Iterable[WorkStatus]) -> WorkStatus | None:
    """Deliverable rule: all done → done, all todo → todo, else in-progress.

    Returns ``None`` when there are no tasks; the deliverable keeps its status.
    """

    values = list(statuses)
    if not values:
        return None
    if all(value == WorkStatus.DONE for value in values):
        return WorkStatus.DONE
    if all(value == WorkStatus.TODO for value in values):
        return WorkStatus.TODO
    return WorkStatus.IN_PROGRESS


def derive_phase_status(statuses: Iterable[WorkStatus]) -> WorkStatus | None:
    """Phase rule over deliverable statuses.

    A done+todo mix without any in-progress deliverable resolves to
    in-progress. Product has not confirmed this outcome; keep it as is.
    """

    values = set(statuses)
    if not values:
        return None
    if values == {WorkStatus.DONE}:
        return WorkStatus.DONE
    if values == {WorkStatus.TODO}:
        return WorkStatus.TODO
    if values == {WorkStatus.IN_PROGRESS}:
        return WorkStatus.IN_PROGRESS
    if values == {WorkStatus.DONE, WorkStatus.TODO}:
        return WorkStatus.IN_PROGRESS
    return WorkStatus.IN_PROGRESS


def compute_progress(done_count: int, total_count: int) -> int | None:
    """Integer percentage of done phases, half-up rounded; ``None`` for no phases."""

    if total_count <= 0:
        return None
    ratio = Decimal(100 * done_count) / Decimal(total_count)
    value = int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return max(0, min(100, value))


@dataclass(frozen=True, slots=True)
class Transition:
    """One summary field change applied by a cascade step."""

    entity_type: str
    entity_id: str
    project_id: str | None
    field: str
    previous: str
    current: str


@dataclass(slots=True)
class CascadeResult:
    target_id: str
    status: WorkStatus
    transitions: list[Transition] = field(default_factory=list)

    def for_entity(self, entity_type: str) -> list[Transition]:
        return [item for item in self.transitions if item.entity_type == entity_type]


class StatusAggregationService:
    """Persisting recomputation passes over the hierarchy."""

    def __init__(self, db: Session, repo: HierarchyRepository | None = None) -> None:
        self.db = db
        self.repo = repo or HierarchyRepository(db)

    # ---------- Helpers ----------
    @staticmethod
    def _status_transition(
        entity_type: str,
        entity: Task | Deliverable | DeliverablePhase,
        previous: WorkStatus,
        current: WorkStatus,
    ) -> Transition:
        return Transition(
            entity_type=entity_type,
            entity_id=entity.id,
            project_id=entity.project_id,
            field="status",
            previous=previous.value,
            current=current.value,
        )

    def _apply_status(
        self,
        entity_type: str,
        entity: Task | Deliverable | DeliverablePhase,
        status: WorkStatus,
        transitions: list[Transition],
    ) -> None:
        previous = entity.status
        if previous == status:
            return
        entity.status = status
        logger.info("%s %s status %s -> %s", entity_type, entity.id, previous.value, status.value)
        transitions.append(self._status_transition(entity_type, entity, previous, status))

    # ---------- Derivation (bottom-up) ----------
    def set_task_status(self, task_id: str, new_status: str | WorkStatus) -> CascadeResult:
        status = parse_status(new_status)
        task = self.repo.get_task(task_id)
        if task is None:
            raise NotFoundError("Task not found.")

        result = CascadeResult(target_id=task.id, status=status)
        self._apply_status("task", task, status, result.transitions)
        self.db.commit()

        if task.deliverable_id:
            result.transitions.extend(self.recompute_deliverable(task.deliverable_id))
        return result

    def recompute_deliverable(self, deliverable_id: str) -> list[Transition]:
        deliverable = self.repo.get_deliverable(deliverable_id)
        if deliverable is None:
            logger.debug("Deliverable %s vanished during cascade; stopping", deliverable_id)
            return []

        transitions: list[Transition] = []
        tasks = self.repo.list_tasks_for_deliverable(deliverable.id)
        derived = derive_deliverable_status(task.status for task in tasks)
        if derived is not None:
            self._apply_status("deliverable", deliverable, derived, transitions)
            self.db.commit()

        transitions.extend(self.recompute_phase(deliverable.phase_id))
        return transitions

    def recompute_phase(self, phase_id: str | None) -> list[Transition]:
        phase = self.repo.get_phase(phase_id) if phase_id else None
        if phase is None:
            logger.debug("Phase %s missing during cascade; stopping", phase_id)
            return []

        transitions: list[Transition] = []
        deliverables = self.repo.list_deliverables_for_phase(phase.id)
        derived = derive_phase_status(item.status for item in deliverables)
        if derived is not None:
            self._apply_status("phase", phase, derived, transitions)
            self.db.commit()

        transitions.extend(self.recompute_project_progress(phase.project_id))
        return transitions

    def recompute_project_progress(self, project_id: str | None) -> list[Transition]:
        project: Project | None = self.repo.get_project(project_id) if project_id else None
        if project is None:
            logger.debug("Project %s missing during cascade; stopping", project_id)
            return []

        total, done = self.repo.phase_status_counts(project.id)
        progress = compute_progress(done, total)
        if progress is None or progress == project.progress:
            return []

        previous = project.progress
        project.progress = progress
        project.updated_at = datetime.utcnow()
        self.db.commit()
        logger.info("Project %s progress %s -> %s", project.id, previous, progress)
        return [
            Transition(
                entity_type="project",
                entity_id=project.id,
                project_id=project.id,
                field="progress",
                previous=str(previous),
                current=str(progress),
            )
        ]

    # ---------- Override (top-down) ----------
    def set_deliverable_status(self, deliverable_id: str, new_status: str | WorkStatus) -> CascadeResult:
        status = parse_status(new_status)
        deliverable = self.repo.get_deliverable(deliverable_id)
        if deliverable is None:
            raise NotFoundError("Deliverable not found.")

        result = CascadeResult(target_id=deliverable.id, status=status)
        self._apply_status("deliverable", deliverable, status, result.transitions)
        for task in self.repo.list_tasks_for_deliverable(deliverable.id):
            self._apply_status("task", task, status, result.transitions)
        self.db.commit()

        result.transitions.extend(self.recompute_phase(deliverable.phase_id))
        return result

    def set_phase_status(self, phase_id: str, new_status: str | WorkStatus) -> CascadeResult:
        status = parse_status(new_status)
        phase = self.repo.get_phase(phase_id)
        if phase is None:
            raise NotFoundError("Deliverable phase not found.")

        result = CascadeResult(target_id=phase.id, status=status)
        self._apply_status("phase", phase, status, result.transitions)
        for deliverable in self.repo.list_deliverables_for_phase(phase.id):
            self._apply_status("deliverable", deliverable, status, result.transitions)
            for task in self.repo.list_tasks_for_deliverable(deliverable.id):
                self._apply_status("task", task, status, result.transitions)
        self.db.commit()

        result.transitions.extend(self.recompute_project_progress(phase.project_id))
        return result
