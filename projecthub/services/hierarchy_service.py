"""Application service for the project hierarchy lifecycle.

Each public method follows the same order: load the target (404), resolve the
requester's access scope and check the action threshold (403), validate the
payload (422), write and commit, run the upward recomputation, then notify.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from projecthub.core.access import (
    AccessScope,
    EntityKind,
    can_create,
    can_create_project,
    can_delete,
    can_delete_project,
    can_drag,
    can_edit,
    can_update_project,
    can_view_project,
)
from projecthub.core.auth import AppRole, RequestUserContext
from projecthub.core.errors import ConflictError, InvalidStateError, NotFoundError, UnauthorizedError
from projecthub.models.entities import Deliverable, DeliverablePhase, Priority, Project, Task, WorkStatus
from projecthub.repositories.hierarchy_repository import HierarchyRepository
from projecthub.services.notification_service import NotificationDispatcher, build_dispatcher
from projecthub.services.status_aggregation_service import (
    CascadeResult,
    StatusAggregationService,
    Transition,
    parse_status,
)


@dataclass(slots=True)
class ProjectCreateData:
    title: str
    description: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    project_manager_id: str | None = None
    member_ids: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ProjectUpdateData:
    title: str | None = None
    description: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    project_manager_id: str | None = None
    member_ids: list[str] | None = None


@dataclass(slots=True)
class PhaseCreateData:
    project_id: str
    title: str
    start_date: date | None = None
    end_date: date | None = None
    color: str | None = None


@dataclass(slots=True)
class PhaseUpdateData:
    title: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    color: str | None = None


@dataclass(slots=True)
class DeliverableCreateData:
    project_id: str
    phase_id: str
    title: str
    description: str | None = None
    link: str | None = None
    priority: Priority = Priority.MED
    priority_number: int = 0
    due_date: date | None = None
    status: str | None = None
    assignee_ids: list[str] = field(default_factory=list)


@dataclass(slots=True)
class DeliverableUpdateData:
    phase_id: str | None = None
    title: str | None = None
    description: str | None = None
    link: str | None = None
    priority: Priority | None = None
    priority_number: int | None = None
    due_date: date | None = None
    status: str | None = None
    assignee_ids: list[str] | None = None


@dataclass(slots=True)
class TaskCreateData:
    project_id: str
    text: str
    priority: Priority = Priority.MED
    due_date: date | None = None
    status: str | None = None
    assignee_id: str | None = None
    deliverable_id: str | None = None
    phase_id: str | None = None


@dataclass(slots=True)
class TaskUpdateData:
    text: str | None = None
    priority: Priority | None = None
    due_date: date | None = None
    status: str | None = None
    assignee_id: str | None = None
    deliverable_id: str | None = None
    detach_deliverable: bool = False


def _clean_ids(values: list[str] | None) -> list[str]:
    return list(dict.fromkeys(value.strip() for value in values or [] if value and value.strip()))


def _ensure_date_range(start: date | None, end: date | None, label: str) -> None:
    if start is not None and end is not None and end < start:
        raise InvalidStateError(f"{label} end date must be on or after its start date.")


class HierarchyService:
    """CRUD and status operations over projects, phases, deliverables and tasks."""

    def __init__(self, db: Session, *, dispatcher: NotificationDispatcher | None = None) -> None:
        self.db = db
        self.repo = HierarchyRepository(db)
        self.aggregation = StatusAggregationService(db, self.repo)
        self.dispatcher = dispatcher or build_dispatcher(db)

    # ---------- Scope + RBAC ----------
    def scope_for(self, context: RequestUserContext, project: Project | None) -> AccessScope:
        grant: frozenset[str] = frozenset()
        if project is not None and context.role is AppRole.TEAM_MEMBER:
            row = self.repo.get_grant(project.id, context.user_id)
            if row is not None:
                grant = frozenset(row.capabilities or [])
        return AccessScope(context=context, project=project, grant=grant)

    def _load_project(self, project_id: str) -> Project:
        project = self.repo.get_project(project_id)
        if project is None:
            raise NotFoundError("Project not found.")
        return project

    def _ensure_can_view(self, context: RequestUserContext, project: Project) -> AccessScope:
        scope = self.scope_for(context, project)
        if not can_view_project(scope, member_ids=project.member_ids or []):
            raise UnauthorizedError("You do not have access to this project.")
        return scope

    @staticmethod
    def _require(allowed: bool, detail: str) -> None:
        if not allowed:
            raise UnauthorizedError(detail)

    def _commit(self, detail: str) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError(detail) from exc

    def _notify_transitions(self, transitions: list[Transition]) -> None:
        if transitions:
            self.dispatcher.transitions(transitions, self.repo)

    # ---------- Serialization ----------
    @staticmethod
    def serialize_project(project: Project) -> dict[str, object]:
        return {
            "id": project.id,
            "title": project.title,
            "description": project.description,
            "progress": project.progress,
            "startDate": project.start_date.isoformat() if project.start_date else None,
            "endDate": project.end_date.isoformat() if project.end_date else None,
            "projectManager": project.project_manager_id,
            "members": list(project.member_ids or []),
            "createdBy": project.created_by,
            "createdAt": project.created_at.isoformat(),
            "updatedAt": project.updated_at.isoformat(),
        }

    @staticmethod
    def serialize_phase(phase: DeliverablePhase, deliverables: list[Deliverable] | None = None) -> dict[str, object]:
        payload: dict[str, object] = {
            "id": phase.id,
            "projectId": phase.project_id,
            "title": phase.title,
            "startDate": phase.start_date.isoformat() if phase.start_date else None,
            "endDate": phase.end_date.isoformat() if phase.end_date else None,
            "color": phase.color,
            "status": phase.status.value,
        }
        if deliverables is not None:
            payload["deliverableIds"] = [item.id for item in deliverables]
            payload["deliverableCount"] = len(deliverables)
            payload["completedDeliverables"] = sum(1 for item in deliverables if item.status == WorkStatus.DONE)
        return payload

    def serialize_deliverable(self, deliverable: Deliverable) -> dict[str, object]:
        return {
            "id": deliverable.id,
            "projectId": deliverable.project_id,
            "deliverablePhaseId": deliverable.phase_id,
            "title": deliverable.title,
            "description": deliverable.description,
            "link": deliverable.link,
            "priority": deliverable.priority.value,
            "priorityNumber": deliverable.priority_number,
            "date": deliverable.due_date.isoformat() if deliverable.due_date else None,
            "status": deliverable.status.value,
            "assignee": list(deliverable.assignee_ids or []),
            "taskIds": [task.id for task in self.repo.list_tasks_for_deliverable(deliverable.id)],
        }

    @staticmethod
    def serialize_task(task: Task) -> dict[str, object]:
        return {
            "id": task.id,
            "projectId": task.project_id,
            "deliverableId": task.deliverable_id,
            "deliverablePhaseId": task.phase_id,
            "text": task.text,
            "priority": task.priority.value,
            "date": task.due_date.isoformat() if task.due_date else None,
            "status": task.status.value,
            "assignee": task.assignee_id,
            "position": task.position,
        }

    @staticmethod
    def serialize_cascade(result: CascadeResult) -> dict[str, object]:
        return {
            "id": result.target_id,
            "status": result.status.value,
            "transitions": [
                {
                    "entityType": item.entity_type,
                    "entityId": item.entity_id,
                    "field": item.field,
                    "previous": item.previous,
                    "current": item.current,
                }
                for item in result.transitions
            ],
        }

    # ---------- Project CRUD ----------
    def list_projects(self, *, context: RequestUserContext) -> list[Project]:
        projects = self.repo.list_projects()
        if context.role is AppRole.ADMIN:
            return projects
        return [
            project
            for project in projects
            if can_view_project(self.scope_for(context, project), member_ids=project.member_ids or [])
        ]

    def get_project(self, *, context: RequestUserContext, project_id: str) -> Project:
        project = self._load_project(project_id)
        self._ensure_can_view(context, project)
        return project

    def create_project(self, *, context: RequestUserContext, data: ProjectCreateData) -> Project:
        self._require(can_create_project(context), "Only administrators and project managers can create projects.")
        _ensure_date_range(data.start_date, data.end_date, "Project")

        manager_id = data.project_manager_id
        if manager_id is None and context.role is AppRole.PROJECT_MANAGER:
            manager_id = context.user_id

        now = datetime.utcnow()
        project = Project(
            title=data.title.strip(),
            description=data.description.strip() if data.description else None,
            progress=0,
            start_date=data.start_date,
            end_date=data.end_date,
            project_manager_id=manager_id,
            member_ids=_clean_ids(data.member_ids),
            created_by=context.user_id,
            created_at=now,
            updated_at=now,
        )
        self.repo.add_project(project)
        self._commit("Project could not be created.")
        self.db.refresh(project)

        self.dispatcher.send_many(
            project.member_ids,
            event_type="UserAssignedToProject",
            project_id=project.id,
            message=f"You have been assigned to the project: {project.title}",
        )
        self.dispatcher.send_many(
            [project.project_manager_id],
            event_type="ProjectManagerAssigned",
            project_id=project.id,
            message=f"You are assigned as the manager for the project: {project.title}",
        )
        return project

    def update_project(self, *, context: RequestUserContext, project_id: str, data: ProjectUpdateData) -> Project:
        project = self._load_project(project_id)
        self._require(can_update_project(self.scope_for(context, project)), "You cannot edit this project.")

        target_start = data.start_date if data.start_date is not None else project.start_date
        target_end = data.end_date if data.end_date is not None else project.end_date
        _ensure_date_range(target_start, target_end, "Project")

        if data.title is not None:
            project.title = data.title.strip()
        if data.description is not None:
            project.description = data.description.strip() or None
        project.start_date = target_start
        project.end_date = target_end
        if data.project_manager_id is not None:
            project.project_manager_id = data.project_manager_id.strip() or None
        if data.member_ids is not None:
            project.member_ids = _clean_ids(data.member_ids)
        project.updated_at = datetime.utcnow()

        self._commit("Project could not be updated.")
        self.db.refresh(project)

        self.dispatcher.send_many(
            project.member_ids,
            event_type="ProjectUpdated",
            project_id=project.id,
            message=f"Project '{project.title}' has been updated. Please review the changes.",
        )
        self.dispatcher.send_many(
            [project.project_manager_id],
            event_type="ProjectUpdatedForManager",
            project_id=project.id,
            message=f"You are managing the project '{project.title}', which has just been updated.",
        )
        return project

    def delete_project(self, *, context: RequestUserContext, project_id: str) -> None:
        project = self._load_project(project_id)
        self._require(can_delete_project(self.scope_for(context, project)), "You cannot delete this project.")

        title = project.title
        members = list(project.member_ids or [])
        manager_id = project.project_manager_id

        for task in self.repo.list_tasks_for_project(project.id):
            self.repo.delete_task(task)
        for deliverable in self.repo.list_deliverables_for_project(project.id):
            self.repo.delete_deliverable(deliverable)
        for phase in self.repo.list_phases(project.id):
            self.repo.delete_phase(phase)
        for grant in self.repo.list_grants_for_project(project.id):
            self.repo.delete_grant(grant)
        self.repo.delete_project(project)
        self._commit("Project could not be deleted.")

        self.dispatcher.send_many(
            members,
            event_type="ProjectDeleted",
            project_id=project_id,
            message=f"The project '{title}' you were part of has been deleted.",
        )
        self.dispatcher.send_many(
            [manager_id],
            event_type="ProjectDeleted",
            project_id=project_id,
            message=f"The project '{title}' you were managing has been deleted.",
        )

    # ---------- Phase CRUD ----------
    def _load_phase(self, phase_id: str) -> tuple[DeliverablePhase, Project]:
        phase = self.repo.get_phase(phase_id)
        if phase is None:
            raise NotFoundError("Deliverable phase not found.")
        return phase, self._load_project(phase.project_id)

    def list_phases(self, *, context: RequestUserContext, project_id: str) -> list[DeliverablePhase]:
        project = self._load_project(project_id)
        self._ensure_can_view(context, project)
        return self.repo.list_phases(project.id)

    def get_phase(self, *, context: RequestUserContext, phase_id: str) -> DeliverablePhase:
        phase, project = self._load_phase(phase_id)
        self._ensure_can_view(context, project)
        return phase

    def phase_stats(self, *, context: RequestUserContext, project_id: str) -> dict[str, int]:
        project = self._load_project(project_id)
        self._ensure_can_view(context, project)
        total, completed = self.repo.phase_status_counts(project.id)
        return {"total": total, "completed": completed}

    def create_phase(self, *, context: RequestUserContext, data: PhaseCreateData) -> DeliverablePhase:
        project = self._load_project(data.project_id)
        self._require(can_create(self.scope_for(context, project), EntityKind.PHASE), "You cannot add phases.")
        _ensure_date_range(data.start_date, data.end_date, "Phase")

        phase = DeliverablePhase(
            project_id=project.id,
            title=data.title.strip(),
            start_date=data.start_date,
            end_date=data.end_date,
            color=data.color.strip() if data.color else None,
            status=WorkStatus.TODO,
        )
        self.repo.add_phase(phase)
        self._commit("Phase could not be created.")

        transitions = self.aggregation.recompute_project_progress(project.id)
        self.db.refresh(phase)
        self.dispatcher.phase_event(project, phase.title, "DeliverablePhaseCreated", "added")
        self._notify_transitions(transitions)
        return phase

    def update_phase(self, *, context: RequestUserContext, phase_id: str, data: PhaseUpdateData) -> DeliverablePhase:
        phase, project = self._load_phase(phase_id)
        self._require(can_edit(self.scope_for(context, project), EntityKind.PHASE), "You cannot edit this phase.")

        target_start = data.start_date if data.start_date is not None else phase.start_date
        target_end = data.end_date if data.end_date is not None else phase.end_date
        _ensure_date_range(target_start, target_end, "Phase")

        if data.title is not None:
            phase.title = data.title.strip()
        if data.color is not None:
            phase.color = data.color.strip() or None
        phase.start_date = target_start
        phase.end_date = target_end
        self._commit("Phase could not be updated.")
        self.db.refresh(phase)

        self.dispatcher.phase_event(project, phase.title, "DeliverablePhaseUpdated", "updated")
        return phase

    def set_phase_status(self, *, context: RequestUserContext, phase_id: str, status: str) -> CascadeResult:
        _, project = self._load_phase(phase_id)
        self._require(
            can_drag(self.scope_for(context, project), EntityKind.PHASE),
            "You cannot change the status of this phase.",
        )
        result = self.aggregation.set_phase_status(phase_id, status)
        self._notify_transitions(result.transitions)
        return result

    def delete_phase(self, *, context: RequestUserContext, phase_id: str) -> None:
        phase, project = self._load_phase(phase_id)
        self._require(can_delete(self.scope_for(context, project), EntityKind.PHASE), "You cannot delete this phase.")

        title = phase.title
        for deliverable in self.repo.list_deliverables_for_phase(phase.id):
            for task in self.repo.list_tasks_for_deliverable(deliverable.id):
                self.repo.delete_task(task)
            self.repo.delete_deliverable(deliverable)
        for task in self.repo.list_tasks_for_phase(phase.id):
            task.phase_id = None
        self.db.flush()
        self.repo.delete_phase(phase)
        self._commit("Phase could not be deleted.")

        transitions = self.aggregation.recompute_project_progress(project.id)
        self.dispatcher.phase_event(project, title, "DeliverablePhaseDeleted", "deleted")
        self._notify_transitions(transitions)

    # ---------- Deliverable CRUD ----------
    def _load_deliverable(self, deliverable_id: str) -> tuple[Deliverable, Project]:
        deliverable = self.repo.get_deliverable(deliverable_id)
        if deliverable is None:
            raise NotFoundError("Deliverable not found.")
        return deliverable, self._load_project(deliverable.project_id)

    def _phase_in_project(self, phase_id: str, project: Project) -> DeliverablePhase:
        phase = self.repo.get_phase(phase_id)
        if phase is None:
            raise NotFoundError("Deliverable phase not found.")
        if phase.project_id != project.id:
            raise InvalidStateError("Deliverable phase belongs to a different project.")
        return phase

    def list_deliverables(self, *, context: RequestUserContext, phase_id: str | None = None) -> list[Deliverable]:
        if phase_id is not None:
            phase, project = self._load_phase(phase_id)
            self._ensure_can_view(context, project)
            return self.repo.list_deliverables_for_phase(phase.id)

        visible_projects = {project.id for project in self.list_projects(context=context)}
        return [item for item in self.repo.list_deliverables() if item.project_id in visible_projects]

    def get_deliverable(self, *, context: RequestUserContext, deliverable_id: str) -> Deliverable:
        deliverable, project = self._load_deliverable(deliverable_id)
        self._ensure_can_view(context, project)
        return deliverable

    def deliverable_task_summary(self, *, context: RequestUserContext, deliverable_id: str) -> dict[str, object]:
        deliverable = self.get_deliverable(context=context, deliverable_id=deliverable_id)
        tasks = self.repo.list_tasks_for_deliverable(deliverable.id)
        return {
            "deliverableId": deliverable.id,
            "allTasks": len(tasks),
            "doneTasks": sum(1 for task in tasks if task.status == WorkStatus.DONE),
        }

    def create_deliverable(self, *, context: RequestUserContext, data: DeliverableCreateData) -> Deliverable:
        project = self._load_project(data.project_id)
        self._require(
            can_create(self.scope_for(context, project), EntityKind.DELIVERABLE),
            "You cannot add deliverables.",
        )
        phase = self._phase_in_project(data.phase_id, project)
        status = parse_status(data.status) if data.status is not None else WorkStatus.TODO

        deliverable = Deliverable(
            project_id=project.id,
            phase_id=phase.id,
            title=data.title.strip(),
            description=data.description,
            link=data.link,
            priority=data.priority,
            priority_number=data.priority_number,
            due_date=data.due_date,
            status=status,
            assignee_ids=_clean_ids(data.assignee_ids),
        )
        self.repo.add_deliverable(deliverable)
        self._commit("Deliverable could not be created.")

        transitions = self.aggregation.recompute_phase(phase.id)
        self.db.refresh(deliverable)
        self.dispatcher.deliverable_event(
            deliverable,
            "DeliverableCreated",
            f'You have been assigned a new deliverable: "{deliverable.title}".',
        )
        self._notify_transitions(transitions)
        return deliverable

    def update_deliverable(
        self,
        *,
        context: RequestUserContext,
        deliverable_id: str,
        data: DeliverableUpdateData,
    ) -> Deliverable:
        deliverable, project = self._load_deliverable(deliverable_id)
        scope = self.scope_for(context, project)
        self._require(can_edit(scope, EntityKind.DELIVERABLE), "You cannot edit this deliverable.")
        status = parse_status(data.status) if data.status is not None else None

        previous_phase_id = deliverable.phase_id
        if data.phase_id is not None and data.phase_id != deliverable.phase_id:
            phase = self._phase_in_project(data.phase_id, project)
            deliverable.phase_id = phase.id
            for task in self.repo.list_tasks_for_deliverable(deliverable.id):
                task.phase_id = phase.id

        if data.title is not None:
            deliverable.title = data.title.strip()
        if data.description is not None:
            deliverable.description = data.description
        if data.link is not None:
            deliverable.link = data.link or None
        if data.priority is not None:
            deliverable.priority = data.priority
        if data.priority_number is not None:
            deliverable.priority_number = data.priority_number
        if data.due_date is not None:
            deliverable.due_date = data.due_date
        if data.assignee_ids is not None:
            deliverable.assignee_ids = _clean_ids(data.assignee_ids)
        self._commit("Deliverable could not be updated.")

        transitions: list[Transition] = []
        if status is not None:
            transitions.extend(self.aggregation.set_deliverable_status(deliverable.id, status).transitions)
        else:
            transitions.extend(self.aggregation.recompute_phase(deliverable.phase_id))
        if previous_phase_id != deliverable.phase_id:
            transitions.extend(self.aggregation.recompute_phase(previous_phase_id))

        self.db.refresh(deliverable)
        self.dispatcher.deliverable_event(
            deliverable,
            "DeliverableUpdated",
            f'Deliverable "{deliverable.title}" has been updated.',
        )
        self._notify_transitions(transitions)
        return deliverable

    def set_deliverable_status(self, *, context: RequestUserContext, deliverable_id: str, status: str) -> CascadeResult:
        _, project = self._load_deliverable(deliverable_id)
        self._require(
            can_drag(self.scope_for(context, project), EntityKind.DELIVERABLE),
            "You cannot change the status of this deliverable.",
        )
        result = self.aggregation.set_deliverable_status(deliverable_id, status)
        self._notify_transitions(result.transitions)
        return result

    def delete_deliverable(self, *, context: RequestUserContext, deliverable_id: str) -> None:
        deliverable, project = self._load_deliverable(deliverable_id)
        self._require(
            can_delete(self.scope_for(context, project), EntityKind.DELIVERABLE),
            "You cannot delete this deliverable.",
        )

        title = deliverable.title
        phase_id = deliverable.phase_id
        assignees = list(deliverable.assignee_ids or [])
        for task in self.repo.list_tasks_for_deliverable(deliverable.id):
            self.repo.delete_task(task)
        self.repo.delete_deliverable(deliverable)
        self._commit("Deliverable could not be deleted.")

        transitions = self.aggregation.recompute_phase(phase_id)
        self.dispatcher.send_many(
            assignees,
            event_type="DeliverableDeleted",
            project_id=project.id,
            message=f'Deliverable "{title}" assigned to you has been deleted.',
        )
        self._notify_transitions(transitions)

    # ---------- Task CRUD ----------
    def _load_task(self, task_id: str) -> tuple[Task, Project]:
        task = self.repo.get_task(task_id)
        if task is None:
            raise NotFoundError("Task not found.")
        return task, self._load_project(task.project_id)

    def _deliverable_in_project(self, deliverable_id: str, project: Project) -> Deliverable:
        deliverable = self.repo.get_deliverable(deliverable_id)
        if deliverable is None:
            raise NotFoundError("Deliverable not found.")
        if deliverable.project_id != project.id:
            raise InvalidStateError("Deliverable belongs to a different project.")
        return deliverable

    def list_tasks(self, *, context: RequestUserContext, deliverable_id: str | None = None) -> list[Task]:
        if deliverable_id is not None:
            deliverable, project = self._load_deliverable(deliverable_id)
            self._ensure_can_view(context, project)
            return self.repo.list_tasks_for_deliverable(deliverable.id)

        visible_projects = {project.id for project in self.list_projects(context=context)}
        return [
            task
            for task in self.repo.list_tasks()
            if task.project_id in visible_projects or task.assignee_id == context.user_id
        ]

    def list_tasks_for_assignee(self, *, context: RequestUserContext, assignee_id: str) -> list[Task]:
        if assignee_id != context.user_id and context.role is AppRole.TEAM_MEMBER:
            raise UnauthorizedError("Team members can only list their own tasks.")
        return self.repo.list_tasks_for_assignee(assignee_id)

    def get_task(self, *, context: RequestUserContext, task_id: str) -> Task:
        task, project = self._load_task(task_id)
        if task.assignee_id != context.user_id:
            self._ensure_can_view(context, project)
        return task

    def create_task(self, *, context: RequestUserContext, data: TaskCreateData) -> Task:
        project = self._load_project(data.project_id)
        self._require(can_create(self.scope_for(context, project), EntityKind.TASK), "You cannot add tasks.")
        status = parse_status(data.status) if data.status is not None else WorkStatus.TODO

        phase_id = data.phase_id
        if data.deliverable_id is not None:
            deliverable = self._deliverable_in_project(data.deliverable_id, project)
            phase_id = deliverable.phase_id
        elif phase_id is not None:
            phase_id = self._phase_in_project(phase_id, project).id

        task = Task(
            project_id=project.id,
            deliverable_id=data.deliverable_id,
            phase_id=phase_id,
            text=data.text.strip(),
            priority=data.priority,
            due_date=data.due_date,
            status=status,
            assignee_id=data.assignee_id.strip() if data.assignee_id else None,
            position=self.repo.next_task_position(data.deliverable_id),
        )
        self.repo.add_task(task)
        self._commit("Task could not be created.")

        transitions: list[Transition] = []
        if task.deliverable_id:
            transitions = self.aggregation.recompute_deliverable(task.deliverable_id)
        self.db.refresh(task)
        self.dispatcher.task_event(task, "TaskCreated", f'You have been assigned a new task: "{task.text}"')
        self._notify_transitions(transitions)
        return task

    def update_task(self, *, context: RequestUserContext, task_id: str, data: TaskUpdateData) -> Task:
        task, project = self._load_task(task_id)
        self._require(can_edit(self.scope_for(context, project), EntityKind.TASK), "You cannot edit this task.")
        status = parse_status(data.status) if data.status is not None else None

        previous_deliverable_id = task.deliverable_id
        if data.detach_deliverable:
            if task.deliverable_id:
                # phase_id always mirrors the deliverable's phase
                task.deliverable_id = None
                task.phase_id = None
                task.position = self.repo.next_task_position(None)
        elif data.deliverable_id is not None and data.deliverable_id != task.deliverable_id:
            deliverable = self._deliverable_in_project(data.deliverable_id, project)
            task.deliverable_id = deliverable.id
            task.phase_id = deliverable.phase_id
            task.position = self.repo.next_task_position(deliverable.id)

        if data.text is not None:
            task.text = data.text.strip()
        if data.priority is not None:
            task.priority = data.priority
        if data.due_date is not None:
            task.due_date = data.due_date
        if data.assignee_id is not None:
            task.assignee_id = data.assignee_id.strip() or None
        self._commit("Task could not be updated.")

        transitions: list[Transition] = []
        if status is not None:
            transitions.extend(self.aggregation.set_task_status(task.id, status).transitions)
        elif task.deliverable_id:
            transitions.extend(self.aggregation.recompute_deliverable(task.deliverable_id))
        if previous_deliverable_id and previous_deliverable_id != task.deliverable_id:
            transitions.extend(self.aggregation.recompute_deliverable(previous_deliverable_id))

        self.db.refresh(task)
        self.dispatcher.task_event(task, "TaskUpdated", f'Task "{task.text}" assigned to you has been updated.')
        self._notify_transitions(transitions)
        return task

    def set_task_status(self, *, context: RequestUserContext, task_id: str, status: str) -> CascadeResult:
        task, project = self._load_task(task_id)
        self._require(
            can_drag(self.scope_for(context, project), EntityKind.TASK, assignee_id=task.assignee_id),
            "You cannot change the status of this task.",
        )
        result = self.aggregation.set_task_status(task_id, status)
        self._notify_transitions(result.transitions)
        return result

    def delete_task(self, *, context: RequestUserContext, task_id: str) -> None:
        task, project = self._load_task(task_id)
        self._require(can_delete(self.scope_for(context, project), EntityKind.TASK), "You cannot delete this task.")

        text = task.text
        assignee_id = task.assignee_id
        deliverable_id = task.deliverable_id
        self.repo.delete_task(task)
        self._commit("Task could not be deleted.")

        transitions: list[Transition] = []
        if deliverable_id:
            transitions = self.aggregation.recompute_deliverable(deliverable_id)
        self.dispatcher.send_many(
            [assignee_id],
            event_type="TaskDeleted",
            project_id=project.id,
            message=f'Task "{text}" assigned to you has been deleted.',
        )
        self._notify_transitions(transitions)
