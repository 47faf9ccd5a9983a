"""Read-only presentation snapshot of a RACI matrix."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.errors import NotFoundError
from app.models.entities import RaciMatrix, RaciTask
from app.repositories.raci_repository import RaciRepository
from app.services.participant_resolver import ApproverCandidate, ParticipantResolver, ResolvedParticipant
from app.services.participants import participant_ref


@dataclass(slots=True)
class RaciTaskRow:
    row_order: int
    name: str
    description: str | None


@dataclass(slots=True)
class RaciMatrixView:
    id: UUID
    project_id: UUID
    name: str
    description: str | None
    tasks: list[RaciTaskRow]
    participants: list[ResolvedParticipant]
    grid: dict[int, dict[str, str]]
    approver: ApproverCandidate | None
    approver_candidates: list[ApproverCandidate]
    created_by_id: UUID | None = None
    updated_by_id: UUID | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    # Column keys that no longer resolve; kept in storage, hidden from the grid.
    unresolved_participant_keys: list[str] = field(default_factory=list)


class RaciViewMaterializer:
    """Builds ``RaciMatrixView`` snapshots; never writes."""

    def __init__(self, db: Session, resolver: ParticipantResolver | None = None) -> None:
        self.db = db
        self.repo = RaciRepository(db)
        self.resolver = resolver or ParticipantResolver(db)

    @staticmethod
    def _task_row(task: RaciTask) -> RaciTaskRow:
        return RaciTaskRow(row_order=task.row_order, name=task.name, description=task.description)

    def build_view(self, matrix: RaciMatrix) -> RaciMatrixView:
        project = self.repo.get_project(matrix.project_id)
        if project is None:
            raise NotFoundError(
                f"Project with ID {matrix.project_id} not found.",
                entity="project",
                entity_id=matrix.project_id,
            )

        tasks = self.repo.list_tasks(matrix.id)
        refs = [
            participant_ref(column.participant_kind, column.participant_id)
            for column in self.repo.list_columns(matrix.id)
        ]
        holders = self.resolver.load_role_holders(project)
        resolved = self.resolver.resolve_many(project, refs, holders=holders)

        participants = [resolved[ref.key] for ref in refs if ref.key in resolved]
        unresolved = [ref.key for ref in refs if ref.key not in resolved]

        roles_by_cell: dict[tuple[int, str], str] = {}
        for assignment in self.repo.list_assignments(matrix.id):
            ref = participant_ref(assignment.participant_kind, assignment.participant_id)
            roles_by_cell[(assignment.row_order, ref.key)] = assignment.role.value

        grid: dict[int, dict[str, str]] = {}
        for task in tasks:
            grid[task.row_order] = {
                participant.key: roles_by_cell.get((task.row_order, participant.key), "")
                for participant in participants
            }

        candidates = self.resolver.eligible_approvers(project, holders=holders)
        approver = None
        if matrix.approver_id is not None:
            approver = next((candidate for candidate in candidates if candidate.id == matrix.approver_id), None)

        return RaciMatrixView(
            id=matrix.id,
            project_id=matrix.project_id,
            name=matrix.name,
            description=matrix.description,
            tasks=[self._task_row(task) for task in tasks],
            participants=participants,
            grid=grid,
            approver=approver,
            approver_candidates=candidates,
            created_by_id=matrix.created_by_id,
            updated_by_id=matrix.updated_by_id,
            created_at=matrix.created_at,
            updated_at=matrix.updated_at,
            unresolved_participant_keys=unresolved,
        )


def serialize_participant(participant: ResolvedParticipant) -> dict[str, object]:
    return {
        "key": participant.key,
        "kind": participant.kind.value,
        "id": str(participant.participant_id),
        "full_name": participant.full_name,
        "display_name": participant.display_name,
        "role_label": participant.role_label,
    }


def serialize_candidate(candidate: ApproverCandidate) -> dict[str, object]:
    return {
        "id": str(candidate.id),
        "name": candidate.name,
        "role_label": candidate.role_label,
    }


def serialize_view(view: RaciMatrixView) -> dict[str, object]:
    """JSON-ready representation; grid row keys become strings."""

    return {
        "id": str(view.id),
        "project_id": str(view.project_id),
        "name": view.name,
        "description": view.description,
        "tasks": [
            {"row_order": task.row_order, "name": task.name, "description": task.description}
            for task in view.tasks
        ],
        "participants": [serialize_participant(participant) for participant in view.participants],
        "grid": {str(row_order): dict(cells) for row_order, cells in view.grid.items()},
        "approver": serialize_candidate(view.approver) if view.approver else None,
        "approver_candidates": [serialize_candidate(candidate) for candidate in view.approver_candidates],
        "created_by_id": str(view.created_by_id) if view.created_by_id else None,
        "updated_by_id": str(view.updated_by_id) if view.updated_by_id else None,
        "created_at": view.created_at.isoformat() if view.created_at else None,
        "updated_at": view.updated_at.isoformat() if view.updated_at else None,
    }
