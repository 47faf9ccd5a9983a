"""Repository helpers for RACI matrices and their project collaborators."""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session

from app.models.entities import (
    ParticipantKind,
    Project,
    ProjectMember,
    RaciAssignment,
    RaciMatrix,
    RaciParticipantColumn,
    RaciTask,
    TeamMember,
    User,
    project_team_members,
)


class RaciRepository:
    """Persistence operations used by the RACI matrix services."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- Projects and membership (read-only) ----------
    def get_project(self, project_id: UUID) -> Project | None:
        return self.db.scalar(select(Project).where(Project.id == project_id))

    def get_user(self, user_id: UUID) -> User | None:
        return self.db.scalar(select(User).where(User.id == user_id))

    def list_project_members(self, project_id: UUID) -> list[tuple[ProjectMember, User]]:
        rows = self.db.execute(
            select(ProjectMember, User)
            .join(User, User.id == ProjectMember.user_id)
            .where(ProjectMember.project_id == project_id)
            .order_by(ProjectMember.start_date.asc(), ProjectMember.id.asc())
        ).all()
        return [(member, user) for member, user in rows]

    # ---------- Team members (read-only) ----------
    def get_team_member(self, team_member_id: UUID) -> TeamMember | None:
        return self.db.scalar(select(TeamMember).where(TeamMember.id == team_member_id))

    def list_team_members(self, team_member_ids: Iterable[UUID]) -> list[TeamMember]:
        ids = set(team_member_ids)
        if not ids:
            return []
        return self.db.scalars(select(TeamMember).where(TeamMember.id.in_(ids))).all()

    def list_team_member_project_ids(self, team_member_id: UUID) -> list[UUID]:
        return self.db.scalars(
            select(project_team_members.c.project_id).where(
                project_team_members.c.team_member_id == team_member_id
            )
        ).all()

    # ---------- Matrices ----------
    def get_matrix(self, matrix_id: UUID) -> RaciMatrix | None:
        return self.db.scalar(select(RaciMatrix).where(RaciMatrix.id == matrix_id))

    def get_matrix_for_update(self, matrix_id: UUID) -> RaciMatrix | None:
        """Load matrix row holding a write lock until the transaction ends."""

        return self.db.scalar(
            select(RaciMatrix).where(RaciMatrix.id == matrix_id).with_for_update().execution_options(
                populate_existing=True
            )
        )

    def list_matrices_for_project(self, project_id: UUID) -> list[RaciMatrix]:
        return self.db.scalars(
            select(RaciMatrix)
            .where(RaciMatrix.project_id == project_id)
            .order_by(RaciMatrix.created_at.desc(), RaciMatrix.name.asc())
        ).all()

    def list_matrices_missing_audit(self) -> list[RaciMatrix]:
        return self.db.scalars(
            select(RaciMatrix)
            .where(or_(RaciMatrix.created_by_id.is_(None), RaciMatrix.updated_by_id.is_(None)))
            .order_by(RaciMatrix.created_at.asc())
        ).all()

    def add_matrix(self, matrix: RaciMatrix) -> RaciMatrix:
        self.db.add(matrix)
        self.db.flush()
        return matrix

    def delete_matrix(self, matrix: RaciMatrix) -> None:
        self.db.delete(matrix)
        self.db.flush()

    # ---------- Tasks ----------
    def list_tasks(self, matrix_id: UUID) -> list[RaciTask]:
        return self.db.scalars(
            select(RaciTask).where(RaciTask.matrix_id == matrix_id).order_by(RaciTask.row_order.asc())
        ).all()

    def get_task(self, matrix_id: UUID, row_order: int) -> RaciTask | None:
        return self.db.scalar(
            select(RaciTask).where(
                and_(
                    RaciTask.matrix_id == matrix_id,
                    RaciTask.row_order == row_order,
                )
            )
        )

    def max_row_order(self, matrix_id: UUID) -> int | None:
        return self.db.scalar(select(func.max(RaciTask.row_order)).where(RaciTask.matrix_id == matrix_id))

    def add_task(self, task: RaciTask) -> RaciTask:
        self.db.add(task)
        self.db.flush()
        return task

    def delete_task(self, task: RaciTask) -> None:
        self.db.delete(task)
        self.db.flush()

    def delete_tasks_for_matrix(self, matrix_id: UUID) -> int:
        tasks = self.list_tasks(matrix_id)
        for task in tasks:
            self.db.delete(task)
        self.db.flush()
        return len(tasks)

    # ---------- Participant columns ----------
    def list_columns(self, matrix_id: UUID) -> list[RaciParticipantColumn]:
        return self.db.scalars(
            select(RaciParticipantColumn)
            .where(RaciParticipantColumn.matrix_id == matrix_id)
            .order_by(RaciParticipantColumn.position.asc())
        ).all()

    def get_column(
        self,
        matrix_id: UUID,
        *,
        participant_kind: ParticipantKind,
        participant_id: UUID,
    ) -> RaciParticipantColumn | None:
        return self.db.scalar(
            select(RaciParticipantColumn).where(
                and_(
                    RaciParticipantColumn.matrix_id == matrix_id,
                    RaciParticipantColumn.participant_kind == participant_kind,
                    RaciParticipantColumn.participant_id == participant_id,
                )
            )
        )

    def max_column_position(self, matrix_id: UUID) -> int | None:
        return self.db.scalar(
            select(func.max(RaciParticipantColumn.position)).where(RaciParticipantColumn.matrix_id == matrix_id)
        )

    def add_column(self, column: RaciParticipantColumn) -> RaciParticipantColumn:
        self.db.add(column)
        self.db.flush()
        return column

    def delete_column(self, column: RaciParticipantColumn) -> None:
        self.db.delete(column)
        self.db.flush()

    def delete_columns_for_matrix(self, matrix_id: UUID) -> int:
        columns = self.list_columns(matrix_id)
        for column in columns:
            self.db.delete(column)
        self.db.flush()
        return len(columns)

    # ---------- Assignments ----------
    def list_assignments(self, matrix_id: UUID) -> list[RaciAssignment]:
        return self.db.scalars(
            select(RaciAssignment)
            .where(RaciAssignment.matrix_id == matrix_id)
            .order_by(
                RaciAssignment.row_order.asc(),
                RaciAssignment.participant_kind.asc(),
                RaciAssignment.participant_id.asc(),
            )
        ).all()

    def get_assignment(
        self,
        matrix_id: UUID,
        *,
        row_order: int,
        participant_kind: ParticipantKind,
        participant_id: UUID,
    ) -> RaciAssignment | None:
        return self.db.scalar(
            select(RaciAssignment).where(
                and_(
                    RaciAssignment.matrix_id == matrix_id,
                    RaciAssignment.row_order == row_order,
                    RaciAssignment.participant_kind == participant_kind,
                    RaciAssignment.participant_id == participant_id,
                )
            )
        )

    def add_assignment(self, assignment: RaciAssignment) -> RaciAssignment:
        self.db.add(assignment)
        self.db.flush()
        return assignment

    def delete_assignment(self, assignment: RaciAssignment) -> None:
        self.db.delete(assignment)
        self.db.flush()

    def delete_assignments_for_row(self, matrix_id: UUID, row_order: int) -> int:
        assignments = self.db.scalars(
            select(RaciAssignment).where(
                and_(
                    RaciAssignment.matrix_id == matrix_id,
                    RaciAssignment.row_order == row_order,
                )
            )
        ).all()
        for assignment in assignments:
            self.db.delete(assignment)
        self.db.flush()
        return len(assignments)

    def delete_assignments_for_participant(
        self,
        matrix_id: UUID,
        *,
        participant_kind: ParticipantKind,
        participant_id: UUID,
    ) -> int:
        assignments = self.db.scalars(
            select(RaciAssignment).where(
                and_(
                    RaciAssignment.matrix_id == matrix_id,
                    RaciAssignment.participant_kind == participant_kind,
                    RaciAssignment.participant_id == participant_id,
                )
            )
        ).all()
        for assignment in assignments:
            self.db.delete(assignment)
        self.db.flush()
        return len(assignments)

    def delete_assignments_for_matrix(self, matrix_id: UUID) -> int:
        assignments = self.list_assignments(matrix_id)
        for assignment in assignments:
            self.db.delete(assignment)
        self.db.flush()
        return len(assignments)
