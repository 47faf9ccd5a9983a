"""Application service owning RACI matrix structure and invariants.

Every mutation runs as one unit of work: the matrix row is locked, inputs are
validated, all structural changes (including cascades) and the audit stamp are
flushed, and the transaction is committed. Any failure rolls the whole unit
back. Each mutation returns a fresh view built after the commit.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy.exc import DataError, IntegrityError
from sqlalchemy.orm import Session

from app.core.auth import RequestUserContext
from app.core.errors import NotFoundError, ValidationError
from app.models.entities import (
    Project,
    RaciAssignment,
    RaciMatrix,
    RaciParticipantColumn,
    RaciRole,
    RaciTask,
)
from app.repositories.raci_repository import RaciRepository
from app.services.participant_resolver import ParticipantResolver
from app.services.participants import SPECIAL_ROLE_LABELS, ParticipantRef, TeamMemberRef
from app.services.raci_view import RaciMatrixView, RaciViewMaterializer

logger = logging.getLogger(__name__)

MATRIX_NAME_MAX_LENGTH = 255
TASK_NAME_MAX_LENGTH = 50
TASK_DESCRIPTION_MAX_LENGTH = 100
# Largest value the INTEGER row_order column holds.
ROW_ORDER_MAX = 2**31 - 1


def _clean_required(value: str | None, *, field: str, max_length: int) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(f"{field} is required.", field=field)
    if len(cleaned) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters.", field=field)
    return cleaned


def _clean_optional(value: str | None, *, field: str, max_length: int) -> str | None:
    if value is None:
        return None
    cleaned = value.strip()
    if len(cleaned) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters.", field=field)
    return cleaned or None


def _coerce_role(role: RaciRole | str | None) -> RaciRole | None:
    if role is None or role == "":
        return None
    try:
        return RaciRole(role)
    except ValueError as exc:
        raise ValidationError(f"role must be one of R, A, C, I; got '{role}'.", field="role") from exc


class RaciMatrixService:
    """Matrix aggregate: tasks, participant columns, assignments and approver."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = RaciRepository(db)
        self.resolver = ParticipantResolver(db)
        self.materializer = RaciViewMaterializer(db, resolver=self.resolver)

    # ---------- Serialization ----------
    @staticmethod
    def serialize_matrix(matrix: RaciMatrix) -> dict[str, object]:
        return {
            "id": str(matrix.id),
            "project_id": str(matrix.project_id),
            "name": matrix.name,
            "description": matrix.description,
            "approver_id": str(matrix.approver_id) if matrix.approver_id else None,
            "created_by_id": str(matrix.created_by_id) if matrix.created_by_id else None,
            "updated_by_id": str(matrix.updated_by_id) if matrix.updated_by_id else None,
            "created_at": matrix.created_at.isoformat(),
            "updated_at": matrix.updated_at.isoformat(),
        }

    # ---------- Lookups ----------
    def _get_project(self, project_id: UUID) -> Project:
        project = self.repo.get_project(project_id)
        if project is None:
            raise NotFoundError(f"Project with ID {project_id} not found.", entity="project", entity_id=project_id)
        return project

    def _get_matrix(self, matrix_id: UUID) -> RaciMatrix:
        matrix = self.repo.get_matrix(matrix_id)
        if matrix is None:
            raise NotFoundError(
                f"RACI matrix with ID {matrix_id} not found.",
                entity="raci_matrix",
                entity_id=matrix_id,
            )
        return matrix

    def _get_task(self, matrix: RaciMatrix, row_order: int) -> RaciTask:
        task = self.repo.get_task(matrix.id, row_order)
        if task is None:
            raise NotFoundError(f"Task at row {row_order} not found.", entity="raci_task", entity_id=row_order)
        return task

    def _get_column(self, matrix: RaciMatrix, ref: ParticipantRef) -> RaciParticipantColumn | None:
        return self.repo.get_column(matrix.id, participant_kind=ref.kind, participant_id=ref.participant_id)

    # ---------- Unit of work ----------
    @contextmanager
    def _mutation(self, matrix_id: UUID, *, context: RequestUserContext, operation: str) -> Iterator[RaciMatrix]:
        """Lock the matrix, run the block, stamp audit fields and commit atomically."""

        try:
            matrix = self.repo.get_matrix_for_update(matrix_id)
            if matrix is None:
                raise NotFoundError(
                    f"RACI matrix with ID {matrix_id} not found.",
                    entity="raci_matrix",
                    entity_id=matrix_id,
                )

            yield matrix

            matrix.updated_by_id = context.user_id
            matrix.updated_at = datetime.utcnow()
            self.db.flush()
            self.db.commit()
        except HTTPException:
            self.db.rollback()
            raise
        except IntegrityError as exc:
            self.db.rollback()
            logger.warning("RACI %s on matrix %s rejected by storage constraint", operation, matrix_id)
            raise ValidationError(
                "Change conflicts with the current matrix state; reload and retry.",
            ) from exc
        except DataError as exc:
            self.db.rollback()
            logger.warning("RACI %s on matrix %s rejected by column type", operation, matrix_id)
            raise ValidationError("Value is out of range for storage.") from exc
        except Exception:
            self.db.rollback()
            raise

        logger.info("RACI %s committed on matrix %s by user %s", operation, matrix_id, context.user_id)

    # ---------- Reads ----------
    def get_matrix_view(self, *, matrix_id: UUID) -> RaciMatrixView:
        return self.materializer.build_view(self._get_matrix(matrix_id))

    def list_project_matrices(self, *, project_id: UUID) -> list[RaciMatrix]:
        project = self._get_project(project_id)
        return self.repo.list_matrices_for_project(project.id)

    # ---------- Matrix lifecycle ----------
    def create_matrix(
        self,
        *,
        context: RequestUserContext,
        project_id: UUID,
        name: str,
        description: str | None = None,
    ) -> RaciMatrix:
        project = self._get_project(project_id)
        cleaned_name = _clean_required(name, field="name", max_length=MATRIX_NAME_MAX_LENGTH)

        now = datetime.utcnow()
        matrix = RaciMatrix(
            project_id=project.id,
            name=cleaned_name,
            description=description.strip() if description and description.strip() else None,
            created_by_id=context.user_id,
            updated_by_id=context.user_id,
            created_at=now,
            updated_at=now,
        )
        self.repo.add_matrix(matrix)
        self.db.commit()
        self.db.refresh(matrix)

        logger.info("RACI matrix %s created for project %s", matrix.id, project.id)
        return matrix

    def delete_matrix(self, *, context: RequestUserContext, matrix_id: UUID) -> None:
        try:
            matrix = self.repo.get_matrix_for_update(matrix_id)
            if matrix is None:
                raise NotFoundError(
                    f"RACI matrix with ID {matrix_id} not found.",
                    entity="raci_matrix",
                    entity_id=matrix_id,
                )
            removed_assignments = self.repo.delete_assignments_for_matrix(matrix.id)
            removed_columns = self.repo.delete_columns_for_matrix(matrix.id)
            removed_tasks = self.repo.delete_tasks_for_matrix(matrix.id)
            self.repo.delete_matrix(matrix)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "RACI matrix %s deleted by user %s (%d tasks, %d columns, %d assignments)",
            matrix_id,
            context.user_id,
            removed_tasks,
            removed_columns,
            removed_assignments,
        )

    # ---------- Tasks ----------
    def add_task(
        self,
        *,
        context: RequestUserContext,
        matrix_id: UUID,
        name: str,
        description: str | None = None,
        row_order: int | None = None,
    ) -> RaciMatrixView:
        cleaned_name = _clean_required(name, field="name", max_length=TASK_NAME_MAX_LENGTH)
        cleaned_description = _clean_optional(
            description,
            field="description",
            max_length=TASK_DESCRIPTION_MAX_LENGTH,
        )

        with self._mutation(matrix_id, context=context, operation="add_task") as matrix:
            if row_order is None:
                current_max = self.repo.max_row_order(matrix.id)
                target_row = 0 if current_max is None else current_max + 1
                if target_row > ROW_ORDER_MAX:
                    raise ValidationError("No row_order left after the last task.", field="row_order")
            else:
                if row_order < 0:
                    raise ValidationError("row_order must be greater or equal zero.", field="row_order")
                if row_order > ROW_ORDER_MAX:
                    raise ValidationError(f"row_order must be at most {ROW_ORDER_MAX}.", field="row_order")
                if self.repo.get_task(matrix.id, row_order) is not None:
                    raise ValidationError(f"Task row {row_order} already exists.", field="row_order")
                target_row = row_order

            self.repo.add_task(
                RaciTask(
                    matrix_id=matrix.id,
                    row_order=target_row,
                    name=cleaned_name,
                    description=cleaned_description,
                )
            )

        return self.get_matrix_view(matrix_id=matrix_id)

    def update_task(
        self,
        *,
        context: RequestUserContext,
        matrix_id: UUID,
        row_order: int,
        name: str | None = None,
        description: str | None = None,
    ) -> RaciMatrixView:
        cleaned_name = None
        if name is not None:
            cleaned_name = _clean_required(name, field="name", max_length=TASK_NAME_MAX_LENGTH)
        cleaned_description = _clean_optional(
            description,
            field="description",
            max_length=TASK_DESCRIPTION_MAX_LENGTH,
        )

        with self._mutation(matrix_id, context=context, operation="update_task") as matrix:
            task = self._get_task(matrix, row_order)
            if cleaned_name is not None:
                task.name = cleaned_name
            if description is not None:
                task.description = cleaned_description

        return self.get_matrix_view(matrix_id=matrix_id)

    def delete_task(self, *, context: RequestUserContext, matrix_id: UUID, row_order: int) -> RaciMatrixView:
        with self._mutation(matrix_id, context=context, operation="delete_task") as matrix:
            task = self._get_task(matrix, row_order)
            removed = self.repo.delete_assignments_for_row(matrix.id, row_order)
            self.repo.delete_task(task)
            logger.debug("Row %s of matrix %s removed with %d assignments", row_order, matrix.id, removed)

        return self.get_matrix_view(matrix_id=matrix_id)

    # ---------- Participant columns ----------
    def add_participant_column(
        self,
        *,
        context: RequestUserContext,
        matrix_id: UUID,
        participant: ParticipantRef,
    ) -> RaciMatrixView:
        with self._mutation(matrix_id, context=context, operation="add_participant_column") as matrix:
            if self._get_column(matrix, participant) is not None:
                raise ValidationError(
                    f"Participant column {participant.key} already exists.",
                    field="participant",
                )

            project = self._get_project(matrix.project_id)
            if isinstance(participant, TeamMemberRef):
                # Raises NotFoundError for unknown team members.
                self.resolver.resolve(project, participant)
                if not self.resolver.validate_membership(project, participant):
                    raise ValidationError(
                        f"Team member {participant.id} is not part of this project.",
                        field="participant",
                    )
            elif self.resolver.try_resolve(project, participant) is None:
                raise ValidationError(
                    f"User {participant.user_id} is not the current "
                    f"{SPECIAL_ROLE_LABELS[participant.kind]} for this project.",
                    field="participant",
                )

            current_max = self.repo.max_column_position(matrix.id)
            self.repo.add_column(
                RaciParticipantColumn(
                    matrix_id=matrix.id,
                    position=0 if current_max is None else current_max + 1,
                    participant_kind=participant.kind,
                    participant_id=participant.participant_id,
                )
            )

        return self.get_matrix_view(matrix_id=matrix_id)

    def remove_participant_column(
        self,
        *,
        context: RequestUserContext,
        matrix_id: UUID,
        participant: ParticipantRef,
    ) -> RaciMatrixView:
        with self._mutation(matrix_id, context=context, operation="remove_participant_column") as matrix:
            column = self._get_column(matrix, participant)
            if column is None:
                raise NotFoundError(
                    f"Participant column {participant.key} not found.",
                    entity="raci_participant_column",
                    entity_id=participant.key,
                )
            self.repo.delete_assignments_for_participant(
                matrix.id,
                participant_kind=participant.kind,
                participant_id=participant.participant_id,
            )
            self.repo.delete_column(column)

        return self.get_matrix_view(matrix_id=matrix_id)

    # ---------- Assignments ----------
    def set_assignment(
        self,
        *,
        context: RequestUserContext,
        matrix_id: UUID,
        row_order: int,
        participant: ParticipantRef,
        role: RaciRole | str | None,
    ) -> RaciMatrixView:
        """Upsert the role of one cell; ``None`` clears it (idempotent)."""

        target_role = _coerce_role(role)

        with self._mutation(matrix_id, context=context, operation="set_assignment") as matrix:
            if self._get_column(matrix, participant) is None:
                raise ValidationError(
                    f"Participant column {participant.key} does not exist.",
                    field="participant",
                )
            self._get_task(matrix, row_order)

            assignment = self.repo.get_assignment(
                matrix.id,
                row_order=row_order,
                participant_kind=participant.kind,
                participant_id=participant.participant_id,
            )
            if target_role is None:
                if assignment is not None:
                    self.repo.delete_assignment(assignment)
            elif assignment is not None:
                assignment.role = target_role
            else:
                self.repo.add_assignment(
                    RaciAssignment(
                        matrix_id=matrix.id,
                        row_order=row_order,
                        participant_kind=participant.kind,
                        participant_id=participant.participant_id,
                        role=target_role,
                    )
                )

        return self.get_matrix_view(matrix_id=matrix_id)

    # ---------- Approver ----------
    def set_approver(self, *, context: RequestUserContext, matrix_id: UUID, approver_id: UUID) -> RaciMatrixView:
        with self._mutation(matrix_id, context=context, operation="set_approver") as matrix:
            project = self._get_project(matrix.project_id)
            if not self.resolver.is_eligible_approver(project, approver_id):
                raise ValidationError(
                    "Approver must be the project's Product Owner, PMO or active Scrum Master.",
                    field="approver_id",
                )
            matrix.approver_id = approver_id

        return self.get_matrix_view(matrix_id=matrix_id)

    # ---------- Maintenance ----------
    def backfill_audit_fields(self, *, user_id: UUID) -> int:
        """Fill missing creator/updater on legacy matrices with ``user_id``."""

        if self.repo.get_user(user_id) is None:
            raise NotFoundError(f"User with ID {user_id} not found.", entity="user", entity_id=user_id)

        updated = 0
        try:
            for matrix in self.repo.list_matrices_missing_audit():
                if matrix.created_by_id is None:
                    matrix.created_by_id = user_id
                matrix.updated_by_id = user_id
                updated += 1
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Backfilled audit fields on %d RACI matrices", updated)
        return updated
