"""RACI matrix endpoints: matrix lifecycle, rows, participant columns, cells, approver."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Path, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.core.auth import RequestUserContext, get_current_user_context
from app.db.dependencies import get_db_session
from app.models.entities import ParticipantKind, RaciRole
from app.services.participants import ParticipantRef, parse_participant_key, participant_ref
from app.services.raci_matrix_service import (
    MATRIX_NAME_MAX_LENGTH,
    ROW_ORDER_MAX,
    TASK_DESCRIPTION_MAX_LENGTH,
    TASK_NAME_MAX_LENGTH,
    RaciMatrixService,
)
from app.services.raci_view import serialize_view

router = APIRouter(tags=["raci"])


class MatrixCreatePayload(BaseModel):
    project_id: UUID
    name: str = Field(min_length=1, max_length=MATRIX_NAME_MAX_LENGTH)
    description: str | None = None


class TaskCreatePayload(BaseModel):
    name: str = Field(min_length=1, max_length=TASK_NAME_MAX_LENGTH)
    description: str | None = Field(default=None, max_length=TASK_DESCRIPTION_MAX_LENGTH)
    row_order: int | None = Field(default=None, ge=0, le=ROW_ORDER_MAX)


class TaskUpdatePayload(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=TASK_NAME_MAX_LENGTH)
    description: str | None = Field(default=None, max_length=TASK_DESCRIPTION_MAX_LENGTH)


class ParticipantPayload(BaseModel):
    kind: ParticipantKind
    id: UUID

    def to_ref(self) -> ParticipantRef:
        return participant_ref(self.kind, self.id)


class AssignmentPayload(BaseModel):
    row_order: int = Field(ge=0, le=ROW_ORDER_MAX)
    participant: ParticipantPayload
    # null clears the cell
    role: RaciRole | None = None


class ApproverPayload(BaseModel):
    approver_id: UUID


def _raci_service(db: Session) -> RaciMatrixService:
    return RaciMatrixService(db)


@router.post("/raci-matrices", status_code=status.HTTP_201_CREATED)
def create_raci_matrix(
    payload: MatrixCreatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _raci_service(db)
    matrix = service.create_matrix(
        context=context,
        project_id=payload.project_id,
        name=payload.name,
        description=payload.description,
    )
    return service.serialize_matrix(matrix)


@router.get("/projects/{project_id}/raci-matrices")
def list_project_raci_matrices(
    project_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, list[object]]:
    service = _raci_service(db)
    items = service.list_project_matrices(project_id=project_id)
    return {"items": [service.serialize_matrix(matrix) for matrix in items]}


@router.get("/raci-matrices/{matrix_id}")
def get_raci_matrix(
    matrix_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _raci_service(db)
    return serialize_view(service.get_matrix_view(matrix_id=matrix_id))


@router.delete("/raci-matrices/{matrix_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_raci_matrix(
    matrix_id: UUID,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    service = _raci_service(db)
    service.delete_matrix(context=context, matrix_id=matrix_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/raci-matrices/{matrix_id}/tasks", status_code=status.HTTP_201_CREATED)
def add_raci_task(
    matrix_id: UUID,
    payload: TaskCreatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _raci_service(db)
    view = service.add_task(
        context=context,
        matrix_id=matrix_id,
        name=payload.name,
        description=payload.description,
        row_order=payload.row_order,
    )
    return serialize_view(view)


@router.patch("/raci-matrices/{matrix_id}/tasks/{row_order}")
def update_raci_task(
    matrix_id: UUID,
    payload: TaskUpdatePayload,
    row_order: int = Path(ge=0, le=ROW_ORDER_MAX),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _raci_service(db)
    view = service.update_task(
        context=context,
        matrix_id=matrix_id,
        row_order=row_order,
        name=payload.name,
        description=payload.description,
    )
    return serialize_view(view)


@router.delete("/raci-matrices/{matrix_id}/tasks/{row_order}")
def delete_raci_task(
    matrix_id: UUID,
    row_order: int = Path(ge=0, le=ROW_ORDER_MAX),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _raci_service(db)
    return serialize_view(service.delete_task(context=context, matrix_id=matrix_id, row_order=row_order))


@router.post("/raci-matrices/{matrix_id}/participants", status_code=status.HTTP_201_CREATED)
def add_raci_participant_column(
    matrix_id: UUID,
    payload: ParticipantPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _raci_service(db)
    view = service.add_participant_column(
        context=context,
        matrix_id=matrix_id,
        participant=payload.to_ref(),
    )
    return serialize_view(view)


@router.delete("/raci-matrices/{matrix_id}/participants/{participant_key}")
def remove_raci_participant_column(
    matrix_id: UUID,
    participant_key: str,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _raci_service(db)
    view = service.remove_participant_column(
        context=context,
        matrix_id=matrix_id,
        participant=parse_participant_key(participant_key),
    )
    return serialize_view(view)


@router.put("/raci-matrices/{matrix_id}/assignments")
def set_raci_assignment(
    matrix_id: UUID,
    payload: AssignmentPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _raci_service(db)
    view = service.set_assignment(
        context=context,
        matrix_id=matrix_id,
        row_order=payload.row_order,
        participant=payload.participant.to_ref(),
        role=payload.role,
    )
    return serialize_view(view)


@router.put("/raci-matrices/{matrix_id}/approver")
def set_raci_approver(
    matrix_id: UUID,
    payload: ApproverPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _raci_service(db)
    view = service.set_approver(context=context, matrix_id=matrix_id, approver_id=payload.approver_id)
    return serialize_view(view)
