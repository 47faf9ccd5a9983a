"""Domain error types raised by the RACI services.

Both errors are ``HTTPException`` subclasses so that services can raise them
directly and FastAPI renders them without extra handlers.
"""

from __future__ import annotations

from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    """Referenced matrix, task row, project, team member or column is missing."""

    def __init__(self, detail: str, *, entity: str | None = None, entity_id: object = None) -> None:
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)
        self.entity = entity
        self.entity_id = entity_id


class ValidationError(HTTPException):
    """Input violates a length limit, uniqueness rule or eligibility rule."""

    def __init__(self, detail: str, *, field: str | None = None) -> None:
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)
        self.field = field
