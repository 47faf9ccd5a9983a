"""Authentication context extraction for request handlers.

The RACI services only need to know who is acting (for ``created_by`` /
``updated_by`` audit fields); authorization policy lives outside this service.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.db.dependencies import get_db_session
from app.models.entities import User


@dataclass(frozen=True)
class RequestUserContext:
    """Authenticated request actor resolved from headers and DB state."""

    user_id: UUID
    microsoft_oid: str
    email: str
    display_name: str
    status: str = "active"


def _require_identity_headers(
    x_ms_oid: str | None,
    x_ms_email: str | None,
    x_ms_display_name: str | None,
) -> tuple[str, str, str]:
    if not x_ms_oid or not x_ms_email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=(
                "Missing identity headers. Expected X-MS-OID and X-MS-EMAIL or enable development principal fallback."
            ),
        )

    display_name = x_ms_display_name or x_ms_email
    return x_ms_oid.strip(), x_ms_email.strip().lower(), display_name.strip()


def _resolve_identity(
    x_ms_oid: str | None,
    x_ms_email: str | None,
    x_ms_display_name: str | None,
) -> tuple[str, str, str]:
    settings = get_settings()
    if x_ms_oid and x_ms_email:
        return _require_identity_headers(x_ms_oid, x_ms_email, x_ms_display_name)

    if settings.auth_allow_dev_principal:
        return (
            settings.auth_dev_microsoft_oid.strip(),
            settings.auth_dev_email.strip().lower(),
            settings.auth_dev_display_name.strip(),
        )

    return _require_identity_headers(x_ms_oid, x_ms_email, x_ms_display_name)


def _upsert_user(db: Session, *, microsoft_oid: str, email: str, display_name: str) -> User:
    user = db.scalar(select(User).where(User.microsoft_oid == microsoft_oid))
    now = datetime.utcnow()

    if user is None:
        user = User(
            microsoft_oid=microsoft_oid,
            email=email,
            display_name=display_name,
            status="active",
            created_at=now,
            updated_at=now,
        )
        db.add(user)
        db.flush()
        return user

    if user.email != email or user.display_name != display_name:
        user.email = email
        user.display_name = display_name
        user.updated_at = now
        db.flush()
    return user


def ensure_user_principal(
    db: Session,
    *,
    microsoft_oid: str,
    email: str,
    display_name: str,
) -> User:
    """Ensure user exists and return persisted row.

    Utility exported for tests and seed helpers.
    """

    user = _upsert_user(
        db,
        microsoft_oid=microsoft_oid.strip(),
        email=email.strip().lower(),
        display_name=display_name.strip() or email.strip().lower(),
    )
    db.commit()
    db.refresh(user)
    return user


def context_for_user(user: User) -> RequestUserContext:
    return RequestUserContext(
        user_id=user.id,
        microsoft_oid=user.microsoft_oid,
        email=user.email,
        display_name=user.display_name,
        status=user.status,
    )


def get_current_user_context(
    x_ms_oid: str | None = Header(default=None, alias="X-MS-OID"),
    x_ms_email: str | None = Header(default=None, alias="X-MS-EMAIL"),
    x_ms_display_name: str | None = Header(default=None, alias="X-MS-DISPLAY-NAME"),
    db: Session = Depends(get_db_session),
) -> RequestUserContext:
    """Resolve current request user from trusted proxy headers.

    Falls back to the configured development principal when headers are absent
    and ``auth_allow_dev_principal`` is enabled.
    """

    microsoft_oid, email, display_name = _resolve_identity(x_ms_oid, x_ms_email, x_ms_display_name)
    user = _upsert_user(db, microsoft_oid=microsoft_oid, email=email, display_name=display_name)
    db.commit()

    if user.status != "active":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User account is not active.")
    return context_for_user(user)
