from __future__ import annotations

import uuid
from collections.abc import Generator
from dataclasses import dataclass
from datetime import date, datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, insert
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.auth import RequestUserContext, context_for_user, ensure_user_principal
from app.db.base import Base
from app.db.dependencies import get_db_session
import app.models.entities  # noqa: F401
from app.main import create_app
from app.models.entities import (
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

TEST_TABLES = [
    User.__table__,
    Project.__table__,
    ProjectMember.__table__,
    TeamMember.__table__,
    project_team_members,
    RaciMatrix.__table__,
    RaciTask.__table__,
    RaciParticipantColumn.__table__,
    RaciAssignment.__table__,
]


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine, tables=TEST_TABLES)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine, tables=TEST_TABLES)


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    app = create_app()

    def override_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@dataclass
class ProjectFixture:
    """Project with role holders, team members and an acting user."""

    project: Project
    other_project: Project
    product_owner: User
    pmo: User
    scrum_master: User
    second_scrum_master: User
    inactive_scrum_master: User
    developer: User
    alice: TeamMember
    bob: TeamMember
    carol: TeamMember
    actor: User
    context: RequestUserContext


def _user(db: Session, *, oid: str, name: str) -> User:
    return ensure_user_principal(db, microsoft_oid=oid, email=f"{oid}@test.local", display_name=name)


def _team_member(db: Session, *, full_name: str, display_name: str | None, designation_role: str) -> TeamMember:
    now = datetime.utcnow()
    row = TeamMember(
        full_name=full_name,
        display_name=display_name,
        designation_role=designation_role,
        created_at=now,
        updated_at=now,
    )
    db.add(row)
    db.flush()
    return row


def _member(db: Session, *, project: Project, user: User, role: str, active: bool, start: date) -> None:
    db.add(
        ProjectMember(
            project_id=project.id,
            user_id=user.id,
            role=role,
            start_date=start,
            is_active=active,
        )
    )


@pytest.fixture()
def raci_project(db_session: Session) -> ProjectFixture:
    product_owner = _user(db_session, oid="oid-po", name="Paula Owner")
    pmo = _user(db_session, oid="oid-pmo", name="Mark Office")
    scrum_master = _user(db_session, oid="oid-sm", name="Sam Scrum")
    second_scrum_master = _user(db_session, oid="oid-sm2", name="Sue Scrum")
    inactive_scrum_master = _user(db_session, oid="oid-sm-old", name="Ivan Former")
    developer = _user(db_session, oid="oid-dev", name="Dana Dev")
    actor = _user(db_session, oid="oid-editor", name="Editor")

    now = datetime.utcnow()
    project = Project(
        name="Apollo",
        description="RACI test project",
        product_owner_id=product_owner.id,
        pmo_id=pmo.id,
        created_at=now,
        updated_at=now,
    )
    other_project = Project(name="Gemini", created_at=now, updated_at=now)
    db_session.add_all([project, other_project])
    db_session.flush()

    for user, role, active, start in (
        (inactive_scrum_master, "Scrum Master", False, date(2025, 1, 1)),
        (scrum_master, "Agile SCRUM master", True, date(2025, 2, 1)),
        (second_scrum_master, "scrum master", True, date(2025, 3, 1)),
        (developer, "Developer", True, date(2025, 1, 15)),
    ):
        _member(db_session, project=project, user=user, role=role, active=active, start=start)

    alice = _team_member(db_session, full_name="Alice Anders", display_name="Alice", designation_role="Developer")
    bob = _team_member(db_session, full_name="Bob Brown", display_name=None, designation_role="QA / Tester")
    carol = _team_member(db_session, full_name="Carol Chen", display_name="Carol", designation_role="Business Analyst")
    db_session.execute(
        insert(project_team_members),
        [
            {"project_id": project.id, "team_member_id": alice.id},
            {"project_id": project.id, "team_member_id": bob.id},
            {"project_id": other_project.id, "team_member_id": carol.id},
        ],
    )
    db_session.commit()

    return ProjectFixture(
        project=project,
        other_project=other_project,
        product_owner=product_owner,
        pmo=pmo,
        scrum_master=scrum_master,
        second_scrum_master=second_scrum_master,
        inactive_scrum_master=inactive_scrum_master,
        developer=developer,
        alice=alice,
        bob=bob,
        carol=carol,
        actor=actor,
        context=context_for_user(actor),
    )


@pytest.fixture()
def unknown_id() -> uuid.UUID:
    return uuid.uuid4()
