"""ORM model package."""

from app.models.entities import (
    ParticipantKind,
    Project,
    ProjectMember,
    RaciAssignment,
    RaciMatrix,
    RaciParticipantColumn,
    RaciRole,
    RaciTask,
    TeamMember,
    User,
    project_team_members,
)

__all__ = [
    "ParticipantKind",
    "Project",
    "ProjectMember",
    "RaciAssignment",
    "RaciMatrix",
    "RaciParticipantColumn",
    "RaciRole",
    "RaciTask",
    "TeamMember",
    "User",
    "project_team_members",
]
