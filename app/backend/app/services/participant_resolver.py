"""Resolution of RACI participants against current project role holders.

Special-role participants are not stored anywhere: whether a user is the
Product Owner, PMO or a Scrum Master is recomputed from the project row and its
member list on every call. Nothing here mutates matrix state.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.errors import NotFoundError
from app.models.entities import ParticipantKind, Project, ProjectMember, TeamMember, User
from app.repositories.raci_repository import RaciRepository
from app.services.participants import (
    SPECIAL_ROLE_LABELS,
    ParticipantRef,
    SpecialRoleRef,
    TeamMemberRef,
)

SCRUM_ROLE_MARKER = "scrum"


@dataclass(slots=True)
class ResolvedParticipant:
    key: str
    kind: ParticipantKind
    participant_id: UUID
    full_name: str
    display_name: str
    role_label: str


@dataclass(slots=True)
class ApproverCandidate:
    id: UUID
    name: str
    role_label: str


@dataclass(slots=True)
class ProjectRoleHolders:
    """Snapshot of a project's special-role holders for one request."""

    product_owner: User | None
    pmo: User | None
    scrum_masters: list[User]

    def holder(self, kind: ParticipantKind, user_id: UUID) -> User | None:
        if kind is ParticipantKind.PRODUCT_OWNER:
            return self.product_owner if self.product_owner and self.product_owner.id == user_id else None
        if kind is ParticipantKind.PMO:
            return self.pmo if self.pmo and self.pmo.id == user_id else None
        if kind is ParticipantKind.SCRUM_MASTER:
            return next((user for user in self.scrum_masters if user.id == user_id), None)
        return None


def is_scrum_role(member: ProjectMember) -> bool:
    return SCRUM_ROLE_MARKER in (member.role or "").lower()


class ParticipantResolver:
    """Maps participant references to display records and eligibility verdicts."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = RaciRepository(db)

    def load_role_holders(self, project: Project) -> ProjectRoleHolders:
        product_owner = self.repo.get_user(project.product_owner_id) if project.product_owner_id else None
        pmo = self.repo.get_user(project.pmo_id) if project.pmo_id else None
        scrum_masters = [
            user
            for member, user in self.repo.list_project_members(project.id)
            if member.is_active and is_scrum_role(member)
        ]
        return ProjectRoleHolders(product_owner=product_owner, pmo=pmo, scrum_masters=scrum_masters)

    @staticmethod
    def _team_member_record(ref: TeamMemberRef, team_member: TeamMember) -> ResolvedParticipant:
        return ResolvedParticipant(
            key=ref.key,
            kind=ref.kind,
            participant_id=team_member.id,
            full_name=team_member.full_name,
            display_name=team_member.display_name or team_member.full_name,
            role_label=team_member.designation_role,
        )

    @staticmethod
    def _special_role_record(ref: SpecialRoleRef, user: User) -> ResolvedParticipant:
        return ResolvedParticipant(
            key=ref.key,
            kind=ref.kind,
            participant_id=user.id,
            full_name=user.display_name,
            display_name=user.display_name,
            role_label=SPECIAL_ROLE_LABELS[ref.kind],
        )

    def try_resolve(
        self,
        project: Project,
        ref: ParticipantRef,
        *,
        holders: ProjectRoleHolders | None = None,
    ) -> ResolvedParticipant | None:
        if isinstance(ref, TeamMemberRef):
            team_member = self.repo.get_team_member(ref.id)
            if team_member is None:
                return None
            return self._team_member_record(ref, team_member)

        holders = holders or self.load_role_holders(project)
        user = holders.holder(ref.kind, ref.user_id)
        if user is None:
            return None
        return self._special_role_record(ref, user)

    def resolve(self, project: Project, ref: ParticipantRef) -> ResolvedParticipant:
        """Resolve participant or raise ``NotFoundError``.

        Team members are looked up by id only; project membership is a separate
        check (see ``validate_membership``).
        """

        resolved = self.try_resolve(project, ref)
        if resolved is not None:
            return resolved

        if isinstance(ref, TeamMemberRef):
            raise NotFoundError(
                f"Team member with ID {ref.id} not found.",
                entity="team_member",
                entity_id=ref.id,
            )
        raise NotFoundError(
            f"User {ref.user_id} is not the current {SPECIAL_ROLE_LABELS[ref.kind]} of this project.",
            entity=ref.kind.value,
            entity_id=ref.user_id,
        )

    def resolve_many(
        self,
        project: Project,
        refs: Iterable[ParticipantRef],
        *,
        holders: ProjectRoleHolders | None = None,
    ) -> dict[str, ResolvedParticipant]:
        """Resolve several references at once, silently skipping stale ones."""

        refs = list(refs)
        team_members = {
            member.id: member
            for member in self.repo.list_team_members(ref.id for ref in refs if isinstance(ref, TeamMemberRef))
        }
        if holders is None and any(isinstance(ref, SpecialRoleRef) for ref in refs):
            holders = self.load_role_holders(project)

        resolved: dict[str, ResolvedParticipant] = {}
        for ref in refs:
            if isinstance(ref, TeamMemberRef):
                team_member = team_members.get(ref.id)
                if team_member is not None:
                    resolved[ref.key] = self._team_member_record(ref, team_member)
                continue

            user = holders.holder(ref.kind, ref.user_id) if holders else None
            if user is not None:
                resolved[ref.key] = self._special_role_record(ref, user)
        return resolved

    def validate_membership(self, project: Project, ref: ParticipantRef) -> bool:
        if isinstance(ref, TeamMemberRef):
            return project.id in set(self.repo.list_team_member_project_ids(ref.id))
        return self.try_resolve(project, ref) is not None

    def eligible_approvers(
        self,
        project: Project,
        *,
        holders: ProjectRoleHolders | None = None,
    ) -> list[ApproverCandidate]:
        """Product Owner, PMO and the first active Scrum Master, where present."""

        holders = holders or self.load_role_holders(project)
        candidates: list[ApproverCandidate] = []
        if holders.product_owner is not None:
            candidates.append(
                ApproverCandidate(
                    id=holders.product_owner.id,
                    name=holders.product_owner.display_name,
                    role_label=SPECIAL_ROLE_LABELS[ParticipantKind.PRODUCT_OWNER],
                )
            )
        if holders.pmo is not None:
            candidates.append(
                ApproverCandidate(
                    id=holders.pmo.id,
                    name=holders.pmo.display_name,
                    role_label=SPECIAL_ROLE_LABELS[ParticipantKind.PMO],
                )
            )
        if holders.scrum_masters:
            scrum_master = holders.scrum_masters[0]
            candidates.append(
                ApproverCandidate(
                    id=scrum_master.id,
                    name=scrum_master.display_name,
                    role_label=SPECIAL_ROLE_LABELS[ParticipantKind.SCRUM_MASTER],
                )
            )
        return candidates

    def is_eligible_approver(self, project: Project, user_id: UUID) -> bool:
        return any(candidate.id == user_id for candidate in self.eligible_approvers(project))
