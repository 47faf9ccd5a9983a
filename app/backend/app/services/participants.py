"""Participant references used as RACI matrix columns.

A participant is either a regular team member or a special project role
(Product Owner, PMO, Scrum Master) held by a user. The two variants are kept as
separate types and are decoded once at the API boundary; everything below the
routes works with ``ParticipantRef`` values only.

Canonical string key (used in URLs and as grid keys): ``"<kind>:<uuid>"``.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from app.core.errors import ValidationError
from app.models.entities import ParticipantKind

SPECIAL_ROLE_KINDS = frozenset(
    {ParticipantKind.PRODUCT_OWNER, ParticipantKind.PMO, ParticipantKind.SCRUM_MASTER}
)

SPECIAL_ROLE_LABELS: dict[ParticipantKind, str] = {
    ParticipantKind.PRODUCT_OWNER: "Product Owner",
    ParticipantKind.PMO: "PMO",
    ParticipantKind.SCRUM_MASTER: "Scrum Master",
}


@dataclass(frozen=True, slots=True)
class TeamMemberRef:
    id: UUID

    @property
    def kind(self) -> ParticipantKind:
        return ParticipantKind.TEAM_MEMBER

    @property
    def participant_id(self) -> UUID:
        return self.id

    @property
    def key(self) -> str:
        return f"{self.kind.value}:{self.id}"


@dataclass(frozen=True, slots=True)
class SpecialRoleRef:
    kind: ParticipantKind
    user_id: UUID

    def __post_init__(self) -> None:
        if self.kind not in SPECIAL_ROLE_KINDS:
            raise ValidationError(f"{self.kind.value} is not a special project role.", field="kind")

    @property
    def participant_id(self) -> UUID:
        return self.user_id

    @property
    def key(self) -> str:
        return f"{self.kind.value}:{self.user_id}"


ParticipantRef = TeamMemberRef | SpecialRoleRef


def participant_ref(kind: ParticipantKind | str, participant_id: UUID | str) -> ParticipantRef:
    """Build a participant reference from its stored ``(kind, id)`` pair."""

    try:
        resolved_kind = ParticipantKind(kind)
    except ValueError as exc:
        raise ValidationError(f"Unknown participant kind '{kind}'.", field="kind") from exc

    if isinstance(participant_id, UUID):
        resolved_id = participant_id
    else:
        try:
            resolved_id = UUID(str(participant_id))
        except ValueError as exc:
            raise ValidationError(f"Participant id '{participant_id}' is not a valid UUID.", field="id") from exc

    if resolved_kind is ParticipantKind.TEAM_MEMBER:
        return TeamMemberRef(id=resolved_id)
    return SpecialRoleRef(kind=resolved_kind, user_id=resolved_id)


def parse_participant_key(key: str) -> ParticipantRef:
    """Decode a ``"<kind>:<uuid>"`` key, e.g. from a URL path segment."""

    kind, separator, raw_id = key.strip().partition(":")
    if not separator or not kind or not raw_id:
        raise ValidationError(
            f"Malformed participant key '{key}'; expected '<kind>:<uuid>'.",
            field="participant_key",
        )
    return participant_ref(kind, raw_id)
