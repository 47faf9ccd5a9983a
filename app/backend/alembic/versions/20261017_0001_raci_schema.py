"""raci schema

Revision ID: 20261017_0001
Revises:
Create Date: 2026-10-17
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261017_0001"
down_revision = None
branch_labels = None
depends_on = None


participant_kind = postgresql.ENUM(
    "team_member", "product_owner", "pmo", "scrum_master", name="raci_participant_kind", create_type=False
)
raci_role = postgresql.ENUM("R", "A", "C", "I", name="raci_role", create_type=False)


def upgrade() -> None:
    participant_kind.create(op.get_bind(), checkfirst=True)
    raci_role.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("microsoft_oid", sa.String(length=128), nullable=False, unique=True),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("display_name", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "projects",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "product_owner_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("pmo_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("is_archived", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "project_members",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "project_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("role", sa.String(length=128), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
    )
    op.create_index("ix_project_members_project_id", "project_members", ["project_id"])
    op.create_index("ix_project_members_user_id", "project_members", ["user_id"])

    op.create_table(
        "team_members",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("display_name", sa.String(length=255), nullable=True),
        sa.Column("designation_role", sa.String(length=128), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "project_team_members",
        sa.Column(
            "project_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "team_member_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("team_members.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )
    op.create_index("ix_project_team_members_team_member_id", "project_team_members", ["team_member_id"])

    op.create_table(
        "raci_matrices",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "project_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("approver_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column(
            "created_by_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "updated_by_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_raci_matrices_project_id", "raci_matrices", ["project_id"])

    op.create_table(
        "raci_tasks",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "matrix_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("raci_matrices.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("row_order", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=50), nullable=False),
        sa.Column("description", sa.String(length=100), nullable=True),
        sa.CheckConstraint("row_order >= 0", name="ck_raci_tasks_row_order_non_negative"),
        sa.UniqueConstraint("matrix_id", "row_order", name="uq_raci_tasks_matrix_row"),
    )

    op.create_table(
        "raci_participant_columns",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "matrix_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("raci_matrices.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("participant_kind", participant_kind, nullable=False),
        sa.Column("participant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.UniqueConstraint(
            "matrix_id",
            "participant_kind",
            "participant_id",
            name="uq_raci_columns_matrix_participant",
        ),
    )
    op.create_index("ix_raci_columns_matrix_position", "raci_participant_columns", ["matrix_id", "position"])

    op.create_table(
        "raci_assignments",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column(
            "matrix_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("raci_matrices.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("row_order", sa.Integer(), nullable=False),
        sa.Column("participant_kind", participant_kind, nullable=False),
        sa.Column("participant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("role", raci_role, nullable=False),
        sa.UniqueConstraint(
            "matrix_id",
            "row_order",
            "participant_kind",
            "participant_id",
            name="uq_raci_assignments_cell",
        ),
    )
    op.create_index("ix_raci_assignments_matrix_row", "raci_assignments", ["matrix_id", "row_order"])
    op.create_index(
        "ix_raci_assignments_matrix_participant",
        "raci_assignments",
        ["matrix_id", "participant_kind", "participant_id"],
    )


def downgrade() -> None:
    op.drop_index("ix_raci_assignments_matrix_participant", table_name="raci_assignments")
    op.drop_index("ix_raci_assignments_matrix_row", table_name="raci_assignments")
    op.drop_table("raci_assignments")
    op.drop_index("ix_raci_columns_matrix_position", table_name="raci_participant_columns")
    op.drop_table("raci_participant_columns")
    op.drop_table("raci_tasks")
    op.drop_index("ix_raci_matrices_project_id", table_name="raci_matrices")
    op.drop_table("raci_matrices")
    op.drop_index("ix_project_team_members_team_member_id", table_name="project_team_members")
    op.drop_table("project_team_members")
    op.drop_table("team_members")
    op.drop_index("ix_project_members_user_id", table_name="project_members")
    op.drop_index("ix_project_members_project_id", table_name="project_members")
    op.drop_table("project_members")
    op.drop_table("projects")
    op.drop_table("users")

    raci_role.drop(op.get_bind(), checkfirst=True)
    participant_kind.drop(op.get_bind(), checkfirst=True)
