"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 12:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

user_role = sa.Enum("USER", "ADMIN", name="userrole")
project_visibility = sa.Enum("PUBLIC", "PRIVATE", name="projectvisibility")
project_role = sa.Enum("OWNER", "ADMIN", "EDITOR", "VIEWER", "MEMBER", name="projectrole")
feature_status = sa.Enum("OPEN", "UNDER_REVIEW", "IN_PROGRESS", "COMPLETED", "REJECTED", name="featurestatus")
feature_priority = sa.Enum("LOW", "MEDIUM", "HIGH", name="featurepriority")


def _id() -> sa.Column:
    return sa.Column("id", sa.Integer(), primary_key=True, index=True)


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=True)


def _updated_at() -> sa.Column:
    return sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True)


def _fk(name: str, target: str, nullable: bool = False, ondelete: str = "CASCADE", index: bool = False) -> sa.Column:
    return sa.Column(name, sa.Integer(), sa.ForeignKey(target, ondelete=ondelete), nullable=nullable, index=index)


def upgrade() -> None:
    op.create_table(
        "users",
        _id(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("username", sa.String(30), nullable=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(), nullable=True),
        sa.Column("google_id", sa.String(), nullable=True, unique=True),
        sa.Column("github_id", sa.String(), nullable=True, unique=True),
        sa.Column("role", user_role, nullable=False),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("avatar_url", sa.String(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        _created_at(),
        _updated_at(),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "projects",
        _id(),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("slug", sa.String(220), nullable=False, index=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("logo_url", sa.String(), nullable=True),
        sa.Column("visibility", project_visibility, nullable=False),
        sa.Column("progress", sa.Integer(), nullable=False),
        _fk("owner_id", "users.id", index=True),
        _created_at(),
        _updated_at(),
    )

    op.create_table(
        "roadmap_stages",
        _id(),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("color", sa.String(50), nullable=True),
        _fk("project_id", "projects.id", index=True),
        _created_at(),
    )

    op.create_table(
        "project_members",
        _id(),
        _fk("user_id", "users.id"),
        _fk("project_id", "projects.id", index=True),
        sa.Column("role", project_role, nullable=False),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("user_id", "project_id", name="uq_project_members_user_project"),
    )

    op.create_table(
        "project_invites",
        _id(),
        sa.Column("token", sa.String(64), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("role", project_role, nullable=False),
        _fk("project_id", "projects.id"),
        _fk("invited_by_id", "users.id", nullable=True, ondelete="SET NULL"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("accepted", sa.Boolean(), nullable=False),
        sa.Column("accepted_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )
    op.create_index("ix_project_invites_token", "project_invites", ["token"], unique=True)

    op.create_table(
        "followers",
        _id(),
        _fk("user_id", "users.id"),
        _fk("project_id", "projects.id", index=True),
        _created_at(),
        sa.UniqueConstraint("user_id", "project_id", name="uq_followers_user_project"),
    )

    op.create_table(
        "features",
        _id(),
        sa.Column("title", sa.String(200), nullable=False, index=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("status", feature_status, nullable=False),
        sa.Column("priority", feature_priority, nullable=False),
        sa.Column("progress", sa.Integer(), nullable=False),
        sa.Column("vote_count", sa.Integer(), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("target_date", sa.DateTime(timezone=True), nullable=True),
        _fk("project_id", "projects.id", index=True),
        _fk("stage_id", "roadmap_stages.id", index=True),
        _fk("author_id", "users.id"),
        _created_at(),
        _updated_at(),
    )

    op.create_table(
        "votes",
        _id(),
        sa.Column("value", sa.Integer(), nullable=False),
        _fk("user_id", "users.id"),
        _fk("feature_id", "features.id", index=True),
        _created_at(),
        _updated_at(),
        sa.UniqueConstraint("user_id", "feature_id", name="uq_votes_user_feature"),
    )

    op.create_table(
        "comments",
        _id(),
        sa.Column("content", sa.Text(), nullable=False),
        _fk("feature_id", "features.id", index=True),
        _fk("author_id", "users.id"),
        _fk("parent_id", "comments.id", nullable=True),
        _created_at(),
        _updated_at(),
    )

    op.create_table(
        "comment_likes",
        _id(),
        _fk("user_id", "users.id"),
        _fk("comment_id", "comments.id", index=True),
        _created_at(),
        sa.UniqueConstraint("user_id", "comment_id", name="uq_comment_likes_user_comment"),
    )

    op.create_table(
        "discussions",
        _id(),
        sa.Column("content", sa.Text(), nullable=False),
        _fk("project_id", "projects.id", index=True),
        _fk("author_id", "users.id"),
        _created_at(),
        _updated_at(),
    )

    op.create_table(
        "discussion_likes",
        _id(),
        _fk("user_id", "users.id"),
        _fk("discussion_id", "discussions.id", index=True),
        _created_at(),
        sa.UniqueConstraint("user_id", "discussion_id", name="uq_discussion_likes_user_discussion"),
    )

    op.create_table(
        "discussion_replies",
        _id(),
        sa.Column("content", sa.Text(), nullable=False),
        _fk("discussion_id", "discussions.id", index=True),
        _fk("author_id", "users.id"),
        _fk("parent_id", "discussion_replies.id", nullable=True),
        _created_at(),
        _updated_at(),
    )

    op.create_table(
        "discussion_reply_likes",
        _id(),
        _fk("user_id", "users.id"),
        _fk("reply_id", "discussion_replies.id", index=True),
        _created_at(),
        sa.UniqueConstraint("user_id", "reply_id", name="uq_discussion_reply_likes_user_reply"),
    )

    op.create_table(
        "notifications",
        _id(),
        sa.Column("type", sa.String(50), nullable=False),
        _fk("user_id", "users.id", index=True),
        sa.Column("reference_id", sa.Integer(), nullable=True),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("read", sa.Boolean(), nullable=False),
        _created_at(),
    )

    op.create_table(
        "activity_logs",
        _id(),
        sa.Column("action", sa.String(50), nullable=False),
        _fk("user_id", "users.id", index=True),
        _fk("project_id", "projects.id", nullable=True, index=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        _created_at(),
    )


def downgrade() -> None:
    for table in (
        "activity_logs",
        "notifications",
        "discussion_reply_likes",
        "discussion_replies",
        "discussion_likes",
        "discussions",
        "comment_likes",
        "comments",
        "votes",
        "features",
        "followers",
        "project_invites",
        "project_members",
        "roadmap_stages",
        "projects",
        "users",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum in (feature_priority, feature_status, project_role, project_visibility, user_role):
        enum.drop(bind, checkfirst=True)
