"""Initial schema and reference data for Indaba Care

Revision ID: 20261018_000000
Revises: None
Create Date: 2026-10-18 00:00:00.000000

Creates every table used by the Indaba Care server and seeds the standard
developmental milestone catalogue:
- Accounts: users, role profiles, login sessions, 2FA and per-user settings
- Families: families, children, nanny assignments, access requests,
  documents, preferences and invitations
- Care records: observations, comments, messages, milestones, feedback
- Nanny work: certifications, hours logs and audits, active shifts, routines
- Administration: moderation, resources, agencies, reports, system settings
- Offline sync log

Revision format: YYYYMMDD_HHMMSS_description

"""

import uuid
from datetime import datetime, timezone
from typing import List, Sequence, Union

import sqlalchemy as sa

from alembic import op
from indaba.core.database.seed import STANDARD_MILESTONES

# revision identifiers, used by Alembic.
revision: str = "20261018_000000"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

USER_ROLE = sa.Enum("NANNY", "PARENT", "ADMIN", name="userrole")
OBSERVATION_TYPE = sa.Enum("TEXT", "PHOTO", "VIDEO", "AUDIO", "CHECKLIST", "RICHTEXT", name="observationtype")


def _id() -> sa.Column:
    return sa.Column("id", sa.String(), nullable=False)


def _timestamps(updated: bool = True) -> List[sa.Column]:
    columns = [sa.Column("created_at", sa.DateTime(), nullable=False)]
    if updated:
        columns.append(sa.Column("updated_at", sa.DateTime(), nullable=False))
    return columns


def upgrade() -> None:
    """Create all tables and seed the milestone catalogue."""

    # Accounts
    op.create_table(
        "users",
        _id(),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("password_hash", sa.String(), nullable=False, server_default=""),
        sa.Column("role", USER_ROLE, nullable=False),
        sa.Column("display_name", sa.String(), nullable=True),
        sa.Column("pronouns", sa.String(), nullable=True),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_created_at", "users", ["created_at"])

    op.create_table(
        "nanny_profiles",
        _id(),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("first_name", sa.String(), nullable=False),
        sa.Column("last_name", sa.String(), nullable=False),
        sa.Column("phone_number", sa.String(), nullable=True),
        sa.Column("location", sa.String(), nullable=True),
        sa.Column("bio", sa.String(), nullable=True),
        sa.Column("availability", sa.String(), nullable=True),
        sa.Column("profile_image_url", sa.String(), nullable=True),
        sa.Column("cover_image_url", sa.String(), nullable=True),
        sa.Column("specialties", sa.String(), nullable=True),
        sa.Column("years_of_experience", sa.Integer(), nullable=True),
        sa.Column("languages", sa.String(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
    )
    op.create_index("ix_nanny_profiles_user_id", "nanny_profiles", ["user_id"], unique=True)

    op.create_table(
        "parent_profiles",
        _id(),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("first_name", sa.String(), nullable=False),
        sa.Column("last_name", sa.String(), nullable=False),
        sa.Column("phone_number", sa.String(), nullable=True),
        sa.Column("address", sa.String(), nullable=True),
        sa.Column("profile_image_url", sa.String(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
    )
    op.create_index("ix_parent_profiles_user_id", "parent_profiles", ["user_id"], unique=True)

    op.create_table(
        "admin_profiles",
        _id(),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("first_name", sa.String(), nullable=False),
        sa.Column("last_name", sa.String(), nullable=False),
        sa.Column("phone_number", sa.String(), nullable=True),
        sa.Column("profile_image_url", sa.String(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
    )
    op.create_index("ix_admin_profiles_user_id", "admin_profiles", ["user_id"], unique=True)

    op.create_table(
        "user_sessions",
        _id(),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("device", sa.String(), nullable=True),
        sa.Column("browser", sa.String(), nullable=True),
        sa.Column("ip_address", sa.String(), nullable=True),
        sa.Column("location", sa.String(), nullable=True),
        sa.Column("is_revoked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("last_active_at", sa.DateTime(), nullable=False),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
    )
    op.create_index("ix_user_sessions_user_id", "user_sessions", ["user_id"])

    op.create_table(
        "two_factor_auth",
        _id(),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("secret", sa.String(), nullable=False),
        sa.Column("is_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("recovery_codes", sa.String(), nullable=True),
        sa.Column("last_verified_at", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
    )
    op.create_index("ix_two_factor_auth_user_id", "two_factor_auth", ["user_id"], unique=True)

    op.create_table(
        "user_settings",
        _id(),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("profile_visibility", sa.String(), nullable=False, server_default="connected"),
        sa.Column("marketing_opt_in", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("media_cache_size", sa.Integer(), nullable=False, server_default="100"),
        sa.Column("auto_purge_policy", sa.Integer(), nullable=False, server_default="14"),
        sa.Column("sync_on_wifi_only", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("last_sync_at", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
    )
    op.create_index("ix_user_settings_user_id", "user_settings", ["user_id"], unique=True)

    notification_columns = [
        sa.Column(f"{channel}_{kind}", sa.Boolean(), nullable=False)
        for channel in ("in_app", "email", "sms")
        for kind in ("messages", "approvals", "emergencies", "reminders")
    ]
    op.create_table(
        "user_notification_settings",
        _id(),
        sa.Column("user_id", sa.String(), nullable=False),
        *notification_columns,
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
    )
    op.create_index(
        "ix_user_notification_settings_user_id", "user_notification_settings", ["user_id"], unique=True
    )

    # Families
    op.create_table(
        "families",
        _id(),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("parent_id", sa.String(), nullable=False),
        sa.Column("home_details", sa.String(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["parent_id"], ["parent_profiles.id"]),
    )
    op.create_index("ix_families_name", "families", ["name"])
    op.create_index("ix_families_parent_id", "families", ["parent_id"], unique=True)

    op.create_table(
        "children",
        _id(),
        sa.Column("first_name", sa.String(), nullable=False),
        sa.Column("last_name", sa.String(), nullable=False),
        sa.Column("birth_date", sa.DateTime(), nullable=False),
        sa.Column("gender", sa.String(), nullable=True),
        sa.Column("profile_image_url", sa.String(), nullable=True),
        sa.Column("parent_id", sa.String(), nullable=False),
        sa.Column("family_id", sa.String(), nullable=True),
        sa.Column("medical_info", sa.String(), nullable=True),
        sa.Column("allergies", sa.String(), nullable=True),
        sa.Column("favorite_activities", sa.String(), nullable=True),
        sa.Column("sleep_routine", sa.String(), nullable=True),
        sa.Column("eating_routine", sa.String(), nullable=True),
        sa.Column("is_archived", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["parent_id"], ["parent_profiles.id"]),
        sa.ForeignKeyConstraint(["family_id"], ["families.id"]),
    )
    op.create_index("ix_children_parent_id", "children", ["parent_id"])
    op.create_index("ix_children_family_id", "children", ["family_id"])

    op.create_table(
        "family_nannies",
        _id(),
        sa.Column("family_id", sa.String(), nullable=False),
        sa.Column("nanny_id", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="Active"),
        sa.Column("start_date", sa.DateTime(), nullable=False),
        sa.Column("end_date", sa.DateTime(), nullable=True),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["family_id"], ["families.id"]),
        sa.ForeignKeyConstraint(["nanny_id"], ["nanny_profiles.id"]),
    )
    op.create_index("ix_family_nannies_family_id", "family_nannies", ["family_id"])
    op.create_index("ix_family_nannies_nanny_id", "family_nannies", ["nanny_id"])

    op.create_table(
        "family_nanny_requests",
        _id(),
        sa.Column("family_id", sa.String(), nullable=False),
        sa.Column("nanny_id", sa.String(), nullable=False),
        sa.Column("message", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("responded_at", sa.DateTime(), nullable=True),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["family_id"], ["families.id"]),
        sa.ForeignKeyConstraint(["nanny_id"], ["nanny_profiles.id"]),
    )
    op.create_index("ix_family_nanny_requests_family_id", "family_nanny_requests", ["family_id"])
    op.create_index("ix_family_nanny_requests_nanny_id", "family_nanny_requests", ["nanny_id"])

    op.create_table(
        "family_documents",
        _id(),
        sa.Column("family_id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("file_url", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("uploaded_by", sa.String(), nullable=False),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["family_id"], ["families.id"]),
        sa.ForeignKeyConstraint(["uploaded_by"], ["users.id"]),
    )
    op.create_index("ix_family_documents_family_id", "family_documents", ["family_id"])

    op.create_table(
        "family_preferences",
        _id(),
        sa.Column("family_id", sa.String(), nullable=False),
        sa.Column("care_preferences", sa.String(), nullable=True),
        sa.Column("dietary_restrictions", sa.String(), nullable=True),
        sa.Column("notification_settings", sa.String(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["family_id"], ["families.id"]),
    )
    op.create_index("ix_family_preferences_family_id", "family_preferences", ["family_id"], unique=True)

    op.create_table(
        "parent_invitations",
        _id(),
        sa.Column("family_id", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("access_level", sa.String(), nullable=False, server_default="view"),
        sa.Column("token", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("invited_by", sa.String(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("token"),
        sa.ForeignKeyConstraint(["family_id"], ["families.id"]),
        sa.ForeignKeyConstraint(["invited_by"], ["users.id"]),
    )
    op.create_index("ix_parent_invitations_family_id", "parent_invitations", ["family_id"])
    op.create_index("ix_parent_invitations_email", "parent_invitations", ["email"])

    # Care records
    op.create_table(
        "observations",
        _id(),
        sa.Column("nanny_id", sa.String(), nullable=False),
        sa.Column("child_id", sa.String(), nullable=False),
        sa.Column("type", OBSERVATION_TYPE, nullable=False),
        sa.Column("content", sa.String(), nullable=False, server_default=""),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column("media_url", sa.String(), nullable=True),
        sa.Column("checklist_items", sa.String(), nullable=True),
        sa.Column("ai_tags", sa.String(), nullable=True),
        sa.Column("is_permanent", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["nanny_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["child_id"], ["children.id"]),
    )
    op.create_index("ix_observations_nanny_id", "observations", ["nanny_id"])
    op.create_index("ix_observations_child_id", "observations", ["child_id"])
    op.create_index("ix_observations_created_at", "observations", ["created_at"])

    op.create_table(
        "observation_comments",
        _id(),
        sa.Column("observation_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("content", sa.String(), nullable=False),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["observation_id"], ["observations.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
    )
    op.create_index("ix_observation_comments_observation_id", "observation_comments", ["observation_id"])

    op.create_table(
        "messages",
        _id(),
        sa.Column("sender_id", sa.String(), nullable=False),
        sa.Column("recipient_id", sa.String(), nullable=False),
        sa.Column("child_id", sa.String(), nullable=True),
        sa.Column("content", sa.String(), nullable=False),
        sa.Column("summary", sa.String(), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["sender_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["recipient_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["child_id"], ["children.id"]),
    )
    op.create_index("ix_messages_sender_id", "messages", ["sender_id"])
    op.create_index("ix_messages_recipient_id", "messages", ["recipient_id"])
    op.create_index("ix_messages_created_at", "messages", ["created_at"])

    op.create_table(
        "milestones",
        _id(),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=False),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("age_range_start", sa.Integer(), nullable=False),
        sa.Column("age_range_end", sa.Integer(), nullable=False),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_milestones_category", "milestones", ["category"])

    op.create_table(
        "custom_milestones",
        _id(),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=False),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("child_id", sa.String(), nullable=True),
        sa.Column("created_by", sa.String(), nullable=False),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["child_id"], ["children.id"]),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"]),
    )
    op.create_index("ix_custom_milestones_child_id", "custom_milestones", ["child_id"])

    op.create_table(
        "child_milestones",
        _id(),
        sa.Column("child_id", sa.String(), nullable=False),
        sa.Column("milestone_id", sa.String(), nullable=True),
        sa.Column("custom_milestone_id", sa.String(), nullable=True),
        sa.Column("achieved_date", sa.DateTime(), nullable=False),
        sa.Column("notes", sa.String(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["child_id"], ["children.id"]),
        sa.ForeignKeyConstraint(["milestone_id"], ["milestones.id"]),
        sa.ForeignKeyConstraint(["custom_milestone_id"], ["custom_milestones.id"]),
        sa.UniqueConstraint("child_id", "milestone_id", name="uq_child_milestones_standard"),
        sa.UniqueConstraint("child_id", "custom_milestone_id", name="uq_child_milestones_custom"),
        sa.CheckConstraint(
            "(milestone_id IS NULL) <> (custom_milestone_id IS NULL)",
            name="ck_child_milestones_one_target",
        ),
    )
    op.create_index("ix_child_milestones_child_id", "child_milestones", ["child_id"])
    op.create_index("ix_child_milestones_milestone_id", "child_milestones", ["milestone_id"])
    op.create_index("ix_child_milestones_custom_milestone_id", "child_milestones", ["custom_milestone_id"])

    op.create_table(
        "feedback",
        _id(),
        sa.Column("parent_id", sa.String(), nullable=False),
        sa.Column("nanny_id", sa.String(), nullable=False),
        sa.Column("child_id", sa.String(), nullable=True),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("content", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("follow_up", sa.String(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["parent_id"], ["parent_profiles.id"]),
        sa.ForeignKeyConstraint(["nanny_id"], ["nanny_profiles.id"]),
        sa.ForeignKeyConstraint(["child_id"], ["children.id"]),
    )
    op.create_index("ix_feedback_parent_id", "feedback", ["parent_id"])
    op.create_index("ix_feedback_nanny_id", "feedback", ["nanny_id"])
    op.create_index("ix_feedback_created_at", "feedback", ["created_at"])

    # Nanny work
    op.create_table(
        "certifications",
        _id(),
        sa.Column("nanny_id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("issuing_authority", sa.String(), nullable=False),
        sa.Column("date_issued", sa.DateTime(), nullable=False),
        sa.Column("expiry_date", sa.DateTime(), nullable=False),
        sa.Column("certificate_url", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="Active"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["nanny_id"], ["nanny_profiles.id"]),
    )
    op.create_index("ix_certifications_nanny_id", "certifications", ["nanny_id"])

    op.create_table(
        "hours_logs",
        _id(),
        sa.Column("nanny_id", sa.String(), nullable=False),
        sa.Column("family_id", sa.String(), nullable=True),
        sa.Column("date", sa.DateTime(), nullable=False),
        sa.Column("start_time", sa.String(), nullable=False),
        sa.Column("end_time", sa.String(), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("break_minutes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_overtime", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_manual_entry", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("status", sa.String(), nullable=False, server_default="PENDING"),
        sa.Column("notes", sa.String(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["nanny_id"], ["nanny_profiles.id"]),
        sa.ForeignKeyConstraint(["family_id"], ["families.id"]),
    )
    op.create_index("ix_hours_logs_nanny_id", "hours_logs", ["nanny_id"])
    op.create_index("ix_hours_logs_date", "hours_logs", ["date"])

    op.create_table(
        "hours_log_audits",
        _id(),
        sa.Column("hours_log_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("action", sa.String(), nullable=False),
        sa.Column("previous_data", sa.String(), nullable=True),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
    )
    op.create_index("ix_hours_log_audits_hours_log_id", "hours_log_audits", ["hours_log_id"])
    op.create_index("ix_hours_log_audits_created_at", "hours_log_audits", ["created_at"])

    op.create_table(
        "active_shifts",
        _id(),
        sa.Column("nanny_id", sa.String(), nullable=False),
        sa.Column("family_id", sa.String(), nullable=True),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("break_minutes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_paused", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("pause_start_time", sa.DateTime(), nullable=True),
        sa.Column("notes", sa.String(), nullable=True),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["nanny_id"], ["nanny_profiles.id"]),
        sa.ForeignKeyConstraint(["family_id"], ["families.id"]),
    )
    op.create_index("ix_active_shifts_nanny_id", "active_shifts", ["nanny_id"], unique=True)

    op.create_table(
        "routines",
        _id(),
        sa.Column("nanny_id", sa.String(), nullable=False),
        sa.Column("child_id", sa.String(), nullable=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("date", sa.DateTime(), nullable=True),
        sa.Column("time", sa.String(), nullable=False, server_default="09:00"),
        sa.Column("is_recurring", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("recurring_day", sa.String(), nullable=True),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["nanny_id"], ["nanny_profiles.id"]),
        sa.ForeignKeyConstraint(["child_id"], ["children.id"]),
    )
    op.create_index("ix_routines_nanny_id", "routines", ["nanny_id"])

    # Administration
    op.create_table(
        "flagged_content",
        _id(),
        sa.Column("content_type", sa.String(), nullable=False),
        sa.Column("content_id", sa.String(), nullable=False),
        sa.Column("content", sa.String(), nullable=True),
        sa.Column("reason", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="Pending"),
        sa.Column("priority", sa.String(), nullable=False, server_default="Medium"),
        sa.Column("reported_by", sa.String(), nullable=True),
        sa.Column("moderator_notes", sa.String(), nullable=True),
        sa.Column("moderated_by", sa.String(), nullable=True),
        sa.Column("moderated_at", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["reported_by"], ["users.id"]),
        sa.ForeignKeyConstraint(["moderated_by"], ["users.id"]),
    )
    op.create_index("ix_flagged_content_content_type", "flagged_content", ["content_type"])
    op.create_index("ix_flagged_content_status", "flagged_content", ["status"])
    op.create_index("ix_flagged_content_created_at", "flagged_content", ["created_at"])

    op.create_table(
        "keyword_flags",
        _id(),
        sa.Column("keyword", sa.String(), nullable=False),
        sa.Column("severity", sa.String(), nullable=False, server_default="medium"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_by", sa.String(), nullable=True),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"]),
    )
    op.create_index("ix_keyword_flags_keyword", "keyword_flags", ["keyword"], unique=True)

    op.create_table(
        "resources",
        _id(),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=False),
        sa.Column("content_url", sa.String(), nullable=False),
        sa.Column("resource_type", sa.String(), nullable=False),
        sa.Column("visible_to", sa.String(), nullable=False, server_default="[]"),
        sa.Column("developmental_stage", sa.String(), nullable=True),
        sa.Column("created_by", sa.String(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"]),
    )
    op.create_index("ix_resources_resource_type", "resources", ["resource_type"])

    op.create_table(
        "content_tags",
        _id(),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("category", sa.String(), nullable=True),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_content_tags_name", "content_tags", ["name"], unique=True)

    op.create_table(
        "resource_tags",
        _id(),
        sa.Column("resource_id", sa.String(), nullable=False),
        sa.Column("tag_id", sa.String(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["resource_id"], ["resources.id"]),
        sa.ForeignKeyConstraint(["tag_id"], ["content_tags.id"]),
    )
    op.create_index("ix_resource_tags_resource_id", "resource_tags", ["resource_id"])
    op.create_index("ix_resource_tags_tag_id", "resource_tags", ["tag_id"])

    op.create_table(
        "agencies",
        _id(),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("contact_person", sa.String(), nullable=True),
        sa.Column("contact_email", sa.String(), nullable=True),
        sa.Column("contact_phone", sa.String(), nullable=True),
        sa.Column("address", sa.String(), nullable=True),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("emergency_protocols", sa.String(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_agencies_name", "agencies", ["name"])

    op.create_table(
        "agency_nannies",
        _id(),
        sa.Column("agency_id", sa.String(), nullable=False),
        sa.Column("nanny_id", sa.String(), nullable=False),
        sa.Column("role", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="Active"),
        sa.Column("pay_rate", sa.Float(), nullable=True),
        sa.Column("payment_schedule", sa.String(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["agency_id"], ["agencies.id"]),
        sa.ForeignKeyConstraint(["nanny_id"], ["nanny_profiles.id"]),
    )
    op.create_index("ix_agency_nannies_agency_id", "agency_nannies", ["agency_id"])
    op.create_index("ix_agency_nannies_nanny_id", "agency_nannies", ["nanny_id"])

    op.create_table(
        "report_schedules",
        _id(),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("report_type", sa.String(), nullable=False),
        sa.Column("frequency", sa.String(), nullable=False),
        sa.Column("format", sa.String(), nullable=False, server_default="[]"),
        sa.Column("recipients", sa.String(), nullable=False, server_default="[]"),
        sa.Column("filters", sa.String(), nullable=True),
        sa.Column("next_run_date", sa.DateTime(), nullable=False),
        sa.Column("created_by", sa.String(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"]),
    )

    op.create_table(
        "system_settings",
        _id(),
        sa.Column("section", sa.String(), nullable=False),
        sa.Column("value", sa.String(), nullable=False),
        sa.Column("updated_by", sa.String(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["updated_by"], ["users.id"]),
    )
    op.create_index("ix_system_settings_section", "system_settings", ["section"], unique=True)

    # Offline sync
    op.create_table(
        "sync_logs",
        _id(),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("operation_type", sa.String(), nullable=False),
        sa.Column("model_name", sa.String(), nullable=False),
        sa.Column("record_id", sa.String(), nullable=False),
        sa.Column("data", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="Pending"),
        sa.Column("error_message", sa.String(), nullable=True),
        sa.Column("synced_at", sa.DateTime(), nullable=True),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
    )
    op.create_index("ix_sync_logs_user_id", "sync_logs", ["user_id"])
    op.create_index("ix_sync_logs_created_at", "sync_logs", ["created_at"])

    # Seed the standard milestone catalogue
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    milestones = sa.table(
        "milestones",
        sa.column("id", sa.String()),
        sa.column("name", sa.String()),
        sa.column("description", sa.String()),
        sa.column("category", sa.String()),
        sa.column("age_range_start", sa.Integer()),
        sa.column("age_range_end", sa.Integer()),
        sa.column("created_at", sa.DateTime()),
    )
    op.bulk_insert(
        milestones,
        [
            {
                "id": str(uuid.uuid4()),
                "name": name,
                "description": description,
                "category": category,
                "age_range_start": start,
                "age_range_end": end,
                "created_at": now,
            }
            for name, description, category, start, end in STANDARD_MILESTONES
        ],
    )


def downgrade() -> None:
    """Drop all tables created in upgrade."""
    for table in (
        "sync_logs",
        "system_settings",
        "report_schedules",
        "agency_nannies",
        "agencies",
        "resource_tags",
        "content_tags",
        "resources",
        "keyword_flags",
        "flagged_content",
        "routines",
        "active_shifts",
        "hours_log_audits",
        "hours_logs",
        "certifications",
        "feedback",
        "child_milestones",
        "custom_milestones",
        "milestones",
        "messages",
        "observation_comments",
        "observations",
        "parent_invitations",
        "family_preferences",
        "family_documents",
        "family_nanny_requests",
        "family_nannies",
        "children",
        "families",
        "user_notification_settings",
        "user_settings",
        "two_factor_auth",
        "user_sessions",
        "admin_profiles",
        "parent_profiles",
        "nanny_profiles",
        "users",
    ):
        op.drop_table(table)

    # Enum types only exist as separate objects on PostgreSQL
    OBSERVATION_TYPE.drop(op.get_bind(), checkfirst=True)
    USER_ROLE.drop(op.get_bind(), checkfirst=True)
