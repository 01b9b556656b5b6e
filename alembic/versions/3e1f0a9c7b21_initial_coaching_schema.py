"""initial coaching schema

Revision ID: 3e1f0a9c7b21
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3e1f0a9c7b21"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("full_name", sa.String(), nullable=True),
        sa.Column("role", sa.Enum("COACH", "CLIENT", name="role", native_enum=False), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)

    op.create_table(
        "clients",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=True),
        sa.Column("coach_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("archived", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["coach_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_clients_coach_id"), "clients", ["coach_id"], unique=False)
    op.create_index(op.f("ix_clients_user_id"), "clients", ["user_id"], unique=False)

    op.create_table(
        "events",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "status",
            sa.Enum("PENDING", "CONFIRMED", "CANCELLED", name="eventstatus", native_enum=False),
            nullable=False,
        ),
        sa.Column("client_id", sa.Uuid(), nullable=False),
        sa.Column("coach_id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"]),
        sa.ForeignKeyConstraint(["coach_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_events_client_id"), "events", ["client_id"], unique=False)
    op.create_index(op.f("ix_events_coach_id"), "events", ["coach_id"], unique=False)
    op.create_index(op.f("ix_events_date"), "events", ["date"], unique=False)

    op.create_table(
        "programs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("duration_weeks", sa.Integer(), nullable=False),
        sa.Column("coach_id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["coach_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_programs_coach_id"), "programs", ["coach_id"], unique=False)

    op.create_table(
        "program_weeks",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("program_id", sa.Uuid(), nullable=False),
        sa.Column("week_number", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(), nullable=True),
        sa.ForeignKeyConstraint(["program_id"], ["programs.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_program_weeks_program_id"), "program_weeks", ["program_id"], unique=False)

    op.create_table(
        "program_days",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("week_id", sa.Uuid(), nullable=False),
        sa.Column("day_number", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(), nullable=True),
        sa.Column("is_rest_day", sa.Boolean(), nullable=False),
        sa.Column("warmup_title", sa.String(), nullable=True),
        sa.Column("warmup_description", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["week_id"], ["program_weeks.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_program_days_week_id"), "program_days", ["week_id"], unique=False)

    op.create_table(
        "routines",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("coach_id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["coach_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_routines_coach_id"), "routines", ["coach_id"], unique=False)

    op.create_table(
        "routine_exercises",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("routine_id", sa.Uuid(), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("duration", sa.String(), nullable=True),
        sa.Column("video_url", sa.String(), nullable=True),
        sa.Column("video_id", sa.String(), nullable=True),
        sa.Column("video_title", sa.String(), nullable=True),
        sa.Column("video_thumbnail", sa.String(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("sets", sa.Integer(), nullable=True),
        sa.Column("reps", sa.Integer(), nullable=True),
        sa.Column("tempo", sa.String(), nullable=True),
        sa.Column("type", sa.String(), nullable=True),
        sa.Column("superset_id", sa.String(), nullable=True),
        sa.Column("superset_order", sa.Integer(), nullable=True),
        sa.Column("superset_description", sa.Text(), nullable=True),
        sa.Column("superset_instructions", sa.Text(), nullable=True),
        sa.Column("superset_notes", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["routine_id"], ["routines.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_routine_exercises_routine_id"), "routine_exercises", ["routine_id"], unique=False)

    op.create_table(
        "program_drills",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("day_id", sa.Uuid(), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("duration", sa.String(), nullable=True),
        sa.Column("video_url", sa.String(), nullable=True),
        sa.Column("video_id", sa.String(), nullable=True),
        sa.Column("video_title", sa.String(), nullable=True),
        sa.Column("video_thumbnail", sa.String(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("sets", sa.Integer(), nullable=True),
        sa.Column("reps", sa.Integer(), nullable=True),
        sa.Column("tempo", sa.String(), nullable=True),
        sa.Column("type", sa.String(), nullable=True),
        sa.Column("routine_id", sa.Uuid(), nullable=True),
        sa.Column("superset_id", sa.String(), nullable=True),
        sa.Column("superset_order", sa.Integer(), nullable=True),
        sa.Column("superset_description", sa.Text(), nullable=True),
        sa.Column("superset_instructions", sa.Text(), nullable=True),
        sa.Column("superset_notes", sa.Text(), nullable=True),
        sa.Column("coach_instructions_what_to_do", sa.Text(), nullable=True),
        sa.Column("coach_instructions_how_to_do_it", sa.Text(), nullable=True),
        sa.Column("coach_instructions_key_points", sa.JSON(), nullable=True),
        sa.Column("coach_instructions_common_mistakes", sa.JSON(), nullable=True),
        sa.Column("coach_instructions_easier", sa.Text(), nullable=True),
        sa.Column("coach_instructions_harder", sa.Text(), nullable=True),
        sa.Column("coach_instructions_equipment", sa.Text(), nullable=True),
        sa.Column("coach_instructions_setup", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["day_id"], ["program_days.id"]),
        sa.ForeignKeyConstraint(["routine_id"], ["routines.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_program_drills_day_id"), "program_drills", ["day_id"], unique=False)

    op.create_table(
        "program_assignments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("program_id", sa.Uuid(), nullable=False),
        sa.Column("client_id", sa.Uuid(), nullable=False),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("progress", sa.Integer(), nullable=False, server_default="0"),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"]),
        sa.ForeignKeyConstraint(["program_id"], ["programs.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_program_assignments_client_id"), "program_assignments", ["client_id"], unique=False)
    op.create_index(op.f("ix_program_assignments_program_id"), "program_assignments", ["program_id"], unique=False)

    op.create_table(
        "program_day_replacements",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("assignment_id", sa.Uuid(), nullable=False),
        sa.Column("replaced_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("lesson_id", sa.Uuid(), nullable=True),
        sa.Column("substitute_program_id", sa.Uuid(), nullable=True),
        sa.Column("substitute_start_date", sa.Date(), nullable=True),
        sa.Column("substitute_end_date", sa.Date(), nullable=True),
        sa.Column("reason", sa.String(), nullable=True),
        sa.Column("coach_id", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["assignment_id"], ["program_assignments.id"]),
        sa.ForeignKeyConstraint(["coach_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["lesson_id"], ["events.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["substitute_program_id"], ["programs.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("assignment_id", "replaced_date", name="uq_program_day_replacements_assignment_date"),
    )
    op.create_index(
        op.f("ix_program_day_replacements_assignment_id"), "program_day_replacements", ["assignment_id"], unique=False
    )

    op.create_table(
        "routine_assignments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("routine_id", sa.Uuid(), nullable=False),
        sa.Column("client_id", sa.Uuid(), nullable=False),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"]),
        sa.ForeignKeyConstraint(["routine_id"], ["routines.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_routine_assignments_client_id"), "routine_assignments", ["client_id"], unique=False)
    op.create_index(op.f("ix_routine_assignments_routine_id"), "routine_assignments", ["routine_id"], unique=False)

    op.create_table(
        "drill_completions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("drill_id", sa.Uuid(), nullable=False),
        sa.Column("client_id", sa.Uuid(), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("drill_id", "client_id", name="uq_drill_completions_drill_client"),
    )
    op.create_index(op.f("ix_drill_completions_client_id"), "drill_completions", ["client_id"], unique=False)
    op.create_index(op.f("ix_drill_completions_drill_id"), "drill_completions", ["drill_id"], unique=False)

    op.create_table(
        "program_drill_completions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("drill_id", sa.Uuid(), nullable=False),
        sa.Column("program_assignment_id", sa.Uuid(), nullable=False),
        sa.Column("client_id", sa.Uuid(), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"]),
        sa.ForeignKeyConstraint(["drill_id"], ["program_drills.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["program_assignment_id"], ["program_assignments.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "drill_id", "program_assignment_id", name="uq_program_drill_completions_drill_assignment"
        ),
    )
    op.create_index(
        op.f("ix_program_drill_completions_client_id"), "program_drill_completions", ["client_id"], unique=False
    )
    op.create_index(
        op.f("ix_program_drill_completions_program_assignment_id"),
        "program_drill_completions",
        ["program_assignment_id"],
        unique=False,
    )

    op.create_table(
        "exercise_completions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("client_id", sa.Uuid(), nullable=False),
        sa.Column("exercise_id", sa.String(), nullable=False),
        sa.Column("program_drill_id", sa.String(), nullable=True),
        sa.Column("date", sa.Date(), nullable=True),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "client_id",
            "exercise_id",
            "program_drill_id",
            "date",
            name="uq_exercise_completions_client_exercise_drill_date",
        ),
    )
    op.create_index(op.f("ix_exercise_completions_client_id"), "exercise_completions", ["client_id"], unique=False)
    op.create_index(op.f("ix_exercise_completions_date"), "exercise_completions", ["date"], unique=False)

    op.create_table(
        "routine_exercise_completions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("routine_assignment_id", sa.Uuid(), nullable=False),
        sa.Column("exercise_id", sa.Uuid(), nullable=False),
        sa.Column("client_id", sa.Uuid(), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"]),
        sa.ForeignKeyConstraint(["exercise_id"], ["routine_exercises.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["routine_assignment_id"], ["routine_assignments.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "routine_assignment_id",
            "exercise_id",
            "client_id",
            name="uq_routine_exercise_completions_assignment_exercise_client",
        ),
    )
    op.create_index(
        op.f("ix_routine_exercise_completions_client_id"), "routine_exercise_completions", ["client_id"], unique=False
    )
    op.create_index(
        op.f("ix_routine_exercise_completions_routine_assignment_id"),
        "routine_exercise_completions",
        ["routine_assignment_id"],
        unique=False,
    )

    op.create_table(
        "video_assignments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("client_id", sa.Uuid(), nullable=False),
        sa.Column("coach_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("video_url", sa.String(), nullable=True),
        sa.Column("thumbnail_url", sa.String(), nullable=True),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"]),
        sa.ForeignKeyConstraint(["coach_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_video_assignments_client_id"), "video_assignments", ["client_id"], unique=False)
    op.create_index(op.f("ix_video_assignments_due_date"), "video_assignments", ["due_date"], unique=False)

    op.create_table(
        "notifications",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("data", sa.JSON(), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_notifications_type"), "notifications", ["type"], unique=False)
    op.create_index(op.f("ix_notifications_user_id"), "notifications", ["user_id"], unique=False)

    op.create_table(
        "notification_delivery_logs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=True),
        sa.Column("channel", sa.String(), nullable=False),
        sa.Column("recipient", sa.String(), nullable=True),
        sa.Column("payload_json", sa.Text(), nullable=True),
        sa.Column("event_type", sa.String(), nullable=False),
        sa.Column("event_ref", sa.String(), nullable=True),
        sa.Column("idempotency_key", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("provider_message_id", sa.String(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("attempt_count", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("failed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("idempotency_key", name="uq_notification_delivery_logs_idempotency_key"),
    )
    op.create_index(
        op.f("ix_notification_delivery_logs_event_type"), "notification_delivery_logs", ["event_type"], unique=False
    )
    op.create_index(op.f("ix_notification_delivery_logs_status"), "notification_delivery_logs", ["status"], unique=False)
    op.create_index(op.f("ix_notification_delivery_logs_user_id"), "notification_delivery_logs", ["user_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_notification_delivery_logs_user_id"), table_name="notification_delivery_logs")
    op.drop_index(op.f("ix_notification_delivery_logs_status"), table_name="notification_delivery_logs")
    op.drop_index(op.f("ix_notification_delivery_logs_event_type"), table_name="notification_delivery_logs")
    op.drop_table("notification_delivery_logs")
    op.drop_index(op.f("ix_notifications_user_id"), table_name="notifications")
    op.drop_index(op.f("ix_notifications_type"), table_name="notifications")
    op.drop_table("notifications")
    op.drop_index(op.f("ix_video_assignments_due_date"), table_name="video_assignments")
    op.drop_index(op.f("ix_video_assignments_client_id"), table_name="video_assignments")
    op.drop_table("video_assignments")
    op.drop_index(
        op.f("ix_routine_exercise_completions_routine_assignment_id"), table_name="routine_exercise_completions"
    )
    op.drop_index(op.f("ix_routine_exercise_completions_client_id"), table_name="routine_exercise_completions")
    op.drop_table("routine_exercise_completions")
    op.drop_index(op.f("ix_exercise_completions_date"), table_name="exercise_completions")
    op.drop_index(op.f("ix_exercise_completions_client_id"), table_name="exercise_completions")
    op.drop_table("exercise_completions")
    op.drop_index(op.f("ix_program_drill_completions_program_assignment_id"), table_name="program_drill_completions")
    op.drop_index(op.f("ix_program_drill_completions_client_id"), table_name="program_drill_completions")
    op.drop_table("program_drill_completions")
    op.drop_index(op.f("ix_drill_completions_drill_id"), table_name="drill_completions")
    op.drop_index(op.f("ix_drill_completions_client_id"), table_name="drill_completions")
    op.drop_table("drill_completions")
    op.drop_index(op.f("ix_routine_assignments_routine_id"), table_name="routine_assignments")
    op.drop_index(op.f("ix_routine_assignments_client_id"), table_name="routine_assignments")
    op.drop_table("routine_assignments")
    op.drop_index(op.f("ix_program_day_replacements_assignment_id"), table_name="program_day_replacements")
    op.drop_table("program_day_replacements")
    op.drop_index(op.f("ix_program_assignments_program_id"), table_name="program_assignments")
    op.drop_index(op.f("ix_program_assignments_client_id"), table_name="program_assignments")
    op.drop_table("program_assignments")
    op.drop_index(op.f("ix_program_drills_day_id"), table_name="program_drills")
    op.drop_table("program_drills")
    op.drop_index(op.f("ix_routine_exercises_routine_id"), table_name="routine_exercises")
    op.drop_table("routine_exercises")
    op.drop_index(op.f("ix_routines_coach_id"), table_name="routines")
    op.drop_table("routines")
    op.drop_index(op.f("ix_program_days_week_id"), table_name="program_days")
    op.drop_table("program_days")
    op.drop_index(op.f("ix_program_weeks_program_id"), table_name="program_weeks")
    op.drop_table("program_weeks")
    op.drop_index(op.f("ix_programs_coach_id"), table_name="programs")
    op.drop_table("programs")
    op.drop_index(op.f("ix_events_date"), table_name="events")
    op.drop_index(op.f("ix_events_coach_id"), table_name="events")
    op.drop_index(op.f("ix_events_client_id"), table_name="events")
    op.drop_table("events")
    op.drop_index(op.f("ix_clients_user_id"), table_name="clients")
    op.drop_index(op.f("ix_clients_coach_id"), table_name="clients")
    op.drop_table("clients")
    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_table("users")
