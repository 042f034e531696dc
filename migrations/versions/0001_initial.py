"""initial: users, subjects, classes, assignments, commitments, lessons, audit log"""
from alembic import op
import sqlalchemy as sa

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

STAFF_ROLE = sa.Enum("DIRECTOR", "VICE_DIRECTOR", "SUPERVISOR", "TEACHER", name="staffrole")
USER_STATUS = sa.Enum("APPROVED", "PENDING", "DENIED", name="userstatus")
CLASS_KIND = sa.Enum("PARTIAL", "FULL", name="classkind")

def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", STAFF_ROLE, nullable=False),
        sa.Column("status", USER_STATUS, nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])

    op.create_table(
        "subject",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
    )

    op.create_table(
        "school_class",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        sa.Column("kind", CLASS_KIND, nullable=False),
        sa.Column("has_timetable", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("day_start", sa.Time(), nullable=False),
        sa.Column("day_end", sa.Time(), nullable=False),
        sa.Column("break_start", sa.Time(), nullable=False),
        sa.Column("break_end", sa.Time(), nullable=False),
        sa.Column("lunch_start", sa.Time(), nullable=True),
        sa.Column("lunch_end", sa.Time(), nullable=True),
        sa.Column("second_break_start", sa.Time(), nullable=True),
        sa.Column("second_break_end", sa.Time(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "class_assignment",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("class_id", sa.Integer(), sa.ForeignKey("school_class.id", ondelete="CASCADE"), nullable=False),
        sa.Column("subject_id", sa.Integer(), sa.ForeignKey("subject.id", ondelete="CASCADE"), nullable=False),
        sa.Column("teacher_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("weekly_lessons", sa.Integer(), nullable=False),
        sa.UniqueConstraint("class_id", "subject_id", name="uq_class_assignment_subject"),
    )

    op.create_table(
        "commitment",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("teacher_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("place", sa.String(255), nullable=False),
        sa.Column("weekdays", sa.JSON(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_commitment_teacher_id", "commitment", ["teacher_id"])

    op.create_table(
        "lesson",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("class_id", sa.Integer(), sa.ForeignKey("school_class.id", ondelete="CASCADE"), nullable=False),
        sa.Column("subject_id", sa.Integer(), sa.ForeignKey("subject.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("teacher_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("weekday", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("is_generated", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("class_id", "weekday", "start_time", name="uq_lesson_class_slot"),
    )
    op.create_index("ix_lesson_class_id", "lesson", ["class_id"])
    op.create_index("ix_lesson_teacher_id", "lesson", ["teacher_id"])
    op.create_index("ix_lesson_teacher_weekday", "lesson", ["teacher_id", "weekday"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column("entity", sa.String(64), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )

def downgrade():
    op.drop_table("audit_logs")
    op.drop_index("ix_lesson_teacher_weekday", table_name="lesson")
    op.drop_index("ix_lesson_teacher_id", table_name="lesson")
    op.drop_index("ix_lesson_class_id", table_name="lesson")
    op.drop_table("lesson")
    op.drop_index("ix_commitment_teacher_id", table_name="commitment")
    op.drop_table("commitment")
    op.drop_table("class_assignment")
    op.drop_table("school_class")
    op.drop_table("subject")
    op.drop_index("ix_users_role", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
    for enum in (CLASS_KIND, USER_STATUS, STAFF_ROLE):
        enum.drop(op.get_bind(), checkfirst=True)
