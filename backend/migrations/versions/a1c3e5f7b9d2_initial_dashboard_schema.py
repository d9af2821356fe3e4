"""
Initial dashboard schema

Revision ID: a1c3e5f7b9d2
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "a1c3e5f7b9d2"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "user",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("full_name", sa.String(), nullable=False),
        sa.Column("hashed_password", sa.String(), nullable=False),
        sa.Column("role", sa.String(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("must_change_password", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("student_id", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_user_email"), "user", ["email"], unique=True)
    op.create_index(op.f("ix_user_role"), "user", ["role"], unique=False)
    op.create_index(op.f("ix_user_student_id"), "user", ["student_id"], unique=False)

    op.create_table(
        "program",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "userprogram",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("program", sa.String(), nullable=False),
        sa.ForeignKeyConstraint(["program"], ["program.id"], ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", "program", name="uq_user_program"),
    )
    op.create_index(op.f("ix_userprogram_email"), "userprogram", ["email"], unique=False)
    op.create_index(op.f("ix_userprogram_program"), "userprogram", ["program"], unique=False)

    op.create_table(
        "anonymousid",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("student_id", sa.String(), nullable=False),
        sa.Column("anonymous_id", sa.String(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_anonymousid_student_id"), "anonymousid", ["student_id"], unique=True)
    op.create_index(op.f("ix_anonymousid_anonymous_id"), "anonymousid", ["anonymous_id"], unique=True)

    op.create_table(
        "student",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("state", sa.String(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "studentprogram",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("student_id", sa.String(), nullable=False),
        sa.Column("program_id", sa.String(), nullable=False),
        sa.Column("curriculum", sa.String(), nullable=False),
        sa.Column("start_year", sa.Integer(), nullable=False),
        sa.Column("mention", sa.String(), nullable=False),
        sa.Column("completion", sa.Float(), nullable=False),
        sa.Column("last_term", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["student_id"], ["student.id"], ),
        sa.ForeignKeyConstraint(["program_id"], ["program.id"], ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("student_id", "program_id", "curriculum", name="uq_student_program_curriculum"),
    )
    op.create_index(op.f("ix_studentprogram_student_id"), "studentprogram", ["student_id"], unique=False)
    op.create_index(op.f("ix_studentprogram_program_id"), "studentprogram", ["program_id"], unique=False)
    op.create_index(op.f("ix_studentprogram_curriculum"), "studentprogram", ["curriculum"], unique=False)

    op.create_table(
        "studentterm",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("student_id", sa.String(), nullable=False),
        sa.Column("program_id", sa.String(), nullable=False),
        sa.Column("curriculum", sa.String(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("term", sa.Integer(), nullable=False),
        sa.Column("situation", sa.String(), nullable=False),
        sa.Column("semestral_grade", sa.Float(), nullable=False),
        sa.Column("cumulated_grade", sa.Float(), nullable=False),
        sa.Column("program_grade", sa.Float(), nullable=False),
        sa.Column("comments", sa.String(), nullable=False),
        sa.ForeignKeyConstraint(["student_id"], ["student.id"], ),
        sa.ForeignKeyConstraint(["program_id"], ["program.id"], ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_studentterm_student_id"), "studentterm", ["student_id"], unique=False)
    op.create_index(op.f("ix_studentterm_program_id"), "studentterm", ["program_id"], unique=False)

    op.create_table(
        "curriculumcourse",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("program_id", sa.String(), nullable=False),
        sa.Column("curriculum", sa.String(), nullable=False),
        sa.Column("course_code", sa.String(), nullable=False),
        sa.Column("course_name", sa.String(), nullable=False),
        sa.Column("course_cat", sa.String(), nullable=False),
        sa.Column("semester", sa.Integer(), nullable=False),
        sa.Column("credits", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["program_id"], ["program.id"], ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("program_id", "curriculum", "course_code", name="uq_curriculum_course"),
    )
    op.create_index(op.f("ix_curriculumcourse_program_id"), "curriculumcourse", ["program_id"], unique=False)
    op.create_index(op.f("ix_curriculumcourse_curriculum"), "curriculumcourse", ["curriculum"], unique=False)
    op.create_index(op.f("ix_curriculumcourse_course_code"), "curriculumcourse", ["course_code"], unique=False)
    op.create_index(op.f("ix_curriculumcourse_course_cat"), "curriculumcourse", ["course_cat"], unique=False)

    op.create_table(
        "studentcourse",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("student_id", sa.String(), nullable=False),
        sa.Column("program_id", sa.String(), nullable=False),
        sa.Column("curriculum", sa.String(), nullable=False),
        sa.Column("course_code", sa.String(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("term", sa.Integer(), nullable=False),
        sa.Column("state", sa.String(), nullable=False),
        sa.Column("grade", sa.Float(), nullable=True),
        sa.ForeignKeyConstraint(["student_id"], ["student.id"], ),
        sa.ForeignKeyConstraint(["program_id"], ["program.id"], ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_studentcourse_student_id"), "studentcourse", ["student_id"], unique=False)
    op.create_index(op.f("ix_studentcourse_program_id"), "studentcourse", ["program_id"], unique=False)
    op.create_index(op.f("ix_studentcourse_course_code"), "studentcourse", ["course_code"], unique=False)

    op.create_table(
        "studentdropout",
        sa.Column("student_id", sa.String(), nullable=False),
        sa.Column("prob_dropout", sa.Float(), nullable=True),
        sa.Column("model_accuracy", sa.Float(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("explanation", sa.String(), nullable=True),
        sa.ForeignKeyConstraint(["student_id"], ["student.id"], ),
        sa.PrimaryKeyConstraint("student_id"),
    )
    op.create_table(
        "studentadmission",
        sa.Column("student_id", sa.String(), nullable=False),
        sa.Column("type_admission", sa.String(), nullable=False),
        sa.Column("initial_test", sa.Float(), nullable=True),
        sa.Column("final_test", sa.Float(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["student_id"], ["student.id"], ),
        sa.PrimaryKeyConstraint("student_id"),
    )
    op.create_table(
        "studentemployed",
        sa.Column("student_id", sa.String(), nullable=False),
        sa.Column("employed", sa.Boolean(), nullable=False),
        sa.Column("institution_type", sa.String(), nullable=True),
        sa.Column("educational_system", sa.String(), nullable=True),
        sa.Column("months_to_first_job", sa.Integer(), nullable=True),
        sa.Column("description", sa.String(), nullable=True),
        sa.ForeignKeyConstraint(["student_id"], ["student.id"], ),
        sa.PrimaryKeyConstraint("student_id"),
    )

    op.create_table(
        "persistence",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user", sa.String(), nullable=False),
        sa.Column("key", sa.String(), nullable=False),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user", "key", name="uq_persistence_user_key"),
    )
    op.create_index(op.f("ix_persistence_user"), "persistence", ["user"], unique=False)
    op.create_index(op.f("ix_persistence_key"), "persistence", ["key"], unique=False)

    op.create_table(
        "configuration",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("value", sa.String(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_configuration_name"), "configuration", ["name"], unique=True)


def downgrade() -> None:
    op.drop_index(op.f("ix_configuration_name"), table_name="configuration")
    op.drop_table("configuration")
    op.drop_index(op.f("ix_persistence_key"), table_name="persistence")
    op.drop_index(op.f("ix_persistence_user"), table_name="persistence")
    op.drop_table("persistence")
    op.drop_table("studentemployed")
    op.drop_table("studentadmission")
    op.drop_table("studentdropout")
    op.drop_table("studentcourse")
    op.drop_table("curriculumcourse")
    op.drop_table("studentterm")
    op.drop_table("studentprogram")
    op.drop_table("student")
    op.drop_table("anonymousid")
    op.drop_table("userprogram")
    op.drop_table("program")
    op.drop_table("user")
