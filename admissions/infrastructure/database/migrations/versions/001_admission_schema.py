# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Create the admission schema.

Tables:
- student_profiles: academic profile read by the admission engine
- enrollment_requests: intake records and their single decision
- enrollments: approved seats, counted per course for capacity
- waitlist_entries: eligible students queued for a full course
- course_admission_guards: per-course lock row for capacity decisions

Revision ID: 001_admission_schema
Revises:
Create Date: 2025-02-03
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001_admission_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create admission tables and course indexes."""

    op.create_table(
        "student_profiles",
        sa.Column("uid", sa.String(128), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="student"),
        sa.Column("cgpa", sa.String(32), nullable=True),
        sa.Column("semesters", sa.JSON(), nullable=False),
        sa.Column("current_year", sa.Integer(), nullable=True),
        sa.Column("current_semester", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("uid"),
    )

    op.create_table(
        "enrollment_requests",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("student_uid", sa.String(128), nullable=False),
        sa.Column("roll", sa.String(64), nullable=False),
        sa.Column("course", sa.String(255), nullable=False),
        sa.Column("photos", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("reason_code", sa.String(50), nullable=True),
        sa.Column("encoding_status", sa.String(20), nullable=True),
        sa.Column("encoding_detail", sa.Text(), nullable=True),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_enrollment_requests_student_uid", "enrollment_requests", ["student_uid"]
    )
    op.create_index("ix_enrollment_requests_status", "enrollment_requests", ["status"])

    op.create_table(
        "enrollments",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("request_id", sa.String(36), nullable=False),
        sa.Column("student_uid", sa.String(128), nullable=False),
        sa.Column("course", sa.String(255), nullable=False),
        sa.Column("cgpa", sa.Float(), nullable=False),
        sa.Column("strict_tier", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["request_id"], ["enrollment_requests.id"]),
        sa.UniqueConstraint("request_id", name="uq_enrollments_request_id"),
    )
    op.create_index("ix_enrollments_course", "enrollments", ["course"])
    op.create_index("ix_enrollments_student_uid", "enrollments", ["student_uid"])

    op.create_table(
        "waitlist_entries",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("request_id", sa.String(36), nullable=False),
        sa.Column("student_uid", sa.String(128), nullable=False),
        sa.Column("course", sa.String(255), nullable=False),
        sa.Column("cgpa", sa.Float(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["request_id"], ["enrollment_requests.id"]),
        sa.UniqueConstraint("request_id", name="uq_waitlist_entries_request_id"),
    )
    op.create_index("ix_waitlist_entries_course", "waitlist_entries", ["course"])
    op.create_index("ix_waitlist_entries_student_uid", "waitlist_entries", ["student_uid"])

    op.create_table(
        "course_admission_guards",
        sa.Column("course", sa.String(255), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("course"),
    )


def downgrade() -> None:
    """Drop admission tables."""
    op.drop_table("course_admission_guards")
    op.drop_index("ix_waitlist_entries_student_uid", table_name="waitlist_entries")
    op.drop_index("ix_waitlist_entries_course", table_name="waitlist_entries")
    op.drop_table("waitlist_entries")
    op.drop_index("ix_enrollments_student_uid", table_name="enrollments")
    op.drop_index("ix_enrollments_course", table_name="enrollments")
    op.drop_table("enrollments")
    op.drop_index("ix_enrollment_requests_status", table_name="enrollment_requests")
    op.drop_index("ix_enrollment_requests_student_uid", table_name="enrollment_requests")
    op.drop_table("enrollment_requests")
    op.drop_table("student_profiles")
