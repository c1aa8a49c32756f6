"""initial multi-tenant scheduling schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _org_column() -> sa.Column:
    return sa.Column("organization_id", sa.Integer(), sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)


def upgrade() -> None:
    op.create_table(
        "organizations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        _org_column(),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("role IN ('manager', 'employee')", name="ck_users_role"),
        sa.UniqueConstraint("email"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_organization_id", "users", ["organization_id"], unique=False)

    op.create_table(
        "sessions",
        sa.Column("session_id", sa.String(length=128), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_sessions_user_id", "sessions", ["user_id"], unique=False)
    op.create_index("ix_sessions_expires_at", "sessions", ["expires_at"], unique=False)

    op.create_table(
        "locations",
        sa.Column("id", sa.Integer(), primary_key=True),
        _org_column(),
        sa.Column("name", sa.String(length=255), nullable=False),
    )
    op.create_index("ix_locations_organization_id", "locations", ["organization_id"], unique=False)

    op.create_table(
        "areas",
        sa.Column("id", sa.Integer(), primary_key=True),
        _org_column(),
        sa.Column("location_id", sa.Integer(), sa.ForeignKey("locations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("color", sa.String(length=20), nullable=False),
    )
    op.create_index("ix_areas_organization_id", "areas", ["organization_id"], unique=False)
    op.create_index("ix_areas_location_id", "areas", ["location_id"], unique=False)

    op.create_table(
        "roles",
        sa.Column("id", sa.Integer(), primary_key=True),
        _org_column(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("color", sa.String(length=20), nullable=False),
    )
    op.create_index("ix_roles_organization_id", "roles", ["organization_id"], unique=False)

    op.create_table(
        "rules",
        sa.Column("id", sa.Integer(), primary_key=True),
        _org_column(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("value", sa.Integer(), nullable=False),
        sa.CheckConstraint("type IN ('MAX_HOURS')", name="ck_rules_type"),
    )
    op.create_index("ix_rules_organization_id", "rules", ["organization_id"], unique=False)

    op.create_table(
        "employees",
        sa.Column("id", sa.Integer(), primary_key=True),
        _org_column(),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("location_id", sa.Integer(), sa.ForeignKey("locations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("weekly_hours_limit", sa.Integer(), nullable=True),
        sa.Column("rule_id", sa.Integer(), sa.ForeignKey("rules.id", ondelete="SET NULL"), nullable=True),
        sa.Column("hourly_rate", sa.Float(), nullable=True),
    )
    op.create_index("ix_employees_organization_id", "employees", ["organization_id"], unique=False)
    op.create_index("ix_employees_user_id", "employees", ["user_id"], unique=False)
    op.create_index("ix_employees_location_id", "employees", ["location_id"], unique=False)

    op.create_table(
        "employee_roles",
        sa.Column("employee_id", sa.Integer(), sa.ForeignKey("employees.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("role_id", sa.Integer(), sa.ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    )

    op.create_table(
        "requirements",
        sa.Column("id", sa.Integer(), primary_key=True),
        _org_column(),
        sa.Column("location_id", sa.Integer(), sa.ForeignKey("locations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("area_id", sa.Integer(), sa.ForeignKey("areas.id", ondelete="CASCADE"), nullable=False),
        sa.Column("day_of_week", sa.String(length=10), nullable=False),
        sa.Column("role_id", sa.Integer(), sa.ForeignKey("roles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("count", sa.Integer(), nullable=False),
        sa.CheckConstraint(
            "day_of_week IN ('monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday')",
            name="ck_requirements_day_of_week",
        ),
        sa.CheckConstraint("count >= 0", name="ck_requirements_count"),
    )
    op.create_index("ix_requirements_organization_id", "requirements", ["organization_id"], unique=False)
    op.create_index("ix_requirements_location_id", "requirements", ["location_id"], unique=False)
    op.create_index("ix_requirements_area_id", "requirements", ["area_id"], unique=False)

    op.create_table(
        "shifts",
        sa.Column("id", sa.Integer(), primary_key=True),
        _org_column(),
        sa.Column("location_id", sa.Integer(), sa.ForeignKey("locations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("area_id", sa.Integer(), sa.ForeignKey("areas.id", ondelete="CASCADE"), nullable=False),
        sa.Column("date", sa.String(length=10), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
    )
    op.create_index("ix_shifts_organization_id", "shifts", ["organization_id"], unique=False)
    op.create_index("ix_shifts_location_id", "shifts", ["location_id"], unique=False)
    op.create_index("ix_shifts_area_id", "shifts", ["area_id"], unique=False)
    op.create_index("ix_shifts_date", "shifts", ["date"], unique=False)

    op.create_table(
        "assignments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("shift_id", sa.Integer(), sa.ForeignKey("shifts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("employee_id", sa.Integer(), sa.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False),
        sa.Column("role_id", sa.Integer(), sa.ForeignKey("roles.id", ondelete="SET NULL"), nullable=True),
    )
    op.create_index("ix_assignments_shift_id", "assignments", ["shift_id"], unique=True)
    op.create_index("ix_assignments_employee_id", "assignments", ["employee_id"], unique=False)

    op.create_table(
        "time_off_requests",
        sa.Column("id", sa.Integer(), primary_key=True),
        _org_column(),
        sa.Column("employee_id", sa.Integer(), sa.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False),
        sa.Column("date", sa.String(length=10), nullable=False),
        sa.Column("is_full_day", sa.Boolean(), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=True),
        sa.Column("end_time", sa.String(length=5), nullable=True),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("status IN ('pending', 'approved', 'rejected')", name="ck_time_off_requests_status"),
    )
    op.create_index("ix_time_off_requests_organization_id", "time_off_requests", ["organization_id"], unique=False)
    op.create_index("ix_time_off_requests_employee_id", "time_off_requests", ["employee_id"], unique=False)
    op.create_index("ix_time_off_requests_status", "time_off_requests", ["status"], unique=False)


def downgrade() -> None:
    op.drop_table("time_off_requests")
    op.drop_table("assignments")
    op.drop_table("shifts")
    op.drop_table("requirements")
    op.drop_table("employee_roles")
    op.drop_table("employees")
    op.drop_table("rules")
    op.drop_table("roles")
    op.drop_table("areas")
    op.drop_table("locations")
    op.drop_table("sessions")
    op.drop_table("users")
    op.drop_table("organizations")
