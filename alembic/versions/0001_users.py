"""Create users table with embedded refresh-token list and reset-token ledger."""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_users"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("first_name", sa.Text(), nullable=False),
        sa.Column("last_name", sa.Text(), nullable=False),
        sa.Column("phone_number", sa.Text(), nullable=True),
        sa.Column("role", sa.Text(), nullable=False, server_default=sa.text("'student'")),
        sa.Column("status", sa.Text(), nullable=False, server_default=sa.text("'active'")),
        sa.Column("refresh_tokens", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("reset_password_token", sa.Text(), nullable=True),
        sa.Column("reset_password_expire", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.CheckConstraint(
            "role IN ('admin', 'student', 'instructor')",
            name="ck_users_role",
        ),
        sa.CheckConstraint(
            "status IN ('active', 'inactive', 'suspended', 'graduated')",
            name="ck_users_status",
        ),
        sa.CheckConstraint(
            "(reset_password_token IS NULL) = (reset_password_expire IS NULL)",
            name="ck_users_reset_token_pair",
        ),
    )
    op.create_index("ix_users_reset_password_token", "users", ["reset_password_token"])


def downgrade() -> None:
    op.drop_index("ix_users_reset_password_token", table_name="users")
    op.drop_table("users")
