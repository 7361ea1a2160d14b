from __future__ import annotations

import sqlalchemy as sa

from alembic import op

revision = "0001_identity_tables"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("uuid", sa.String(length=36), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_table(
        "accounts",
        sa.Column("provider", sa.String(length=32), primary_key=True),
        sa.Column("identifier", sa.String(length=255), primary_key=True),
        sa.Column(
            "uuid",
            sa.String(length=36),
            sa.ForeignKey("users.uuid", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("accounts_uuid_index", "accounts", ["uuid"])


def downgrade() -> None:
    op.drop_index("accounts_uuid_index", table_name="accounts")
    op.drop_table("accounts")
    op.drop_table("users")
