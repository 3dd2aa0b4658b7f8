"""Create crisis alert table

Revision ID: 5c1e9a7d3b20
Revises:
Create Date: 2026-10-18

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "5c1e9a7d3b20"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the crisisalert table."""
    op.create_table(
        "crisisalert",
        sa.Column("id", sa.UUID(as_uuid=True), primary_key=True),
        sa.Column("session_id", sa.String(64), nullable=False),
        sa.Column("message_id", sa.String(64), nullable=True),
        sa.Column("user_id", sa.String(64), nullable=True),
        sa.Column("pseudo_user_id", sa.String(20), nullable=False),
        sa.Column("risk_level", sa.String(10), nullable=False),
        sa.Column("primary_feeling", sa.String(100), nullable=True),
        sa.Column("message_preview", sa.String(200), nullable=False),
        sa.Column(
            "status", sa.String(20), server_default="pending", nullable=False
        ),
        sa.Column("acknowledged_by", sa.String(64), nullable=True),
        sa.Column("acknowledged_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolved_by", sa.String(64), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_crisisalert_session_id", "crisisalert", ["session_id"])
    op.create_index("ix_crisisalert_status", "crisisalert", ["status"])


def downgrade() -> None:
    """Drop the crisisalert table."""
    op.drop_index("ix_crisisalert_status", table_name="crisisalert")
    op.drop_index("ix_crisisalert_session_id", table_name="crisisalert")
    op.drop_table("crisisalert")
