"""Initial database schema

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

Creates the report workflow tables:
- reports: Submitted cases; workflow state lives in report_content
- moderators: Identity-provider users who handle reports
- assigned_reports: Exclusive report ownership (one row per report)
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    # =========================
    # Reports Table
    # =========================
    op.create_table(
        "reports",
        sa.Column(
            "report_id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("uuid_generate_v4()"),
        ),
        sa.Column("reporter_name", sa.Text, nullable=False),
        sa.Column("reporter_email", sa.Text, nullable=False),
        sa.Column("reported_institution", sa.Text, nullable=True),
        sa.Column("report_description", sa.Text, nullable=True),
        sa.Column(
            "report_content",
            postgresql.JSONB,
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("institution_name", sa.Text, nullable=True),
        sa.Column("institution_id", sa.Text, nullable=True),
        sa.Column("report_reason", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
    )
    op.create_index("ix_reports_created_at", "reports", ["created_at"])
    op.create_index("ix_reports_institution_id", "reports", ["institution_id"])

    # =========================
    # Moderators Table
    # =========================
    op.create_table(
        "moderators",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("full_name", sa.Text, nullable=True),
        sa.Column("email", sa.Text, nullable=True),
        sa.Column("image_url", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
    )

    # =========================
    # Assigned Reports Table
    # =========================
    op.create_table(
        "assigned_reports",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("uuid_generate_v4()"),
        ),
        sa.Column(
            "report_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("reports.report_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "moderator_id",
            sa.Text,
            sa.ForeignKey("moderators.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "assigned_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.UniqueConstraint("report_id", name="uq_assigned_reports_report_id"),
    )
    op.create_index("ix_assigned_reports_moderator_id", "assigned_reports", ["moderator_id"])


def downgrade() -> None:
    op.drop_table("assigned_reports")
    op.drop_table("moderators")
    op.drop_table("reports")
