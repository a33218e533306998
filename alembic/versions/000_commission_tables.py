"""Commission settings and run log tables

Revision ID: 000_commission_tables
Revises:
Create Date: 2026-10-18

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy import inspect

# revision identifiers, used by Alembic.
revision: str = "000_commission_tables"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _table_exists(table: str) -> bool:
    bind = op.get_bind()
    insp = inspect(bind)
    return table in insp.get_table_names()


def upgrade() -> None:
    """Create commission tables."""

    # Single-row rule configuration; NULL tables are "missing"
    if not _table_exists("commission_settings"):
        op.create_table(
            "commission_settings",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("ae_brackets", sa.JSON(), nullable=True),
            sa.Column("ae_payment_term_bonuses", sa.JSON(), nullable=True),
            sa.Column("ae_revenue_multiplier_brackets", sa.JSON(), nullable=True),
            sa.Column("sdr_meeting_tiers", sa.JSON(), nullable=True),
            sa.Column("sdr_closed_won_percent", sa.Numeric(5, 2), nullable=True),
            sa.Column("sdr_revenue_multiplier_brackets", sa.JSON(), nullable=True),
            sa.Column(
                "marketing_same_as_sdr",
                sa.Boolean(),
                server_default=sa.true(),
                nullable=False,
            ),
            sa.Column("marketing_inbound_percent", sa.Numeric(5, 2), nullable=True),
            sa.Column("marketing_revenue_multiplier_brackets", sa.JSON(), nullable=True),
            sa.Column(
                "created_at",
                sa.DateTime(timezone=True),
                server_default=sa.func.now(),
                nullable=False,
            ),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        )

    if not _table_exists("commission_run_logs"):
        op.create_table(
            "commission_run_logs",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column(
                "run_date",
                sa.DateTime(timezone=True),
                server_default=sa.func.now(),
                nullable=False,
            ),
            sa.Column("rep_id", sa.String(64), nullable=False),
            sa.Column("rep_name", sa.String(255), nullable=False),
            sa.Column("team", sa.String(50), nullable=False),
            sa.Column("period_start", sa.DateTime(timezone=True), nullable=False),
            sa.Column("period_end", sa.DateTime(timezone=True), nullable=False),
            sa.Column("commission_json", sa.JSON(), nullable=False),
            sa.Column("success", sa.Boolean(), server_default=sa.true(), nullable=False),
            sa.Column("error_message", sa.Text(), nullable=True),
            sa.Column(
                "crm_record_id",
                sa.String(64),
                nullable=True,
                comment="HubSpot commission statement id when synced",
            ),
        )
        op.create_index("ix_commission_run_logs_run_date", "commission_run_logs", ["run_date"])
        op.create_index("ix_commission_run_logs_rep_id", "commission_run_logs", ["rep_id"])


def downgrade() -> None:
    """Drop commission tables."""
    op.drop_index("ix_commission_run_logs_rep_id", table_name="commission_run_logs")
    op.drop_index("ix_commission_run_logs_run_date", table_name="commission_run_logs")
    op.drop_table("commission_run_logs")
    op.drop_table("commission_settings")
