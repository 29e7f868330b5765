"""Source tables and period spend rollups

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# rollup table -> key column
SPEND_TABLES = (
    ("billing_account_spend", "billing_account_id"),
    ("project_spend", "project_id"),
    ("order_spend", "order_id"),
)


def upgrade() -> None:
    op.create_table(
        "billing_accounts",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("create_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("demand_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("supply_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_table(
        "projects",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("billing_account_id", sa.Text(), nullable=False),
        sa.Column("create_time", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_table(
        "orders",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("billing_account_id", sa.Text(), nullable=False),
        sa.Column("project_id", sa.Text(), nullable=False),
        sa.Column("price_hr", sa.Float(), nullable=False, server_default="0"),
        sa.Column("create_time", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_table(
        "leases",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("order_id", sa.Text(), nullable=False),
        sa.Column("create_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("price_hr", sa.Float(), nullable=False, server_default="0"),
    )
    op.create_index("idx_orders_billing_account", "orders", ["billing_account_id"])
    op.create_index("idx_leases_order_time", "leases", ["order_id", "create_time"])

    # Spend is unconstrained NUMERIC: no scale, so nothing is rounded on write
    for table, key in SPEND_TABLES:
        op.create_table(
            table,
            sa.Column("uid", sa.Text(), primary_key=True),
            sa.Column(key, sa.Text(), nullable=False),
            sa.Column("spend", sa.Numeric(), nullable=False),
            sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
            sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
            sa.UniqueConstraint(key, "start_time", "end_time", name=f"uq_{table}_period"),
        )


def downgrade() -> None:
    for table, _key in reversed(SPEND_TABLES):
        op.drop_table(table)
    op.drop_index("idx_leases_order_time")
    op.drop_index("idx_orders_billing_account")
    op.drop_table("leases")
    op.drop_table("orders")
    op.drop_table("projects")
    op.drop_table("billing_accounts")
