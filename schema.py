# SQLAlchemy Core description of the biller tables.
#
# Alembic compares this metadata against the live PostgreSQL schema
# (`alembic revision --autogenerate`). The runtime DDL in store.py and the
# revisions under migrations/versions must describe the same tables.

import sqlalchemy as sa

metadata = sa.MetaData()

billing_accounts = sa.Table(
    "billing_accounts",
    metadata,
    sa.Column("id", sa.Text(), primary_key=True),
    sa.Column("create_time", sa.DateTime(timezone=True), nullable=False),
    sa.Column("demand_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
    sa.Column("supply_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
)

projects = sa.Table(
    "projects",
    metadata,
    sa.Column("id", sa.Text(), primary_key=True),
    sa.Column("billing_account_id", sa.Text(), nullable=False),
    sa.Column("create_time", sa.DateTime(timezone=True), nullable=False),
)

orders = sa.Table(
    "orders",
    metadata,
    sa.Column("id", sa.Text(), primary_key=True),
    sa.Column("billing_account_id", sa.Text(), nullable=False),
    sa.Column("project_id", sa.Text(), nullable=False),
    sa.Column("price_hr", sa.Float(), nullable=False, server_default="0"),
    sa.Column("create_time", sa.DateTime(timezone=True), nullable=True),
    sa.Index("idx_orders_billing_account", "billing_account_id"),
)

leases = sa.Table(
    "leases",
    metadata,
    sa.Column("id", sa.Text(), primary_key=True),
    sa.Column("order_id", sa.Text(), nullable=False),
    sa.Column("create_time", sa.DateTime(timezone=True), nullable=False),
    sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
    sa.Column("price_hr", sa.Float(), nullable=False, server_default="0"),
    sa.Index("idx_leases_order_time", "order_id", "create_time"),
)


def _spend_table(name, key):
    # Unscaled NUMERIC: rollups keep every digit the decimal context produced
    return sa.Table(
        name,
        metadata,
        sa.Column("uid", sa.Text(), primary_key=True),
        sa.Column(key, sa.Text(), nullable=False),
        sa.Column("spend", sa.Numeric(), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint(key, "start_time", "end_time", name=f"uq_{name}_period"),
    )


billing_account_spend = _spend_table("billing_account_spend", "billing_account_id")
project_spend = _spend_table("project_spend", "project_id")
order_spend = _spend_table("order_spend", "order_id")
