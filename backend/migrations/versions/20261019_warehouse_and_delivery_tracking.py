"""Warehouse inventory and delivery status tracking

Revision ID: 20261019_warehouse_delivery
Revises: a1c4e2b7d901
Create Date: 2026-10-19

- warehouse_inventory: units held on premises, one live row per item
- deliveries.updated_at: set when an admin or the courier moves the status
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_warehouse_delivery"
down_revision = "a1c4e2b7d901"
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "warehouse_inventory",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("status", sa.String(length=24), nullable=False, server_default="in_warehouse"),
        sa.Column("last_updated", sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("quantity >= 1", name="ck_warehouse_inventory_quantity"),
        sa.ForeignKeyConstraint(["item_id"], ["items.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_warehouse_inventory_item_id", "warehouse_inventory", ["item_id"])
    op.create_index("ix_warehouse_inventory_status", "warehouse_inventory", ["status"])
    op.create_index("ix_warehouse_inventory_deleted_at", "warehouse_inventory", ["deleted_at"])

    # SQLite cannot ADD COLUMN with a CURRENT_TIMESTAMP default; copy the table instead
    with op.batch_alter_table("deliveries", schema=None, recreate="always") as batch_op:
        batch_op.add_column(sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False,
                                      server_default=sa.text("CURRENT_TIMESTAMP")))


def downgrade():
    with op.batch_alter_table("deliveries", schema=None) as batch_op:
        batch_op.drop_column("updated_at")

    op.drop_index("ix_warehouse_inventory_deleted_at", table_name="warehouse_inventory")
    op.drop_index("ix_warehouse_inventory_status", table_name="warehouse_inventory")
    op.drop_index("ix_warehouse_inventory_item_id", table_name="warehouse_inventory")
    op.drop_table("warehouse_inventory")
