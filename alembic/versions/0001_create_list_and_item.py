"""Create list and item tables.

Revision ID: 0001_create_list_and_item
Revises:
Create Date: 2026-10-18

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_create_list_and_item"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    existing_tables = set(inspector.get_table_names())

    if "list" not in existing_tables:
        op.create_table(
            "list",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("name", sa.String(255), nullable=False),
        )

    if "item" not in existing_tables:
        op.create_table(
            "item",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("name", sa.String(255), nullable=False),
            sa.Column(
                "list_id",
                sa.Integer(),
                sa.ForeignKey("list.id", ondelete="RESTRICT"),
                nullable=False,
            ),
        )
        op.create_index("ix_item_list_id", "item", ["list_id"])


def downgrade() -> None:
    op.drop_index("ix_item_list_id", table_name="item")
    op.drop_table("item")
    op.drop_table("list")
