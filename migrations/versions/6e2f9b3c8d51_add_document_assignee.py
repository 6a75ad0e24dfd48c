"""add document assignee

Revision ID: 6e2f9b3c8d51
Revises: 5d1e8a2b7c40
Create Date: 2026-10-19 10:04:12.918372

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = '6e2f9b3c8d51'
down_revision: Union[str, Sequence[str], None] = '5d1e8a2b7c40'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    insp = inspect(op.get_bind())
    columns = {c["name"] for c in insp.get_columns("documents")}
    if "assigned_to" not in columns:
        op.add_column("documents", sa.Column("assigned_to", sa.String(length=320), nullable=True))
    if not any(ix.get("name") == "idx_documents_assigned_to" for ix in insp.get_indexes("documents")):
        op.create_index("idx_documents_assigned_to", "documents", ["assigned_to"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("idx_documents_assigned_to", table_name="documents")
    op.drop_column("documents", "assigned_to")
