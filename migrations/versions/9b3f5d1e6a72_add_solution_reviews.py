"""Add solution reviews table.

Revision ID: 9b3f5d1e6a72
Revises: 4e1a7c2b9d30
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "9b3f5d1e6a72"
down_revision: Union[str, Sequence[str], None] = "4e1a7c2b9d30"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "solution_reviews",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("system_code", sa.String(64), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("document_state", sa.String(16), nullable=False, server_default="DRAFT"),
        sa.Column("solution_overview", sa.JSON(), nullable=True),
        sa.Column("business_capabilities", sa.JSON(), nullable=True),
        sa.Column("data_assets", sa.JSON(), nullable=True),
        sa.Column("system_components", sa.JSON(), nullable=True),
        sa.Column("technology_components", sa.JSON(), nullable=True),
        sa.Column("integration_flows", sa.JSON(), nullable=True),
        sa.Column("enterprise_tools", sa.JSON(), nullable=True),
        sa.Column("process_compliances", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("created_by", sa.String(320), nullable=True),
        sa.Column("last_modified_at", sa.DateTime(), nullable=False),
        sa.Column("last_modified_by", sa.String(320), nullable=True),
        sa.UniqueConstraint("system_code", "version", name="uq_solution_review_system_version"),
    )
    op.create_index("ix_solution_reviews_system_code", "solution_reviews", ["system_code"])
    op.create_index("idx_solution_reviews_state", "solution_reviews", ["document_state"])
    # One CURRENT review per system.
    op.create_index(
        "uq_solution_review_current_per_system",
        "solution_reviews",
        ["system_code"],
        unique=True,
        sqlite_where=sa.text("document_state = 'CURRENT'"),
        postgresql_where=sa.text("document_state = 'CURRENT'"),
    )


def downgrade() -> None:
    op.drop_index("uq_solution_review_current_per_system", table_name="solution_reviews")
    op.drop_index("idx_solution_reviews_state", table_name="solution_reviews")
    op.drop_index("ix_solution_reviews_system_code", table_name="solution_reviews")
    op.drop_table("solution_reviews")
