"""add_analog_score_cache

Revision ID: 5f1c2a9e7b3d
Revises:
Create Date: 2026-10-18 09:00:00.000000+00:00

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "5f1c2a9e7b3d"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create analog score cache and portfolio holdings tables."""
    op.create_table(
        "analog_score_cache",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("analog_id", sa.String(length=64), nullable=False),
        sa.Column("portfolio_id", sa.String(length=64), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("portfolio_name", sa.String(length=120), nullable=False),
        sa.Column("analog_name", sa.String(length=120), nullable=True),
        sa.Column("analog_period", sa.String(length=64), nullable=True),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("label", sa.String(length=32), nullable=False),
        sa.Column("color", sa.String(length=16), nullable=False),
        sa.Column("portfolio_return", sa.Float(), nullable=False),
        sa.Column("benchmark_return", sa.Float(), nullable=False),
        sa.Column("outperformance", sa.Float(), nullable=False),
        sa.Column("portfolio_drawdown", sa.Float(), nullable=False),
        sa.Column("benchmark_drawdown", sa.Float(), nullable=False),
        sa.Column("return_score", sa.Float(), nullable=False),
        sa.Column("drawdown_score", sa.Float(), nullable=False),
        sa.Column("estimated_upside", sa.Float(), nullable=True),
        sa.Column("estimated_downside", sa.Float(), nullable=True),
        sa.Column("holdings", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_analog_score_cache")),
        sa.UniqueConstraint(
            "analog_id", "portfolio_id", "version",
            name=op.f("uq_analog_score_cache_analog_id"),
        ),
    )
    op.create_index(
        "ix_analog_score_cache_analog_version",
        "analog_score_cache",
        ["analog_id", "version"],
        unique=False,
    )

    op.create_table(
        "portfolio_holdings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("portfolio_id", sa.String(length=64), nullable=False),
        sa.Column("ticker", sa.String(length=20), nullable=False),
        sa.Column("weight", sa.Float(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_portfolio_holdings")),
        sa.UniqueConstraint(
            "portfolio_id", "ticker",
            name=op.f("uq_portfolio_holdings_portfolio_id"),
        ),
    )
    op.create_index(
        op.f("ix_portfolio_holdings_portfolio_id"),
        "portfolio_holdings",
        ["portfolio_id"],
        unique=False,
    )


def downgrade() -> None:
    """Drop analog score cache and portfolio holdings tables."""
    op.drop_index(op.f("ix_portfolio_holdings_portfolio_id"), table_name="portfolio_holdings")
    op.drop_table("portfolio_holdings")
    op.drop_index("ix_analog_score_cache_analog_version", table_name="analog_score_cache")
    op.drop_table("analog_score_cache")
