"""Seed sequence counters.

Revision ID: 002_seed_sequence_counters
Revises: 001_initial
Create Date: 2026-10-19

Seeds the order and invoice number counters. The first issued numbers are
K000001 and P000001.
"""

from typing import Sequence

from alembic import op
from sqlalchemy import Integer, String, column, table

# revision identifiers
revision: str = "002_seed_sequence_counters"
down_revision: str = "001_initial"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

COUNTERS = [
    {"name": "order", "next_value": 1},
    {"name": "invoice", "next_value": 1},
]


def upgrade() -> None:
    """Insert counter rows."""
    counters_table = table(
        "sequence_counters",
        column("name", String),
        column("next_value", Integer),
    )
    op.bulk_insert(counters_table, COUNTERS)


def downgrade() -> None:
    """Remove counter rows."""
    counter_names = [c["name"] for c in COUNTERS]
    counters_table = table("sequence_counters", column("name", String))

    op.execute(
        counters_table.delete().where(counters_table.c.name.in_(counter_names))
    )
