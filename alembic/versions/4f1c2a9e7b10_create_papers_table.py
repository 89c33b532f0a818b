"""Create the papers table.

Revision ID: 4f1c2a9e7b10
Revises: None
Create Date: 2026-10-19 10:00:00.000000
"""

from typing import Sequence, Union

from alembic import op


revision: str = "4f1c2a9e7b10"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
    CREATE TABLE IF NOT EXISTS papers (
        id UUID PRIMARY KEY,
        category TEXT NOT NULL,
        subject TEXT NOT NULL,
        semester TEXT NOT NULL,
        year TEXT NOT NULL,
        blob_ref TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'pending'
            CHECK (status IN ('pending', 'approved', 'rejected')),
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );
    """)

    op.execute("""
    CREATE INDEX IF NOT EXISTS idx_papers_status_created_at
        ON papers (status, created_at DESC);
    """)

    # At most one live (non-rejected) paper per metadata tuple.
    op.execute("""
    CREATE UNIQUE INDEX IF NOT EXISTS uq_papers_active_metadata
        ON papers (category, subject, semester, year)
        WHERE status <> 'rejected';
    """)


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS uq_papers_active_metadata;")
    op.execute("DROP INDEX IF EXISTS idx_papers_status_created_at;")
    op.execute("DROP TABLE IF EXISTS papers;")
