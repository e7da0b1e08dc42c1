"""create catalog_entries table

Revision ID: a1c4e7f20b31
Revises:
Create Date: 2026-10-17 10:00:00.000000

Hey future me - this is the WHOLE catalog schema!

The catalog is a flat key-value store: every track, album, artist, cover,
playlist, share, user annotation and path-index entry is one row.

TABLE STRUCTURE:
- collection: first key part ("tracks", "albums", "userData", ...)
- key: remaining key parts as a JSON array, e.g. '["u1", "track", "t1"]'
- value: the validated record as JSON
- updated_at: last write

No foreign keys: the consistency sweep owns referential integrity.
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = 'a1c4e7f20b31'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'catalog_entries',
        sa.Column('collection', sa.String(64), primary_key=True),
        sa.Column('key', sa.Text(), primary_key=True),
        sa.Column('value', sa.JSON(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table('catalog_entries')
