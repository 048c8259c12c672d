"""seed display modes and system collections

Revision ID: 2b3c4d5e6f7a
Revises: 1a2b3c4d5e6f
Create Date: 2026-10-18 09:05:00.000000
"""
from datetime import UTC, datetime
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '2b3c4d5e6f7a'
down_revision: Union[str, None] = '1a2b3c4d5e6f'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


MODES = {
    'collection_display_modes': [
        ('grid', 'Thumbnails in a grid'),
        ('linear', 'One asset after another'),
        ('tabular', 'A table of file details'),
    ],
    'relationship_display_modes': [
        ('linked', 'Shown as a link in the parent'),
        ('hidden', 'Not shown in the parent'),
    ],
    'asset_group_display_modes': [
        ('linear', 'One asset after another'),
        ('grid', 'Thumbnails in a grid'),
        ('side-by-side', 'Assets next to each other'),
    ],
}

SYSTEM_COLLECTIONS = [
    ('root', 'Root', 'Top of the collection hierarchy'),
    ('assets', 'Assets', 'Every uploaded asset'),
]


def _mode_table(name: str) -> sa.Table:
    return sa.table(
        name,
        sa.column('name', sa.String),
        sa.column('description', sa.String),
    )


def upgrade() -> None:
    for table_name, modes in MODES.items():
        op.bulk_insert(
            _mode_table(table_name),
            [{'name': name, 'description': description} for name, description in modes],
        )

    collections = sa.table(
        'collections',
        sa.column('slug', sa.String),
        sa.column('name', sa.String),
        sa.column('description', sa.Text),
        sa.column('protected', sa.Boolean),
        sa.column('created_at', sa.DateTime(timezone=True)),
        sa.column('updated_at', sa.DateTime(timezone=True)),
    )
    now = datetime.now(UTC)
    op.bulk_insert(
        collections,
        [
            {
                'slug': slug,
                'name': name,
                'description': description,
                'protected': False,
                'created_at': now,
                'updated_at': now,
            }
            for slug, name, description in SYSTEM_COLLECTIONS
        ],
    )


def downgrade() -> None:
    op.execute(sa.text("DELETE FROM collections WHERE slug IN ('root', 'assets')"))
    for table_name in MODES:
        op.execute(sa.text(f"DELETE FROM {table_name}"))
