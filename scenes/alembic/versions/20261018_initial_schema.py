"""initial schema

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '1a2b3c4d5e6f'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column('id', sa.BigInteger().with_variant(sa.Integer(), 'sqlite'), nullable=False, autoincrement=True)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    ]


def _mode_lookup(name: str) -> None:
    op.create_table(
        name,
        _id(),
        sa.Column('name', sa.String(length=50), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )


def upgrade() -> None:
    op.create_table(
        'collections',
        _id(),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('title', sa.String(length=500), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('protected', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_collections_slug', 'collections', ['slug'], unique=True)

    op.create_table(
        'collection_relationships',
        _id(),
        sa.Column('parent_id', sa.BigInteger(), nullable=False),
        sa.Column('child_id', sa.BigInteger(), nullable=False),
        sa.Column('show_metadata', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['parent_id'], ['collections.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['child_id'], ['collections.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_collection_relationships_parent_id', 'collection_relationships', ['parent_id'])
    op.create_index('ix_collection_relationships_child_id', 'collection_relationships', ['child_id'])
    op.create_index(
        'ix_collection_relationships_parent_sort',
        'collection_relationships',
        ['parent_id', 'sort_order'],
    )

    op.create_table(
        'assets',
        _id(),
        sa.Column('filename', sa.String(length=255), nullable=False),
        sa.Column('filepath', sa.String(length=1024), nullable=False),
        sa.Column('filetype', sa.String(length=128), nullable=False),
        sa.Column('filesize', sa.BigInteger(), nullable=False),
        sa.Column('checksum', sa.String(length=64), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_assets_filename', 'assets', ['filename'])
    op.create_index('ix_assets_filetype', 'assets', ['filetype'])
    op.create_index('ix_assets_checksum', 'assets', ['checksum'])

    op.create_table(
        'asset_collection_membership',
        _id(),
        sa.Column('asset_id', sa.BigInteger(), nullable=False),
        sa.Column('collection_id', sa.BigInteger(), nullable=False),
        sa.Column('display_name', sa.String(length=500), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['asset_id'], ['assets.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['collection_id'], ['collections.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_asset_collection_membership_asset_id', 'asset_collection_membership', ['asset_id'])
    op.create_index(
        'ix_asset_collection_membership_collection_id', 'asset_collection_membership', ['collection_id']
    )
    op.create_index(
        'ix_asset_collection_membership_collection_sort',
        'asset_collection_membership',
        ['collection_id', 'sort_order'],
    )

    op.create_table(
        'asset_groups',
        _id(),
        sa.Column('collection_id', sa.BigInteger(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['collection_id'], ['collections.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_asset_groups_collection_id', 'asset_groups', ['collection_id'])

    op.create_table(
        'asset_group_membership',
        _id(),
        sa.Column('group_id', sa.BigInteger(), nullable=False),
        sa.Column('membership_id', sa.BigInteger(), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['group_id'], ['asset_groups.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['membership_id'], ['asset_collection_membership.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_asset_group_membership_group_id', 'asset_group_membership', ['group_id'])
    op.create_index('ix_asset_group_membership_membership_id', 'asset_group_membership', ['membership_id'])

    _mode_lookup('collection_display_modes')
    _mode_lookup('relationship_display_modes')
    _mode_lookup('asset_group_display_modes')

    op.create_table(
        'collection_display_mode_configuration',
        _id(),
        sa.Column('collection_id', sa.BigInteger(), nullable=False),
        sa.Column('display_mode_id', sa.BigInteger(), nullable=False),
        sa.ForeignKeyConstraint(['collection_id'], ['collections.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['display_mode_id'], ['collection_display_modes.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_collection_display_mode_configuration_collection_id',
        'collection_display_mode_configuration',
        ['collection_id'],
    )

    op.create_table(
        'relationship_display_mode_configuration',
        _id(),
        sa.Column('relationship_id', sa.BigInteger(), nullable=False),
        sa.Column('display_mode_id', sa.BigInteger(), nullable=False),
        sa.ForeignKeyConstraint(['relationship_id'], ['collection_relationships.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['display_mode_id'], ['relationship_display_modes.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_relationship_display_mode_configuration_relationship_id',
        'relationship_display_mode_configuration',
        ['relationship_id'],
    )

    op.create_table(
        'asset_group_display_mode_configuration',
        _id(),
        sa.Column('group_id', sa.BigInteger(), nullable=False),
        sa.Column('display_mode_id', sa.BigInteger(), nullable=False),
        sa.Column('composite', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.ForeignKeyConstraint(['group_id'], ['asset_groups.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['display_mode_id'], ['asset_group_display_modes.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_asset_group_display_mode_configuration_group_id',
        'asset_group_display_mode_configuration',
        ['group_id'],
    )


def downgrade() -> None:
    op.drop_table('asset_group_display_mode_configuration')
    op.drop_table('relationship_display_mode_configuration')
    op.drop_table('collection_display_mode_configuration')
    op.drop_table('asset_group_display_modes')
    op.drop_table('relationship_display_modes')
    op.drop_table('collection_display_modes')
    op.drop_table('asset_group_membership')
    op.drop_table('asset_groups')
    op.drop_table('asset_collection_membership')
    op.drop_table('assets')
    op.drop_table('collection_relationships')
    op.drop_table('collections')
