"""create_regulation_tables

Revision ID: 3f9a1c2e7b10
Revises:
Create Date: 2026-10-17 09:12:41.208315

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3f9a1c2e7b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=True),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    states = op.create_table(
        'states',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('code', sa.String(length=2), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('country', sa.String(length=2), nullable=False, server_default='US'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code'),
    )

    op.create_table(
        'counties',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('state_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('fips_code', sa.String(length=5), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['state_id'], ['states.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('state_id', 'name', name='uq_counties_state_name'),
    )

    op.create_table(
        'fish_species',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('common_name', sa.String(length=100), nullable=False),
        sa.Column('scientific_name', sa.String(length=150), nullable=True),
        sa.Column('species_code', sa.String(length=10), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('common_name'),
    )

    op.create_table(
        'water_bodies',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('normalized_name', sa.String(length=200), nullable=False),
        sa.Column('water_type', sa.String(length=20), nullable=False, server_default='lake'),
        sa.Column('state_id', sa.Integer(), nullable=False),
        sa.Column('county_id', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint(
            "water_type IN ('lake', 'river', 'stream', 'pond', 'reservoir')", name='ck_water_bodies_type'
        ),
        sa.ForeignKeyConstraint(['county_id'], ['counties.id']),
        sa.ForeignKeyConstraint(['state_id'], ['states.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('state_id', 'normalized_name', name='uq_water_bodies_state_name'),
    )

    op.create_table(
        'regulation_documents',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('file_name', sa.String(length=255), nullable=False),
        sa.Column('original_file_name', sa.String(length=255), nullable=False),
        sa.Column('file_size_bytes', sa.Integer(), nullable=False),
        sa.Column('mime_type', sa.String(length=100), nullable=False),
        sa.Column('document_type', sa.String(length=50), nullable=False),
        sa.Column('upload_source', sa.String(length=50), nullable=False),
        sa.Column('blob_storage_url', sa.String(length=500), nullable=True),
        sa.Column('state_id', sa.Integer(), nullable=False),
        sa.Column('regulation_year', sa.Integer(), nullable=False),
        sa.Column('processing_status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('processing_started_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('processing_completed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('processing_error', sa.Text(), nullable=True),
        sa.Column('extracted_data', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('source_content', sa.LargeBinary(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "document_type IN ('fishing_regulations', 'special_regulations', 'emergency_closure')",
            name='ck_regulation_documents_type',
        ),
        sa.CheckConstraint(
            "processing_status IN ('pending', 'processing', 'completed', 'failed')",
            name='ck_regulation_documents_status',
        ),
        sa.ForeignKeyConstraint(['state_id'], ['states.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_regulation_documents_status', 'regulation_documents', ['processing_status'])

    op.create_table(
        'fishing_regulations',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('water_body_id', sa.Integer(), nullable=False),
        sa.Column('species_id', sa.Integer(), nullable=False),
        sa.Column('source_document_id', sa.Uuid(), nullable=True),
        sa.Column('regulation_year', sa.Integer(), nullable=False),
        sa.Column('effective_date', sa.Date(), nullable=False),
        sa.Column('expiration_date', sa.Date(), nullable=True),
        sa.Column('regulation_type', sa.String(length=30), nullable=True),
        sa.Column('daily_limit', sa.Integer(), nullable=True),
        sa.Column('possession_limit', sa.Integer(), nullable=True),
        sa.Column('minimum_size', sa.Numeric(precision=5, scale=2), nullable=True),
        sa.Column('maximum_size', sa.Numeric(precision=5, scale=2), nullable=True),
        sa.Column('size_limit_notes', sa.Text(), nullable=True),
        sa.Column('protected_slot_min', sa.Numeric(precision=5, scale=2), nullable=True),
        sa.Column('protected_slot_max', sa.Numeric(precision=5, scale=2), nullable=True),
        sa.Column('protected_slot_exceptions', sa.Integer(), nullable=True),
        sa.Column('season_open_date', sa.Date(), nullable=True),
        sa.Column('season_close_date', sa.Date(), nullable=True),
        sa.Column('is_year_round', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('season_notes', sa.Text(), nullable=True),
        sa.Column('catch_and_release_only', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('special_regulations', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('review_status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('confidence_score', sa.Numeric(precision=3, scale=2), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            '(protected_slot_min IS NULL AND protected_slot_max IS NULL) OR '
            '(protected_slot_min IS NOT NULL AND protected_slot_max IS NOT NULL '
            'AND protected_slot_min < protected_slot_max)',
            name='ck_fishing_regulations_slot',
        ),
        sa.CheckConstraint('daily_limit IS NULL OR daily_limit >= 0', name='ck_fishing_regulations_daily_limit'),
        sa.CheckConstraint(
            'possession_limit IS NULL OR possession_limit >= 0', name='ck_fishing_regulations_possession_limit'
        ),
        sa.CheckConstraint(
            "review_status IN ('pending', 'approved', 'rejected', 'needs_revision')",
            name='ck_fishing_regulations_review',
        ),
        sa.ForeignKeyConstraint(['water_body_id'], ['water_bodies.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['species_id'], ['fish_species.id']),
        sa.ForeignKeyConstraint(['source_document_id'], ['regulation_documents.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    # Only one active regulation per water body, species and year
    op.create_index(
        'uq_fishing_regulations_active',
        'fishing_regulations',
        ['water_body_id', 'species_id', 'regulation_year'],
        unique=True,
        postgresql_where=sa.text('is_active'),
    )
    op.create_index('ix_fishing_regulations_water_body', 'fishing_regulations', ['water_body_id'])

    op.bulk_insert(states, [{'code': 'MN', 'name': 'Minnesota', 'country': 'US'}])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_fishing_regulations_water_body', table_name='fishing_regulations')
    op.drop_index('uq_fishing_regulations_active', table_name='fishing_regulations')
    op.drop_table('fishing_regulations')
    op.drop_index('ix_regulation_documents_status', table_name='regulation_documents')
    op.drop_table('regulation_documents')
    op.drop_table('water_bodies')
    op.drop_table('fish_species')
    op.drop_table('counties')
    op.drop_table('states')
