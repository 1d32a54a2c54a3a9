"""initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import ARRAY, JSONB

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade() -> None:
    # Venue registry
    op.create_table(
        'cinemas',
        sa.Column('id', sa.String(length=100), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('chain', sa.String(length=50), nullable=True),
        sa.Column('website', sa.String(length=500), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('last_scraped_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_cinemas_chain'), 'cinemas', ['chain'], unique=False)

    # Films
    op.create_table(
        'films',
        sa.Column('id', sa.String(length=100), nullable=False),
        sa.Column('title', sa.String(length=500), nullable=False),
        sa.Column('year', sa.Integer(), nullable=True),
        sa.Column('canonical_key', sa.String(length=64), nullable=False),
        sa.Column('tmdb_id', sa.Integer(), nullable=True),
        sa.Column('poster_url', sa.String(length=500), nullable=True),
        sa.Column('synopsis', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_films_title'), 'films', ['title'], unique=False)
    op.create_index(op.f('ix_films_canonical_key'), 'films', ['canonical_key'], unique=False)
    op.create_index(op.f('ix_films_tmdb_id'), 'films', ['tmdb_id'], unique=False)

    # Screenings
    op.create_table(
        'screenings',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('cinema_id', sa.String(length=100), nullable=False),
        sa.Column('film_id', sa.String(length=100), nullable=False),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('booking_url', sa.String(length=1000), nullable=True),
        sa.Column('source_id', sa.String(length=200), nullable=True),
        sa.Column('raw_title', sa.Text(), nullable=False),
        sa.Column('display_title', sa.String(length=500), nullable=False),
        sa.Column('canonical_title', sa.String(length=500), nullable=False),
        sa.Column('version', sa.String(length=100), nullable=True),
        sa.Column('classification', sa.String(length=20), nullable=False, server_default='normal'),
        sa.Column('extraction_confidence', sa.Float(), nullable=False, server_default='1.0'),
        sa.Column('extraction_method', sa.String(length=100), nullable=True),
        sa.Column('festival_slug', sa.String(length=100), nullable=True),
        sa.Column('festival_section', sa.String(length=100), nullable=True),
        sa.Column('scraped_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['cinema_id'], ['cinemas.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['film_id'], ['films.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('cinema_id', 'start_time', 'canonical_title', name='uq_screening_cinema_time_title')
    )
    op.create_index(op.f('ix_screenings_cinema_id'), 'screenings', ['cinema_id'], unique=False)
    op.create_index(op.f('ix_screenings_film_id'), 'screenings', ['film_id'], unique=False)
    op.create_index(op.f('ix_screenings_start_time'), 'screenings', ['start_time'], unique=False)
    op.create_index(op.f('ix_screenings_festival_slug'), 'screenings', ['festival_slug'], unique=False)

    # Festival editions
    op.create_table(
        'festivals',
        sa.Column('id', sa.String(length=100), nullable=False),
        sa.Column('slug', sa.String(length=100), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('short_name', sa.String(length=50), nullable=True),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('venues', ARRAY(sa.String()), nullable=True),
        sa.Column('website', sa.String(length=500), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug')
    )
    op.create_index(op.f('ix_festivals_year'), 'festivals', ['year'], unique=False)
    op.create_index(op.f('ix_festivals_is_active'), 'festivals', ['is_active'], unique=False)

    # Scraper health history
    op.create_table(
        'health_snapshots',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('cinema_id', sa.String(length=100), nullable=False),
        sa.Column('computed_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('total_future_screenings', sa.Integer(), nullable=False),
        sa.Column('next_7d_screenings', sa.Integer(), nullable=False),
        sa.Column('chain_median', sa.Float(), nullable=True),
        sa.Column('history_baseline', sa.Float(), nullable=True),
        sa.Column('last_scraped_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('hours_since_last_scrape', sa.Integer(), nullable=True),
        sa.Column('freshness_score', sa.Integer(), nullable=False),
        sa.Column('volume_score', sa.Integer(), nullable=False),
        sa.Column('overall_score', sa.Integer(), nullable=False),
        sa.Column('is_anomaly', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('anomaly_reasons', JSONB(), nullable=False, server_default='[]'),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.ForeignKeyConstraint(['cinema_id'], ['cinemas.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_health_snapshots_cinema_id'), 'health_snapshots', ['cinema_id'], unique=False)
    op.create_index(op.f('ix_health_snapshots_computed_at'), 'health_snapshots', ['computed_at'], unique=False)
    op.create_index(op.f('ix_health_snapshots_is_anomaly'), 'health_snapshots', ['is_anomaly'], unique=False)

    # Manual merge block-list
    op.create_table(
        'film_merge_blocks',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('film_id_a', sa.String(length=100), nullable=False),
        sa.Column('film_id_b', sa.String(length=100), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['film_id_a'], ['films.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['film_id_b'], ['films.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('film_id_a', 'film_id_b', name='uq_film_merge_block_pair'),
        sa.CheckConstraint('film_id_a < film_id_b', name='ck_film_merge_block_order')
    )


def downgrade() -> None:
    op.drop_table('film_merge_blocks')
    op.drop_table('health_snapshots')
    op.drop_table('festivals')
    op.drop_table('screenings')
    op.drop_table('films')
    op.drop_table('cinemas')
