"""Initial migration

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Reference watches table
    op.create_table(
        'reference_watches',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('brand', sa.Text(), nullable=False),
        sa.Column('model_name', sa.Text(), nullable=False),
        sa.Column('collection_family', sa.Text(), nullable=True),
        sa.Column('reference_number', sa.Text(), nullable=False),
        sa.Column('watch_identity', postgresql.JSONB(), nullable=True),
        sa.Column('case_material', sa.Text(), nullable=True),
        sa.Column('dial_color', sa.Text(), nullable=True),
        sa.Column('bracelet_type', sa.Text(), nullable=True),
        sa.Column('physical_observations', postgresql.JSONB(), nullable=True),
        sa.Column('condition_baseline', postgresql.JSONB(), nullable=True),
        sa.Column('authenticity_indicators', postgresql.JSONB(), nullable=True),
        sa.Column('verification_status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('verified_by', sa.Text(), nullable=True),
        sa.Column('verified_at', sa.DateTime(), nullable=True),
        sa.Column('source', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('brand', 'model_name', 'reference_number', name='uq_reference_per_brand'),
        sa.CheckConstraint(
            "verification_status IN ('pending', 'verified', 'needs_review')",
            name='ck_reference_verification_status',
        ),
    )

    # Analysis history table
    op.create_table(
        'analysis_history',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('analysis_data', postgresql.JSONB(), nullable=False),
        sa.Column('photo_urls', postgresql.JSONB(), nullable=False, server_default='[]'),
        sa.Column('primary_photo_url', sa.Text(), nullable=True),
        sa.Column('brand', sa.Text(), nullable=True),
        sa.Column('model_name', sa.Text(), nullable=True),
        sa.Column('reference_number', sa.Text(), nullable=True),
        sa.Column('confidence_level', sa.String(length=32), nullable=True),
        sa.Column('overall_grade', sa.String(length=32), nullable=True),
        sa.Column('match_results', postgresql.JSONB(), nullable=True),
        sa.Column('best_match_score', sa.Numeric(precision=5, scale=2), nullable=True),
        sa.Column('session_id', sa.Text(), nullable=True),
        sa.Column('user_id', sa.Text(), nullable=True),
        sa.Column('photo_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('analysis_duration_ms', sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )

    # Indexes
    op.create_index('idx_ref_watches_reference', 'reference_watches', ['reference_number'])
    op.create_index('idx_ref_watches_status', 'reference_watches', ['verification_status'])
    op.create_index('idx_ref_watches_updated', 'reference_watches', ['updated_at'])
    op.execute(
        "CREATE INDEX idx_ref_watches_brand_lower ON reference_watches (lower(trim(brand)))"
    )
    op.create_index('idx_analysis_history_created_at', 'analysis_history', ['created_at'])
    op.create_index('idx_analysis_history_brand', 'analysis_history', ['brand'])
    op.create_index('idx_analysis_history_confidence', 'analysis_history', ['confidence_level'])
    op.create_index('idx_analysis_history_session', 'analysis_history', ['session_id'])


def downgrade() -> None:
    # Drop indexes
    op.drop_index('idx_analysis_history_session', table_name='analysis_history')
    op.drop_index('idx_analysis_history_confidence', table_name='analysis_history')
    op.drop_index('idx_analysis_history_brand', table_name='analysis_history')
    op.drop_index('idx_analysis_history_created_at', table_name='analysis_history')
    op.drop_index('idx_ref_watches_brand_lower', table_name='reference_watches')
    op.drop_index('idx_ref_watches_updated', table_name='reference_watches')
    op.drop_index('idx_ref_watches_status', table_name='reference_watches')
    op.drop_index('idx_ref_watches_reference', table_name='reference_watches')

    # Drop tables
    op.drop_table('analysis_history')
    op.drop_table('reference_watches')
