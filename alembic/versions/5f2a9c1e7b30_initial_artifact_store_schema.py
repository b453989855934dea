"""Initial artifact store schema

Revision ID: 5f2a9c1e7b30
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '5f2a9c1e7b30'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('documents',
        sa.Column('document_id', sa.String(length=36), nullable=False),
        sa.Column('owner_id', sa.String(), nullable=False),
        sa.Column('original_filename', sa.String(), nullable=False),
        sa.Column('storage_path', sa.String(), nullable=False),
        sa.Column('page_count', sa.Integer(), nullable=False,
                  comment='Always equals the number of document_pages rows for this document'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('document_id')
    )

    op.create_table('document_pages',
        sa.Column('page_id', sa.String(length=36), nullable=False),
        sa.Column('document_id', sa.String(length=36), nullable=False),
        sa.Column('page_number', sa.Integer(), nullable=False, comment='1-based'),
        sa.Column('page_artifact_path', sa.String(), nullable=True),
        sa.Column('page_text', sa.Text(), nullable=False),
        sa.Column('char_count', sa.Integer(), nullable=False),
        sa.Column('section_hint', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['document_id'], ['documents.document_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('page_id'),
        sa.UniqueConstraint('document_id', 'page_number', name='uq_document_page_number')
    )

    op.create_table('assessments',
        sa.Column('seq', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('assessment_id', sa.String(length=36), nullable=False),
        sa.Column('document_id', sa.String(), nullable=False),
        sa.Column('stage_id', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('payload_document_id', sa.String(), nullable=True),
        sa.PrimaryKeyConstraint('seq'),
        sa.UniqueConstraint('assessment_id')
    )
    op.create_index('ix_assessments_document_stage_created', 'assessments',
                    ['document_id', 'stage_id', 'created_at'], unique=False)
    op.create_index('ix_assessments_payload_document_id', 'assessments', ['payload_document_id'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_assessments_payload_document_id', table_name='assessments')
    op.drop_index('ix_assessments_document_stage_created', table_name='assessments')
    op.drop_table('assessments')
    op.drop_table('document_pages')
    op.drop_table('documents')
