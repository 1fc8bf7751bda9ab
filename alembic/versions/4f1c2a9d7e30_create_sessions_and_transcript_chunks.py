"""create_sessions_and_transcript_chunks

Revision ID: 4f1c2a9d7e30
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from pgvector.sqlalchemy import Vector
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '4f1c2a9d7e30'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the vector extension, sessions and transcript_chunks."""
    op.execute('CREATE EXTENSION IF NOT EXISTS vector')

    op.create_table(
        'sessions',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('total_transcripts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_sessions_updated_at', 'sessions', ['updated_at'])

    # No ANN index on embedding: ivfflat and hnsw stop at 2000 dimensions
    op.create_table(
        'transcript_chunks',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('session_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('ended_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('language', sa.String(length=16), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('embedding', Vector(3072), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.CheckConstraint('length(content) > 0', name='ck_transcript_chunks_content'),
        sa.ForeignKeyConstraint(['session_id'], ['sessions.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_transcript_chunks_session_id', 'transcript_chunks', ['session_id'])
    op.create_index(
        'ix_transcript_chunks_session_ended',
        'transcript_chunks',
        ['session_id', 'ended_at'],
    )


def downgrade() -> None:
    """Drop transcript_chunks and sessions."""
    op.drop_index('ix_transcript_chunks_session_ended', table_name='transcript_chunks')
    op.drop_index('ix_transcript_chunks_session_id', table_name='transcript_chunks')
    op.drop_table('transcript_chunks')
    op.drop_index('ix_sessions_updated_at', table_name='sessions')
    op.drop_table('sessions')
