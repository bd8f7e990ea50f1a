"""Baseline migration - companies, profiles, tickets, comments, attachments, feedback

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-17

Portable DDL (PostgreSQL in production, SQLite for local dev).
Enum-like columns are stored as strings.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_baseline'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")
TIMESTAMP = sa.DateTime(timezone=True)


def upgrade() -> None:
    """Create support desk tables."""

    # ==========================================================================
    # Tenancy & identity
    # ==========================================================================
    op.create_table(
        'companies',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False, unique=True),
        sa.Column('created_at', TIMESTAMP, nullable=False),
    )

    op.create_table(
        'profiles',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(320), nullable=False, unique=True),
        sa.Column('role', sa.String(8), nullable=False),
        sa.Column(
            'company_id', sa.Uuid(),
            sa.ForeignKey('companies.id', ondelete='SET NULL'), nullable=True,
        ),
        sa.Column('created_at', TIMESTAMP, nullable=False),
    )
    op.create_index('idx_profiles_company_role', 'profiles', ['company_id', 'role'])

    # ==========================================================================
    # Tickets
    # ==========================================================================
    op.create_table(
        'tickets',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('status', sa.String(11), nullable=False),
        sa.Column('priority', sa.String(6), nullable=False),
        sa.Column(
            'customer_id', sa.Uuid(),
            sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column(
            'assignee_id', sa.Uuid(),
            sa.ForeignKey('profiles.id', ondelete='SET NULL'), nullable=True,
        ),
        sa.Column(
            'company_id', sa.Uuid(),
            sa.ForeignKey('companies.id', ondelete='SET NULL'), nullable=True,
        ),
        sa.Column('ai_metadata', JSON_TYPE, nullable=True),
        sa.Column('created_at', TIMESTAMP, nullable=False),
        sa.Column('updated_at', TIMESTAMP, nullable=False),
    )
    op.create_index('idx_tickets_customer', 'tickets', ['customer_id', 'created_at'])
    op.create_index('idx_tickets_assignee', 'tickets', ['assignee_id', 'created_at'])
    op.create_index('idx_tickets_company', 'tickets', ['company_id', 'created_at'])

    op.create_table(
        'comments',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'ticket_id', sa.Uuid(),
            sa.ForeignKey('tickets.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column(
            'user_id', sa.Uuid(),
            sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('ai_generated', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('ai_metadata', JSON_TYPE, nullable=True),
        sa.Column('created_at', TIMESTAMP, nullable=False),
    )
    op.create_index('idx_comments_ticket_created', 'comments', ['ticket_id', 'created_at'])

    # ==========================================================================
    # Attachments (exactly one parent)
    # ==========================================================================
    op.create_table(
        'attachments',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('file_name', sa.String(255), nullable=False),
        sa.Column('file_type', sa.String(100), nullable=False),
        sa.Column('file_size', sa.Integer(), nullable=False),
        sa.Column('file_path', sa.String(512), nullable=False, unique=True),
        sa.Column(
            'ticket_id', sa.Uuid(),
            sa.ForeignKey('tickets.id', ondelete='CASCADE'), nullable=True,
        ),
        sa.Column(
            'comment_id', sa.Uuid(),
            sa.ForeignKey('comments.id', ondelete='CASCADE'), nullable=True,
        ),
        sa.Column(
            'uploaded_by', sa.Uuid(),
            sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('created_at', TIMESTAMP, nullable=False),
        sa.CheckConstraint(
            '(ticket_id IS NULL) <> (comment_id IS NULL)',
            name='ck_attachments_single_parent',
        ),
    )
    op.create_index('idx_attachments_ticket', 'attachments', ['ticket_id'])
    op.create_index('idx_attachments_comment', 'attachments', ['comment_id'])

    # ==========================================================================
    # Feedback (one per ticket and user)
    # ==========================================================================
    op.create_table(
        'feedback',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'ticket_id', sa.Uuid(),
            sa.ForeignKey('tickets.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column(
            'user_id', sa.Uuid(),
            sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('rating', sa.Integer(), nullable=False),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('created_at', TIMESTAMP, nullable=False),
        sa.Column('updated_at', TIMESTAMP, nullable=False),
        sa.UniqueConstraint('ticket_id', 'user_id', name='uq_feedback_ticket_user'),
        sa.CheckConstraint('rating BETWEEN 1 AND 5', name='ck_feedback_rating_range'),
    )


def downgrade() -> None:
    op.drop_table('feedback')
    op.drop_table('attachments')
    op.drop_table('comments')
    op.drop_table('tickets')
    op.drop_table('profiles')
    op.drop_table('companies')
