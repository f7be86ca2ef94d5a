"""create system logs table

Revision ID: 003
Revises: 002
Create Date: 2024-01-20 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '003'
down_revision = '002'
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Append-only audit trail
    op.create_table(
        'system_logs',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('level', sa.String(10), nullable=False),
        sa.Column('category', sa.String(20), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('details', sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')),
        sa.Column('user_id', sa.Integer()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('idx_system_logs_created', 'system_logs', ['created_at'])
    op.create_index('idx_system_logs_category_level', 'system_logs', ['category', 'level'])


def downgrade() -> None:
    op.drop_index('idx_system_logs_category_level', table_name='system_logs')
    op.drop_index('idx_system_logs_created', table_name='system_logs')
    op.drop_table('system_logs')
