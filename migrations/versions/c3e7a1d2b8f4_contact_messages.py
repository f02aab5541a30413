"""contact_messages

Revision ID: c3e7a1d2b8f4
Revises: a1c4e2f9d3b0
Create Date: 2026-10-20 10:03:17.402951

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'c3e7a1d2b8f4'
down_revision: Union[str, Sequence[str], None] = 'a1c4e2f9d3b0'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'contact_messages',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('message', sa.String(length=250), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_contact_messages_email', 'contact_messages', ['email'])


def downgrade() -> None:
    op.drop_index('ix_contact_messages_email', table_name='contact_messages')
    op.drop_table('contact_messages')
