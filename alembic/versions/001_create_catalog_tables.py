"""Create shipping_structures and products tables.

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create shipping_structures and products tables."""
    # Shipping structures (managed by the shipping module, read by the catalog)
    op.create_table(
        'shipping_structures',
        sa.Column('id', postgresql.UUID(as_uuid=False), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('rules', sa.JSON(), nullable=False, server_default='[]'),
        sa.Column('is_default', sa.Boolean(), nullable=False, server_default='false'),
    )

    # Products table
    op.create_table(
        'products',
        sa.Column('id', postgresql.UUID(as_uuid=False), primary_key=True),
        sa.Column('name', sa.String(500), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('brand', sa.String(100), nullable=True, index=True),
        sa.Column('category', sa.String(200), nullable=True, index=True),
        sa.Column('sku', sa.String(100), nullable=False),
        sa.Column('price', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('tags', sa.JSON(), nullable=False, server_default='[]'),
        sa.Column('images', sa.JSON(), nullable=False, server_default='[]'),
        sa.Column('size_chart', sa.JSON(), nullable=True),
        sa.Column('shipping_structure_id', postgresql.UUID(as_uuid=False),
                  sa.ForeignKey('shipping_structures.id', ondelete='SET NULL'), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true', index=True),
        sa.Column('average_rating', sa.Float(), nullable=False, server_default='0'),
        sa.Column('review_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('version', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    )

    # SKU is unique across all products
    op.create_unique_constraint('uq_products_sku', 'products', ['sku'])


def downgrade() -> None:
    """Drop products and shipping_structures tables."""
    op.drop_table('products')
    op.drop_table('shipping_structures')
