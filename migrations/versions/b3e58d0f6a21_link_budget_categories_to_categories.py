"""link budget categories to categories

Adds budget_categories.category_id and fills it from the exact-name match
against categories.name that spend aggregation relied on before.

Revision ID: b3e58d0f6a21
Revises: 4a7c1e9b2d10
Create Date: 2026-10-02 16:45:09.118340

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'b3e58d0f6a21'
down_revision = '4a7c1e9b2d10'
branch_labels = None
depends_on = None


def upgrade():
    with op.batch_alter_table('budget_categories', schema=None) as batch_op:
        batch_op.add_column(sa.Column('category_id', sa.Integer(), nullable=True))
        batch_op.create_index(batch_op.f('ix_budget_categories_category_id'), ['category_id'], unique=False)
        batch_op.create_foreign_key(
            'fk_budget_categories_category_id', 'categories', ['category_id'], ['id'], ondelete='SET NULL'
        )

    op.execute(
        'UPDATE budget_categories SET category_id = '
        '(SELECT categories.id FROM categories WHERE categories.name = budget_categories.name) '
        'WHERE category_id IS NULL'
    )


def downgrade():
    with op.batch_alter_table('budget_categories', schema=None) as batch_op:
        batch_op.drop_constraint('fk_budget_categories_category_id', type_='foreignkey')
        batch_op.drop_index(batch_op.f('ix_budget_categories_category_id'))
        batch_op.drop_column('category_id')
