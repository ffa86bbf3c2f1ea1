"""create resource groups

Revision ID: 002_create_resource_groups
Revises: 001_create_resources_and_audit_results
Create Date: 2026-10-17 14:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '002_create_resource_groups'
down_revision = '001_create_resources_and_audit_results'
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'resource_groups',
        sa.Column('id', sa.BigInteger().with_variant(sa.Integer(), 'sqlite'), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('cloud_account_id', sa.BigInteger(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('cloud_account_id', 'name', name='uq_resource_groups_account_name'),
    )
    op.create_index('ix_resource_groups_cloud_account_id', 'resource_groups', ['cloud_account_id'])

    op.create_table(
        'resource_group_members',
        sa.Column(
            'group_id',
            sa.BigInteger().with_variant(sa.Integer(), 'sqlite'),
            sa.ForeignKey('resource_groups.id', ondelete='CASCADE'),
            primary_key=True,
        ),
        sa.Column(
            'resource_id',
            sa.BigInteger().with_variant(sa.Integer(), 'sqlite'),
            sa.ForeignKey('resources.id', ondelete='CASCADE'),
            primary_key=True,
        ),
    )
    op.create_index('ix_resource_group_members_resource_id', 'resource_group_members', ['resource_id'])


def downgrade() -> None:
    op.drop_index('ix_resource_group_members_resource_id', table_name='resource_group_members')
    op.drop_table('resource_group_members')
    op.drop_index('ix_resource_groups_cloud_account_id', table_name='resource_groups')
    op.drop_table('resource_groups')
