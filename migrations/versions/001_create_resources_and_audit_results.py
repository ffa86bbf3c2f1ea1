"""create resources and audit results

Revision ID: 001_create_resources_and_audit_results
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_create_resources_and_audit_results'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'resources',
        sa.Column('id', sa.BigInteger().with_variant(sa.Integer(), 'sqlite'), primary_key=True, autoincrement=True),
        sa.Column('resource_uid', sa.String(255).with_variant(sa.String(255, collation='C'), 'postgresql'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('state', sa.String(64), nullable=False),
        sa.Column('cloud_account_id', sa.BigInteger(), nullable=False),
        sa.Column('cloud_provider', sa.String(32), nullable=False),
        sa.Column('resource_type', sa.String(32), nullable=False),
        sa.Column('settings', sa.JSON(), nullable=True),
        sa.Column('region', sa.String(64), nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('cloud_account_id', 'resource_uid', name='uq_resources_account_uid'),
    )
    op.create_index('ix_resources_cloud_account_id', 'resources', ['cloud_account_id'])
    op.create_index('ix_resources_resource_type', 'resources', ['resource_type'])

    op.create_table(
        'audit_results',
        sa.Column('id', sa.BigInteger().with_variant(sa.Integer(), 'sqlite'), primary_key=True, autoincrement=True),
        sa.Column('rule_id', sa.String(128), nullable=False),
        sa.Column('cloud_account_id', sa.BigInteger(), nullable=False),
        sa.Column('result', sa.JSON(), nullable=False),
        sa.Column('evaluated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        'ix_audit_results_account_rule_evaluated',
        'audit_results',
        ['cloud_account_id', 'rule_id', 'evaluated_at'],
    )


def downgrade() -> None:
    op.drop_index('ix_audit_results_account_rule_evaluated', table_name='audit_results')
    op.drop_table('audit_results')
    op.drop_index('ix_resources_resource_type', table_name='resources')
    op.drop_index('ix_resources_cloud_account_id', table_name='resources')
    op.drop_table('resources')
