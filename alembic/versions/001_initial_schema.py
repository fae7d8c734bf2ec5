"""initial_schema

Revision ID: 001_initial_schema
Revises: 
Create Date: 2026-10-19 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None

user_role = sa.Enum('EMPLOYEE', 'MANAGER', 'FINANCE', 'ADMIN', name='userrole')
claim_type = sa.Enum(
    'TRAVEL', 'BUSINESS_PROMOTION', 'CONVEYANCE', 'MOBILE_BILL', 'RELOCATION', 'OTHER',
    name='claimtype',
)
claim_status = sa.Enum(
    'DRAFT', 'SUBMITTED', 'APPROVED', 'REJECTED', 'PROCESSING', 'PAID',
    name='claimstatus',
)
approval_status = sa.Enum('PENDING', 'APPROVED', 'REJECTED', name='approvalstatus')


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=100), nullable=False),
        sa.Column('hashed_password', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('role', user_role, nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('department', sa.String(length=255), nullable=False),
        sa.Column('designation', sa.String(length=255), nullable=False),
        sa.Column('branch', sa.String(length=255), nullable=False),
        sa.Column('e_code', sa.String(length=50), nullable=False),
        sa.Column('band', sa.String(length=10), nullable=False),
        sa.Column('business_unit', sa.String(length=255), nullable=False),
        sa.Column('manager_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['manager_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)
    op.create_index(op.f('ix_users_username'), 'users', ['username'], unique=True)
    op.create_index(op.f('ix_users_department'), 'users', ['department'], unique=False)

    op.create_table(
        'claims',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('claim_number', sa.String(length=50), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('type', claim_type, nullable=False),
        sa.Column('status', claim_status, nullable=False),
        sa.Column('total_amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('approved_amount', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('details', sa.JSON(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('current_approver_id', sa.Integer(), nullable=True),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejected_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['current_approver_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_claims_id'), 'claims', ['id'], unique=False)
    op.create_index(op.f('ix_claims_claim_number'), 'claims', ['claim_number'], unique=True)
    op.create_index(op.f('ix_claims_user_id'), 'claims', ['user_id'], unique=False)
    op.create_index(op.f('ix_claims_status'), 'claims', ['status'], unique=False)
    op.create_index(op.f('ix_claims_current_approver_id'), 'claims', ['current_approver_id'], unique=False)

    op.create_table(
        'approvals',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('claim_id', sa.Integer(), nullable=False),
        sa.Column('approver_id', sa.Integer(), nullable=False),
        sa.Column('approval_level', sa.Integer(), nullable=False),
        sa.Column('status', approval_status, nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('next_approver_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['claim_id'], ['claims.id']),
        sa.ForeignKeyConstraint(['approver_id'], ['users.id']),
        sa.ForeignKeyConstraint(['next_approver_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_approvals_id'), 'approvals', ['id'], unique=False)
    op.create_index(op.f('ix_approvals_claim_id'), 'approvals', ['claim_id'], unique=False)
    op.create_index(op.f('ix_approvals_approver_id'), 'approvals', ['approver_id'], unique=False)


def downgrade() -> None:
    op.drop_table('approvals')
    op.drop_table('claims')
    op.drop_table('users')
    bind = op.get_bind()
    for enum_type in (approval_status, claim_status, claim_type, user_role):
        enum_type.drop(bind, checkfirst=True)
