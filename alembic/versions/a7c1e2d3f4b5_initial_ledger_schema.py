"""initial_ledger_schema

Revision ID: a7c1e2d3f4b5
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic
revision: str = "a7c1e2d3f4b5"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'user',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=True),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        sa.Column('role', sa.String(length=5), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('user', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_user_email'), ['email'], unique=True)

    op.create_table(
        'member',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=True),
        sa.Column('member_code', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('father_name', sa.String(length=200), nullable=True),
        sa.Column('address1', sa.Text(), nullable=True),
        sa.Column('address2', sa.Text(), nullable=True),
        sa.Column('account_number', sa.String(length=50), nullable=True),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('account_number')
    )
    with op.batch_alter_table('member', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_member_user_id'), ['user_id'], unique=True)
        batch_op.create_index(batch_op.f('ix_member_member_code'), ['member_code'], unique=True)

    op.create_table(
        'savings',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('member_id', sa.Uuid(), nullable=False),
        sa.Column('total_amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['member_id'], ['member.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('savings', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_savings_member_id'), ['member_id'], unique=True)

    op.create_table(
        'savings_transaction',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('savings_id', sa.Uuid(), nullable=False),
        sa.Column('date', sa.DateTime(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('total', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['savings_id'], ['savings.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('savings_transaction', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_savings_transaction_savings_id'), ['savings_id'], unique=False)

    op.create_table(
        'cycle',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('cycle_number', sa.Integer(), nullable=False),
        sa.Column('start_date', sa.DateTime(), nullable=False),
        sa.Column('monthly_amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('total_members', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('current_month', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('cycle', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_cycle_cycle_number'), ['cycle_number'], unique=True)

    op.create_table(
        'loan_sequence',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('cycle_id', sa.Uuid(), nullable=False),
        sa.Column('member_id', sa.Uuid(), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('loan_amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('status', sa.String(length=9), nullable=False),
        sa.Column('disbursed_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['cycle_id'], ['cycle.id'], ),
        sa.ForeignKeyConstraint(['member_id'], ['member.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('cycle_id', 'month', name='uq_loan_sequence_cycle_month')
    )
    with op.batch_alter_table('loan_sequence', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_loan_sequence_cycle_id'), ['cycle_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_loan_sequence_member_id'), ['member_id'], unique=False)

    op.create_table(
        'loan',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('member_id', sa.Uuid(), nullable=False),
        sa.Column('cycle_id', sa.Uuid(), nullable=True),
        sa.Column('sequence_id', sa.Uuid(), nullable=True),
        sa.Column('principal', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('months', sa.Integer(), nullable=False),
        sa.Column('remaining', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('current_month', sa.Integer(), nullable=False),
        sa.Column('total_principal_paid', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('late_payment_penalty', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('status', sa.String(length=9), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('guarantor1_id', sa.Uuid(), nullable=True),
        sa.Column('guarantor2_id', sa.Uuid(), nullable=True),
        sa.Column('disbursement_method', sa.String(length=13), nullable=True),
        sa.Column('disbursed_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['member_id'], ['member.id'], ),
        sa.ForeignKeyConstraint(['cycle_id'], ['cycle.id'], ),
        sa.ForeignKeyConstraint(['sequence_id'], ['loan_sequence.id'], ),
        sa.ForeignKeyConstraint(['guarantor1_id'], ['member.id'], ),
        sa.ForeignKeyConstraint(['guarantor2_id'], ['member.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('loan', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_loan_member_id'), ['member_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_loan_cycle_id'), ['cycle_id'], unique=False)

    op.create_table(
        'loan_transaction',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('loan_id', sa.Uuid(), nullable=False),
        sa.Column('date', sa.DateTime(), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('penalty', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('remaining', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['loan_id'], ['loan.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('loan_transaction', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_loan_transaction_loan_id'), ['loan_id'], unique=False)

    op.create_table(
        'monthly_statement',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('pdf_url', sa.String(length=500), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('month', 'year', name='uq_monthly_statement_month_year')
    )


def downgrade() -> None:
    op.drop_table('monthly_statement')
    with op.batch_alter_table('loan_transaction', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_loan_transaction_loan_id'))
    op.drop_table('loan_transaction')
    with op.batch_alter_table('loan', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_loan_cycle_id'))
        batch_op.drop_index(batch_op.f('ix_loan_member_id'))
    op.drop_table('loan')
    with op.batch_alter_table('loan_sequence', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_loan_sequence_member_id'))
        batch_op.drop_index(batch_op.f('ix_loan_sequence_cycle_id'))
    op.drop_table('loan_sequence')
    with op.batch_alter_table('cycle', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_cycle_cycle_number'))
    op.drop_table('cycle')
    with op.batch_alter_table('savings_transaction', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_savings_transaction_savings_id'))
    op.drop_table('savings_transaction')
    with op.batch_alter_table('savings', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_savings_member_id'))
    op.drop_table('savings')
    with op.batch_alter_table('member', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_member_member_code'))
        batch_op.drop_index(batch_op.f('ix_member_user_id'))
    op.drop_table('member')
    with op.batch_alter_table('user', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_user_email'))
    op.drop_table('user')
