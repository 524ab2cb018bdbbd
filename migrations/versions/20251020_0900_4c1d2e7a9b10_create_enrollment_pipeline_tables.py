"""create enrollment pipeline tables

Revision ID: 4c1d2e7a9b10
Revises:
Create Date: 2025-10-20 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '4c1d2e7a9b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

SIMPLIFIED_STATUSES = "'pending','waiting_payment','payment_confirmed','converted','expired','blocked','cancelled','failed'"
ENROLLMENT_STATUSES = "'pending_payment','waiting_payment','payment_confirmed','active','completed','cancelled','suspended','blocked'"


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('username', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('display_name', sa.String(length=100), nullable=True),
        sa.Column('cpf', sa.String(length=14), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='active'),
        sa.Column('portal_type', sa.String(length=16), nullable=False, server_default='student'),
        sa.Column('role', sa.String(length=16), nullable=False, server_default='student'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('last_login', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint("portal_type IN ('student','admin','partner')", name='ck_user_portal_type'),
        sa.CheckConstraint("status IN ('active','inactive','blocked')", name='ck_user_status'),
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_cpf', 'users', ['cpf'])

    op.create_table(
        'courses',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('code', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='draft'),
        sa.Column('workload', sa.Integer(), nullable=True),
        sa.Column('price', sa.Numeric(12, 2), nullable=True),
        sa.Column('contract_type', sa.String(length=32), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code'),
        sa.CheckConstraint("status IN ('draft','published','archived')", name='ck_course_status'),
    )

    op.create_table(
        'simplified_enrollments',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('uuid', sa.String(length=36), nullable=False),
        sa.Column('course_id', sa.Integer(), nullable=False),
        sa.Column('student_name', sa.String(length=255), nullable=False),
        sa.Column('student_email', sa.String(length=255), nullable=False),
        sa.Column('student_phone', sa.String(length=32), nullable=True),
        sa.Column('student_cpf', sa.String(length=14), nullable=True),
        sa.Column('full_price', sa.Numeric(12, 2), nullable=True),
        sa.Column('discount_price', sa.Numeric(12, 2), nullable=True),
        sa.Column('status', sa.String(length=24), nullable=False, server_default='pending'),
        sa.Column('expires_at', sa.DateTime(), nullable=True),
        sa.Column('payment_gateway', sa.String(length=16), nullable=False, server_default='asaas'),
        sa.Column('payment_external_id', sa.String(length=64), nullable=True),
        sa.Column('payment_url', sa.String(length=512), nullable=True),
        sa.Column('student_id', sa.Integer(), nullable=True),
        sa.Column('converted_enrollment_id', sa.Integer(), nullable=True),
        sa.Column('processed_at', sa.DateTime(), nullable=True),
        sa.Column('created_by_id', sa.Integer(), nullable=True),
        sa.Column('observations', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['course_id'], ['courses.id']),
        sa.ForeignKeyConstraint(['student_id'], ['users.id']),
        sa.ForeignKeyConstraint(['created_by_id'], ['users.id']),
        sa.UniqueConstraint('uuid'),
        # At most one formal enrollment per simplified enrollment
        sa.UniqueConstraint('converted_enrollment_id'),
        sa.CheckConstraint(f"status IN ({SIMPLIFIED_STATUSES})", name='ck_simplified_enrollment_status'),
    )
    op.create_index('ix_simplified_enrollments_course_id', 'simplified_enrollments', ['course_id'])
    op.create_index('ix_simplified_enrollments_student_email', 'simplified_enrollments', ['student_email'])
    op.create_index('ix_simplified_enrollments_status', 'simplified_enrollments', ['status'])
    op.create_index('ix_simplified_enrollments_payment_external_id', 'simplified_enrollments', ['payment_external_id'])
    op.create_index('ix_simplified_enrollments_student_id', 'simplified_enrollments', ['student_id'])

    op.create_table(
        'enrollments',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('code', sa.String(length=32), nullable=False),
        sa.Column('simplified_enrollment_id', sa.Integer(), nullable=True),
        sa.Column('student_id', sa.Integer(), nullable=False),
        sa.Column('course_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('payment_gateway', sa.String(length=16), nullable=False, server_default='asaas'),
        sa.Column('payment_external_id', sa.String(length=64), nullable=True),
        sa.Column('status', sa.String(length=24), nullable=False, server_default='active'),
        sa.Column('enrollment_date', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('created_by_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['simplified_enrollment_id'], ['simplified_enrollments.id']),
        sa.ForeignKeyConstraint(['student_id'], ['users.id']),
        sa.ForeignKeyConstraint(['course_id'], ['courses.id']),
        sa.UniqueConstraint('code'),
        sa.UniqueConstraint('simplified_enrollment_id'),
        sa.CheckConstraint(f"status IN ({ENROLLMENT_STATUSES})", name='ck_enrollment_status'),
    )
    op.create_index('ix_enrollments_student_id', 'enrollments', ['student_id'])
    op.create_index('ix_enrollments_course_id', 'enrollments', ['course_id'])
    op.create_index('ix_enrollments_student_course', 'enrollments', ['student_id', 'course_id'])

    # Circular link, added once both tables exist
    op.create_foreign_key(
        'fk_simplified_enrollments_converted_enrollment',
        'simplified_enrollments', 'enrollments',
        ['converted_enrollment_id'], ['id'],
    )

    op.create_table(
        'simplified_enrollment_status_logs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('simplified_enrollment_id', sa.Integer(), nullable=False),
        sa.Column('old_status', sa.String(length=24), nullable=False),
        sa.Column('new_status', sa.String(length=24), nullable=False),
        sa.Column('reason', sa.String(length=512), nullable=True),
        sa.Column('gateway_data', sa.JSON(), nullable=True),
        sa.Column('created_by_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['simplified_enrollment_id'], ['simplified_enrollments.id']),
    )
    op.create_index(
        'ix_simplified_enrollment_status_logs_simplified_enrollment_id',
        'simplified_enrollment_status_logs',
        ['simplified_enrollment_id']
    )
    op.create_index(
        'ix_status_logs_enrollment_created',
        'simplified_enrollment_status_logs',
        ['simplified_enrollment_id', 'created_at']
    )

    op.create_table(
        'educational_contracts',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('enrollment_reference', sa.String(length=36), nullable=False),
        sa.Column('enrollment_id', sa.Integer(), nullable=True),
        sa.Column('student_id', sa.Integer(), nullable=False),
        sa.Column('course_id', sa.Integer(), nullable=False),
        sa.Column('contract_number', sa.String(length=64), nullable=False),
        sa.Column('contract_type', sa.String(length=32), nullable=False, server_default='GRADUACAO'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('total_value', sa.Numeric(12, 2), nullable=False),
        sa.Column('installments', sa.Integer(), nullable=False),
        sa.Column('installment_value', sa.Numeric(12, 2), nullable=False),
        sa.Column('discount', sa.Numeric(5, 2), nullable=False, server_default='0'),
        sa.Column('payment_method', sa.String(length=32), nullable=False),
        sa.Column('start_date', sa.DateTime(), nullable=False),
        sa.Column('end_date', sa.DateTime(), nullable=False),
        sa.Column('campus', sa.String(length=128), nullable=True),
        sa.Column('signature_date', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['enrollment_id'], ['enrollments.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['student_id'], ['users.id']),
        sa.ForeignKeyConstraint(['course_id'], ['courses.id']),
        # One contract per simplified enrollment
        sa.UniqueConstraint('enrollment_reference'),
        sa.UniqueConstraint('contract_number'),
        sa.CheckConstraint('installments > 0', name='ck_contract_installments_positive'),
        sa.CheckConstraint('total_value >= 0', name='ck_contract_total_positive'),
        sa.CheckConstraint("status IN ('pending','signed','cancelled','expired')", name='ck_contract_status'),
    )
    op.create_index('ix_educational_contracts_enrollment_id', 'educational_contracts', ['enrollment_id'])
    op.create_index('ix_educational_contracts_student_id', 'educational_contracts', ['student_id'])
    op.create_index('ix_educational_contracts_course_id', 'educational_contracts', ['course_id'])
    op.create_index('ix_contracts_student_course', 'educational_contracts', ['student_id', 'course_id'])


def downgrade():
    op.drop_table('educational_contracts')
    op.drop_table('simplified_enrollment_status_logs')
    op.drop_constraint('fk_simplified_enrollments_converted_enrollment', 'simplified_enrollments', type_='foreignkey')
    op.drop_table('enrollments')
    op.drop_table('simplified_enrollments')
    op.drop_table('courses')
    op.drop_table('users')
