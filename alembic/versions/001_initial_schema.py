"""Initial schema for the roster portal

Revision ID: 001_initial_schema
Revises: 
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create students table
    op.create_table(
        'students',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('student_number', sa.String(length=64), nullable=False,
                  comment='External student identifier from rosters'),
        sa.Column('name', sa.String(length=255), nullable=False, comment='Display name'),
        sa.Column('section', sa.String(length=100), server_default='', nullable=True,
                  comment='Section / class label'),
        sa.Column('email', sa.String(length=255), nullable=True, comment='Optional contact email'),
        sa.Column('created_at', sa.TIMESTAMP(), server_default=sa.text('CURRENT_TIMESTAMP'),
                  nullable=False, comment='First sighting timestamp'),
        sa.Column('updated_at', sa.TIMESTAMP(), server_default=sa.text('CURRENT_TIMESTAMP'),
                  nullable=False, comment='Last modification timestamp'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('student_number'),
        comment='Students identified by their external student number'
    )
    op.create_index('idx_students_name', 'students', ['name'])

    # Create worksheets table
    op.create_table(
        'worksheets',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False, comment='Sheet name'),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('upload_date', sa.TIMESTAMP(), server_default=sa.text('CURRENT_TIMESTAMP'),
                  nullable=False, comment='Last import timestamp'),
        sa.Column('file_name', sa.String(length=255), nullable=True, comment='Original workbook filename'),
        sa.Column('total_records', sa.Integer(), server_default='0', nullable=False,
                  comment='Rows the sheet contributed on its last import'),
        sa.PrimaryKeyConstraint('id'),
        comment='One imported sheet of an uploaded workbook'
    )
    op.create_index('idx_worksheets_name_file', 'worksheets', ['name', 'file_name'])
    op.create_index('idx_worksheets_upload_date', 'worksheets', ['upload_date'])

    # Create student_data table
    op.create_table(
        'student_data',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('student_id', sa.Integer(), nullable=False),
        sa.Column('worksheet_id', sa.Integer(), nullable=False),
        sa.Column('data_key', sa.String(length=255), nullable=False, comment='Literal column header text'),
        sa.Column('data_value', sa.Text(), nullable=True, comment='Cell text'),
        sa.Column('created_at', sa.TIMESTAMP(), server_default=sa.text('CURRENT_TIMESTAMP'),
                  nullable=False),
        sa.ForeignKeyConstraint(['student_id'], ['students.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['worksheet_id'], ['worksheets.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('student_id', 'worksheet_id', 'data_key', name='uq_student_data_key'),
        comment='Flexible key/value storage of roster cells'
    )
    op.create_index('idx_student_data_student', 'student_data', ['student_id'])
    op.create_index('idx_student_data_worksheet', 'student_data', ['worksheet_id'])

    # Create upload_history table
    op.create_table(
        'upload_history',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('file_name', sa.String(length=255), nullable=False, comment='Stored (temporary) filename'),
        sa.Column('original_name', sa.String(length=255), nullable=False, comment='Filename as uploaded'),
        sa.Column('file_size', sa.Integer(), nullable=True, comment='Size in bytes'),
        sa.Column('records_processed', sa.Integer(), nullable=True,
                  comment='Rows imported across all worksheets'),
        sa.Column('upload_date', sa.TIMESTAMP(), server_default=sa.text('CURRENT_TIMESTAMP'),
                  nullable=False),
        sa.Column('status', sa.String(length=30), server_default='completed', nullable=False,
                  comment='completed or completed_with_errors'),
        sa.CheckConstraint("status IN ('completed', 'completed_with_errors')",
                           name='upload_history_status_check'),
        sa.PrimaryKeyConstraint('id'),
        comment='Audit log of processed spreadsheet uploads'
    )
    op.create_index('idx_upload_history_upload_date', 'upload_history', ['upload_date'])

    # Create admin_users table
    op.create_table(
        'admin_users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('username', sa.String(length=100), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(), server_default=sa.text('CURRENT_TIMESTAMP'),
                  nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username')
    )


def downgrade() -> None:
    op.drop_table('admin_users')

    op.drop_index('idx_upload_history_upload_date', table_name='upload_history')
    op.drop_table('upload_history')

    op.drop_index('idx_student_data_worksheet', table_name='student_data')
    op.drop_index('idx_student_data_student', table_name='student_data')
    op.drop_table('student_data')

    op.drop_index('idx_worksheets_upload_date', table_name='worksheets')
    op.drop_index('idx_worksheets_name_file', table_name='worksheets')
    op.drop_table('worksheets')

    op.drop_index('idx_students_name', table_name='students')
    op.drop_table('students')
