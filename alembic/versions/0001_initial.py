"""Initial schema: staff, language catalog, forms and applications.

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18

Creates:
- users, languages
- application_forms (unique slug)
- student_applications
- application_status_history, application_notes, application_emails
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None

JSON_DOC = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), 'postgresql')


def upgrade() -> None:
    # ==========================================================================
    # users / languages
    # ==========================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.String(24), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('role', sa.String(20), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('token_version', sa.Integer(), server_default=sa.text('1'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email', name='uq_users_email'),
    )
    op.create_index('idx_users_role_active', 'users', ['role', 'is_active'])

    op.create_table(
        'languages',
        sa.Column('id', sa.String(24), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('code', sa.String(10), nullable=False),
        sa.Column('flag', sa.String(500), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code', name='uq_languages_code'),
    )

    # ==========================================================================
    # application_forms
    # ==========================================================================
    op.create_table(
        'application_forms',
        sa.Column('id', sa.String(24), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('slug', sa.String(150), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('fields', JSON_DOC, nullable=False),
        sa.Column('category', sa.String(30), server_default=sa.text("'general'"), nullable=False),
        sa.Column('language_id', sa.String(24), nullable=True),
        sa.Column('allow_multiple_submissions', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('max_submissions', sa.Integer(), server_default=sa.text('1'), nullable=False),
        sa.Column('max_capacity', sa.Integer(), nullable=True),
        sa.Column('submission_deadline', sa.DateTime(timezone=True), nullable=True),
        sa.Column('requires_approval', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('notifications_enabled', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('admin_emails', JSON_DOC, nullable=False),
        sa.Column('auto_reply_subject', sa.String(200), nullable=True),
        sa.Column('auto_reply_message', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('submissions', sa.Integer(), server_default=sa.text('0'), nullable=False),
        sa.Column('created_by_user_id', sa.String(24), nullable=False),
        sa.Column('updated_by_user_id', sa.String(24), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['language_id'], ['languages.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['updated_by_user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug', name='uq_application_forms_slug'),
    )
    op.create_index('idx_application_forms_category_active', 'application_forms', ['category', 'is_active'])
    op.create_index('idx_application_forms_language', 'application_forms', ['language_id'])
    op.create_index('idx_application_forms_created_at', 'application_forms', ['created_at'])

    # ==========================================================================
    # student_applications
    # ==========================================================================
    op.create_table(
        'student_applications',
        sa.Column('id', sa.String(24), nullable=False),
        sa.Column('form_id', sa.String(24), nullable=False),
        sa.Column('student_info', JSON_DOC, nullable=False),
        sa.Column('student_email', sa.String(254), nullable=True),
        sa.Column('academic_info', JSON_DOC, nullable=True),
        sa.Column('course_preferences', JSON_DOC, nullable=True),
        sa.Column('documents', JSON_DOC, nullable=False),
        sa.Column('form_data', JSON_DOC, nullable=False),
        sa.Column('status', sa.String(20), server_default=sa.text("'pending'"), nullable=False),
        sa.Column('priority', sa.String(10), server_default=sa.text("'medium'"), nullable=False),
        sa.Column('assigned_to_user_id', sa.String(24), nullable=True),
        sa.Column('last_contact_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('submission_source', sa.String(20), server_default=sa.text("'website'"), nullable=False),
        sa.Column('ip_address', sa.String(45), nullable=True),
        sa.Column('user_agent', sa.String(500), nullable=True),
        sa.Column('tags', JSON_DOC, nullable=False),
        sa.Column('is_archived', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['form_id'], ['application_forms.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['assigned_to_user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_student_applications_form_email', 'student_applications', ['form_id', 'student_email'])
    op.create_index('idx_student_applications_status', 'student_applications', ['status'])
    op.create_index('idx_student_applications_created_at', 'student_applications', ['created_at'])
    op.create_index('idx_student_applications_assigned', 'student_applications', ['assigned_to_user_id'])

    # ==========================================================================
    # append-only children
    # ==========================================================================
    op.create_table(
        'application_status_history',
        sa.Column('id', sa.String(24), nullable=False),
        sa.Column('application_id', sa.String(24), nullable=False),
        sa.Column('previous_status', sa.String(20), nullable=True),
        sa.Column('new_status', sa.String(20), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('changed_by_user_id', sa.String(24), nullable=True),
        sa.Column('changed_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['application_id'], ['student_applications.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['changed_by_user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_application_status_history_app', 'application_status_history', ['application_id'])

    op.create_table(
        'application_notes',
        sa.Column('id', sa.String(24), nullable=False),
        sa.Column('application_id', sa.String(24), nullable=False),
        sa.Column('note', sa.Text(), nullable=False),
        sa.Column('is_internal', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('added_by_user_id', sa.String(24), nullable=True),
        sa.Column('added_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['application_id'], ['student_applications.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['added_by_user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_application_notes_app', 'application_notes', ['application_id'])

    op.create_table(
        'application_emails',
        sa.Column('id', sa.String(24), nullable=False),
        sa.Column('application_id', sa.String(24), nullable=False),
        sa.Column('email_type', sa.String(20), nullable=False),
        sa.Column('subject', sa.String(255), nullable=False),
        sa.Column('delivered', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('sent_by_user_id', sa.String(24), nullable=True),
        sa.Column('sent_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['application_id'], ['student_applications.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['sent_by_user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_application_emails_app', 'application_emails', ['application_id'])


def downgrade() -> None:
    op.drop_table('application_emails')
    op.drop_table('application_notes')
    op.drop_table('application_status_history')
    op.drop_table('student_applications')
    op.drop_table('application_forms')
    op.drop_table('languages')
    op.drop_table('users')
