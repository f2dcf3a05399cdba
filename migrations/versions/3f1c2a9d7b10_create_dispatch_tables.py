"""create_dispatch_tables

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-10-19 09:12:41.204113

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3f1c2a9d7b10'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'engineers',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('eng_name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=True, unique=True),
        sa.Column('area', sa.String(), nullable=True),
        sa.Column('speciality', sa.String(), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('work_start_time', sa.Time(), nullable=True),
        sa.Column('work_end_time', sa.Time(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_engineers_id', 'engineers', ['id'])

    op.create_table(
        'user_roles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('role', sa.String(), nullable=False),
    )
    op.create_index('ix_user_roles_id', 'user_roles', ['id'])
    op.create_index('ix_user_roles_user_id', 'user_roles', ['user_id'])

    op.create_table(
        'customers',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('business_name', sa.String(), nullable=True),
        sa.Column('site_location', sa.String(), nullable=True),
        sa.Column('post_code', sa.String(), nullable=True),
        sa.Column('description_of_fault', sa.String(), nullable=True),
        sa.Column('site_contact_name', sa.String(), nullable=True),
        sa.Column('site_contact_number', sa.String(), nullable=True),
        sa.Column('email_address', sa.String(), nullable=True),
        sa.Column('system_details', sa.String(), nullable=True),
        sa.Column('priority', sa.String(), nullable=True),
        sa.Column('opening_hours', sa.String(), nullable=True),
        sa.Column('scheduled_time', sa.DateTime(), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('formatted_address', sa.String(), nullable=True),
        sa.Column('assigned_engineer', sa.String(length=36), nullable=True),
    )
    op.create_index('ix_customers_id', 'customers', ['id'])
    op.create_index('ix_customers_status', 'customers', ['status'])

    op.create_table(
        'routes',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('engineer_id', sa.String(length=36), sa.ForeignKey('engineers.id'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('jobs', sa.JSON(), nullable=False),
        sa.Column('total_distance', sa.Float(), nullable=True),
        sa.Column('polyline', sa.String(), nullable=True),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(), nullable=True),
        sa.Column('cancellation_reason', sa.String(), nullable=True),
    )
    op.create_index('ix_routes_id', 'routes', ['id'])
    op.create_index('ix_routes_engineer_id', 'routes', ['engineer_id'])
    op.create_index('ix_routes_date', 'routes', ['date'])

    op.create_table(
        'jobs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.Column('customer_id', sa.Integer(), sa.ForeignKey('customers.id'), nullable=False),
        sa.Column('engineer_uuid', sa.String(length=36), nullable=True),
        sa.Column('engineer_name', sa.String(), nullable=True),
        sa.Column('job_status', sa.String(length=20), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('site_location', sa.String(), nullable=True),
        sa.Column('customer_latitude', sa.Float(), nullable=True),
        sa.Column('customer_longitude', sa.Float(), nullable=True),
        sa.Column('site_contact_name', sa.String(), nullable=True),
        sa.Column('site_contact_number', sa.String(), nullable=True),
        sa.Column('business_name', sa.String(), nullable=True),
        sa.Column('system_details', sa.String(), nullable=True),
        sa.Column('open_time', sa.String(), nullable=True),
        sa.Column('schedule_time', sa.DateTime(), nullable=True),
        sa.Column('route_id', sa.Integer(), sa.ForeignKey('routes.id'), nullable=True),
        sa.Column('route_order', sa.Integer(), nullable=True),
        sa.Column('image_urls', sa.JSON(), nullable=True),
        sa.Column('product_names', sa.JSON(), nullable=True),
        sa.Column('notes', sa.String(), nullable=True),
    )
    op.create_index('ix_jobs_id', 'jobs', ['id'])
    op.create_index('ix_jobs_customer_id', 'jobs', ['customer_id'])
    op.create_index('ix_jobs_engineer_uuid', 'jobs', ['engineer_uuid'])
    op.create_index('ix_jobs_route_id', 'jobs', ['route_id'])

    op.create_table(
        'time_tracking',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('job_id', sa.Integer(), sa.ForeignKey('jobs.id'), nullable=False),
        sa.Column('engineer_id', sa.String(length=36), nullable=False),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=True),
        sa.Column('accumulated_minutes', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_paused', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('paused_at', sa.DateTime(), nullable=True),
        sa.Column('resumed_at', sa.DateTime(), nullable=True),
        sa.Column('start_latitude', sa.Float(), nullable=True),
        sa.Column('start_longitude', sa.Float(), nullable=True),
        sa.Column('calculation_method', sa.String(length=20), nullable=True),
        sa.Column('adjustment_reason', sa.String(), nullable=True),
        sa.Column('adjustment_minutes', sa.Integer(), nullable=True),
    )
    op.create_index('ix_time_tracking_id', 'time_tracking', ['id'])
    op.create_index('ix_time_tracking_job_id', 'time_tracking', ['job_id'])
    op.create_index('ix_time_tracking_engineer_id', 'time_tracking', ['engineer_id'])
    op.create_index(
        'uq_time_tracking_open_session',
        'time_tracking',
        ['job_id', 'engineer_id'],
        unique=True,
        postgresql_where=sa.text('end_time IS NULL'),
        sqlite_where=sa.text('end_time IS NULL'),
    )


def downgrade() -> None:
    op.drop_index('uq_time_tracking_open_session', table_name='time_tracking')
    op.drop_table('time_tracking')
    op.drop_table('jobs')
    op.drop_table('routes')
    op.drop_table('customers')
    op.drop_table('user_roles')
    op.drop_table('engineers')
