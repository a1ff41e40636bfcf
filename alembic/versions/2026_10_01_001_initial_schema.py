"""Initial schema: companies, buildings, rooms, accounts, identities and cleaning tasks

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-01

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = '001_initial_schema'
down_revision = None

company_plan = sa.Enum('BASIC', 'PROFESSIONAL', 'ENTERPRISE', name='companyplan')
building_type = sa.Enum('HOTEL', 'APARTMENT', 'HOUSE', 'OFFICE', 'COMPLEX', name='buildingtype')
user_role = sa.Enum('SUPER_ADMIN', 'ADMIN', 'CLEANER', name='userrole')
task_status = sa.Enum('PENDING', 'URGENT', 'IN_PROGRESS', 'COMPLETED', 'VERIFIED', name='taskstatus')


def upgrade():
    # Companies (tenants)
    op.create_table(
        'companies',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.String(500), nullable=True),
        sa.Column('plan', company_plan, nullable=False),
        sa.Column('max_buildings', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_companies_is_active', 'companies', ['is_active'])
    op.create_index('ix_companies_created_at', 'companies', ['created_at'])
    # Names are unique among active companies only
    op.create_index(
        'uq_company_active_name', 'companies', ['name'],
        unique=True, postgresql_where=sa.text('is_active'),
    )

    # Buildings
    op.create_table(
        'buildings',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('company_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('companies.id'), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('type', building_type, nullable=False),
        sa.Column('address', sa.String(200), nullable=True),
        sa.Column('description', sa.String(500), nullable=True),
        sa.Column('floors', sa.Integer(), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_buildings_company_id', 'buildings', ['company_id'])
    op.create_index('ix_buildings_is_active', 'buildings', ['is_active'])
    op.create_index('ix_buildings_created_at', 'buildings', ['created_at'])
    op.create_index(
        'uq_building_company_active_name', 'buildings', ['company_id', 'name'],
        unique=True, postgresql_where=sa.text('is_active'),
    )

    # Rooms
    op.create_table(
        'rooms',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('building_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('buildings.id'), nullable=False),
        sa.Column('name', sa.String(50), nullable=False),
        sa.Column('floor', sa.Integer(), nullable=True),
        sa.Column('area', sa.Float(), nullable=True),
        sa.Column('description', sa.String(500), nullable=True),
        sa.Column('cleaning_notes', sa.String(500), nullable=True),
        sa.Column('king_beds', sa.Integer(), nullable=False),
        sa.Column('individual_beds', sa.Integer(), nullable=False),
        sa.Column('bed_description', sa.String(200), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_rooms_building_id', 'rooms', ['building_id'])
    op.create_index('ix_rooms_is_active', 'rooms', ['is_active'])
    op.create_index('ix_rooms_created_at', 'rooms', ['created_at'])
    op.create_index(
        'uq_room_building_active_name', 'rooms', ['building_id', 'name'],
        unique=True, postgresql_where=sa.text('is_active'),
    )

    # Accounts; company_id has no foreign key because of the system tenant
    op.create_table(
        'accounts',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('company_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('role', user_role, nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('must_change_password', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_accounts_company_id', 'accounts', ['company_id'])
    op.create_index('ix_accounts_email', 'accounts', ['email'], unique=True)
    op.create_index('ix_accounts_role', 'accounts', ['role'])
    op.create_index('ix_accounts_is_active', 'accounts', ['is_active'])
    op.create_index('ix_accounts_created_at', 'accounts', ['created_at'])

    # Identities (credentials)
    op.create_table(
        'identities',
        sa.Column('uid', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(), nullable=False),
        sa.Column('display_name', sa.String(100), nullable=True),
        sa.Column('disabled', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_identities_email', 'identities', ['email'], unique=True)

    # Cleaning tasks
    op.create_table(
        'cleaning_tasks',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('room_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('rooms.id'), nullable=False),
        sa.Column('assigned_to', postgresql.UUID(as_uuid=True), sa.ForeignKey('accounts.id'), nullable=True),
        sa.Column('scheduled_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', task_status, nullable=False),
        sa.Column('observations', sa.String(1000), nullable=True),
        sa.Column('images', sa.JSON(), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_by', postgresql.UUID(as_uuid=True), sa.ForeignKey('accounts.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_cleaning_tasks_room_id', 'cleaning_tasks', ['room_id'])
    op.create_index('ix_cleaning_tasks_assigned_to', 'cleaning_tasks', ['assigned_to'])
    op.create_index('ix_cleaning_tasks_scheduled_date', 'cleaning_tasks', ['scheduled_date'])
    op.create_index('ix_cleaning_tasks_status', 'cleaning_tasks', ['status'])
    op.create_index('ix_cleaning_tasks_completed_at', 'cleaning_tasks', ['completed_at'])
    op.create_index('ix_cleaning_tasks_created_at', 'cleaning_tasks', ['created_at'])


def downgrade():
    op.drop_table('cleaning_tasks')
    op.drop_table('identities')
    op.drop_table('accounts')
    op.drop_table('rooms')
    op.drop_table('buildings')
    op.drop_table('companies')

    bind = op.get_bind()
    for enum_type in (task_status, user_role, building_type, company_plan):
        enum_type.drop(bind, checkfirst=True)
