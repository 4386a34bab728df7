"""initial DPIS schema

Revision ID: 20261019_initial_schema
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    ]


def upgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    # Tables may already exist from db.create_all() on a dev database
    if not inspector.has_table('provinces'):
        op.create_table(
            'provinces',
            sa.Column('code', sa.String(length=36), primary_key=True),
            sa.Column('name', sa.String(length=100), nullable=False),
            sa.Column('name_nepali', sa.String(length=100), nullable=False),
            sa.Column('area', sa.Numeric(12, 2), nullable=True),
            sa.Column('population', sa.BigInteger(), nullable=True),
            sa.Column('headquarter', sa.String(length=100), nullable=True),
            sa.Column('headquarter_nepali', sa.String(length=100), nullable=True),
            *_timestamps(),
        )

    if not inspector.has_table('districts'):
        op.create_table(
            'districts',
            sa.Column('code', sa.String(length=36), primary_key=True),
            sa.Column('name', sa.String(length=100), nullable=False),
            sa.Column('name_nepali', sa.String(length=100), nullable=False),
            sa.Column('area', sa.Numeric(12, 2), nullable=True),
            sa.Column('population', sa.BigInteger(), nullable=True),
            sa.Column('headquarter', sa.String(length=100), nullable=True),
            sa.Column('headquarter_nepali', sa.String(length=100), nullable=True),
            sa.Column('province_code', sa.String(length=36), sa.ForeignKey('provinces.code'), nullable=False),
            *_timestamps(),
        )
        op.create_index('ix_districts_province_code', 'districts', ['province_code'])

    if not inspector.has_table('municipalities'):
        op.create_table(
            'municipalities',
            sa.Column('code', sa.String(length=36), primary_key=True),
            sa.Column('name', sa.String(length=100), nullable=False),
            sa.Column('name_nepali', sa.String(length=100), nullable=False),
            sa.Column('type', sa.String(length=30), nullable=False, server_default='MUNICIPALITY'),
            sa.Column('area', sa.Numeric(12, 2), nullable=True),
            sa.Column('population', sa.BigInteger(), nullable=True),
            sa.Column('latitude', sa.Numeric(10, 7), nullable=True),
            sa.Column('longitude', sa.Numeric(10, 7), nullable=True),
            sa.Column('total_wards', sa.Integer(), nullable=True),
            sa.Column('district_code', sa.String(length=36), sa.ForeignKey('districts.code'), nullable=False),
            *_timestamps(),
        )
        op.create_index('ix_municipalities_district_code', 'municipalities', ['district_code'])

    if not inspector.has_table('wards'):
        op.create_table(
            'wards',
            sa.Column('ward_number', sa.Integer(), primary_key=True, autoincrement=False),
            sa.Column('municipality_code', sa.String(length=36), sa.ForeignKey('municipalities.code'), primary_key=True),
            sa.Column('area', sa.Numeric(12, 2), nullable=True),
            sa.Column('population', sa.BigInteger(), nullable=True),
            sa.Column('latitude', sa.Numeric(10, 7), nullable=True),
            sa.Column('longitude', sa.Numeric(10, 7), nullable=True),
            sa.Column('office_location', sa.String(length=255), nullable=True),
            sa.Column('office_location_nepali', sa.String(length=255), nullable=True),
            *_timestamps(),
        )

    if not inspector.has_table('roles'):
        op.create_table(
            'roles',
            sa.Column('type', sa.String(length=50), primary_key=True),
            sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        )

    if not inspector.has_table('role_permissions'):
        op.create_table(
            'role_permissions',
            sa.Column('role_type', sa.String(length=50), sa.ForeignKey('roles.type', ondelete='CASCADE'), primary_key=True),
            sa.Column('permission', sa.String(length=50), primary_key=True),
        )

    if not inspector.has_table('users'):
        op.create_table(
            'users',
            sa.Column('id', sa.String(length=36), primary_key=True),
            sa.Column('email', sa.String(length=255), nullable=False),
            sa.Column('password_hash', sa.String(length=255), nullable=False),
            sa.Column('phone_number', sa.String(length=20), nullable=True),
            sa.Column('is_ward_level_user', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('ward_number', sa.Integer(), nullable=True),
            sa.Column('is_approved', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('approved_by', sa.String(length=36), nullable=True),
            sa.Column('approved_at', sa.DateTime(), nullable=True),
            sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('deleted_by', sa.String(length=36), nullable=True),
            sa.Column('deleted_at', sa.DateTime(), nullable=True),
            sa.Column('created_by', sa.String(length=36), nullable=True),
            sa.Column('updated_by', sa.String(length=36), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
            sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        )
        op.create_index('ix_users_email', 'users', ['email'], unique=True)

    if not inspector.has_table('user_permissions'):
        op.create_table(
            'user_permissions',
            sa.Column('user_id', sa.String(length=36), sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
            sa.Column('permission', sa.String(length=50), primary_key=True),
        )

    if not inspector.has_table('user_roles'):
        op.create_table(
            'user_roles',
            sa.Column('user_id', sa.String(length=36), sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
            sa.Column('role_type', sa.String(length=50), sa.ForeignKey('roles.type', ondelete='CASCADE'), primary_key=True),
        )

    if not inspector.has_table('token_blacklist'):
        op.create_table(
            'token_blacklist',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('jti', sa.String(length=64), nullable=False),
            sa.Column('token_type', sa.String(length=20), nullable=False),
            sa.Column('token_use', sa.String(length=20), nullable=False, server_default='user'),
            sa.Column('subject', sa.String(length=255), nullable=True),
            sa.Column('expires_at', sa.DateTime(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        )
        op.create_index('ix_token_blacklist_jti', 'token_blacklist', ['jti'], unique=True)
        op.create_index('ix_token_blacklist_expires_at', 'token_blacklist', ['expires_at'])

    if not inspector.has_table('password_reset_otps'):
        op.create_table(
            'password_reset_otps',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('account_type', sa.String(length=20), nullable=False),
            sa.Column('account_id', sa.String(length=36), nullable=False),
            sa.Column('email', sa.String(length=255), nullable=False),
            sa.Column('code_hash', sa.String(length=64), nullable=False),
            sa.Column('expires_at', sa.DateTime(), nullable=False),
            sa.Column('used_at', sa.DateTime(), nullable=True),
            sa.Column('attempts', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('request_ip', sa.String(length=45), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        )
        op.create_index('idx_password_reset_otp_account', 'password_reset_otps', ['account_type', 'account_id'])
        op.create_index('idx_password_reset_otp_expires', 'password_reset_otps', ['expires_at'])

    if not inspector.has_table('citizens'):
        address_columns = []
        for kind in ('permanent', 'temporary'):
            address_columns += [
                sa.Column(f'{kind}_province_code', sa.String(length=36), nullable=True),
                sa.Column(f'{kind}_district_code', sa.String(length=36), nullable=True),
                sa.Column(f'{kind}_municipality_code', sa.String(length=36), nullable=True),
                sa.Column(f'{kind}_ward_number', sa.Integer(), nullable=True),
                sa.Column(f'{kind}_street_address', sa.String(length=255), nullable=True),
            ]
        op.create_table(
            'citizens',
            sa.Column('id', sa.String(length=36), primary_key=True),
            sa.Column('name', sa.String(length=255), nullable=False),
            sa.Column('name_devnagari', sa.String(length=255), nullable=True),
            sa.Column('email', sa.String(length=255), nullable=True),
            sa.Column('phone_number', sa.String(length=20), nullable=True),
            sa.Column('password_hash', sa.String(length=255), nullable=True),
            sa.Column('citizenship_number', sa.String(length=50), nullable=True),
            sa.Column('citizenship_issued_date', sa.Date(), nullable=True),
            sa.Column('citizenship_issued_office', sa.String(length=255), nullable=True),
            *address_columns,
            sa.Column('father_name', sa.String(length=255), nullable=True),
            sa.Column('grandfather_name', sa.String(length=255), nullable=True),
            sa.Column('spouse_name', sa.String(length=255), nullable=True),
            sa.Column('photo_key', sa.String(length=255), nullable=True),
            sa.Column('citizenship_front_key', sa.String(length=255), nullable=True),
            sa.Column('citizenship_back_key', sa.String(length=255), nullable=True),
            sa.Column('state', sa.String(length=30), nullable=False, server_default='PENDING_REGISTRATION'),
            sa.Column('state_note', sa.Text(), nullable=True),
            sa.Column('state_updated_at', sa.DateTime(), nullable=True),
            sa.Column('state_updated_by', sa.String(length=36), nullable=True),
            sa.Column('is_approved', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('approved_by', sa.String(length=36), nullable=True),
            sa.Column('approved_at', sa.DateTime(), nullable=True),
            sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('deleted_by', sa.String(length=36), nullable=True),
            sa.Column('deleted_at', sa.DateTime(), nullable=True),
            sa.Column('created_by', sa.String(length=36), nullable=True),
            sa.Column('updated_by', sa.String(length=36), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
            sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        )
        op.create_index('ix_citizens_email', 'citizens', ['email'], unique=True)
        op.create_index('ix_citizens_citizenship_number', 'citizens', ['citizenship_number'], unique=True)
        op.create_index('ix_citizens_state', 'citizens', ['state'])


def downgrade():
    for table in (
        'citizens',
        'password_reset_otps',
        'token_blacklist',
        'user_roles',
        'user_permissions',
        'users',
        'role_permissions',
        'roles',
        'wards',
        'municipalities',
        'districts',
        'provinces',
    ):
        op.execute(f'DROP TABLE IF EXISTS {table}')
