"""create_membership_tables

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-10-19 10:12:31.402117

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
import sqlmodel
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3f1c2a9d7b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

StringList = sa.JSON().with_variant(postgresql.ARRAY(sa.String()), 'postgresql')

visitstatus_enum = sa.Enum('checked_in', 'surveyed', name='visitstatus')
visittype_enum = sa.Enum('single', 'group', name='visittype')


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'users',
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column('phone', sqlmodel.sql.sqltypes.AutoString(length=32), nullable=True),
        sa.Column('gender', sqlmodel.sql.sqltypes.AutoString(length=32), nullable=True),
        sa.Column('birth_date', sa.Date(), nullable=False),
        sa.Column('external_identity_id', sqlmodel.sql.sqltypes.AutoString(length=64), nullable=True),
        sa.Column('payment_customer_id', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)
    op.create_index(op.f('ix_users_external_identity_id'), 'users', ['external_identity_id'], unique=True)
    op.create_index(op.f('ix_users_payment_customer_id'), 'users', ['payment_customer_id'], unique=False)

    op.create_table(
        'stores',
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('id', sqlmodel.sql.sqltypes.AutoString(length=64), nullable=False),
        sa.Column('name', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column('address', sqlmodel.sql.sqltypes.AutoString(length=512), nullable=False),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('qr_data', sqlmodel.sql.sqltypes.AutoString(length=512), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_stores_name'), 'stores', ['name'], unique=False)

    op.create_table(
        'user_profiles',
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('industry', sqlmodel.sql.sqltypes.AutoString(length=100), nullable=False),
        sa.Column('job_type', sqlmodel.sql.sqltypes.AutoString(length=100), nullable=False),
        sa.Column('experience_years', sqlmodel.sql.sqltypes.AutoString(length=50), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_user_profiles_user_id'), 'user_profiles', ['user_id'], unique=True)

    op.create_table(
        'surveys',
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('interest_in_side_job', sqlmodel.sql.sqltypes.AutoString(length=100), nullable=False),
        sa.Column('side_job_time', sqlmodel.sql.sqltypes.AutoString(length=100), nullable=True),
        sa.Column('side_job_fields', StringList, nullable=False),
        sa.Column('side_job_fields_other', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True),
        sa.Column('side_job_purpose', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True),
        sa.Column('side_job_challenge', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True),
        sa.Column('side_job_challenge_other', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True),
        sa.Column('meet_people', StringList, nullable=False),
        sa.Column('service_benefit', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column('service_benefit_other', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True),
        sa.Column('service_priority', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_surveys_user_id'), 'surveys', ['user_id'], unique=True)

    op.create_table(
        'visits',
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('store_id', sqlmodel.sql.sqltypes.AutoString(length=64), nullable=False),
        sa.Column('check_in_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', visitstatus_enum, nullable=False),
        sa.Column('visit_type', visittype_enum, nullable=True),
        sa.Column('visit_purpose', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True),
        sa.Column('companion_industries', StringList, nullable=False),
        sa.Column('companion_job_types', StringList, nullable=False),
        sa.CheckConstraint(
            "(status = 'checked_in' AND visit_type IS NULL)"
            " OR (status = 'surveyed' AND visit_type IS NOT NULL)",
            name='ck_visits_status_visit_type',
        ),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_visits_user_id'), 'visits', ['user_id'], unique=False)
    op.create_index(op.f('ix_visits_store_id'), 'visits', ['store_id'], unique=False)
    op.create_index('ix_visits_user_store_check_in', 'visits', ['user_id', 'store_id', 'check_in_at'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_visits_user_store_check_in', table_name='visits')
    op.drop_index(op.f('ix_visits_store_id'), table_name='visits')
    op.drop_index(op.f('ix_visits_user_id'), table_name='visits')
    op.drop_table('visits')

    op.drop_index(op.f('ix_surveys_user_id'), table_name='surveys')
    op.drop_table('surveys')

    op.drop_index(op.f('ix_user_profiles_user_id'), table_name='user_profiles')
    op.drop_table('user_profiles')

    op.drop_index(op.f('ix_stores_name'), table_name='stores')
    op.drop_table('stores')

    op.drop_index(op.f('ix_users_payment_customer_id'), table_name='users')
    op.drop_index(op.f('ix_users_external_identity_id'), table_name='users')
    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_table('users')

    # Drop the enum types (PostgreSQL)
    visittype_enum.drop(op.get_bind(), checkfirst=True)
    visitstatus_enum.drop(op.get_bind(), checkfirst=True)
