"""initial_parish_schema

Revision ID: a1f0c2d3e4b5
Revises:
Create Date: 2026-09-28 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'a1f0c2d3e4b5'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


SEX = sa.Enum('M', 'F', name='sex', native_enum=False)
MARITAL_STATUS = sa.Enum('celibataire', 'marie', 'veuf', name='maritalstatus', native_enum=False)
ZONE = sa.Enum('voalohany', 'faharoa', 'fahatelo', 'fahefatra', 'fahadimy', name='zone', native_enum=False)
CONTRIBUTION_TYPE = sa.Enum('dime', 'offrande', 'don', name='contributiontype', native_enum=False)
APP_ROLE = sa.Enum('ADMIN', 'RESPONSABLE', 'SECRETAIRE', 'TRESORIER', 'MEMBRE', 'UTILISATEUR', name='approle', native_enum=False)


def upgrade() -> None:
    op.create_table(
        'ministry',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )
    op.create_table(
        'adherent',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('surname', sa.String(length=100), nullable=False),
        sa.Column('given_name', sa.String(length=100), nullable=False),
        sa.Column('sex', SEX, nullable=False),
        sa.Column('birth_date', sa.Date(), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('neighborhood', sa.String(length=100), nullable=True),
        sa.Column('phone', sa.String(length=30), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('church_function', sa.String(length=100), nullable=True),
        sa.Column('registration_date', sa.Date(), server_default=sa.func.current_date(), nullable=False),
        sa.Column('marital_status', MARITAL_STATUS, nullable=True),
        sa.Column('communicant', sa.Boolean(), nullable=False),
        sa.Column('zone', ZONE, nullable=True),
        sa.Column('ministry_id', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['ministry_id'], ['ministry.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('adherent', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_adherent_surname'), ['surname'], unique=False)
        batch_op.create_index(batch_op.f('ix_adherent_neighborhood'), ['neighborhood'], unique=False)

    op.create_table(
        'parish_group',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table(
        'group_membership',
        sa.Column('member_id', sa.Uuid(), nullable=False),
        sa.Column('group_id', sa.Uuid(), nullable=False),
        sa.Column('joined_on', sa.Date(), server_default=sa.func.current_date(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['member_id'], ['adherent.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['group_id'], ['parish_group.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('member_id', 'group_id')
    )

    op.create_table(
        'dues_record',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('member_id', sa.Uuid(), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('paid', sa.Boolean(), nullable=False),
        sa.Column('payment_date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['member_id'], ['adherent.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('member_id', 'month', 'year', name='uq_dues_member_period')
    )
    with op.batch_alter_table('dues_record', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_dues_record_member_id'), ['member_id'], unique=False)

    op.create_table(
        'contribution',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('member_id', sa.Uuid(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('type', CONTRIBUTION_TYPE, nullable=False),
        sa.Column('contribution_date', sa.Date(), server_default=sa.func.current_date(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['member_id'], ['adherent.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('contribution', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_contribution_member_id'), ['member_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_contribution_contribution_date'), ['contribution_date'], unique=False)

    op.create_table(
        'app_user',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('username', sa.String(length=100), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('adherent_id', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['adherent_id'], ['adherent.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('app_user', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_app_user_email'), ['email'], unique=True)

    # One role row per user
    op.create_table(
        'user_role',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('role', APP_ROLE, nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['app_user.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('user_role', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_user_role_user_id'), ['user_id'], unique=True)

    op.create_table(
        'system_setting',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('key', sa.String(length=100), nullable=False),
        sa.Column('value', sa.JSON(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_by', sa.Uuid(), nullable=True),
        sa.ForeignKeyConstraint(['updated_by'], ['app_user.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('system_setting', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_system_setting_key'), ['key'], unique=True)


def downgrade() -> None:
    with op.batch_alter_table('system_setting', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_system_setting_key'))
    op.drop_table('system_setting')
    with op.batch_alter_table('user_role', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_user_role_user_id'))
    op.drop_table('user_role')
    with op.batch_alter_table('app_user', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_app_user_email'))
    op.drop_table('app_user')
    with op.batch_alter_table('contribution', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_contribution_contribution_date'))
        batch_op.drop_index(batch_op.f('ix_contribution_member_id'))
    op.drop_table('contribution')
    with op.batch_alter_table('dues_record', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_dues_record_member_id'))
    op.drop_table('dues_record')
    op.drop_table('group_membership')
    op.drop_table('parish_group')
    with op.batch_alter_table('adherent', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_adherent_neighborhood'))
        batch_op.drop_index(batch_op.f('ix_adherent_surname'))
    op.drop_table('adherent')
    op.drop_table('ministry')
