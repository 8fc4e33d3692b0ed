"""initial schema: users, roles and refresh tokens

Revision ID: 7b3e1c9d4a52
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""
import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = '7b3e1c9d4a52'
down_revision = None
branch_labels = None
depends_on = None

ROLE_NAMES = ('ROLE_USER', 'ROLE_MODERATOR', 'ROLE_ADMIN')
USER_STATUSES = ('PENDING_APPROVAL', 'ACTIVE', 'SUSPENDED', 'BANNED')


def upgrade():
    op.create_table(
        'roles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column(
            'name',
            sa.Enum(*ROLE_NAMES, name='enum_role_name', create_constraint=True),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_roles')),
        sa.UniqueConstraint('name', name=op.f('uq_roles_name')),
    )

    op.create_table(
        'users',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('email', sa.String(length=254), nullable=False),
        sa.Column('password_hash', sa.String(length=254), nullable=False),
        sa.Column('username', sa.String(length=50), nullable=False),
        sa.Column(
            'status',
            sa.Enum(*USER_STATUSES, name='enum_user_status', create_constraint=True),
            nullable=False,
        ),
        sa.Column('last_login_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_users')),
        sa.UniqueConstraint('email', name='uq_users_email'),
        sa.UniqueConstraint('username', name='uq_users_username'),
    )
    op.create_index('ix_users_email', 'users', ['email'])
    op.create_index('ix_users_username', 'users', ['username'])

    op.create_table(
        'user_roles',
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('role_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ['user_id'], ['users.id'],
            name=op.f('fk_user_roles_user_id_users'), ondelete='CASCADE',
        ),
        sa.ForeignKeyConstraint(
            ['role_id'], ['roles.id'],
            name=op.f('fk_user_roles_role_id_roles'), ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('user_id', 'role_id', name=op.f('pk_user_roles')),
    )

    op.create_table(
        'refresh_tokens',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('subject_id', sa.String(length=36), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('issued_at', sa.DateTime(), nullable=False),
        sa.Column('sliding_expires_at', sa.DateTime(), nullable=False),
        sa.Column('absolute_expires_at', sa.DateTime(), nullable=False),
        sa.Column('revoked', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('replaced_by', sa.String(length=36), nullable=True),
        sa.Column('family_id', sa.String(length=36), nullable=False),
        sa.Column('device_info', sa.String(length=500), nullable=True),
        sa.Column('source_address', sa.String(length=45), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_refresh_tokens')),
        sa.UniqueConstraint('token_hash', name='uq_refresh_tokens_token_hash'),
    )
    op.create_index('ix_refresh_tokens_subject_id', 'refresh_tokens', ['subject_id'])
    op.create_index('ix_refresh_tokens_family_id', 'refresh_tokens', ['family_id'])
    op.create_index(
        'ix_refresh_tokens_sliding_expires_at', 'refresh_tokens', ['sliding_expires_at']
    )
    op.create_index(
        'ix_refresh_tokens_absolute_expires_at', 'refresh_tokens', ['absolute_expires_at']
    )


def downgrade():
    op.drop_index('ix_refresh_tokens_absolute_expires_at', table_name='refresh_tokens')
    op.drop_index('ix_refresh_tokens_sliding_expires_at', table_name='refresh_tokens')
    op.drop_index('ix_refresh_tokens_family_id', table_name='refresh_tokens')
    op.drop_index('ix_refresh_tokens_subject_id', table_name='refresh_tokens')
    op.drop_table('refresh_tokens')
    op.drop_table('user_roles')
    op.drop_index('ix_users_username', table_name='users')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
    op.drop_table('roles')
    sa.Enum(name='enum_user_status').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='enum_role_name').drop(op.get_bind(), checkfirst=True)
