# alembic/versions/001_initial.py

"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '001'
down_revision = None
branch_labels = None
depends_on = None

direction_enum = sa.Enum('UP', 'DOWN', name='directionenum')
status_enum = sa.Enum('ACTIVE', 'EVALUATED', name='predictionstatusenum')
result_enum = sa.Enum('PENDING', 'CORRECT', 'INCORRECT', name='predictionresultenum')


def upgrade():
    # users (owned by the auth service, read here)
    op.create_table('users',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('email_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email')
    )

    # assets
    op.create_table('assets',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('symbol', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('asset_type', sa.String(length=32), nullable=False, server_default='crypto'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_assets_symbol', 'assets', ['symbol'], unique=True)

    # slot_configs
    op.create_table('slot_configs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('duration', sa.String(length=8), nullable=False),
        sa.Column('slot_number', sa.Integer(), nullable=False),
        sa.Column('start_time', sa.String(length=32), nullable=False),
        sa.Column('end_time', sa.String(length=32), nullable=False),
        sa.Column('points_if_correct', sa.Integer(), nullable=False),
        sa.Column('penalty_if_wrong', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('duration', 'slot_number', name='uq_slot_configs_duration_slot')
    )

    # predictions
    op.create_table('predictions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('asset_id', sa.Integer(), nullable=False),
        sa.Column('direction', direction_enum, nullable=False),
        sa.Column('duration', sa.String(length=8), nullable=False),
        sa.Column('slot_number', sa.Integer(), nullable=False),
        sa.Column('slot_start', sa.DateTime(), nullable=False),
        sa.Column('slot_end', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('evaluated_at', sa.DateTime(), nullable=True),
        sa.Column('status', status_enum, nullable=False),
        sa.Column('result', result_enum, nullable=False),
        sa.Column('points_awarded', sa.Integer(), nullable=True),
        sa.Column('price_start', sa.Numeric(precision=20, scale=8), nullable=False),
        sa.Column('price_end', sa.Numeric(precision=20, scale=8), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['asset_id'], ['assets.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'user_id', 'asset_id', 'duration', 'slot_number', 'slot_start',
            name='uq_predictions_user_asset_slot'
        )
    )
    op.create_index('ix_predictions_status_expires', 'predictions', ['status', 'expires_at'])
    op.create_index('ix_predictions_user_created', 'predictions', ['user_id', 'created_at'])
    op.create_index('ix_predictions_asset_duration', 'predictions', ['asset_id', 'duration'])

    # user_profiles
    op.create_table('user_profiles',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('total_predictions', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('correct_predictions', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('monthly_score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_score', sa.Integer(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id')
    )


def downgrade():
    op.drop_table('user_profiles')
    op.drop_index('ix_predictions_asset_duration', table_name='predictions')
    op.drop_index('ix_predictions_user_created', table_name='predictions')
    op.drop_index('ix_predictions_status_expires', table_name='predictions')
    op.drop_table('predictions')
    op.drop_table('slot_configs')
    op.drop_index('ix_assets_symbol', table_name='assets')
    op.drop_table('assets')
    op.drop_table('users')

    bind = op.get_bind()
    result_enum.drop(bind, checkfirst=True)
    status_enum.drop(bind, checkfirst=True)
    direction_enum.drop(bind, checkfirst=True)
