"""initial schema

Revision ID: 001_initial_schema
Revises: 
Create Date: 18-10-2026 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create users, folders and files tables."""

    # === USERS ===
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # === FOLDERS ===
    op.create_table(
        'folders',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('user_id', sa.Uuid(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('parent_folder_id', sa.Uuid(as_uuid=True), sa.ForeignKey('folders.id'), nullable=True),
        sa.Column('path', sa.String(), nullable=False),
        sa.Column('is_root', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_folders_id', 'folders', ['id'])
    op.create_index('ix_folders_user_id', 'folders', ['user_id'])
    op.create_index('ix_folders_parent_folder_id', 'folders', ['parent_folder_id'])
    op.create_index('ix_folders_path', 'folders', ['path'])
    op.create_index(
        'ix_folder_user_parent_name', 'folders', ['user_id', 'parent_folder_id', 'name'], unique=True
    )
    op.create_index(
        'ix_folder_user_root', 'folders', ['user_id'], unique=True,
        postgresql_where=sa.text('is_root'),
        sqlite_where=sa.text('is_root = 1'),
    )

    # === FILES ===
    op.create_table(
        'files',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('user_id', sa.Uuid(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('folder_id', sa.Uuid(as_uuid=True), sa.ForeignKey('folders.id'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('original_name', sa.String(255), nullable=False),
        sa.Column('size', sa.BigInteger(), nullable=False),
        sa.Column('mime', sa.String(), nullable=False),
        sa.Column('storage_key', sa.String(), nullable=False, unique=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_files_id', 'files', ['id'])
    op.create_index('ix_files_user_id', 'files', ['user_id'])
    op.create_index('ix_files_folder_id', 'files', ['folder_id'])
    op.create_index('ix_file_user_folder_name', 'files', ['user_id', 'folder_id', 'name'], unique=True)


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table('files')
    op.drop_table('folders')
    op.drop_table('users')
