"""Create citizen, app_user, document and audit_log tables

Revision ID: 001
Revises:
Create Date: 2026-10-01 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None

DOCUMENT_TYPES = (
    'CPF', 'RG', 'CNH', 'PASSPORT', 'BIRTH_CERTIFICATE', 'MARRIAGE_CERTIFICATE',
    'PROOF_OF_RESIDENCE', 'PROOF_OF_INCOME', 'OTHER',
)


def upgrade():
    op.create_table(
        'citizen',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('full_name', sa.Text(), nullable=False),
        sa.Column('tax_id', sa.Text(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'app_user',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('email', sa.Text(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    # Document table: one row per successfully stored file
    op.create_table(
        'document',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('owner_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('case_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('pending_item_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('upload_session_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('document_type', sa.String(40), nullable=False),
        sa.Column('uploader_id', postgresql.UUID(as_uuid=True), nullable=False),

        # File metadata
        sa.Column('stored_filename', sa.Text(), nullable=False),
        sa.Column('original_filename', sa.Text(), nullable=False),
        sa.Column('storage_key', sa.Text(), nullable=False),
        sa.Column('size_bytes', sa.BigInteger(), nullable=False),
        sa.Column('mime_type', sa.Text(), nullable=False),
        sa.Column('content_hash', sa.String(64), nullable=False),
        sa.Column('description', sa.String(500), nullable=True),
        sa.Column('reusable', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('metadata_json', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('public_url', sa.Text(), nullable=True),

        # Timestamps
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('deleted_at', sa.TIMESTAMP(timezone=True), nullable=True),

        # Constraints
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['owner_id'], ['citizen.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['uploader_id'], ['app_user.id'], ondelete='RESTRICT'),
        sa.CheckConstraint('size_bytes > 0', name='ck_document_size_positive'),
        sa.CheckConstraint(
            "document_type IN (" + ", ".join(f"'{t}'" for t in DOCUMENT_TYPES) + ")",
            name='ck_document_type',
        ),
    )

    op.create_index('ix_document_owner_id', 'document', ['owner_id'])
    op.create_index('ix_document_owner_hash', 'document', ['owner_id', 'content_hash'])

    # Audit log is append-only
    op.create_table(
        'audit_log',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('correlation_id', sa.Text(), nullable=False),
        sa.Column('action', sa.Text(), nullable=False),
        sa.Column('severity', sa.Text(), nullable=False),
        sa.Column('outcome', sa.Text(), nullable=False),
        sa.Column('owner_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('actor_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('entity_type', sa.Text(), nullable=True),
        sa.Column('entity_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('metadata_json', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_index('ix_audit_log_correlation_id', 'audit_log', ['correlation_id'])


def downgrade():
    op.drop_index('ix_audit_log_correlation_id', table_name='audit_log')
    op.drop_table('audit_log')

    op.drop_index('ix_document_owner_hash', table_name='document')
    op.drop_index('ix_document_owner_id', table_name='document')
    op.drop_table('document')

    op.drop_table('app_user')
    op.drop_table('citizen')
