"""form builder init
Revision ID: 0001_form_builder_init
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

revision = "0001_form_builder_init"
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table(
        "forms",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("purpose", sa.String(length=40), nullable=False, server_default="general"),
        sa.Column("schema", sa.JSON(), nullable=False),
        sa.Column("settings", sa.JSON(), nullable=False),
        sa.Column("created_by", sa.String(length=200), nullable=False, server_default="system"),
    )
    op.create_index("ix_forms_name", "forms", ["name"], unique=True)
    op.create_index("ix_forms_purpose", "forms", ["purpose"])

    op.create_table(
        "form_submissions",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("form_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("submitted_by", sa.String(length=320), nullable=True),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column("crm_data", sa.JSON(), nullable=False),
        sa.Column("associated_lead_id", sa.String(length=64), nullable=True),
        sa.Column("channel", sa.String(length=20), nullable=False, server_default="public"),
    )
    op.create_index("ix_form_submissions_form_id", "form_submissions", ["form_id"])
    op.create_index("ix_form_submissions_associated_lead_id", "form_submissions", ["associated_lead_id"])

def downgrade():
    op.drop_index("ix_form_submissions_associated_lead_id", table_name="form_submissions")
    op.drop_index("ix_form_submissions_form_id", table_name="form_submissions")
    op.drop_table("form_submissions")
    op.drop_index("ix_forms_purpose", table_name="forms")
    op.drop_index("ix_forms_name", table_name="forms")
    op.drop_table("forms")
