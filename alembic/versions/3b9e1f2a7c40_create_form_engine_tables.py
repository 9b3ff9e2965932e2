"""Create form engine tables

Revision ID: 3b9e1f2a7c40
Revises:
Create Date: 2026-10-19 10:12:44.118204

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b9e1f2a7c40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

FIELD_TYPES = (
    "text",
    "email",
    "number",
    "phone",
    "textarea",
    "select",
    "radio",
    "checkbox",
    "date",
    "file",
)


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "forms",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("doctor_id", sa.VARCHAR(), nullable=False),
        sa.Column("title", sa.VARCHAR(), nullable=False),
        sa.Column("description", sa.TEXT(), nullable=True),
        sa.Column("slug", sa.VARCHAR(), nullable=False),
        sa.Column("is_active", sa.BOOLEAN(), nullable=False, server_default=sa.true()),
        sa.Column(
            "requires_patient_info",
            sa.BOOLEAN(),
            nullable=False,
            server_default=sa.true(),
        ),
        sa.Column("success_message", sa.TEXT(), nullable=True),
        sa.Column("notification_email", sa.VARCHAR(), nullable=True),
        sa.Column(
            "allow_multiple_submissions",
            sa.BOOLEAN(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column("submission_count", sa.INTEGER(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_forms_doctor_id", "forms", ["doctor_id"])
    op.create_index("ix_forms_slug", "forms", ["slug"], unique=True)

    op.create_table(
        "form_fields",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("form_id", sa.Uuid(), nullable=False),
        sa.Column(
            "field_type",
            sa.Enum(*FIELD_TYPES, name="form_field_type"),
            nullable=False,
        ),
        sa.Column("label", sa.VARCHAR(), nullable=False),
        sa.Column("placeholder", sa.VARCHAR(), nullable=True),
        sa.Column("help_text", sa.TEXT(), nullable=True),
        sa.Column("required", sa.BOOLEAN(), nullable=False, server_default=sa.false()),
        sa.Column("options", sa.JSON(), nullable=True),
        sa.Column("validation_rules", sa.JSON(), nullable=True),
        sa.Column("order_index", sa.INTEGER(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["form_id"], ["forms.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("form_id", "order_index", name="uq_form_fields_form_order"),
    )
    op.create_index("ix_form_fields_form_id", "form_fields", ["form_id"])

    op.create_table(
        "form_submissions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("form_id", sa.Uuid(), nullable=False),
        sa.Column("doctor_id", sa.VARCHAR(), nullable=False),
        sa.Column("patient_id", sa.Uuid(), nullable=True),
        sa.Column("patient_name", sa.VARCHAR(), nullable=True),
        sa.Column("patient_email", sa.VARCHAR(), nullable=True),
        sa.Column("patient_phone", sa.VARCHAR(), nullable=True),
        sa.Column("responses", sa.JSON(), nullable=False),
        sa.Column("attachments", sa.JSON(), nullable=True),
        sa.Column("ip_address", sa.VARCHAR(), nullable=True),
        sa.Column("user_agent", sa.TEXT(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(), nullable=True),
        sa.Column("viewed_at", sa.DateTime(), nullable=True),
        sa.Column("is_read", sa.BOOLEAN(), nullable=False, server_default=sa.false()),
        sa.ForeignKeyConstraint(["form_id"], ["forms.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_form_submissions_form_id", "form_submissions", ["form_id"])
    op.create_index("ix_form_submissions_doctor_id", "form_submissions", ["doctor_id"])
    op.create_index(
        "ix_form_submissions_submitted_at", "form_submissions", ["submitted_at"]
    )
    op.create_index("ix_form_submissions_is_read", "form_submissions", ["is_read"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("form_submissions")
    op.drop_table("form_fields")
    op.drop_table("forms")
    sa.Enum(name="form_field_type").drop(op.get_bind(), checkfirst=True)
