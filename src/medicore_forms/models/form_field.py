"""SQLModel FormField model for dynamic form fields"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlalchemy import Enum as SQLEnum
from sqlmodel import Field, SQLModel

from medicore_forms.models.field_type import FieldType


class FormField(SQLModel, table=True):
    """One field of a form, displayed in order_index order"""

    __tablename__ = "form_fields"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    form_id: uuid.UUID = Field(foreign_key="forms.id", ondelete="CASCADE", index=True)
    field_type: FieldType = Field(
        sa_column=Column(
            SQLEnum(
                FieldType,
                name="form_field_type",
                values_callable=lambda x: [e.value for e in x],
            ),
            nullable=False,
        )
    )
    label: str
    placeholder: Optional[str] = None
    help_text: Optional[str] = None
    required: bool = Field(default=False)
    options: Optional[List[str]] = Field(
        default=None, sa_column=Column(JSON)
    )  # For select, radio and checkbox fields
    validation_rules: Optional[dict] = Field(
        default=None, sa_column=Column(JSON)
    )  # Sparse: min, max, pattern
    order_index: int = Field(default=0)
    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        UniqueConstraint("form_id", "order_index", name="uq_form_fields_form_order"),
    )
