"""SQLModel FormSubmission model"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


class FormSubmission(SQLModel, table=True):
    """One visitor's answers to a form.

    responses maps str(FormField.id) to a string, a list of strings or a bool.
    attachments holds {field_id, file_url, file_name, file_size} entries.
    """

    __tablename__ = "form_submissions"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    form_id: uuid.UUID = Field(foreign_key="forms.id", ondelete="CASCADE", index=True)
    doctor_id: str = Field(index=True)
    patient_id: Optional[uuid.UUID] = None
    patient_name: Optional[str] = None
    patient_email: Optional[str] = None
    patient_phone: Optional[str] = None
    responses: dict = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    attachments: Optional[List[dict]] = Field(default=None, sa_column=Column(JSON))
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    submitted_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(timezone.utc), index=True
    )
    viewed_at: Optional[datetime] = None
    is_read: bool = Field(default=False, index=True)
