"""SQLModel Form model"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel

DEFAULT_SUCCESS_MESSAGE = "Thank you for your submission!"


class Form(SQLModel, table=True):
    """A doctor-owned form published at /forms/{slug}"""

    __tablename__ = "forms"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    doctor_id: str = Field(index=True)
    title: str
    description: Optional[str] = None
    slug: str = Field(unique=True, index=True)
    is_active: bool = Field(default=True)
    requires_patient_info: bool = Field(default=True)
    success_message: Optional[str] = Field(default=DEFAULT_SUCCESS_MESSAGE)
    notification_email: Optional[str] = None
    allow_multiple_submissions: bool = Field(default=False)
    submission_count: int = Field(default=0)
    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    updated_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
