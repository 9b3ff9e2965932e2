"""Pydantic models for not-yet-persisted form configuration"""

import uuid
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, EmailStr, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from medicore_forms.exceptions import ValidationError
from medicore_forms.models.field_type import FieldType
from medicore_forms.models.form import DEFAULT_SUCCESS_MESSAGE

ModelT = TypeVar("ModelT", bound=BaseModel)


class ValidationRules(BaseModel):
    """Optional constraints for text, number and date fields"""

    min: Optional[float] = None
    max: Optional[float] = None
    pattern: Optional[str] = None

    def as_dict(self) -> dict:
        return self.model_dump(exclude_none=True)


class FieldDraft(BaseModel):
    """A field configuration inside a builder session.

    id is set only for fields loaded from an already saved form, so that
    edits keep the ids existing submissions are keyed by.
    """

    id: Optional[uuid.UUID] = None
    field_type: FieldType
    label: str = ""
    placeholder: str = ""
    help_text: str = ""
    required: bool = False
    options: Optional[List[str]] = None
    validation_rules: ValidationRules = Field(default_factory=ValidationRules)
    order_index: int = 0


class FormSettings(BaseModel):
    """Form-level settings edited alongside the field list"""

    title: str = ""
    description: str = ""
    slug: str = ""
    is_active: bool = True
    requires_patient_info: bool = True
    success_message: str = DEFAULT_SUCCESS_MESSAGE
    notification_email: Optional[EmailStr] = None
    allow_multiple_submissions: bool = False

    @field_validator("notification_email", mode="before")
    @classmethod
    def _blank_email_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("title", "slug", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value

    @classmethod
    def from_form(cls, form) -> "FormSettings":
        return cls(
            title=form.title,
            description=form.description or "",
            slug=form.slug,
            is_active=form.is_active,
            requires_patient_info=form.requires_patient_info,
            success_message=form.success_message or "",
            notification_email=form.notification_email,
            allow_multiple_submissions=form.allow_multiple_submissions,
        )


def parse_model(model_cls: Type[ModelT], data: Dict[str, Any]) -> ModelT:
    """Validate data into model_cls, reporting the first problem as a form engine ValidationError"""
    try:
        return model_cls.model_validate(data)
    except PydanticValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        message = first.get("msg", "Invalid value")
        raise ValidationError(f"{location}: {message}" if location else message) from e
