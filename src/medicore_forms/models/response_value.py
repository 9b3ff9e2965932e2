"""Typed views of stored submission responses.

Stored responses are plain JSON (string, list of strings or bool). The
variant is chosen from the field's declared type, not from the stored shape.
"""

from datetime import date
from typing import Annotated, Any, List, Literal, Union

from pydantic import BaseModel, Field

from medicore_forms.models.field_type import FieldType

NO_RESPONSE = "No response"


class TextValue(BaseModel):
    kind: Literal["text"] = "text"
    text: str

    def display(self) -> str:
        return self.text


class MultiValue(BaseModel):
    kind: Literal["multi"] = "multi"
    items: List[str]

    def display(self) -> str:
        return ", ".join(self.items)


class BoolValue(BaseModel):
    kind: Literal["bool"] = "bool"
    value: bool

    def display(self) -> str:
        return "Yes" if self.value else "No"


class DateValue(BaseModel):
    kind: Literal["date"] = "date"
    value: date

    def display(self) -> str:
        return self.value.strftime("%B %d, %Y")


class MissingValue(BaseModel):
    kind: Literal["missing"] = "missing"

    def display(self) -> str:
        return NO_RESPONSE


ResponseValue = Annotated[
    Union[TextValue, MultiValue, BoolValue, DateValue, MissingValue],
    Field(discriminator="kind"),
]


def is_absent(raw: Any) -> bool:
    """None, empty string and empty list count as absent; 0 and False do not"""
    if raw is None:
        return True
    if isinstance(raw, str) and raw.strip() == "":
        return True
    if isinstance(raw, (list, tuple)) and len(raw) == 0:
        return True
    return False


def _as_text(raw: Any) -> str:
    if isinstance(raw, (list, tuple)):
        return ", ".join(str(item) for item in raw)
    return str(raw)


def resolve_response(field_type: FieldType, raw: Any) -> ResponseValue:
    """Build the typed value for a stored response of a field of field_type"""
    if is_absent(raw):
        return MissingValue()

    if isinstance(raw, bool):
        # Single consent-style checkboxes store a bare boolean
        return BoolValue(value=raw)

    if field_type == FieldType.CHECKBOX:
        if isinstance(raw, (list, tuple)):
            return MultiValue(items=[str(item) for item in raw])
        return MultiValue(items=[str(raw)])

    if field_type == FieldType.DATE:
        try:
            return DateValue(value=date.fromisoformat(str(raw)[:10]))
        except ValueError:
            return TextValue(text=_as_text(raw))

    return TextValue(text=_as_text(raw))
