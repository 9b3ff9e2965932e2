"""Submission viewer: re-joining stored responses with their field definitions"""

import logging
import uuid
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, computed_field

from medicore_forms.models.field_type import FieldType, FieldTypeRegistry
from medicore_forms.models.form_field import FormField
from medicore_forms.models.form_submission import FormSubmission
from medicore_forms.models.response_value import (
    DateValue,
    MissingValue,
    MultiValue,
    ResponseValue,
    TextValue,
    resolve_response,
)

logger = logging.getLogger(__name__)

UNKNOWN_FIELD_LABEL = "Unknown field"
NOT_AVAILABLE = "N/A"


class AttachmentView(BaseModel):
    field_id: Optional[str] = None
    field_label: str
    file_url: str
    file_name: str
    file_size: int

    @computed_field
    @property
    def size_display(self) -> str:
        return f"{self.file_size / 1024:.2f} KB"


class ResponseView(BaseModel):
    field_id: uuid.UUID
    label: str
    field_type: FieldType
    type_label: str
    required: bool
    help_text: Optional[str] = None
    value: ResponseValue
    attachments: List[AttachmentView] = []

    @computed_field
    @property
    def badges(self) -> List[str]:
        """Discrete items for multi-value answers, empty otherwise"""
        return list(self.value.items) if isinstance(self.value, MultiValue) else []

    @computed_field
    @property
    def answered(self) -> bool:
        return not isinstance(self.value, MissingValue)

    @computed_field
    @property
    def display_text(self) -> str:
        return self.value.display()

    def display(self) -> str:
        return self.value.display()


class SubmissionView(BaseModel):
    id: uuid.UUID
    form_id: uuid.UUID
    patient_name: Optional[str] = None
    patient_email: Optional[str] = None
    patient_phone: Optional[str] = None
    submitted_at: Optional[datetime] = None
    viewed_at: Optional[datetime] = None
    is_read: bool
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    responses: List[ResponseView]
    attachments: List[AttachmentView]


class SubmissionViewer:
    """Builds human-readable views and export rows for stored submissions"""

    def __init__(self, registry: FieldTypeRegistry):
        self.registry = registry

    def _attachments(
        self, submission: FormSubmission, fields_by_id: Dict[str, FormField]
    ) -> List[AttachmentView]:
        views = []
        for attachment in submission.attachments or []:
            field_id = attachment.get("field_id")
            field = fields_by_id.get(str(field_id)) if field_id else None
            views.append(
                AttachmentView(
                    field_id=str(field_id) if field_id else None,
                    field_label=field.label if field else UNKNOWN_FIELD_LABEL,
                    file_url=attachment.get("file_url", ""),
                    file_name=attachment.get("file_name", ""),
                    file_size=int(attachment.get("file_size") or 0),
                )
            )
        return views

    def _value_for(
        self,
        field: FormField,
        raw,
        attachments: List[AttachmentView],
    ) -> ResponseValue:
        definition = self.registry.lookup(field.field_type)
        if definition.type == FieldType.FILE:
            if attachments:
                return TextValue(text=", ".join(a.file_name for a in attachments))
            return MissingValue()
        return resolve_response(definition.type, raw)

    def reconstruct(
        self, submission: FormSubmission, fields: List[FormField]
    ) -> SubmissionView:
        """
        Pair every field of the form with the submitted answer.

        Args:
            submission: Stored submission
            fields: All fields of the submission's form

        Returns:
            SubmissionView with one ResponseView per field in order_index order
        """
        ordered = sorted(fields, key=lambda f: f.order_index)
        fields_by_id = {str(f.id): f for f in ordered}
        responses = submission.responses or {}
        attachments = self._attachments(submission, fields_by_id)

        response_views = []
        for field in ordered:
            key = str(field.id)
            field_attachments = [a for a in attachments if a.field_id == key]
            response_views.append(
                ResponseView(
                    field_id=field.id,
                    label=field.label,
                    field_type=self.registry.lookup(field.field_type).type,
                    type_label=self.registry.lookup(field.field_type).label,
                    required=field.required,
                    help_text=field.help_text,
                    value=self._value_for(field, responses.get(key), field_attachments),
                    attachments=field_attachments,
                )
            )

        orphaned = set(responses) - set(fields_by_id)
        if orphaned:
            logger.warning(
                f"Submission {submission.id} has responses for {len(orphaned)} removed fields"
            )

        return SubmissionView(
            id=submission.id,
            form_id=submission.form_id,
            patient_name=submission.patient_name,
            patient_email=submission.patient_email,
            patient_phone=submission.patient_phone,
            submitted_at=submission.submitted_at,
            viewed_at=submission.viewed_at,
            is_read=submission.is_read,
            ip_address=submission.ip_address,
            user_agent=submission.user_agent,
            responses=response_views,
            attachments=attachments,
        )

    def flatten_for_export(
        self, submission: FormSubmission, fields: List[FormField]
    ) -> Dict[str, str]:
        """One flat row per submission: fixed columns first, then one per field label"""
        row = {
            "Submission ID": str(submission.id)[:8],
            "Submitted At": (
                submission.submitted_at.strftime("%Y-%m-%d %H:%M:%S")
                if submission.submitted_at
                else ""
            ),
            "Patient Name": submission.patient_name or NOT_AVAILABLE,
            "Patient Email": submission.patient_email or NOT_AVAILABLE,
            "Patient Phone": submission.patient_phone or NOT_AVAILABLE,
        }

        view = self.reconstruct(submission, fields)
        for response in view.responses:
            column = response.label
            suffix = 2
            while column in row:
                column = f"{response.label} ({suffix})"
                suffix += 1

            value = response.value
            if isinstance(value, MissingValue):
                row[column] = ""
            elif isinstance(value, DateValue):
                row[column] = value.value.isoformat()
            else:
                row[column] = value.display()

        if view.attachments:
            row["Files"] = ", ".join(a.file_name for a in view.attachments)

        return row
