"""Submission service - validating and storing public form submissions"""

import asyncio
import logging
import math
import re
import uuid
from datetime import date
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from medicore_forms.backends.blob_client import BlobClient
from medicore_forms.exceptions import (
    InvalidFieldValue,
    MissingPatientInfo,
    MissingRequiredField,
    NotFoundError,
    StorageError,
    SubmissionFailed,
    ValidationError,
)
from medicore_forms.models.field_type import FieldType, FieldTypeRegistry
from medicore_forms.models.form import Form
from medicore_forms.models.form_field import FormField
from medicore_forms.models.form_submission import FormSubmission
from medicore_forms.models.response_value import is_absent
from medicore_forms.utils.file_utils import ALLOWED_CONTENT_TYPES, attachment_path

if TYPE_CHECKING:
    from medicore_forms.services.email_service import EmailService

logger = logging.getLogger(__name__)

DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024
TEXT_LIKE_TYPES = (FieldType.TEXT, FieldType.EMAIL, FieldType.PHONE, FieldType.TEXTAREA)

_email_adapter = TypeAdapter(EmailStr)


class StagedFile(BaseModel):
    """An uploaded file held in memory until the submission is sent"""

    file_name: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


class SessionState(str, Enum):
    COLLECTING = "collecting"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    REJECTED = "rejected"
    SUBMITTED = "submitted"


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


class SubmissionSession:
    """
    One visitor filling in one form.

    Responses are keyed by str(field.id). File fields never hold inline
    values; their uploads are staged separately and only sent on submit.
    """

    def __init__(
        self,
        form: Form,
        fields: List[FormField],
        registry: FieldTypeRegistry,
        max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
    ):
        if not form.is_active:
            raise NotFoundError("Form not found")

        self.form = form
        self.fields = sorted(fields, key=lambda f: f.order_index)
        self.registry = registry
        self.max_upload_bytes = max_upload_bytes
        self.responses: Dict[str, Any] = {}
        self.files: Dict[str, StagedFile] = {}
        self.patient_name = ""
        self.patient_email = ""
        self.patient_phone = ""
        self.state = SessionState.COLLECTING
        self.last_error: Optional[Exception] = None
        self._fields_by_id = {str(field.id): field for field in self.fields}

    def _field(self, field_id) -> FormField:
        field = self._fields_by_id.get(str(field_id))
        if field is None:
            raise ValidationError(f"Unknown field: {field_id}")
        return field

    def _field_type(self, field: FormField) -> FieldType:
        return self.registry.lookup(field.field_type).type

    def _reopen(self) -> None:
        if self.state == SessionState.SUBMITTED:
            raise ValidationError("This response has already been submitted")
        if self.state == SessionState.REJECTED:
            self.state = SessionState.COLLECTING

    def set_response(self, field_id, value: Any) -> None:
        self._reopen()
        field = self._field(field_id)
        if self._field_type(field) == FieldType.FILE:
            raise ValidationError(f"{field.label} only accepts file uploads")
        self.responses[str(field.id)] = value

    def stage_file(self, field_id, staged: StagedFile) -> None:
        self._reopen()
        field = self._field(field_id)
        if self._field_type(field) != FieldType.FILE:
            raise ValidationError(f"{field.label} does not accept file uploads")
        self.files[str(field.id)] = staged

    def set_patient_info(self, name: str = "", email: str = "", phone: str = "") -> None:
        self._reopen()
        self.patient_name = (name or "").strip()
        self.patient_email = (email or "").strip()
        self.patient_phone = (phone or "").strip()

    def reject(self, error: Exception) -> None:
        self.state = SessionState.REJECTED
        self.last_error = error

    # Validation

    def _check_number(self, field: FormField, value: Any, rules: dict) -> None:
        try:
            number = float(str(value).strip())
        except ValueError:
            raise InvalidFieldValue(field.label, "must be a number")
        if math.isnan(number) or math.isinf(number):
            raise InvalidFieldValue(field.label, "must be a number")
        if rules.get("min") is not None and number < rules["min"]:
            raise InvalidFieldValue(
                field.label, f"must be at least {_format_number(rules['min'])}"
            )
        if rules.get("max") is not None and number > rules["max"]:
            raise InvalidFieldValue(
                field.label, f"must be at most {_format_number(rules['max'])}"
            )

    def _check_text(
        self, field: FormField, field_type: FieldType, value: Any, rules: dict
    ) -> None:
        text = str(value)
        if field_type == FieldType.EMAIL:
            try:
                _email_adapter.validate_python(text.strip())
            except PydanticValidationError:
                raise InvalidFieldValue(field.label, "must be a valid email address")
        if rules.get("pattern") and re.fullmatch(rules["pattern"], text) is None:
            raise InvalidFieldValue(field.label, "is not in the expected format")
        if rules.get("min") is not None and len(text) < rules["min"]:
            raise InvalidFieldValue(
                field.label,
                f"must be at least {_format_number(rules['min'])} characters",
            )
        if rules.get("max") is not None and len(text) > rules["max"]:
            raise InvalidFieldValue(
                field.label,
                f"must be at most {_format_number(rules['max'])} characters",
            )

    def _check_value(self, field: FormField, field_type: FieldType, value: Any) -> None:
        rules = field.validation_rules or {}
        options = field.options or []

        if field_type == FieldType.NUMBER:
            self._check_number(field, value, rules)
        elif field_type in (FieldType.SELECT, FieldType.RADIO):
            if str(value) not in options:
                raise InvalidFieldValue(field.label, "must be one of the listed options")
        elif field_type == FieldType.CHECKBOX:
            if isinstance(value, bool):
                return
            items = value if isinstance(value, (list, tuple)) else [value]
            if any(str(item) not in options for item in items):
                raise InvalidFieldValue(field.label, "contains an option that is not listed")
        elif field_type == FieldType.DATE:
            text = str(value).strip()
            try:
                if len(text) != 10:
                    raise ValueError(text)
                date.fromisoformat(text)
            except ValueError:
                raise InvalidFieldValue(field.label, "must be a date (YYYY-MM-DD)")
        elif field_type in TEXT_LIKE_TYPES:
            self._check_text(field, field_type, value, rules)

    def _check_file(self, field: FormField, staged: StagedFile) -> None:
        if staged.size > self.max_upload_bytes:
            limit_mb = self.max_upload_bytes / (1024 * 1024)
            raise InvalidFieldValue(
                field.label, f"must be smaller than {_format_number(limit_mb)} MB"
            )
        if staged.content_type not in ALLOWED_CONTENT_TYPES:
            raise InvalidFieldValue(field.label, "must be an image or a PDF")

    def validate(self) -> None:
        """
        Check every field in display order, then the patient contact details.

        Stops at the first problem. On failure the session moves to REJECTED
        and keeps every entered value so the visitor can correct and retry.

        Raises:
            MissingRequiredField: A required field has neither a value nor a file
            InvalidFieldValue: A value breaks its field type's contract
            MissingPatientInfo: Contact details are required but incomplete
        """
        self._reopen()
        self.state = SessionState.VALIDATING
        try:
            for field in self.fields:
                field_type = self._field_type(field)
                key = str(field.id)
                value = self.responses.get(key)
                staged = self.files.get(key)

                if field.required and (is_absent(value) or value is False) and not staged:
                    raise MissingRequiredField(field.label)

                if staged is not None:
                    self._check_file(field, staged)
                elif not is_absent(value):
                    self._check_value(field, field_type, value)

            if self.form.requires_patient_info and not (
                self.patient_name and self.patient_email and self.patient_phone
            ):
                raise MissingPatientInfo()
        except ValidationError as e:
            self.reject(e)
            raise

    def stored_responses(self) -> Dict[str, Any]:
        """Responses as persisted: only known non-file fields with a value"""
        stored = {}
        for field in self.fields:
            key = str(field.id)
            if self._field_type(field) == FieldType.FILE:
                continue
            value = self.responses.get(key)
            if not is_absent(value):
                stored[key] = value
        return stored

    def staged_files(self) -> List[Tuple[str, StagedFile]]:
        return [
            (str(field.id), self.files[str(field.id)])
            for field in self.fields
            if str(field.id) in self.files
        ]


class SubmissionService:
    """Sends validated submission sessions to the blob store and the database"""

    def __init__(
        self,
        db_session: Session,
        blob_client: Optional[BlobClient] = None,
        email_service: Optional["EmailService"] = None,
    ):
        self.db = db_session
        self.blob_client = blob_client
        self.email_service = email_service

    async def submit(
        self,
        session: SubmissionSession,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> FormSubmission:
        """
        Validate, upload attachments and store the submission.

        The submission id is generated before any upload so object paths can
        include it. The row insert and the form's submission_count increment
        share one transaction.

        Raises:
            ValidationError: The session did not pass validation
            SubmissionFailed: An upload or the insert failed; nothing was stored
        """
        session.validate()
        session.state = SessionState.SUBMITTING
        submission_id = uuid.uuid4()
        uploaded: List[str] = []

        try:
            attachments = await self._upload_files(session, submission_id, uploaded)
            submission = self._insert(
                session, submission_id, attachments, ip_address, user_agent
            )
        except SubmissionFailed as e:
            self._discard_uploads(uploaded)
            session.reject(e)
            raise

        session.state = SessionState.SUBMITTED
        logger.info(
            f"Stored submission {submission.id} for form {session.form.id} "
            f"with {len(attachments)} attachments"
        )

        await self._notify(session, submission)
        return submission

    async def _upload_files(
        self,
        session: SubmissionSession,
        submission_id: uuid.UUID,
        uploaded: List[str],
    ) -> List[Dict[str, Any]]:
        """Upload every staged file concurrently and wait for all of them"""
        staged = session.staged_files()
        if not staged:
            return []
        if self.blob_client is None:
            raise SubmissionFailed("File uploads are not available right now")

        form = session.form
        paths = [
            attachment_path(
                form.doctor_id, str(form.id), str(submission_id), field_id, f.file_name
            )
            for field_id, f in staged
        ]
        results = await asyncio.gather(
            *(
                asyncio.to_thread(self.blob_client.upload, path, f.data, f.content_type)
                for path, (_, f) in zip(paths, staged)
            ),
            return_exceptions=True,
        )

        failures = []
        attachments = []
        for path, (field_id, f), result in zip(paths, staged, results):
            if isinstance(result, BaseException):
                failures.append(result)
                continue
            uploaded.append(path)
            attachments.append(
                {
                    "field_id": field_id,
                    "file_url": result,
                    "file_name": f.file_name,
                    "file_size": f.size,
                }
            )

        if failures:
            logger.error(
                f"{len(failures)} of {len(staged)} uploads failed for submission {submission_id}"
            )
            raise SubmissionFailed("Failed to upload files", cause=failures[0])

        return attachments

    def _insert(
        self,
        session: SubmissionSession,
        submission_id: uuid.UUID,
        attachments: List[Dict[str, Any]],
        ip_address: Optional[str],
        user_agent: Optional[str],
    ) -> FormSubmission:
        form = session.form
        keep_patient = form.requires_patient_info
        try:
            submission = FormSubmission(
                id=submission_id,
                form_id=form.id,
                doctor_id=form.doctor_id,
                patient_name=session.patient_name or None if keep_patient else None,
                patient_email=session.patient_email or None if keep_patient else None,
                patient_phone=session.patient_phone or None if keep_patient else None,
                responses=session.stored_responses(),
                attachments=attachments or None,
                ip_address=ip_address,
                user_agent=user_agent,
            )
            self.db.add(submission)

            # Incremented in SQL so concurrent submissions do not lose counts
            result = self.db.exec(
                update(Form)
                .where(Form.id == form.id)
                .values(submission_count=Form.submission_count + 1)
            )
            if result.rowcount == 0:
                raise SubmissionFailed("This form is no longer available")

            self.db.commit()
            self.db.refresh(submission)
        except SubmissionFailed:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error storing submission {submission_id}: {e}")
            raise SubmissionFailed("Failed to submit form", cause=e) from e

        return submission

    def _discard_uploads(self, paths: List[str]) -> None:
        """Best-effort removal of objects uploaded for a submission that was not stored"""
        for path in paths:
            try:
                self.blob_client.delete(path)
            except StorageError as e:
                logger.warning(f"Could not remove orphaned upload {path}: {e}")

    async def _notify(self, session: SubmissionSession, submission: FormSubmission) -> None:
        if self.email_service is None or not session.form.notification_email:
            return
        await self.email_service.notify_new_submission(
            session.form, session.fields, submission
        )
