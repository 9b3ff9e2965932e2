"""Form service - tenant-scoped form database operations"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

from medicore_forms.exceptions import NotFoundError, StorageError, ValidationError
from medicore_forms.models.drafts import FieldDraft, FormSettings, parse_model
from medicore_forms.models.form import Form
from medicore_forms.models.form_field import FormField
from medicore_forms.models.form_submission import FormSubmission
from medicore_forms.services.form_field_service import FormFieldService
from medicore_forms.utils.slug_utils import slug_error

logger = logging.getLogger(__name__)


def _apply_settings(form: Form, settings: FormSettings) -> Form:
    form.title = settings.title
    form.description = settings.description or None
    form.slug = settings.slug
    form.is_active = settings.is_active
    form.requires_patient_info = settings.requires_patient_info
    form.success_message = settings.success_message or None
    form.notification_email = (
        str(settings.notification_email) if settings.notification_email else None
    )
    form.allow_multiple_submissions = settings.allow_multiple_submissions
    return form


class FormService:
    """
    Form operations for one doctor.

    The doctor id is fixed at construction and applied to every query, so a
    form owned by another doctor behaves exactly like a missing one.
    """

    def __init__(self, db_session: Session, doctor_id: str):
        if not doctor_id:
            raise ValueError("FormService requires a doctor_id")
        self.db = db_session
        self.doctor_id = doctor_id
        self.field_service = FormFieldService(db_session)

    def _owned_forms(self):
        return select(Form).where(Form.doctor_id == self.doctor_id)

    def _slug_taken(self, slug: str, exclude_id: Optional[uuid.UUID] = None) -> bool:
        statement = select(Form.id).where(Form.slug == slug)
        if exclude_id is not None:
            statement = statement.where(Form.id != exclude_id)
        return self.db.exec(statement).first() is not None

    def _check_slug(self, slug: str, exclude_id: Optional[uuid.UUID] = None) -> None:
        error = slug_error(slug)
        if error:
            raise ValidationError(error)
        if self._slug_taken(slug, exclude_id):
            raise ValidationError(f"The slug '{slug}' is already in use")

    def save_form(
        self,
        settings: FormSettings,
        drafts: List[FieldDraft],
        form_id: Optional[uuid.UUID] = None,
    ) -> Form:
        """
        Create or update a form and its fields in one transaction.

        Args:
            settings: Form-level settings
            drafts: Prepared field drafts (order_index already dense)
            form_id: Existing form to update, or None to create a new one

        Returns:
            The saved Form

        Raises:
            ValidationError: Slug invalid or taken
            NotFoundError: form_id is not one of this doctor's forms
            StorageError: The database rejected the write
        """
        try:
            if form_id is None:
                self._check_slug(settings.slug)
                form = _apply_settings(
                    Form(doctor_id=self.doctor_id, title=settings.title, slug=settings.slug),
                    settings,
                )
                self.db.add(form)
                self.db.flush()
                self.field_service.create_form_fields(form.id, drafts)
            else:
                form = self.get_form(form_id)
                self._check_slug(settings.slug, exclude_id=form.id)
                _apply_settings(form, settings)
                form.updated_at = datetime.now(timezone.utc)
                self.db.add(form)
                self.field_service.replace_form_fields(form.id, drafts)

            self.db.commit()
            self.db.refresh(form)

        except (ValidationError, NotFoundError):
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error saving form for doctor {self.doctor_id}: {e}")
            raise StorageError(f"Failed to save form: {e}") from e

        logger.info(f"Form saved successfully: {form.id} ({len(drafts)} fields)")
        return form

    def list_forms(self, search: Optional[str] = None) -> List[Form]:
        """This doctor's forms, newest first, optionally filtered by title/description/slug"""
        statement = self._owned_forms().order_by(col(Form.created_at).desc())
        if search and search.strip():
            pattern = f"%{search.strip()}%"
            statement = statement.where(
                or_(
                    col(Form.title).ilike(pattern),
                    col(Form.description).ilike(pattern),
                    col(Form.slug).ilike(pattern),
                )
            )
        try:
            return list(self.db.exec(statement).all())
        except SQLAlchemyError as e:
            logger.error(f"Error listing forms for doctor {self.doctor_id}: {e}")
            raise StorageError(f"Failed to list forms: {e}") from e

    def get_form(self, form_id: uuid.UUID) -> Form:
        form = self.db.exec(self._owned_forms().where(Form.id == form_id)).first()
        if not form:
            raise NotFoundError("Form not found")
        return form

    def get_fields(self, form_id: uuid.UUID) -> List[FormField]:
        form = self.get_form(form_id)
        return self.field_service.get_fields_by_form_id(form.id)

    def get_form_with_fields(self, form_id: uuid.UUID) -> Tuple[Form, List[FormField]]:
        form = self.get_form(form_id)
        return form, self.field_service.get_fields_by_form_id(form.id)

    def update_settings(self, form_id: uuid.UUID, changes: Dict[str, Any]) -> Form:
        """
        Update form-level settings without touching the fields

        Args:
            form_id: UUID of the form
            changes: Partial settings, e.g. {"is_active": False}

        Returns:
            The updated Form
        """
        form = self.get_form(form_id)
        current = FormSettings.from_form(form)
        settings = parse_model(FormSettings, {**current.model_dump(), **changes})
        if not settings.title:
            raise ValidationError("Form title is required")

        try:
            if settings.slug != form.slug:
                self._check_slug(settings.slug, exclude_id=form.id)
            _apply_settings(form, settings)
            form.updated_at = datetime.now(timezone.utc)
            self.db.add(form)
            self.db.commit()
            self.db.refresh(form)
        except ValidationError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error updating form {form_id}: {e}")
            raise StorageError(f"Failed to update form: {e}") from e

        logger.info(f"Form updated successfully: {form.id}")
        return form

    def delete_form(self, form_id: uuid.UUID) -> None:
        """Delete a form together with its fields and submissions"""
        form = self.get_form(form_id)
        try:
            submissions = self.db.exec(
                select(FormSubmission).where(FormSubmission.form_id == form.id)
            ).all()
            for submission in submissions:
                self.db.delete(submission)
            removed = self.field_service.delete_fields_for_form(form.id)
            # Children go first; nothing relates the models for the flush to order them
            self.db.flush()
            self.db.delete(form)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error deleting form {form_id}: {e}")
            raise StorageError(f"Failed to delete form: {e}") from e

        logger.info(f"Form {form_id} deleted with {removed} fields")


class PublicFormService:
    """Read-only lookups used by the public form pages (no tenant scope)"""

    def __init__(self, db_session: Session):
        self.db = db_session
        self.field_service = FormFieldService(db_session)

    def get_active_form_by_slug(self, slug: str) -> Form:
        """
        Retrieve an active form by its slug

        Raises:
            NotFoundError: No form has this slug or it is inactive
        """
        logger.info(f"Retrieving form by slug: {slug}")
        statement = select(Form).where(Form.slug == slug, Form.is_active == True)  # noqa: E712
        form = self.db.exec(statement).first()
        if not form:
            raise NotFoundError("Form not found")
        return form

    def get_form_by_slug(self, slug: str) -> Form:
        """Retrieve a form by slug whether or not it is active"""
        form = self.db.exec(select(Form).where(Form.slug == slug)).first()
        if not form:
            raise NotFoundError("Form not found")
        return form

    def get_fields(self, form_id: uuid.UUID) -> List[FormField]:
        return self.field_service.get_fields_by_form_id(form_id)
