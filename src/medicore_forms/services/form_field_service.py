"""FormField service for managing the fields of a form"""

import logging
import uuid
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from medicore_forms.exceptions import StorageError
from medicore_forms.models.drafts import FieldDraft
from medicore_forms.models.form_field import FormField

logger = logging.getLogger(__name__)


def _apply_draft(form_field: FormField, draft: FieldDraft) -> FormField:
    form_field.field_type = draft.field_type
    form_field.label = draft.label
    form_field.placeholder = draft.placeholder or None
    form_field.help_text = draft.help_text or None
    form_field.required = draft.required
    form_field.options = list(draft.options) if draft.options else None
    form_field.validation_rules = draft.validation_rules.as_dict() or None
    form_field.order_index = draft.order_index
    return form_field


class FormFieldService:
    """Service for managing form fields"""

    def __init__(self, db_session: Session):
        self.db = db_session

    def create_form_fields(
        self, form_id: uuid.UUID, drafts: List[FieldDraft]
    ) -> List[FormField]:
        """
        Add fields for a form to the current session.
        Note: This does NOT commit - caller must handle transaction

        Args:
            form_id: UUID of the form
            drafts: Prepared drafts; order_index is taken as given

        Returns:
            List of created FormField instances
        """
        created_fields = []

        for draft in drafts:
            form_field = _apply_draft(
                FormField(form_id=form_id, field_type=draft.field_type, label=draft.label),
                draft,
            )
            self.db.add(form_field)
            created_fields.append(form_field)

        logger.info(f"Prepared {len(created_fields)} form fields for form {form_id}")
        return created_fields

    def replace_form_fields(
        self, form_id: uuid.UUID, drafts: List[FieldDraft]
    ) -> List[FormField]:
        """
        Make the form's fields match drafts.
        Note: This does NOT commit - caller must handle transaction

        Drafts carrying the id of an existing field update that row so that
        submissions keyed by the id stay readable. Fields without a matching
        draft are deleted; drafts without an id are inserted.
        """
        existing = {f.id: f for f in self._select_fields(form_id)}
        keep_ids = {d.id for d in drafts if d.id is not None and d.id in existing}

        for field_id, form_field in existing.items():
            if field_id not in keep_ids:
                self.db.delete(form_field)

        # Park kept rows on negative positions so reordering never trips
        # the (form_id, order_index) unique constraint
        for position, field_id in enumerate(keep_ids, start=1):
            existing[field_id].order_index = -position
            self.db.add(existing[field_id])
        self.db.flush()

        result = []
        for draft in drafts:
            if draft.id is not None and draft.id in keep_ids:
                form_field = _apply_draft(existing[draft.id], draft)
                self.db.add(form_field)
                result.append(form_field)
            else:
                result.extend(self.create_form_fields(form_id, [draft]))
        self.db.flush()

        logger.info(
            f"Replaced fields for form {form_id}: {len(keep_ids)} kept, "
            f"{len(result) - len(keep_ids)} added, {len(existing) - len(keep_ids)} removed"
        )
        return result

    def _select_fields(self, form_id: uuid.UUID) -> List[FormField]:
        statement = (
            select(FormField)
            .where(FormField.form_id == form_id)
            .order_by(FormField.order_index)
        )
        return list(self.db.exec(statement).all())

    def get_fields_by_form_id(self, form_id: uuid.UUID) -> List[FormField]:
        """
        Get all form fields for a specific form, ordered by order_index

        Args:
            form_id: UUID of the form

        Returns:
            List of FormField instances ordered by order_index

        Raises:
            StorageError: If the query fails
        """
        try:
            fields = self._select_fields(form_id)
            logger.info(f"Retrieved {len(fields)} form fields for form {form_id}")
            return fields
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving form fields for form {form_id}: {e}")
            raise StorageError(f"Failed to load form fields: {e}") from e

    def delete_fields_for_form(self, form_id: uuid.UUID) -> int:
        """Delete every field of a form. Does NOT commit."""
        fields = self._select_fields(form_id)
        for form_field in fields:
            self.db.delete(form_field)
        return len(fields)
