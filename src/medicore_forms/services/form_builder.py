"""Form builder: editing an ordered list of field drafts before saving"""

from __future__ import annotations

import logging
import re
import uuid
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from medicore_forms.exceptions import IndexOutOfRange, ValidationError
from medicore_forms.models.drafts import (
    FieldDraft,
    FormSettings,
    ValidationRules,
    parse_model,
)
from medicore_forms.models.field_type import FieldType, FieldTypeRegistry
from medicore_forms.utils.slug_utils import generate_slug, slug_error

if TYPE_CHECKING:
    from medicore_forms.models.form import Form
    from medicore_forms.models.form_field import FormField
    from medicore_forms.services.form_service import FormService

logger = logging.getLogger(__name__)

DEFAULT_OPTIONS = ["Option 1", "Option 2"]
MIN_CHOICE_OPTIONS = 2


class FormBuilder:
    """
    Stateful editor for one form.

    Holds the form settings and an ordered list of FieldDraft objects.
    Nothing is written until save() is called. order_index on drafts is
    only renormalized at save time; until then list position is the order.
    """

    def __init__(
        self,
        registry: FieldTypeRegistry,
        settings: Optional[FormSettings] = None,
        fields: Optional[List[FieldDraft]] = None,
        form_id: Optional[uuid.UUID] = None,
        slug_edited: bool = False,
    ):
        self.registry = registry
        self.settings = settings or FormSettings()
        self.fields: List[FieldDraft] = list(fields or [])
        self.form_id = form_id
        self.selected_index: Optional[int] = None
        self.slug_edited = slug_edited

    # Field list operations

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.fields):
            raise IndexOutOfRange(index, len(self.fields))

    def add_field(self, field_type: FieldType | str) -> FieldDraft:
        """Append a blank draft of field_type and select it"""
        definition = self.registry.lookup(field_type)
        draft = FieldDraft(
            field_type=definition.type,
            label="",
            placeholder="",
            help_text="",
            required=False,
            options=list(DEFAULT_OPTIONS) if definition.supports_options else None,
            order_index=len(self.fields),
        )
        self.fields.append(draft)
        self.selected_index = len(self.fields) - 1
        return draft

    def update_field(self, index: int, changes: Dict[str, Any]) -> FieldDraft:
        """Merge changes into the draft at index"""
        self._check_index(index)
        current = self.fields[index]
        # Identity and position are owned by the builder
        changes = {
            k: v for k, v in changes.items() if k not in ("id", "order_index")
        }
        merged = {**current.model_dump(), **changes}
        draft = parse_model(FieldDraft, merged)

        if draft.field_type != current.field_type:
            definition = self.registry.lookup(draft.field_type)
            if definition.supports_options and not draft.options:
                draft.options = list(DEFAULT_OPTIONS)
            elif not definition.supports_options:
                draft.options = None
            if not definition.supports_validation:
                draft.validation_rules = ValidationRules()

        self.fields[index] = draft
        return draft

    def move_field(self, from_index: int, to_index: int) -> None:
        """Move a draft to a new position; the moved draft stays selected"""
        self._check_index(from_index)
        self._check_index(to_index)
        draft = self.fields.pop(from_index)
        self.fields.insert(to_index, draft)
        self.selected_index = to_index

    def delete_field(self, index: int) -> FieldDraft:
        self._check_index(index)
        removed = self.fields.pop(index)
        self.selected_index = None
        return removed

    def duplicate_field(self, index: int) -> FieldDraft:
        """Append a copy of the draft at index, labelled '(Copy)'"""
        self._check_index(index)
        original = self.fields[index]
        copy = original.model_copy(deep=True)
        copy.id = None
        copy.label = f"{original.label} (Copy)"
        copy.order_index = len(self.fields)
        self.fields.append(copy)
        return copy

    def select_field(self, index: Optional[int]) -> None:
        if index is not None:
            self._check_index(index)
        self.selected_index = index

    # Option editing for select, radio and checkbox drafts

    def _choice_draft(self, index: int) -> FieldDraft:
        self._check_index(index)
        draft = self.fields[index]
        if not self.registry.supports_options(draft.field_type):
            raise ValidationError(
                f"{draft.field_type.value} fields do not have options"
            )
        if draft.options is None:
            draft.options = []
        return draft

    def add_option(self, index: int, value: Optional[str] = None) -> List[str]:
        draft = self._choice_draft(index)
        draft.options.append(value or f"Option {len(draft.options) + 1}")
        return draft.options

    def update_option(self, index: int, option_index: int, value: str) -> List[str]:
        draft = self._choice_draft(index)
        if not 0 <= option_index < len(draft.options):
            raise IndexOutOfRange(option_index, len(draft.options))
        draft.options[option_index] = value
        return draft.options

    def remove_option(self, index: int, option_index: int) -> List[str]:
        draft = self._choice_draft(index)
        if not 0 <= option_index < len(draft.options):
            raise IndexOutOfRange(option_index, len(draft.options))
        if len(draft.options) <= MIN_CHOICE_OPTIONS:
            raise ValidationError(
                f"Choice fields need at least {MIN_CHOICE_OPTIONS} options"
            )
        draft.options.pop(option_index)
        return draft.options

    # Settings

    def set_title(self, title: str) -> None:
        """Set the title; the slug follows it until edited explicitly"""
        self.settings.title = (title or "").strip()
        if not self.slug_edited:
            self.settings.slug = generate_slug(self.settings.title)

    def update_settings(self, changes: Dict[str, Any]) -> FormSettings:
        changes = dict(changes)
        title = changes.pop("title", None)
        if "slug" in changes:
            self.slug_edited = True
        merged = {**self.settings.model_dump(), **changes}
        self.settings = parse_model(FormSettings, merged)
        if title is not None:
            self.set_title(title)
        return self.settings

    # Save

    def validate(self) -> None:
        """Raise ValidationError for the first violated save precondition"""
        if not self.settings.title:
            raise ValidationError("Form title is required")

        if not self.fields:
            raise ValidationError("Please add at least one field to the form")

        error = slug_error(self.settings.slug)
        if error:
            raise ValidationError(error)

        for position, draft in enumerate(self.fields, start=1):
            definition = self.registry.lookup(draft.field_type)
            name = draft.label.strip() or f"Field {position} ({definition.label})"

            if definition.supports_options:
                options = [o for o in (draft.options or []) if o and o.strip()]
                if len(options) < MIN_CHOICE_OPTIONS:
                    raise ValidationError(
                        f"{name} needs at least {MIN_CHOICE_OPTIONS} options"
                    )

            rules = draft.validation_rules
            if (
                rules.min is not None
                and rules.max is not None
                and rules.min > rules.max
            ):
                raise ValidationError(f"{name}: minimum cannot exceed maximum")
            if rules.pattern:
                try:
                    re.compile(rules.pattern)
                except re.error:
                    raise ValidationError(f"{name} has an invalid pattern")

    def prepared_fields(self) -> List[FieldDraft]:
        """Drafts as they will be persisted: dense order_index, labels filled in"""
        prepared = []
        for position, draft in enumerate(self.fields):
            definition = self.registry.lookup(draft.field_type)
            field = draft.model_copy(deep=True)
            field.order_index = position
            field.label = draft.label.strip() or definition.label
            if definition.supports_options:
                field.options = [o.strip() for o in draft.options or [] if o and o.strip()]
            else:
                field.options = None
            if not definition.supports_validation:
                field.validation_rules = ValidationRules()
            prepared.append(field)
        return prepared

    def save(self, form_service: "FormService") -> "Form":
        """
        Validate and persist the form together with its fields.

        Creates the form when the builder was started from scratch, otherwise
        updates the loaded form. Either way the form row and every field row
        are written in a single transaction.
        """
        self.validate()
        drafts = self.prepared_fields()
        form = form_service.save_form(self.settings, drafts, form_id=self.form_id)
        self.form_id = form.id
        logger.info(f"Saved form {form.id} with {len(drafts)} fields")
        return form

    # Serialization for builder sessions

    def to_state(self) -> Dict[str, Any]:
        return {
            "form_id": str(self.form_id) if self.form_id else None,
            "settings": self.settings.model_dump(mode="json"),
            "fields": [draft.model_dump(mode="json") for draft in self.fields],
            "selected_index": self.selected_index,
            "slug_edited": self.slug_edited,
        }

    @classmethod
    def from_state(
        cls, registry: FieldTypeRegistry, state: Dict[str, Any]
    ) -> "FormBuilder":
        builder = cls(
            registry,
            settings=FormSettings.model_validate(state.get("settings") or {}),
            fields=[FieldDraft.model_validate(f) for f in state.get("fields") or []],
            form_id=uuid.UUID(state["form_id"]) if state.get("form_id") else None,
            slug_edited=state.get("slug_edited", False),
        )
        selected = state.get("selected_index")
        if selected is not None and 0 <= selected < len(builder.fields):
            builder.selected_index = selected
        return builder

    @classmethod
    def from_form(
        cls,
        registry: FieldTypeRegistry,
        form: "Form",
        fields: List["FormField"],
    ) -> "FormBuilder":
        """Start a builder from a saved form so it can be edited"""
        settings = FormSettings.from_form(form)
        drafts = [
            FieldDraft(
                id=field.id,
                field_type=field.field_type,
                label=field.label,
                placeholder=field.placeholder or "",
                help_text=field.help_text or "",
                required=field.required,
                options=list(field.options) if field.options else None,
                validation_rules=ValidationRules.model_validate(
                    field.validation_rules or {}
                ),
                order_index=field.order_index,
            )
            for field in sorted(fields, key=lambda f: f.order_index)
        ]
        return cls(
            registry,
            settings=settings,
            fields=drafts,
            form_id=form.id,
            slug_edited=True,
        )
