"""Tests for tenant-scoped form persistence"""

import uuid

import pytest
from sqlmodel import select

from medicore_forms.exceptions import NotFoundError, ValidationError
from medicore_forms.models.drafts import FieldDraft, FormSettings
from medicore_forms.models.field_type import FieldType
from medicore_forms.models.form import Form
from medicore_forms.models.form_field import FormField
from medicore_forms.models.form_submission import FormSubmission
from medicore_forms.services.form_service import FormService, PublicFormService


def _drafts(*labels):
    return [
        FieldDraft(field_type=FieldType.TEXT, label=label, order_index=index)
        for index, label in enumerate(labels)
    ]


class TestSaveForm:
    def test_create_form_with_fields(self, form_service, doctor_id):
        settings = FormSettings(title="Dental History", slug="dental-history")

        form = form_service.save_form(settings, _drafts("Name", "Last Visit"))

        assert form.doctor_id == doctor_id
        assert form.is_active is True
        assert form.requires_patient_info is True
        assert form.success_message == "Thank you for your submission!"
        assert form.submission_count == 0
        fields = form_service.get_fields(form.id)
        assert [(f.label, f.order_index) for f in fields] == [
            ("Name", 0),
            ("Last Visit", 1),
        ]

    def test_duplicate_slug_writes_nothing(self, form_service, _db_session):
        form_service.save_form(FormSettings(title="One", slug="intake"), _drafts("A"))

        with pytest.raises(ValidationError, match="already in use"):
            form_service.save_form(
                FormSettings(title="Two", slug="intake"), _drafts("B", "C")
            )

        assert len(_db_session.exec(select(Form)).all()) == 1
        assert len(_db_session.exec(select(FormField)).all()) == 1

    def test_slug_taken_by_another_doctor(self, form_service, _db_session):
        other = FormService(_db_session, "another-doctor")
        other.save_form(FormSettings(title="Theirs", slug="shared-slug"), _drafts("A"))

        with pytest.raises(ValidationError):
            form_service.save_form(
                FormSettings(title="Mine", slug="shared-slug"), _drafts("A")
            )

    def test_update_unknown_form(self, form_service):
        with pytest.raises(NotFoundError):
            form_service.save_form(
                FormSettings(title="Ghost", slug="ghost-form"),
                _drafts("A"),
                form_id=uuid.uuid4(),
            )

    def test_requires_doctor(self, _db_session):
        with pytest.raises(ValueError):
            FormService(_db_session, "")


class TestTenantScope:
    def test_other_doctor_cannot_see_form(self, make_form, _db_session):
        form, _ = make_form()
        other = FormService(_db_session, "another-doctor")

        with pytest.raises(NotFoundError):
            other.get_form(form.id)
        with pytest.raises(NotFoundError):
            other.delete_form(form.id)
        assert other.list_forms() == []

    def test_list_forms_search(self, make_form, form_service):
        make_form(title="Allergy Questionnaire")
        make_form(title="Consent Form")

        titles = [f.title for f in form_service.list_forms()]
        assert sorted(titles) == ["Allergy Questionnaire", "Consent Form"]
        assert [f.title for f in form_service.list_forms("allergy")] == [
            "Allergy Questionnaire"
        ]
        assert form_service.list_forms("consent-form")[0].title == "Consent Form"


class TestSettingsAndDelete:
    def test_deactivate_hides_public_form(self, make_form, form_service, _db_session):
        form, _ = make_form()
        public = PublicFormService(_db_session)
        assert public.get_active_form_by_slug(form.slug).id == form.id

        updated = form_service.update_settings(form.id, {"is_active": False})

        assert updated.is_active is False
        with pytest.raises(NotFoundError):
            public.get_active_form_by_slug(form.slug)
        assert public.get_form_by_slug(form.slug).id == form.id

    def test_update_settings_validates(self, make_form, form_service):
        form, _ = make_form()
        make_form(title="Taken Slug")

        with pytest.raises(ValidationError):
            form_service.update_settings(form.id, {"title": "   "})
        with pytest.raises(ValidationError, match="already in use"):
            form_service.update_settings(form.id, {"slug": "taken-slug"})

        assert form_service.get_form(form.id).slug == "patient-intake"

    def test_delete_form_removes_fields_and_submissions(
        self, make_form, form_service, _db_session, doctor_id
    ):
        form, fields = make_form()
        _db_session.add(
            FormSubmission(
                form_id=form.id,
                doctor_id=doctor_id,
                responses={str(fields[0].id): "Jane"},
            )
        )
        _db_session.commit()

        form_service.delete_form(form.id)

        assert _db_session.exec(select(Form)).all() == []
        assert _db_session.exec(select(FormField)).all() == []
        assert _db_session.exec(select(FormSubmission)).all() == []
        with pytest.raises(NotFoundError):
            form_service.get_form(form.id)
