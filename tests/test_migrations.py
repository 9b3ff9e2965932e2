"""Tests for the constraints the migrations put on the database"""

import uuid

import pytest
from sqlalchemy import inspect, text
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlmodel import select

from medicore_forms.models.form_field import FormField
from medicore_forms.models.form_submission import FormSubmission


def _insert_field(db, form_id, field_type="text", order_index=0):
    db.execute(
        text(
            "INSERT INTO form_fields (id, form_id, field_type, label, required, order_index) "
            "VALUES (:id, :form_id, :field_type, 'Extra', false, :order_index)"
        ),
        {
            "id": uuid.uuid4(),
            "form_id": form_id,
            "field_type": field_type,
            "order_index": order_index,
        },
    )


class TestSchema:
    def test_tables_exist(self, engine):
        tables = set(inspect(engine).get_table_names())
        assert {"forms", "form_fields", "form_submissions", "alembic_version"} <= tables

    def test_field_type_enum_matches_registry(self, _db_session, registry):
        labels = _db_session.execute(
            text("SELECT unnest(enum_range(NULL::form_field_type))::text")
        ).scalars().all()

        assert set(labels) == {definition.type.value for definition in registry.definitions()}

    def test_unknown_field_type_rejected(self, _db_session, make_form):
        form, _ = make_form()

        with pytest.raises(DBAPIError):
            _insert_field(_db_session, form.id, field_type="signature", order_index=5)
        _db_session.rollback()

    def test_order_index_unique_per_form(self, _db_session, make_form):
        form, fields = make_form()

        with pytest.raises(IntegrityError):
            _insert_field(_db_session, form.id, order_index=fields[0].order_index)
            _db_session.flush()
        _db_session.rollback()

        other, _ = make_form(title="Follow-up Visit")
        _insert_field(_db_session, other.id, order_index=fields[0].order_index + 1)
        _db_session.commit()

    def test_deleting_form_row_cascades(self, _db_session, make_form):
        form, fields = make_form()
        _db_session.add(
            FormSubmission(
                form_id=form.id,
                doctor_id=form.doctor_id,
                responses={str(fields[0].id): "Jane"},
            )
        )
        _db_session.commit()

        _db_session.execute(text("DELETE FROM forms WHERE id = :id"), {"id": form.id})
        _db_session.commit()
        _db_session.expunge_all()

        assert _db_session.exec(select(FormField).where(FormField.form_id == form.id)).all() == []
        assert (
            _db_session.exec(
                select(FormSubmission).where(FormSubmission.form_id == form.id)
            ).all()
            == []
        )
