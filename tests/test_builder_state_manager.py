import json

import pytest

from medicore_forms.exceptions import NotFoundError
from medicore_forms.models.field_type import FieldType
from medicore_forms.services.builder_state_manager import BuilderStateManager
from medicore_forms.services.form_builder import FormBuilder


@pytest.fixture
def builder(registry):
    builder = FormBuilder(registry)
    builder.set_title("Pre-Op Checklist")
    builder.add_field(FieldType.CHECKBOX)
    builder.update_field(0, {"label": "Symptoms", "options": ["Fever", "Cough"]})
    return builder


def test_create_and_get_session(state_manager, builder, redis_client, doctor_id):
    """Test a stored builder comes back with the same drafts."""
    session_id = state_manager.create_session(builder)

    key = f"form_builder:{doctor_id}:{session_id}"
    assert redis_client.exists(key)
    assert 1790 < redis_client.ttl(key) <= 1800

    restored = state_manager.get_session(session_id)
    assert restored.settings.title == "Pre-Op Checklist"
    assert restored.settings.slug == "pre-op-checklist"
    assert restored.fields[0].label == "Symptoms"
    assert restored.fields[0].options == ["Fever", "Cough"]
    assert restored.selected_index == 0


def test_save_session_overwrites_state(state_manager, builder):
    session_id = state_manager.create_session(builder)

    builder.duplicate_field(0)
    state_manager.save_session(session_id, builder)

    restored = state_manager.get_session(session_id)
    assert [f.label for f in restored.fields] == ["Symptoms", "Symptoms (Copy)"]


def test_missing_session(state_manager):
    with pytest.raises(NotFoundError):
        state_manager.get_session("does-not-exist")


def test_corrupted_session_is_treated_as_missing(state_manager, redis_client, doctor_id):
    redis_client.setex(f"form_builder:{doctor_id}:broken", 1800, "{not json")
    with pytest.raises(NotFoundError):
        state_manager.get_session("broken")


def test_clear_session(state_manager, builder):
    session_id = state_manager.create_session(builder)
    state_manager.clear_session(session_id)

    with pytest.raises(NotFoundError):
        state_manager.get_session(session_id)


def test_sessions_are_scoped_to_doctor(state_manager, builder, redis_client, registry):
    session_id = state_manager.create_session(builder)
    other = BuilderStateManager(redis_client, registry, "another-doctor")

    with pytest.raises(NotFoundError):
        other.get_session(session_id)


def test_state_is_plain_json(state_manager, builder, redis_client, doctor_id):
    session_id = state_manager.create_session(builder)
    state = json.loads(redis_client.get(f"form_builder:{doctor_id}:{session_id}"))

    assert state["fields"][0]["field_type"] == "checkbox"
    assert state["form_id"] is None


def test_ttl_sliding_window(state_manager, builder, redis_client, doctor_id):
    """Test that saving a session resets its expiry."""
    session_id = state_manager.create_session(builder)
    key = f"form_builder:{doctor_id}:{session_id}"
    redis_client.expire(key, 60)

    builder.add_field(FieldType.DATE)
    state_manager.save_session(session_id, builder)

    assert redis_client.ttl(key) > 1790


def test_expired_session_is_missing(state_manager, builder, redis_client, doctor_id):
    session_id = state_manager.create_session(builder)
    redis_client.delete(f"form_builder:{doctor_id}:{session_id}")

    with pytest.raises(NotFoundError, match="expired"):
        state_manager.get_session(session_id)
