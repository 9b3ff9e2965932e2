import pytest
from pydantic import ValidationError as PydanticValidationError

from medicore_forms.models.field_type import (
    DEFAULT_FIELD_TYPES,
    FieldType,
    FieldTypeRegistry,
    build_field_type_registry,
)


def test_lookup_returns_definition_for_every_type(registry):
    """Every field type resolves to its own definition"""
    for field_type in FieldType:
        assert registry.lookup(field_type).type == field_type
        assert registry.lookup(field_type.value).type == field_type


def test_unknown_type_falls_back_to_first_entry(registry):
    definition = registry.lookup("signature")

    assert definition == DEFAULT_FIELD_TYPES[0]
    assert definition.type == FieldType.TEXT
    assert "signature" not in registry


def test_catalog_covers_all_types(registry):
    assert len(registry) == len(FieldType) == 10
    assert [d.type for d in registry.definitions()] == list(FieldType)


def test_choice_types_support_options(registry):
    choice_types = {t for t in FieldType if registry.supports_options(t)}
    assert choice_types == {FieldType.SELECT, FieldType.RADIO, FieldType.CHECKBOX}


def test_catalog_values():
    registry = build_field_type_registry()
    email = registry.lookup(FieldType.EMAIL)
    assert email.label == "Email"
    assert email.default_placeholder == "your@email.com"
    assert registry.lookup(FieldType.FILE).label == "File Upload"
    assert registry.lookup(FieldType.RADIO).supports_validation is False


def test_definitions_are_frozen(registry):
    definition = registry.lookup(FieldType.TEXT)
    with pytest.raises(PydanticValidationError):
        definition.label = "Changed"


def test_registry_rejects_duplicates_and_empty_catalog():
    with pytest.raises(ValueError):
        FieldTypeRegistry([DEFAULT_FIELD_TYPES[0], DEFAULT_FIELD_TYPES[0]])
    with pytest.raises(ValueError):
        FieldTypeRegistry([])
