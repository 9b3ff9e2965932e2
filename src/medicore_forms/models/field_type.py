"""Field type catalog for dynamic forms"""

import logging
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Tuple, Union

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)


class FieldType(str, Enum):
    """Enum for form field types"""

    TEXT = "text"
    EMAIL = "email"
    NUMBER = "number"
    PHONE = "phone"
    TEXTAREA = "textarea"
    SELECT = "select"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    DATE = "date"
    FILE = "file"


class FieldTypeDefinition(BaseModel):
    """Static metadata describing one kind of form input"""

    model_config = ConfigDict(frozen=True)

    type: FieldType
    label: str
    description: str
    default_placeholder: str
    supports_options: bool
    supports_validation: bool


DEFAULT_FIELD_TYPES: Tuple[FieldTypeDefinition, ...] = (
    FieldTypeDefinition(
        type=FieldType.TEXT,
        label="Text Input",
        description="Single line text input",
        default_placeholder="Enter text...",
        supports_options=False,
        supports_validation=True,
    ),
    FieldTypeDefinition(
        type=FieldType.EMAIL,
        label="Email",
        description="Email address input with validation",
        default_placeholder="your@email.com",
        supports_options=False,
        supports_validation=True,
    ),
    FieldTypeDefinition(
        type=FieldType.NUMBER,
        label="Number",
        description="Numeric input field",
        default_placeholder="Enter number...",
        supports_options=False,
        supports_validation=True,
    ),
    FieldTypeDefinition(
        type=FieldType.PHONE,
        label="Phone Number",
        description="Phone number input",
        default_placeholder="+1 (555) 000-0000",
        supports_options=False,
        supports_validation=True,
    ),
    FieldTypeDefinition(
        type=FieldType.TEXTAREA,
        label="Text Area",
        description="Multi-line text input",
        default_placeholder="Enter detailed text...",
        supports_options=False,
        supports_validation=True,
    ),
    FieldTypeDefinition(
        type=FieldType.SELECT,
        label="Dropdown",
        description="Select from dropdown list",
        default_placeholder="Select an option...",
        supports_options=True,
        supports_validation=False,
    ),
    FieldTypeDefinition(
        type=FieldType.RADIO,
        label="Radio Buttons",
        description="Single choice from multiple options",
        default_placeholder="",
        supports_options=True,
        supports_validation=False,
    ),
    FieldTypeDefinition(
        type=FieldType.CHECKBOX,
        label="Checkboxes",
        description="Multiple choice selection",
        default_placeholder="",
        supports_options=True,
        supports_validation=False,
    ),
    FieldTypeDefinition(
        type=FieldType.DATE,
        label="Date Picker",
        description="Date selection input",
        default_placeholder="Select date...",
        supports_options=False,
        supports_validation=True,
    ),
    FieldTypeDefinition(
        type=FieldType.FILE,
        label="File Upload",
        description="File attachment field",
        default_placeholder="Upload file...",
        supports_options=False,
        supports_validation=True,
    ),
)


class FieldTypeRegistry:
    """
    Immutable lookup from field type to its definition.

    Built once at application startup and handed to the builder, renderer
    and viewer. The first definition doubles as the fallback for
    unrecognized types.
    """

    def __init__(self, definitions: Iterable[FieldTypeDefinition]):
        self._definitions = tuple(definitions)
        if not self._definitions:
            raise ValueError("Field type registry needs at least one definition")

        by_type = {}
        for definition in self._definitions:
            if definition.type.value in by_type:
                raise ValueError(f"Duplicate field type definition: {definition.type}")
            by_type[definition.type.value] = definition
        self._by_type = MappingProxyType(by_type)

    @property
    def default(self) -> FieldTypeDefinition:
        return self._definitions[0]

    def definitions(self) -> Tuple[FieldTypeDefinition, ...]:
        return self._definitions

    def lookup(self, field_type: Union[FieldType, str]) -> FieldTypeDefinition:
        """Return the definition for field_type, or the default one if unknown"""
        key = field_type.value if isinstance(field_type, FieldType) else field_type
        definition = self._by_type.get(key)
        if definition is None:
            logger.warning(
                f"Unknown field type {field_type!r}, falling back to {self.default.type.value}"
            )
            return self.default
        return definition

    def supports_options(self, field_type: Union[FieldType, str]) -> bool:
        return self.lookup(field_type).supports_options

    def __contains__(self, field_type) -> bool:
        key = field_type.value if isinstance(field_type, FieldType) else field_type
        return key in self._by_type

    def __len__(self) -> int:
        return len(self._definitions)


def build_field_type_registry() -> FieldTypeRegistry:
    """Create the registry with the standard catalog"""
    return FieldTypeRegistry(DEFAULT_FIELD_TYPES)
