"""Error taxonomy for the form engine.

Services raise these; routers translate them into HTTP responses.
"""

from typing import Optional


class FormEngineError(Exception):
    """Base class for all form engine errors"""


class ValidationError(FormEngineError):
    """A builder or submission precondition was violated. Nothing was written."""


class MissingRequiredField(ValidationError):
    def __init__(self, label: str):
        self.label = label
        super().__init__(f"{label} is required")


class MissingPatientInfo(ValidationError):
    def __init__(self):
        super().__init__("Please fill in your contact information")


class InvalidFieldValue(ValidationError):
    def __init__(self, label: str, reason: str):
        self.label = label
        self.reason = reason
        super().__init__(f"{label} {reason}")


class IndexOutOfRange(FormEngineError):
    def __init__(self, index: int, length: int):
        self.index = index
        self.length = length
        super().__init__(f"Field index {index} is out of range (0..{length - 1})")


class NotFoundError(FormEngineError):
    """Unknown slug, form id, submission id or builder session."""


class StorageError(FormEngineError):
    """A record store or blob store operation failed."""


class SubmissionFailed(StorageError):
    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)
