"""Database models for MediCore Forms"""

from medicore_forms.models.form import Form
from medicore_forms.models.form_field import FormField
from medicore_forms.models.form_submission import FormSubmission

__all__ = [
    "Form",
    "FormField",
    "FormSubmission",
]
