"""Helpers for form attachments"""

import re
import time

ALLOWED_CONTENT_TYPES = frozenset(
    {
        "image/jpeg",
        "image/png",
        "image/gif",
        "image/webp",
        "application/pdf",
    }
)


def safe_file_name(file_name: str) -> str:
    """Replace anything but letters, digits, dots and hyphens with underscores"""
    return re.sub(r"[^a-zA-Z0-9.-]", "_", file_name or "upload")


def attachment_path(
    doctor_id: str, form_id: str, submission_id: str, field_id: str, file_name: str
) -> str:
    """Object path for an uploaded file, scoped by doctor, form, submission and field"""
    timestamp_ms = int(time.time() * 1000)
    return (
        f"{doctor_id}/{form_id}/{submission_id}/{field_id}/"
        f"{timestamp_ms}_{safe_file_name(file_name)}"
    )
