"""Slug utility functions"""

import re

SLUG_PATTERN = re.compile(r"^[a-z0-9-]+$")
MIN_SLUG_LENGTH = 3
MAX_GENERATED_SLUG_LENGTH = 60


def generate_slug(title: str) -> str:
    """
    Generate a URL-friendly slug from a form title.

    Args:
        title: Human readable title, e.g. "New Patient Intake (2025)"

    Returns:
        Lowercase slug containing only letters, digits and hyphens,
        e.g. "new-patient-intake-2025". Empty if the title has no usable characters.
    """
    if not title:
        return ""

    slug = title.lower()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)  # Remove special chars
    slug = re.sub(r"[\s-]+", "-", slug)  # Spaces and repeated hyphens -> one hyphen
    slug = slug.strip("-")

    if len(slug) > MAX_GENERATED_SLUG_LENGTH:
        slug = slug[:MAX_GENERATED_SLUG_LENGTH].rstrip("-")

    return slug


def slug_error(slug: str) -> str | None:
    """Return a user-facing message if slug is not acceptable, else None"""
    if not slug or len(slug) < MIN_SLUG_LENGTH:
        return "Slug must be at least 3 characters"
    if not SLUG_PATTERN.match(slug):
        return "Slug can only contain lowercase letters, numbers, and hyphens"
    return None
