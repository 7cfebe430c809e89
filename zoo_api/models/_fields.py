"""Shared column helpers and field validators for the ORM models."""

import uuid
from typing import Optional

from zoo_api.exceptions import ValidationError

# UUID4 rendered as its canonical 36-character string
ID_LENGTH = 36


def new_id() -> str:
    """Generate a fresh document identifier."""
    return str(uuid.uuid4())


def require_text(field: str, value: Optional[str]) -> str:
    """Reject None and whitespace-only values for a required string field."""
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required", field=field)
    return value
