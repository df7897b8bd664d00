from __future__ import annotations
"""Reusable validation helpers for request payloads at the HTTP boundary.

Focuses on enum-like fields (status, entity kind) and optional identifiers so
routes share consistent 400 error semantics before the core is invoked.
"""
from typing import Any, Iterable, Optional
from repairdesk.errors import ValidationError


def validate_status(new_status: Any, allowed: Iterable[str], field_name: str = 'status') -> str:
    """Validate that new_status is inside allowed.

    Returns the status (to enable inline usage) or raises ValidationError.
    """
    allowed = tuple(allowed)
    if not isinstance(new_status, str) or new_status not in allowed:
        raise ValidationError(f"{field_name} invalid", field=field_name, value=new_status if isinstance(new_status, str) else None, allowed=list(allowed))
    return new_status


def optional_identifier(value: Any, field_name: str) -> Optional[str]:
    """Normalize an optional id field: None/'' -> None, strings stripped, anything else rejected."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string or null", field=field_name)
    value = value.strip()
    return value or None


def require_fields(data: dict, *names: str):
    missing = [n for n in names if not data.get(n)]
    if missing:
        raise ValidationError(f"{', '.join(missing)} required", missing=missing)
    return data

__all__ = ['validate_status', 'optional_identifier', 'require_fields']
