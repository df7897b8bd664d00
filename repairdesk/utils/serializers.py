from __future__ import annotations
"""JSON shapes shared by the blueprints."""
from datetime import datetime
from typing import Any, Optional


def iso(value: Any) -> Optional[str]:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def assignment_json(result) -> dict:
    event = result.event
    return {
        'kind': event.kind,
        'previous': event.previous,
        'new': event.new,
        'notified': result.notified,
    }


def status_change_json(change) -> dict:
    return {
        'previous_status': change.previous_status,
        'status': change.status,
        'reason': change.reason,
        'notified': change.notified,
    }
