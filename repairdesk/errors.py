from __future__ import annotations
"""Domain error taxonomy shared by the core and the HTTP boundary.

Every error carries a stable ``kind`` (machine readable), an HTTP ``status``
used only by the boundary, a human readable ``detail`` and a ``context`` dict
naming the values involved (current / requested status, attempted assignee...).
The core raises these; ``create_app`` renders them as JSON.
"""
from typing import Any, Dict, Optional


class DomainError(Exception):
    kind = 'domain_error'
    status = 400
    title = 'Bad Request'

    def __init__(self, detail: str, **context: Any):
        super().__init__(detail)
        self.detail = detail
        self.context: Dict[str, Any] = context

    def to_dict(self) -> Dict[str, Any]:
        body = {
            'status': self.status,
            'title': self.title,
            'detail': self.detail,
            'kind': self.kind,
        }
        if self.context:
            body['context'] = {k: v for k, v in self.context.items() if _json_safe(v)}
        return body


def _json_safe(value: Any) -> bool:
    return value is None or isinstance(value, (str, int, float, bool, list, dict))


class NotFound(DomainError):
    kind = 'not_found'
    status = 404
    title = 'Not Found'

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} {entity_id} not found", entity=entity, entity_id=entity_id)


class ValidationError(DomainError):
    kind = 'validation_error'


class InvalidTransition(DomainError):
    kind = 'invalid_transition'

    def __init__(self, entity: str, current: str, requested: str):
        super().__init__(
            f"Invalid {entity} status transition {current} -> {requested}",
            entity=entity, current=current, requested=requested,
        )


class GuardViolation(DomainError):
    kind = 'guard_violation'
    status = 409
    title = 'Conflict'


class MissingReason(DomainError):
    kind = 'missing_reason'

    def __init__(self, requested: str):
        super().__init__(f"A reason is required to move to {requested}", requested=requested)


class StorageError(DomainError):
    """Wraps a persistence failure; ``code`` is ``constraint_violation`` or ``storage_failure``."""
    kind = 'storage_error'
    status = 500
    title = 'Internal Server Error'

    CONSTRAINT_VIOLATION = 'constraint_violation'
    STORAGE_FAILURE = 'storage_failure'

    def __init__(self, detail: str, code: str = STORAGE_FAILURE, original: Optional[BaseException] = None, **context: Any):
        super().__init__(detail, code=code, **context)
        self.code = code
        self.original = original


class DeletionIncomplete(DomainError):
    kind = 'deletion_incomplete'
    status = 500
    title = 'Internal Server Error'


class NotificationFailure(DomainError):
    kind = 'notification_failure'
    status = 500
    title = 'Internal Server Error'


__all__ = [
    'DomainError', 'NotFound', 'ValidationError', 'InvalidTransition', 'GuardViolation',
    'MissingReason', 'StorageError', 'DeletionIncomplete', 'NotificationFailure',
]
