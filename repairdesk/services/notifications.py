from __future__ import annotations
"""Staff notification variants and the dispatcher that enqueues them.

Notices are a closed set of frozen dataclasses, one per kind (assign, unassign,
transfer-out, transfer-in, status-change). Required fields are checked when a
notice is built, so a malformed payload never reaches the inbox table.

The dispatcher writes one ``internal_notifications`` row per notice. Its
``notify`` raises NotificationFailure; orchestrators call ``notify_safely``,
which logs the failure and returns an undelivered ``Dispatched`` record.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, fields
from typing import Any, ClassVar, Dict, Optional, Tuple
from repairdesk.errors import NotificationFailure, StorageError

logger = logging.getLogger(__name__)

PRIORITY_LOW = 'low'
PRIORITY_NORMAL = 'normal'
PRIORITY_HIGH = 'high'

_ACTION_URLS = {
    'ticket': '/orders/{id}',
    'appointment': '/appointments/{id}',
}


def _upper_first(text: str) -> str:
    return text[:1].upper() + text[1:]


@dataclass(frozen=True)
class Notice(ABC):
    kind: ClassVar[str] = 'notice'
    required: ClassVar[Tuple[str, ...]] = ('entity_kind', 'entity_id')
    priority: ClassVar[str] = PRIORITY_NORMAL

    entity_kind: str
    entity_id: str
    reference: Optional[str] = None
    customer_name: Optional[str] = None

    def __post_init__(self):
        missing = [name for name in self.required if not getattr(self, name)]
        if missing:
            raise ValueError(f"{type(self).__name__} missing required field(s): {', '.join(missing)}")
        if self.entity_kind not in _ACTION_URLS:
            raise ValueError(f"{type(self).__name__} has unknown entity_kind {self.entity_kind!r}")

    @property
    def notification_type(self) -> str:
        return f"{self.entity_kind}_{self.kind}"

    @property
    def label(self) -> str:
        ref = self.reference or self.entity_id[:8]
        if self.entity_kind == 'ticket':
            return f"ticket #{ref}"
        return f"appointment {ref}"

    @property
    def whose(self) -> str:
        return f"{self.customer_name}'s " if self.customer_name else ''

    @property
    def action_url(self) -> str:
        return _ACTION_URLS[self.entity_kind].format(id=self.entity_id)

    @abstractmethod
    def title(self) -> str:
        ...

    @abstractmethod
    def message(self) -> str:
        ...

    def payload(self) -> Dict[str, Any]:
        data = {f"{self.entity_kind}_id": self.entity_id}
        for f in fields(self):
            if f.name in ('entity_kind', 'entity_id', 'customer_name'):
                continue
            value = getattr(self, f.name)
            if value is not None:
                data[f.name] = value
        return data


@dataclass(frozen=True)
class AssignedNotice(Notice):
    kind: ClassVar[str] = 'assigned'
    priority: ClassVar[str] = PRIORITY_HIGH

    def title(self) -> str:
        return f"Assigned to {self.label}"

    def message(self) -> str:
        return f"You've been assigned to {self.whose}{self.label}"


@dataclass(frozen=True)
class UnassignedNotice(Notice):
    kind: ClassVar[str] = 'unassigned'

    def title(self) -> str:
        return f"Unassigned from {self.label}"

    def message(self) -> str:
        return f"You've been unassigned from {self.whose}{self.label}"


@dataclass(frozen=True)
class TransferredOutNotice(Notice):
    kind: ClassVar[str] = 'transferred'
    required: ClassVar[Tuple[str, ...]] = ('entity_kind', 'entity_id', 'transferred_to')

    transferred_to: Optional[str] = None

    def title(self) -> str:
        return f"{_upper_first(self.label)} transferred"

    def message(self) -> str:
        return _upper_first(f"{self.whose}{self.label} has been reassigned")


@dataclass(frozen=True)
class TransferredInNotice(AssignedNotice):
    """Same shape as AssignedNotice plus the previous holder."""
    required: ClassVar[Tuple[str, ...]] = ('entity_kind', 'entity_id', 'transferred_from')

    transferred_from: Optional[str] = None


@dataclass(frozen=True)
class StatusChangedNotice(Notice):
    kind: ClassVar[str] = 'status_change'
    required: ClassVar[Tuple[str, ...]] = ('entity_kind', 'entity_id', 'old_status', 'new_status')
    priority: ClassVar[str] = PRIORITY_LOW

    old_status: Optional[str] = None
    new_status: Optional[str] = None
    reason: Optional[str] = None

    def title(self) -> str:
        return f"{_upper_first(self.label)} is now {self.new_status}"

    def message(self) -> str:
        text = f"{self.whose}{self.label} moved from {self.old_status} to {self.new_status}"
        if self.reason:
            text += f": {self.reason}"
        return text


NOTICE_TYPES = (AssignedNotice, UnassignedNotice, TransferredOutNotice, TransferredInNotice, StatusChangedNotice)


@dataclass
class Dispatched:
    recipient_id: str
    notice: Notice
    delivered: bool = True
    error: Optional[str] = field(default=None)


class NotificationDispatcher:
    """Enqueues notices as staff inbox rows through the gateway."""

    TABLE = 'internal_notifications'

    def __init__(self, gateway, system_actor_id: str):
        self.gateway = gateway
        self.system_actor_id = system_actor_id

    def notify(self, recipient_id: str, notice: Notice, created_by: Optional[str] = None):
        if not recipient_id:
            raise NotificationFailure('Notification recipient required', notice=notice.notification_type)
        try:
            return self.gateway.insert(self.TABLE, {
                'user_id': recipient_id,
                'type': notice.notification_type,
                'title': notice.title(),
                'message': notice.message(),
                'priority': notice.priority,
                'action_url': notice.action_url,
                'data': notice.payload(),
                'created_by': created_by or self.system_actor_id,
            })
        except StorageError as exc:
            raise NotificationFailure(
                f"Could not enqueue {notice.notification_type} for {recipient_id}",
                recipient=recipient_id, notice=notice.notification_type, cause=exc.detail,
            ) from exc

    def notify_safely(self, recipient_id: str, notice: Notice, created_by: Optional[str] = None) -> Dispatched:
        try:
            self.notify(recipient_id, notice, created_by)
        except NotificationFailure as exc:
            logger.error("Notification %s to %s dropped: %s", notice.notification_type, recipient_id, exc.detail)
            return Dispatched(recipient_id, notice, delivered=False, error=exc.detail)
        except Exception:
            logger.exception("Unexpected error sending %s to %s", notice.notification_type, recipient_id)
            return Dispatched(recipient_id, notice, delivered=False, error='unexpected error')
        return Dispatched(recipient_id, notice)


__all__ = [
    'Notice', 'AssignedNotice', 'UnassignedNotice', 'TransferredOutNotice', 'TransferredInNotice',
    'StatusChangedNotice', 'NOTICE_TYPES', 'Dispatched', 'NotificationDispatcher',
]
