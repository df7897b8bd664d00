from __future__ import annotations
"""Assignment Orchestrator.

Applies an assignee change to a ticket or appointment:

  load -> guard -> classify -> persist -> audit/note -> notify

Guard failures happen before any write. A no-op change writes and emits
nothing. Notifications are attempted only after the update committed, and
their failures are logged, never returned.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional
from repairdesk.errors import NotFound, StorageError
from repairdesk.services.notifications import (
    AssignedNotice, Dispatched, TransferredInNotice, TransferredOutNotice, UnassignedNotice,
)
from repairdesk.services.transitions import KIND_TICKET, TransitionAuthority, ensure_kind
from repairdesk.utils.locks import EntityLocks

logger = logging.getLogger(__name__)

NEW_ASSIGNMENT = 'assign'
UNASSIGNMENT = 'unassign'
TRANSFER = 'transfer'
NO_OP = 'noop'

_AUDIT_ACTIONS = {
    NEW_ASSIGNMENT: 'ASSIGN',
    UNASSIGNMENT: 'UNASSIGN',
    TRANSFER: 'TRANSFER',
}

_NOTE_TEXT = {
    NEW_ASSIGNMENT: 'Ticket assigned to {new}',
    UNASSIGNMENT: 'Ticket unassigned from {previous}',
    TRANSFER: 'Ticket transferred from {previous} to {new}',
}


def _normalize(assignee: Optional[str]) -> Optional[str]:
    if assignee is None:
        return None
    assignee = str(assignee).strip()
    return assignee or None


@dataclass(frozen=True)
class AssignmentEvent:
    entity_kind: str
    entity_id: str
    previous: Optional[str]
    new: Optional[str]
    kind: str

    @property
    def is_noop(self) -> bool:
        return self.kind == NO_OP


def classify_assignment(previous: Optional[str], new: Optional[str]) -> str:
    """Pure classification of (previous, new) into exactly one event kind."""
    previous, new = _normalize(previous), _normalize(new)
    if previous == new:
        return NO_OP
    if previous is None:
        return NEW_ASSIGNMENT
    if new is None:
        return UNASSIGNMENT
    return TRANSFER


def build_event(entity_kind: str, entity_id: str, previous: Optional[str], new: Optional[str]) -> AssignmentEvent:
    previous, new = _normalize(previous), _normalize(new)
    return AssignmentEvent(entity_kind, entity_id, previous, new, classify_assignment(previous, new))


def plan_notices(event: AssignmentEvent, reference: Optional[str] = None, customer_name: Optional[str] = None):
    """Return ``[(recipient, notice), ...]`` for an event, before any suppression."""
    common = dict(entity_kind=event.entity_kind, entity_id=event.entity_id, reference=reference, customer_name=customer_name)
    if event.kind == NEW_ASSIGNMENT:
        return [(event.new, AssignedNotice(**common))]
    if event.kind == UNASSIGNMENT:
        return [(event.previous, UnassignedNotice(**common))]
    if event.kind == TRANSFER:
        return [
            (event.previous, TransferredOutNotice(transferred_to=event.new, **common)),
            (event.new, TransferredInNotice(transferred_from=event.previous, **common)),
        ]
    return []


@dataclass
class AssignmentResult:
    event: AssignmentEvent
    entity: object = None
    notifications: List[Dispatched] = field(default_factory=list)

    @property
    def notified(self) -> List[str]:
        return [d.recipient_id for d in self.notifications if d.delivered]


def reference_for(kind: str, entity) -> Optional[str]:
    if kind == KIND_TICKET:
        return getattr(entity, 'ticket_number', None)
    return getattr(entity, 'appointment_number', None)


def customer_name_for(gateway, entity) -> Optional[str]:
    customer_id = getattr(entity, 'customer_id', None)
    if not customer_id:
        return None
    customer = gateway.get('customer', customer_id)
    return customer.name if customer else None


class AssignmentOrchestrator:
    def __init__(self, gateway, authority: TransitionAuthority, dispatcher, audit, locks: EntityLocks, system_actor_id: str):
        self.gateway = gateway
        self.authority = authority
        self.dispatcher = dispatcher
        self.audit = audit
        self.locks = locks
        self.system_actor_id = system_actor_id

    def reassign(self, entity_kind: str, entity_id: str, new_assignee: Optional[str], actor_id: Optional[str] = None) -> AssignmentResult:
        kind = ensure_kind(entity_kind)
        new_assignee = _normalize(new_assignee)
        actor = actor_id or self.system_actor_id
        with self.locks.hold(kind, entity_id):
            entity = self.gateway.get(kind, entity_id)
            if entity is None:
                raise NotFound(kind, entity_id)
            self.authority.assert_can_reassign(kind, entity, new_assignee)
            event = build_event(kind, entity.id, entity.assigned_to, new_assignee)
            if event.is_noop:
                return AssignmentResult(event, entity)
            # StorageError propagates untouched; nothing below runs without a committed update.
            entity = self.gateway.update(kind, entity.id, {'assigned_to': new_assignee})
        logger.info("%s %s %s: %s -> %s", kind, entity.id, event.kind, event.previous, event.new)
        self._record(event, actor)
        return AssignmentResult(event, entity, self._emit(event, entity, actor))

    def _record(self, event: AssignmentEvent, actor: str):
        entity_label = 'RepairTicket' if event.entity_kind == KIND_TICKET else 'Appointment'
        self.audit.record(actor, f"{event.entity_kind.upper()}.{_AUDIT_ACTIONS[event.kind]}", entity_label, event.entity_id, {
            'previous': event.previous,
            'new': event.new,
            'kind': event.kind,
        })
        if event.entity_kind == KIND_TICKET:
            text = _NOTE_TEXT[event.kind].format(previous=event.previous, new=event.new)
            add_ticket_note(self.gateway, event.entity_id, text, actor, important=False)

    def _emit(self, event: AssignmentEvent, entity, actor: str) -> List[Dispatched]:
        if event.new is not None and actor == event.new:
            logger.debug("Self-assignment of %s %s by %s, notifications suppressed", event.entity_kind, event.entity_id, actor)
            return []
        try:
            customer_name = customer_name_for(self.gateway, entity)
        except StorageError:
            logger.exception("Customer lookup for %s %s notification failed", event.entity_kind, event.entity_id)
            customer_name = None
        sent: List[Dispatched] = []
        for recipient, notice in plan_notices(event, reference_for(event.entity_kind, entity), customer_name):
            sent.append(self.dispatcher.notify_safely(recipient, notice, created_by=actor))
        return sent


def add_ticket_note(gateway, ticket_id: str, content: str, actor: Optional[str], important: bool = False):
    """Append an internal note to a ticket's trail; failures are logged only."""
    try:
        return gateway.insert('ticket_notes', {
            'ticket_id': ticket_id,
            'note_type': 'internal',
            'content': content,
            'is_important': important,
            'user_id': actor,
        })
    except StorageError:
        logger.exception("Ticket note for %s not written", ticket_id)
        return None


__all__ = [
    'AssignmentOrchestrator', 'AssignmentEvent', 'AssignmentResult', 'classify_assignment', 'build_event',
    'plan_notices', 'add_ticket_note', 'NEW_ASSIGNMENT', 'UNASSIGNMENT', 'TRANSFER', 'NO_OP',
]
