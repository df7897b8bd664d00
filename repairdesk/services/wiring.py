from __future__ import annotations
"""Build orchestrators for the current request.

The authority and the entity locks are process wide; gateway, dispatcher and
audit sink are bound to the request's session. The system actor id comes
from ``app.config['SYSTEM_ACTOR_ID']`` and is handed to each component.
"""
from dataclasses import dataclass
from typing import Optional
from flask import current_app
from repairdesk import get_db
from repairdesk.errors import NotFound
from repairdesk.services.assignment import AssignmentOrchestrator, AssignmentResult
from repairdesk.services.audit import AuditSink
from repairdesk.services.cascade_delete import CascadeDeleteOrchestrator
from repairdesk.services.gateway import SqlGateway
from repairdesk.services.intake import Intake
from repairdesk.services.lifecycle import LifecycleOrchestrator, StatusChange
from repairdesk.services.notifications import NotificationDispatcher
from repairdesk.services.transitions import KIND_TICKET, TransitionAuthority
from repairdesk.utils.locks import EntityLocks

AUTHORITY = TransitionAuthority()
LOCKS = EntityLocks()


@dataclass
class TicketUpdate:
    assignment: Optional[AssignmentResult] = None
    status_change: Optional[StatusChange] = None


@dataclass
class Core:
    gateway: SqlGateway
    assignments: AssignmentOrchestrator
    lifecycle: LifecycleOrchestrator
    cascade: CascadeDeleteOrchestrator
    intake: Intake

    def update_ticket(self, ticket_id: str, actor_id: str, status: Optional[str] = None, reason: Optional[str] = None,
                      assign: bool = False, assignee: Optional[str] = None) -> TicketUpdate:
        """Apply an assignee change and/or a status change to one ticket.

        Both changes are checked against the stored ticket before either is
        written. A locked ticket being reopened gets its new status first so
        the assignee change lands on the reopened ticket.
        """
        update = TicketUpdate()
        with LOCKS.hold(KIND_TICKET, ticket_id):
            ticket = self.gateway.get(KIND_TICKET, ticket_id)
            if ticket is None:
                raise NotFound(KIND_TICKET, ticket_id)
            if status is not None:
                AUTHORITY.assert_can_change_status(KIND_TICKET, ticket.status, status)
                AUTHORITY.assert_reason(status, reason)
            status_first = status is not None and not AUTHORITY.can_reassign_ticket(ticket)
            if assign and not status_first:
                AUTHORITY.assert_can_reassign(KIND_TICKET, ticket, assignee)
            if status_first:
                update.status_change = self.lifecycle.change_status(KIND_TICKET, ticket_id, status, reason, actor_id)
            if assign:
                update.assignment = self.assignments.reassign(KIND_TICKET, ticket_id, assignee, actor_id)
            if status is not None and update.status_change is None:
                update.status_change = self.lifecycle.change_status(KIND_TICKET, ticket_id, status, reason, actor_id)
        return update


def build_core(gateway, system_actor_id: str, sample_size: int = 5, dispatcher=None, audit=None) -> Core:
    dispatcher = dispatcher or NotificationDispatcher(gateway, system_actor_id)
    audit = audit or AuditSink(gateway, system_actor_id)
    assignments = AssignmentOrchestrator(gateway, AUTHORITY, dispatcher, audit, LOCKS, system_actor_id)
    return Core(
        gateway=gateway,
        assignments=assignments,
        lifecycle=LifecycleOrchestrator(gateway, AUTHORITY, dispatcher, audit, LOCKS, system_actor_id),
        cascade=CascadeDeleteOrchestrator(gateway, audit, system_actor_id, sample_size),
        intake=Intake(gateway, audit, assignments, system_actor_id),
    )


def request_core() -> Core:
    cfg = current_app.config
    return build_core(
        SqlGateway(get_db()),
        cfg['SYSTEM_ACTOR_ID'],
        sample_size=int(cfg.get('DELETE_PREVIEW_SAMPLE_SIZE', 5)),
    )


__all__ = ['Core', 'TicketUpdate', 'build_core', 'request_core', 'AUTHORITY', 'LOCKS']
