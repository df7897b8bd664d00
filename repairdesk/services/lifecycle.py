from __future__ import annotations
"""Lifecycle Orchestrator: guarded status changes for tickets and appointments.

Also hosts the lifecycle operations that are not plain transitions:
ticket delete (implemented as cancellation), appointment delete and
appointment -> ticket conversion.
"""
import logging
from dataclasses import dataclass
from typing import Optional
from repairdesk.errors import NotFound, StorageError
from repairdesk.models.appointment import Appointment
from repairdesk.models.repair_ticket import RepairTicket
from repairdesk.services.assignment import add_ticket_note, customer_name_for, reference_for
from repairdesk.services.intake import next_number
from repairdesk.services.notifications import StatusChangedNotice
from repairdesk.services.transitions import KIND_APPOINTMENT, KIND_TICKET, TransitionAuthority, ensure_kind
from repairdesk.utils.locks import EntityLocks

logger = logging.getLogger(__name__)

ENTITY_LABELS = {KIND_TICKET: 'RepairTicket', KIND_APPOINTMENT: 'Appointment'}


@dataclass
class StatusChange:
    entity_kind: str
    entity_id: str
    previous_status: str
    status: str
    reason: Optional[str]
    entity: object = None
    notified: Optional[str] = None


@dataclass
class Conversion:
    appointment: Appointment
    ticket: RepairTicket


class LifecycleOrchestrator:
    def __init__(self, gateway, authority: TransitionAuthority, dispatcher, audit, locks: EntityLocks, system_actor_id: str):
        self.gateway = gateway
        self.authority = authority
        self.dispatcher = dispatcher
        self.audit = audit
        self.locks = locks
        self.system_actor_id = system_actor_id

    def _load(self, kind: str, entity_id: str):
        entity = self.gateway.get(kind, entity_id)
        if entity is None:
            raise NotFound(kind, entity_id)
        return entity

    def change_status(self, entity_kind: str, entity_id: str, requested: str, reason: Optional[str] = None,
                      actor_id: Optional[str] = None) -> StatusChange:
        kind = ensure_kind(entity_kind)
        actor = actor_id or self.system_actor_id
        with self.locks.hold(kind, entity_id):
            entity = self._load(kind, entity_id)
            current = entity.status
            self.authority.assert_can_change_status(kind, current, requested)
            reason = self.authority.assert_reason(requested, reason)
            entity = self.gateway.update(kind, entity.id, {'status': requested, 'status_reason': reason})
        logger.info("%s %s status %s -> %s by %s", kind, entity.id, current, requested, actor)
        change = StatusChange(kind, entity.id, current, requested, reason, entity)
        self._record(change, actor)
        change.notified = self._notify_assignee(change, actor)
        return change

    def _record(self, change: StatusChange, actor: str):
        self.audit.record(actor, f"{change.entity_kind.upper()}.STATUS.CHANGE", ENTITY_LABELS[change.entity_kind], change.entity_id, {
            'from': change.previous_status,
            'to': change.status,
            'reason': change.reason,
        })
        if change.entity_kind == KIND_TICKET:
            text = f"Status changed from {change.previous_status} to {change.status}"
            if change.reason:
                text += f": {change.reason}"
            add_ticket_note(self.gateway, change.entity_id, text, actor, important=True)

    def _notify_assignee(self, change: StatusChange, actor: str) -> Optional[str]:
        assignee = getattr(change.entity, 'assigned_to', None)
        if not assignee or assignee == actor:
            return None
        try:
            customer_name = customer_name_for(self.gateway, change.entity)
        except StorageError:
            logger.exception("Customer lookup for %s %s notification failed", change.entity_kind, change.entity_id)
            customer_name = None
        notice = StatusChangedNotice(
            entity_kind=change.entity_kind, entity_id=change.entity_id,
            reference=reference_for(change.entity_kind, change.entity), customer_name=customer_name,
            old_status=change.previous_status, new_status=change.status, reason=change.reason,
        )
        dispatched = self.dispatcher.notify_safely(assignee, notice, created_by=actor)
        return assignee if dispatched.delivered else None

    # --- deletion ---
    def delete_ticket(self, ticket_id: str, reason: Optional[str] = None, actor_id: Optional[str] = None) -> StatusChange:
        """Tickets are never physically deleted here: a delete cancels the ticket."""
        ticket = self._load(KIND_TICKET, ticket_id)
        self.authority.assert_ticket_deletable(ticket)
        return self.change_status(KIND_TICKET, ticket.id, RepairTicket.STATUS_CANCELLED, reason, actor_id)

    def delete_appointment(self, appointment_id: str, actor_id: Optional[str] = None) -> int:
        actor = actor_id or self.system_actor_id
        with self.locks.hold(KIND_APPOINTMENT, appointment_id):
            appointment = self._load(KIND_APPOINTMENT, appointment_id)
            self.authority.assert_appointment_deletable(appointment)
            rows = self.gateway.delete_where('appointments', {'id': appointment.id})
        logger.info("appointment %s deleted by %s", appointment_id, actor)
        self.audit.record(actor, 'APPOINTMENT.DELETE', 'Appointment', appointment_id, {
            'status': appointment.status,
            'customer_id': appointment.customer_id,
        })
        return rows

    # --- conversion ---
    def convert_to_ticket(self, appointment_id: str, actor_id: Optional[str] = None, **ticket_fields) -> Conversion:
        """Create a ``new`` ticket from an appointment and mark the appointment converted.

        Extra keyword arguments (device_brand, device_model, issue_summary) are
        copied onto the ticket.
        """
        actor = actor_id or self.system_actor_id
        with self.locks.hold(KIND_APPOINTMENT, appointment_id):
            appointment = self._load(KIND_APPOINTMENT, appointment_id)
            self.authority.assert_appointment_convertible(appointment)
            fields = {
                'issue_summary': appointment.description or '',
                **{k: v for k, v in ticket_fields.items() if k in ('device_brand', 'device_model', 'issue_summary')},
                'ticket_number': next_number('T'),
                'customer_id': appointment.customer_id,
                'appointment_id': appointment.id,
                'assigned_to': appointment.assigned_to,
                'status': RepairTicket.STATUS_NEW,
                'created_by': actor,
            }
            ticket = self.gateway.insert('repair_tickets', fields)
            try:
                appointment = self.gateway.update(KIND_APPOINTMENT, appointment.id, {
                    'converted_to_ticket_id': ticket.id,
                    'status': Appointment.STATUS_COMPLETED,
                })
            except StorageError:
                logger.error("Marking appointment %s converted failed, removing ticket %s", appointment.id, ticket.id)
                self.gateway.delete_where('repair_tickets', {'id': ticket.id})
                raise
        logger.info("appointment %s converted to ticket %s by %s", appointment.id, ticket.id, actor)
        self.audit.record(actor, 'APPOINTMENT.CONVERT', 'Appointment', appointment.id, {
            'ticket_id': ticket.id,
            'ticket_number': ticket.ticket_number,
        })
        return Conversion(appointment, ticket)


__all__ = ['LifecycleOrchestrator', 'StatusChange', 'Conversion']
