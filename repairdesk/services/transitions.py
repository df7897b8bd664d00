from __future__ import annotations
"""Transition Authority: static status tables and mutation guards.

Pure decision component. Nothing here performs I/O; the orchestrators ask it
before touching storage. ``can_*`` predicates return booleans, ``assert_*``
helpers raise the matching domain error naming current and attempted values.
"""
from typing import Any, FrozenSet, Optional
from repairdesk.errors import GuardViolation, MissingReason, ValidationError
from repairdesk.models.appointment import Appointment
from repairdesk.models.repair_ticket import RepairTicket
from repairdesk.utils.fsm import TransitionValidator

KIND_TICKET = 'ticket'
KIND_APPOINTMENT = 'appointment'
ENTITY_KINDS = (KIND_TICKET, KIND_APPOINTMENT)

TICKET_FSM = TransitionValidator({
    RepairTicket.STATUS_NEW: {RepairTicket.STATUS_IN_PROGRESS, RepairTicket.STATUS_CANCELLED},
    RepairTicket.STATUS_IN_PROGRESS: {RepairTicket.STATUS_ON_HOLD, RepairTicket.STATUS_COMPLETED, RepairTicket.STATUS_CANCELLED},
    RepairTicket.STATUS_ON_HOLD: {RepairTicket.STATUS_IN_PROGRESS, RepairTicket.STATUS_COMPLETED, RepairTicket.STATUS_CANCELLED},
    RepairTicket.STATUS_COMPLETED: {RepairTicket.STATUS_ON_HOLD},  # reopening
    RepairTicket.STATUS_CANCELLED: set(),
}, entity=KIND_TICKET)

APPOINTMENT_FSM = TransitionValidator({
    Appointment.STATUS_SCHEDULED: {Appointment.STATUS_CONFIRMED, Appointment.STATUS_CANCELLED, Appointment.STATUS_NO_SHOW},
    Appointment.STATUS_CONFIRMED: {Appointment.STATUS_COMPLETED, Appointment.STATUS_CANCELLED, Appointment.STATUS_NO_SHOW},
    Appointment.STATUS_COMPLETED: set(),
    Appointment.STATUS_CANCELLED: set(),
    Appointment.STATUS_NO_SHOW: set(),
}, entity=KIND_APPOINTMENT)

TICKET_LOCKED_STATUSES = frozenset({RepairTicket.STATUS_COMPLETED, RepairTicket.STATUS_CANCELLED})
APPOINTMENT_LOCKED_STATUSES = frozenset({Appointment.STATUS_CANCELLED, Appointment.STATUS_NO_SHOW})
APPOINTMENT_CONVERTIBLE_STATUSES = frozenset({Appointment.STATUS_SCHEDULED, Appointment.STATUS_CONFIRMED})
REASON_REQUIRED_STATUSES = frozenset({'on_hold', 'cancelled'})


def ensure_kind(kind: Any) -> str:
    if kind not in ENTITY_KINDS:
        raise ValidationError(f"Unknown entity kind {kind!r}", value=kind if isinstance(kind, str) else None, allowed=list(ENTITY_KINDS))
    return kind


class TransitionAuthority:
    def __init__(self, ticket_fsm: TransitionValidator = TICKET_FSM, appointment_fsm: TransitionValidator = APPOINTMENT_FSM):
        self._fsm = {KIND_TICKET: ticket_fsm, KIND_APPOINTMENT: appointment_fsm}

    # --- status ---
    def fsm(self, kind: str) -> TransitionValidator:
        return self._fsm[ensure_kind(kind)]

    def allowed_transitions(self, kind: str, current: str) -> FrozenSet[str]:
        return self.fsm(kind).allowed(current)

    def can_change_status(self, kind: str, current: str, requested: str) -> bool:
        return self.fsm(kind).can_transition(current, requested)

    def assert_can_change_status(self, kind: str, current: str, requested: str):
        return self.fsm(kind).assert_can_transition(current, requested)

    @staticmethod
    def requires_reason(requested: str) -> bool:
        return requested in REASON_REQUIRED_STATUSES

    def assert_reason(self, requested: str, reason: Optional[str]) -> Optional[str]:
        """Return the stripped reason (or None) or raise MissingReason when one is required."""
        cleaned = reason.strip() if isinstance(reason, str) else ''
        if self.requires_reason(requested) and not cleaned:
            raise MissingReason(requested)
        return cleaned or None

    # --- assignment ---
    @staticmethod
    def can_reassign_ticket(ticket) -> bool:
        return ticket.status not in TICKET_LOCKED_STATUSES

    @staticmethod
    def can_reassign_appointment(appointment) -> bool:
        if appointment.converted_to_ticket_id is not None:
            return False
        return appointment.status not in APPOINTMENT_LOCKED_STATUSES

    def can_reassign(self, kind: str, entity) -> bool:
        if ensure_kind(kind) == KIND_TICKET:
            return self.can_reassign_ticket(entity)
        return self.can_reassign_appointment(entity)

    def assert_can_reassign(self, kind: str, entity, attempted: Optional[str]):
        if self.can_reassign(kind, entity):
            return True
        converted = getattr(entity, 'converted_to_ticket_id', None)
        if converted is not None:
            detail = f"Cannot reassign {kind} {entity.id}: converted to ticket {converted}"
        else:
            detail = f"Cannot reassign {kind} {entity.id} in status {entity.status} (attempted assignee: {attempted or 'none'})"
        raise GuardViolation(
            detail, entity=kind, entity_id=entity.id, current=entity.status,
            attempted=attempted, converted_to_ticket_id=converted,
        )

    # --- deletion / conversion ---
    @staticmethod
    def can_cancel_ticket_on_delete(ticket) -> bool:
        return ticket.status != RepairTicket.STATUS_COMPLETED

    def assert_ticket_deletable(self, ticket):
        if not self.can_cancel_ticket_on_delete(ticket):
            raise GuardViolation(
                f"Cannot delete ticket {ticket.id} in status {ticket.status}",
                entity=KIND_TICKET, entity_id=ticket.id, current=ticket.status, attempted='delete',
            )
        return True

    def can_delete_appointment(self, appointment) -> bool:
        return self.can_reassign_appointment(appointment)

    def assert_appointment_deletable(self, appointment):
        if self.can_delete_appointment(appointment):
            return True
        raise GuardViolation(
            f"Cannot delete appointment {appointment.id} in status {appointment.status}"
            + (f" (converted to ticket {appointment.converted_to_ticket_id})" if appointment.converted_to_ticket_id else ''),
            entity=KIND_APPOINTMENT, entity_id=appointment.id, current=appointment.status,
            attempted='delete', converted_to_ticket_id=appointment.converted_to_ticket_id,
        )

    @staticmethod
    def can_convert_appointment(appointment) -> bool:
        return appointment.converted_to_ticket_id is None and appointment.status in APPOINTMENT_CONVERTIBLE_STATUSES

    def assert_appointment_convertible(self, appointment):
        if self.can_convert_appointment(appointment):
            return True
        raise GuardViolation(
            f"Cannot convert appointment {appointment.id} in status {appointment.status}"
            + (' (already converted)' if appointment.converted_to_ticket_id else ''),
            entity=KIND_APPOINTMENT, entity_id=appointment.id, current=appointment.status,
            attempted='convert', converted_to_ticket_id=appointment.converted_to_ticket_id,
        )


__all__ = [
    'TransitionAuthority', 'TICKET_FSM', 'APPOINTMENT_FSM', 'KIND_TICKET', 'KIND_APPOINTMENT',
    'ENTITY_KINDS', 'REASON_REQUIRED_STATUSES', 'ensure_kind',
]
