from __future__ import annotations
"""Record creation: customers, tickets on intake, appointments on booking.

An initial assignee is never written directly; it is applied through the
Assignment Orchestrator after the row exists so that the same guard, audit
and notification path covers every assignment.
"""
import secrets
from datetime import datetime, timezone
from typing import Optional
from repairdesk.errors import NotFound
from repairdesk.models.appointment import Appointment
from repairdesk.models.repair_ticket import RepairTicket


def next_number(prefix: str) -> str:
    """Human facing reference such as ``T250114-3F9A1C``."""
    stamp = datetime.now(timezone.utc).strftime('%y%m%d')
    return f"{prefix}{stamp}-{secrets.token_hex(3).upper()}"


class Intake:
    def __init__(self, gateway, audit, assignments, system_actor_id: str):
        self.gateway = gateway
        self.audit = audit
        self.assignments = assignments
        self.system_actor_id = system_actor_id

    def create_customer(self, name: str, email: Optional[str] = None, phone: Optional[str] = None,
                        address: Optional[str] = None, actor_id: Optional[str] = None):
        customer = self.gateway.insert('customers', {'name': name, 'email': email, 'phone': phone, 'address': address})
        self.audit.record(actor_id or self.system_actor_id, 'CUSTOMER.CREATE', 'Customer', customer.id, {'name': name})
        return customer

    def create_ticket(self, customer_id: str, issue_summary: str, device_brand: Optional[str] = None,
                      device_model: Optional[str] = None, assigned_to: Optional[str] = None,
                      appointment_id: Optional[str] = None, actor_id: Optional[str] = None):
        actor = actor_id or self.system_actor_id
        self._require_customer(customer_id)
        ticket = self.gateway.insert('repair_tickets', {
            'ticket_number': next_number('T'),
            'customer_id': customer_id,
            'appointment_id': appointment_id,
            'issue_summary': issue_summary,
            'device_brand': device_brand,
            'device_model': device_model,
            'status': RepairTicket.STATUS_NEW,
            'created_by': actor,
        })
        self.audit.record(actor, 'TICKET.CREATE', 'RepairTicket', ticket.id, {'ticket_number': ticket.ticket_number})
        if assigned_to:
            ticket = self.assignments.reassign('ticket', ticket.id, assigned_to, actor).entity
        return ticket

    def book_appointment(self, customer_id: str, scheduled_at: Optional[datetime] = None, description: Optional[str] = None,
                         assigned_to: Optional[str] = None, actor_id: Optional[str] = None):
        actor = actor_id or self.system_actor_id
        self._require_customer(customer_id)
        appointment = self.gateway.insert('appointments', {
            'appointment_number': next_number('A'),
            'customer_id': customer_id,
            'scheduled_at': scheduled_at,
            'description': description,
            'status': Appointment.STATUS_SCHEDULED,
            'created_by': actor,
        })
        self.audit.record(actor, 'APPOINTMENT.CREATE', 'Appointment', appointment.id, {'appointment_number': appointment.appointment_number})
        if assigned_to:
            appointment = self.assignments.reassign('appointment', appointment.id, assigned_to, actor).entity
        return appointment

    def _require_customer(self, customer_id: str):
        if not self.gateway.exists('customer', customer_id):
            raise NotFound('customer', customer_id)


__all__ = ['Intake', 'next_number']
