from __future__ import annotations
from flask import Blueprint, request
from repairdesk.decorators.auth import require_permissions
from repairdesk.errors import NotFound, ValidationError
from repairdesk.models.repair_ticket import RepairTicket
from repairdesk.services.policy import current_actor
from repairdesk.services.wiring import request_core
from repairdesk.utils.serializers import assignment_json, iso, status_change_json
from repairdesk.utils.validation import optional_identifier, require_fields, validate_status

tickets_bp = Blueprint('tickets', __name__)


@tickets_bp.post('')
@require_permissions('TICKET.MANAGE')
def create_ticket():
    data = request.get_json(silent=True) or {}
    require_fields(data, 'customer_id', 'issue_summary')
    core = request_core()
    t = core.intake.create_ticket(
        data['customer_id'], data['issue_summary'],
        device_brand=data.get('device_brand'), device_model=data.get('device_model'),
        assigned_to=optional_identifier(data.get('assigned_to'), 'assigned_to'),
        actor_id=current_actor(),
    )
    return _ticket_json(t), 201


@tickets_bp.get('/<ticket_id>')
@require_permissions('TICKET.READ')
def get_ticket(ticket_id: str):
    t = request_core().gateway.get('ticket', ticket_id)
    if not t:
        raise NotFound('ticket', ticket_id)
    return _ticket_json(t)


@tickets_bp.post('/<ticket_id>/assign')
@require_permissions('TICKET.ASSIGN')
def assign_ticket(ticket_id: str):
    data = request.get_json(silent=True) or {}
    if 'assigned_to' not in data:
        raise ValidationError('assigned_to required (null to unassign)')
    result = request_core().assignments.reassign('ticket', ticket_id, optional_identifier(data['assigned_to'], 'assigned_to'), current_actor())
    return {**_ticket_json(result.entity), 'assignment': assignment_json(result)}


@tickets_bp.post('/<ticket_id>/status')
@require_permissions('TICKET.CHANGE_STATUS')
def change_ticket_status(ticket_id: str):
    data = request.get_json(silent=True) or {}
    status = validate_status(data.get('status'), RepairTicket.ALL_STATUSES)
    change = request_core().lifecycle.change_status('ticket', ticket_id, status, data.get('reason'), current_actor())
    return {**_ticket_json(change.entity), 'status_change': status_change_json(change)}


@tickets_bp.patch('/<ticket_id>')
@require_permissions('TICKET.MANAGE')
def update_ticket(ticket_id: str):
    """Partial update of assignee and/or status; nothing is written unless both changes are allowed."""
    data = request.get_json(silent=True) or {}
    if 'assigned_to' not in data and 'status' not in data:
        raise ValidationError('assigned_to or status required')
    status = validate_status(data['status'], RepairTicket.ALL_STATUSES) if 'status' in data else None
    assignee = optional_identifier(data['assigned_to'], 'assigned_to') if 'assigned_to' in data else None
    core = request_core()
    update = core.update_ticket(ticket_id, current_actor(), status=status, reason=data.get('reason'),
                                assign='assigned_to' in data, assignee=assignee)
    body = {}
    if update.assignment is not None:
        body['assignment'] = assignment_json(update.assignment)
    if update.status_change is not None:
        body['status_change'] = status_change_json(update.status_change)
    t = core.gateway.get('ticket', ticket_id)
    return {**_ticket_json(t), **body}


@tickets_bp.delete('/<ticket_id>')
@require_permissions('TICKET.MANAGE')
def delete_ticket(ticket_id: str):
    data = request.get_json(silent=True) or {}
    change = request_core().lifecycle.delete_ticket(ticket_id, data.get('reason') or request.args.get('reason'), current_actor())
    return {**_ticket_json(change.entity), 'status_change': status_change_json(change)}


def _ticket_json(t: RepairTicket):
    return {
        'id': t.id,
        'ticket_number': t.ticket_number,
        'customer_id': t.customer_id,
        'appointment_id': t.appointment_id,
        'device_brand': t.device_brand,
        'device_model': t.device_model,
        'issue_summary': t.issue_summary,
        'status': t.status,
        'status_reason': t.status_reason,
        'assigned_to': t.assigned_to,
        'updated_at': iso(t.updated_at),
    }
