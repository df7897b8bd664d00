from __future__ import annotations
from datetime import datetime
from flask import Blueprint, request
from repairdesk.decorators.auth import require_permissions
from repairdesk.errors import NotFound, ValidationError
from repairdesk.models.appointment import Appointment
from repairdesk.routes.tickets import _ticket_json
from repairdesk.services.policy import current_actor
from repairdesk.services.wiring import request_core
from repairdesk.utils.serializers import assignment_json, iso, status_change_json
from repairdesk.utils.validation import optional_identifier, require_fields, validate_status

appointments_bp = Blueprint('appointments', __name__)


def _parse_when(raw):
    if raw in (None, ''):
        return None
    try:
        return datetime.fromisoformat(str(raw).replace('Z', '+00:00'))
    except ValueError:
        raise ValidationError('scheduled_at must be an ISO 8601 timestamp', field='scheduled_at') from None


@appointments_bp.post('')
@require_permissions('APPT.MANAGE')
def book_appointment():
    data = request.get_json(silent=True) or {}
    require_fields(data, 'customer_id')
    a = request_core().intake.book_appointment(
        data['customer_id'], scheduled_at=_parse_when(data.get('scheduled_at')),
        description=data.get('description'),
        assigned_to=optional_identifier(data.get('assigned_to'), 'assigned_to'),
        actor_id=current_actor(),
    )
    return _appointment_json(a), 201


@appointments_bp.get('/<appointment_id>')
@require_permissions('APPT.READ')
def get_appointment(appointment_id: str):
    a = request_core().gateway.get('appointment', appointment_id)
    if not a:
        raise NotFound('appointment', appointment_id)
    return _appointment_json(a)


@appointments_bp.post('/<appointment_id>/assign')
@require_permissions('APPT.ASSIGN')
def assign_appointment(appointment_id: str):
    data = request.get_json(silent=True) or {}
    if 'assigned_to' not in data:
        raise ValidationError('assigned_to required (null to unassign)')
    result = request_core().assignments.reassign('appointment', appointment_id, optional_identifier(data['assigned_to'], 'assigned_to'), current_actor())
    return {**_appointment_json(result.entity), 'assignment': assignment_json(result)}


@appointments_bp.post('/<appointment_id>/status')
@require_permissions('APPT.MANAGE')
def change_appointment_status(appointment_id: str):
    data = request.get_json(silent=True) or {}
    status = validate_status(data.get('status'), Appointment.ALL_STATUSES)
    change = request_core().lifecycle.change_status('appointment', appointment_id, status, data.get('reason'), current_actor())
    return {**_appointment_json(change.entity), 'status_change': status_change_json(change)}


@appointments_bp.post('/<appointment_id>/convert')
@require_permissions('APPT.MANAGE')
def convert_appointment(appointment_id: str):
    data = request.get_json(silent=True) or {}
    conversion = request_core().lifecycle.convert_to_ticket(
        appointment_id, current_actor(),
        **{k: data[k] for k in ('device_brand', 'device_model', 'issue_summary') if data.get(k)},
    )
    return {'appointment': _appointment_json(conversion.appointment), 'ticket': _ticket_json(conversion.ticket)}, 201


@appointments_bp.delete('/<appointment_id>')
@require_permissions('APPT.MANAGE')
def delete_appointment(appointment_id: str):
    rows = request_core().lifecycle.delete_appointment(appointment_id, current_actor())
    return {'id': appointment_id, 'deleted': rows > 0}


def _appointment_json(a: Appointment):
    return {
        'id': a.id,
        'appointment_number': a.appointment_number,
        'customer_id': a.customer_id,
        'scheduled_at': iso(a.scheduled_at),
        'description': a.description,
        'status': a.status,
        'status_reason': a.status_reason,
        'assigned_to': a.assigned_to,
        'converted_to_ticket_id': a.converted_to_ticket_id,
    }
