from __future__ import annotations
from flask import Blueprint, request
from repairdesk.decorators.auth import require_permissions
from repairdesk.errors import NotFound
from repairdesk.models.customer import Customer
from repairdesk.services.policy import current_actor
from repairdesk.services.wiring import request_core
from repairdesk.utils.validation import require_fields

customers_bp = Blueprint('customers', __name__)


@customers_bp.post('')
@require_permissions('CUSTOMER.MANAGE')
def create_customer():
    data = request.get_json(silent=True) or {}
    require_fields(data, 'name')
    c = request_core().intake.create_customer(
        data['name'], email=data.get('email'), phone=data.get('phone'), address=data.get('address'),
        actor_id=current_actor(),
    )
    return _customer_json(c), 201


@customers_bp.get('/<customer_id>')
@require_permissions('CUSTOMER.READ')
def get_customer(customer_id: str):
    c = request_core().gateway.get('customer', customer_id)
    if not c:
        raise NotFound('customer', customer_id)
    return _customer_json(c)


@customers_bp.get('/<customer_id>/cascade-delete')
@require_permissions('CUSTOMER.DELETE')
def preview_cascade_delete(customer_id: str):
    """Show what a cascade delete would remove. Read only, safe to repeat."""
    return request_core().cascade.preview(customer_id).to_dict()


@customers_bp.delete('/<customer_id>/cascade-delete')
@require_permissions('CUSTOMER.DELETE')
def execute_cascade_delete(customer_id: str):
    report = request_core().cascade.execute(customer_id, current_actor())
    body = report.to_dict()
    if report.failed:
        return body, report.error.status
    body['message'] = f'Customer "{report.customer_name}" and all related data have been permanently deleted'
    return body


def _customer_json(c: Customer):
    return {
        'id': c.id,
        'name': c.name,
        'email': c.email,
        'phone': c.phone,
        'address': c.address,
    }
