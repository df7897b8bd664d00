import pytest
from flask import Flask
from repairdesk import get_db
from repairdesk.models.audit import AuditLog
from repairdesk.models.internal_notification import InternalNotification
from tests.test_utils_seed import ensure_customer, make_ticket
from tests.test_lifecycle_helpers import (
    assert_status_change, create_resource_and_assert, exercise_ticket_lifecycle, jwt_headers, role_headers,
)


def test_ticket_lifecycle(app_context: Flask):
    client = app_context.test_client()
    customer = ensure_customer('Api Lifecycle Customer')
    headers = role_headers('manager-1', 'Manager')
    tid = exercise_ticket_lifecycle(client, headers, customer.id)
    resp = client.get(f'/tickets/{tid}', headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()['status'] == 'completed'


def test_create_with_assignee_goes_through_assignment(app_context: Flask):
    client = app_context.test_client()
    customer = ensure_customer('Api Create Assign Customer')
    headers = role_headers('desk-api-1', 'FrontDesk')
    body = create_resource_and_assert(client, '/tickets', {
        'customer_id': customer.id, 'issue_summary': 'Water damage', 'assigned_to': 'tech-api-1',
    }, headers, expected_initial_status='new')
    assert body['assigned_to'] == 'tech-api-1'
    assert body['ticket_number'].startswith('T')
    actions = {a.action for a in get_db().query(AuditLog).filter_by(entity_id=body['id'])}
    assert actions == {'TICKET.CREATE', 'TICKET.ASSIGN'}
    inbox = get_db().query(InternalNotification).filter_by(user_id='tech-api-1').all()
    assert [n.type for n in inbox] == ['ticket_assigned']
    assert inbox[0].action_url == f"/orders/{body['id']}"
    assert inbox[0].created_by == 'desk-api-1'


def test_create_validation(app_context: Flask):
    client = app_context.test_client()
    headers = role_headers('desk-api-2', 'FrontDesk')
    resp = client.post('/tickets', json={'issue_summary': 'x'}, headers=headers)
    assert resp.status_code == 400
    assert resp.get_json()['error']['kind'] == 'validation_error'
    resp = client.post('/tickets', json={'customer_id': 'nobody', 'issue_summary': 'x'}, headers=headers)
    assert resp.status_code == 404


def test_assign_endpoint_transfer_and_guard(app_context: Flask):
    client = app_context.test_client()
    ticket = make_ticket(ensure_customer('Api Assign Customer'), assigned_to='tech-api-A')
    headers = role_headers('lead-1', 'Manager')
    resp = client.post(f'/tickets/{ticket.id}/assign', json={'assigned_to': 'tech-api-B'}, headers=headers)
    assert resp.status_code == 200, resp.get_json()
    body = resp.get_json()
    assert body['assigned_to'] == 'tech-api-B'
    assert body['assignment']['kind'] == 'transfer'
    assert sorted(body['assignment']['notified']) == ['tech-api-A', 'tech-api-B']

    client.post(f'/tickets/{ticket.id}/status', json={'status': 'in_progress'}, headers=headers)
    client.post(f'/tickets/{ticket.id}/status', json={'status': 'completed'}, headers=headers)
    resp = client.post(f'/tickets/{ticket.id}/assign', json={'assigned_to': None}, headers=headers)
    assert resp.status_code == 409
    err = resp.get_json()['error']
    assert err['kind'] == 'guard_violation'
    assert err['context']['current'] == 'completed'
    assert err['context']['attempted'] is None


def test_assign_requires_field(app_context: Flask):
    client = app_context.test_client()
    ticket = make_ticket(ensure_customer('Api Assign Field Customer'))
    resp = client.post(f'/tickets/{ticket.id}/assign', json={}, headers=role_headers('lead-2', 'Manager'))
    assert resp.status_code == 400


def test_status_endpoint_errors(app_context: Flask):
    client = app_context.test_client()
    ticket = make_ticket(ensure_customer('Api Status Customer'), status='in_progress')
    headers = role_headers('tech-api-3', 'Technician')
    url = f'/tickets/{ticket.id}/status'
    resp = assert_status_change(client, url, headers, 'on_hold', expected_code=400)
    assert resp.get_json()['error']['kind'] == 'missing_reason'
    resp = assert_status_change(client, url, headers, 'new', expected_code=400)
    err = resp.get_json()['error']
    assert err['kind'] == 'invalid_transition'
    assert err['context'] == {'entity': 'ticket', 'current': 'in_progress', 'requested': 'new'}
    resp = client.post(url, json={'status': 'archived'}, headers=headers)
    assert resp.status_code == 400
    assert resp.get_json()['error']['kind'] == 'validation_error'
    body = assert_status_change(client, url, headers, 'on_hold', reason='Parts ordered').get_json()
    assert body['status_reason'] == 'Parts ordered'
    assert body['status_change']['previous_status'] == 'in_progress'


def test_patch_routes_assignment_through_orchestrator(app_context: Flask):
    client = app_context.test_client()
    ticket = make_ticket(ensure_customer('Api Patch Customer'))
    headers = role_headers('lead-3', 'Manager')
    resp = client.patch(f'/tickets/{ticket.id}', json={'assigned_to': 'tech-api-P', 'status': 'in_progress'}, headers=headers)
    assert resp.status_code == 200, resp.get_json()
    body = resp.get_json()
    assert body['assigned_to'] == 'tech-api-P'
    assert body['status'] == 'in_progress'
    assert body['assignment']['kind'] == 'assign'
    assert body['status_change']['notified'] == 'tech-api-P'

    resp = client.patch(f'/tickets/{ticket.id}', json={'status': 'bogus', 'assigned_to': 'tech-api-Q'}, headers=headers)
    assert resp.status_code == 400
    assert client.get(f'/tickets/{ticket.id}', headers=headers).get_json()['assigned_to'] == 'tech-api-P'
    assert client.patch(f'/tickets/{ticket.id}', json={}, headers=headers).status_code == 400


def test_patch_rejected_status_leaves_assignee_untouched(app_context: Flask):
    client = app_context.test_client()
    ticket = make_ticket(ensure_customer('Api Patch Atomic Customer'))
    headers = role_headers('lead-6', 'Manager')
    resp = client.patch(f'/tickets/{ticket.id}', json={'assigned_to': 'tech-api-Z', 'status': 'completed'}, headers=headers)
    assert resp.status_code == 400
    assert resp.get_json()['error']['kind'] == 'invalid_transition'
    body = client.get(f'/tickets/{ticket.id}', headers=headers).get_json()
    assert body['assigned_to'] is None
    assert body['status'] == 'new'

    started = make_ticket(ensure_customer('Api Patch Reason Customer'), status='in_progress', assigned_to='tech-api-X')
    resp = client.patch(f'/tickets/{started.id}', json={'assigned_to': 'tech-api-Y', 'status': 'on_hold'}, headers=headers)
    assert resp.status_code == 400
    assert resp.get_json()['error']['kind'] == 'missing_reason'
    assert client.get(f'/tickets/{started.id}', headers=headers).get_json()['assigned_to'] == 'tech-api-X'
    notices = get_db().query(InternalNotification).filter(InternalNotification.user_id.in_(['tech-api-Y', 'tech-api-Z'])).count()
    assert notices == 0


def test_patch_reopen_applies_status_before_assignee(app_context: Flask):
    client = app_context.test_client()
    ticket = make_ticket(ensure_customer('Api Patch Reopen Customer'), status='completed', assigned_to='tech-api-V')
    headers = role_headers('lead-7', 'Manager')
    resp = client.patch(f'/tickets/{ticket.id}', json={'assigned_to': 'tech-api-W', 'status': 'on_hold', 'reason': 'Customer reported fault again'}, headers=headers)
    assert resp.status_code == 200, resp.get_json()
    body = resp.get_json()
    assert body['status'] == 'on_hold'
    assert body['assigned_to'] == 'tech-api-W'
    assert body['assignment']['kind'] == 'transfer'

    done = make_ticket(ensure_customer('Api Patch Locked Customer'), status='completed', assigned_to='tech-api-V')
    resp = client.patch(f'/tickets/{done.id}', json={'assigned_to': 'tech-api-W'}, headers=headers)
    assert resp.status_code == 409
    assert client.get(f'/tickets/{done.id}', headers=headers).get_json()['assigned_to'] == 'tech-api-V'


def test_delete_is_cancellation(app_context: Flask):
    client = app_context.test_client()
    customer = ensure_customer('Api Delete Customer')
    ticket = make_ticket(customer)
    done = make_ticket(customer, status='completed')
    headers = role_headers('desk-api-4', 'FrontDesk')
    resp = client.delete(f'/tickets/{ticket.id}', headers=headers)
    assert resp.status_code == 400
    assert resp.get_json()['error']['kind'] == 'missing_reason'
    resp = client.delete(f'/tickets/{ticket.id}', json={'reason': 'Duplicate'}, headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()['status'] == 'cancelled'
    assert client.get(f'/tickets/{ticket.id}', headers=headers).status_code == 200
    resp = client.delete(f'/tickets/{done.id}', json={'reason': 'Oops'}, headers=headers)
    assert resp.status_code == 409


def test_permissions_enforced(app_context: Flask):
    client = app_context.test_client()
    ticket = make_ticket(ensure_customer('Api Perms Customer'))
    resp = client.post(f'/tickets/{ticket.id}/assign', json={'assigned_to': 'x'}, headers=jwt_headers('reader', ['TICKET.READ']))
    assert resp.status_code == 403
    assert 'TICKET.ASSIGN' in resp.get_json()['error']['detail']
    assert client.get(f'/tickets/{ticket.id}').status_code == 401
    resp = client.get(f'/tickets/{ticket.id}', headers=jwt_headers('root', ['*']))
    assert resp.status_code == 200


def test_missing_ticket_is_404(app_context: Flask):
    client = app_context.test_client()
    resp = client.get('/tickets/does-not-exist', headers=role_headers('lead-4', 'Manager'))
    assert resp.status_code == 404
    assert resp.get_json()['error']['kind'] == 'not_found'
