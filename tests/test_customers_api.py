from flask import Flask
from repairdesk import get_db
from repairdesk.models.audit import AuditLog
from repairdesk.services.gateway import SqlGateway
from tests.test_utils_seed import FailingGateway, seed_full_customer
from tests.test_lifecycle_helpers import jwt_headers, role_headers


def test_create_and_read_customer(app_context: Flask):
    client = app_context.test_client()
    headers = role_headers('desk-c-1', 'FrontDesk')
    resp = client.post('/customers', json={'name': 'Api New Customer', 'email': 'new@example.com'}, headers=headers)
    assert resp.status_code == 201
    cid = resp.get_json()['id']
    resp = client.get(f'/customers/{cid}', headers=headers)
    assert resp.get_json()['email'] == 'new@example.com'
    entry = get_db().query(AuditLog).filter_by(entity_id=cid).one()
    assert entry.action == 'CUSTOMER.CREATE'
    assert entry.actor_id == 'desk-c-1'
    assert entry.perms_snapshot['perms']
    assert client.post('/customers', json={}, headers=headers).status_code == 400


def test_cascade_delete_requires_delete_permission(app_context: Flask):
    client = app_context.test_client()
    customer, _, _ = seed_full_customer('Api Cascade Perms Customer', tickets=1)
    resp = client.get(f'/customers/{customer.id}/cascade-delete', headers=role_headers('mgr-c', 'Manager'))
    assert resp.status_code == 403
    resp = client.delete(f'/customers/{customer.id}/cascade-delete', headers=role_headers('mgr-c', 'Manager'))
    assert resp.status_code == 403


def test_cascade_preview_then_delete(app_context: Flask):
    client = app_context.test_client()
    customer, _, _ = seed_full_customer('Api Cascade Customer')
    headers = role_headers('admin-c', 'Admin')
    preview = client.get(f'/customers/{customer.id}/cascade-delete', headers=headers).get_json()
    assert preview['related_data']['repair_tickets']['count'] == 2
    assert preview['total_related_records'] == 7
    expected = {s['name']: s['expected_rows'] for s in preview['steps']}

    resp = client.delete(f'/customers/{customer.id}/cascade-delete', headers=headers)
    assert resp.status_code == 200, resp.get_json()
    body = resp.get_json()
    assert body['deleted'] is True
    assert 'Api Cascade Customer' in body['message']
    assert {s['name']: s['rows_affected'] for s in body['steps']} == expected
    assert client.get(f'/customers/{customer.id}', headers=headers).status_code == 404
    assert client.delete(f'/customers/{customer.id}/cascade-delete', headers=headers).status_code == 404


def test_cascade_failure_reports_step(app_context: Flask, monkeypatch):
    client = app_context.test_client()
    customer, _, _ = seed_full_customer('Api Cascade Failure Customer', tickets=1)
    import repairdesk.services.wiring as wiring
    monkeypatch.setattr(wiring, 'SqlGateway', lambda session: FailingGateway(session, fail_deletes={'appointments'}))
    resp = client.delete(f'/customers/{customer.id}/cascade-delete', headers=jwt_headers('admin-c2', ['CUSTOMER.DELETE']))
    assert resp.status_code == 500
    body = resp.get_json()
    assert body['deleted'] is False
    assert body['failed_step'] == 'appointments'
    assert body['error']['kind'] == 'storage_error'
    assert [s['status'] for s in body['steps']] == ['completed', 'completed', 'completed', 'failed']
    assert SqlGateway(get_db()).exists('customer', customer.id)
