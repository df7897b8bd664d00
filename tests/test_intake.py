import re
import pytest
from repairdesk import get_db
from repairdesk.errors import NotFound
from repairdesk.models.audit import AuditLog
from repairdesk.services.intake import next_number


def test_next_number_format():
    assert re.fullmatch(r'T\d{6}-[0-9A-F]{6}', next_number('T'))
    assert next_number('A') != next_number('A')


def test_intake_creates_and_audits(app_context, core):
    customer = core.intake.create_customer('Intake Customer', phone='555-0199', actor_id='desk-i')
    ticket = core.intake.create_ticket(customer.id, 'Broken hinge', device_brand='Acme', actor_id='desk-i')
    assert ticket.status == 'new'
    assert ticket.assigned_to is None
    assert ticket.created_by == 'desk-i'
    appt = core.intake.book_appointment(customer.id, description='Pickup', assigned_to='tech-i', actor_id='desk-i')
    assert appt.status == 'scheduled'
    assert appt.assigned_to == 'tech-i'
    actions = [a.action for a in get_db().query(AuditLog).filter_by(entity_id=appt.id).order_by(AuditLog.id)]
    assert actions == ['APPOINTMENT.CREATE', 'APPOINTMENT.ASSIGN']


def test_intake_defaults_to_system_actor(app_context, core):
    customer = core.intake.create_customer('Intake System Customer')
    entry = get_db().query(AuditLog).filter_by(entity_id=customer.id).one()
    assert entry.actor_id == 'system'


def test_intake_requires_customer(app_context, core):
    with pytest.raises(NotFound):
        core.intake.create_ticket('missing-customer', 'x')
    with pytest.raises(NotFound):
        core.intake.book_appointment('missing-customer')
