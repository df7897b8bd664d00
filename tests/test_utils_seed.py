"""Test seeding utilities to reduce duplication.

Every helper writes through its own session commit and returns the row, so
tests can mix direct seeding with calls into the orchestrators. The database
is shared by the whole session: callers pass unique names where it matters.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
from repairdesk import get_db
from repairdesk.models.appointment import Appointment
from repairdesk.models.customer import Customer
from repairdesk.models.customer_records import Comment, CustomerDevice, NotificationPreference
from repairdesk.models.repair_ticket import RepairTicket
from repairdesk.models.ticket_activity import TicketNote, TimeEntry
from repairdesk.services.intake import next_number


def _save(obj):
    session = get_db()
    session.add(obj); session.commit(); session.refresh(obj)
    return obj


def ensure_customer(name: str, email: Optional[str] = None) -> Customer:
    """Idempotently ensure a Customer exists (by name)."""
    session = get_db()
    c = session.query(Customer).filter_by(name=name).one_or_none()
    if not c:
        c = _save(Customer(name=name, email=email or f"{name.lower().replace(' ', '.')}@example.com", phone='555-0100'))
    return c


def make_ticket(customer: Customer, status: str = RepairTicket.STATUS_NEW, assigned_to: Optional[str] = None,
                appointment_id: Optional[str] = None, issue_summary: str = 'Cracked screen') -> RepairTicket:
    """Create a RepairTicket directly (non-idempotent), bypassing the orchestrators."""
    return _save(RepairTicket(
        ticket_number=next_number('T'), customer_id=customer.id, appointment_id=appointment_id,
        device_brand='Acme', device_model='X1', issue_summary=issue_summary, status=status,
        assigned_to=assigned_to,
    ))


def make_appointment(customer: Customer, status: str = Appointment.STATUS_SCHEDULED, assigned_to: Optional[str] = None,
                     scheduled_at: Optional[datetime] = None, converted_to_ticket_id: Optional[str] = None) -> Appointment:
    return _save(Appointment(
        appointment_number=next_number('A'), customer_id=customer.id,
        scheduled_at=scheduled_at or datetime.now(timezone.utc) + timedelta(days=2),
        description='Battery check', status=status, assigned_to=assigned_to,
        converted_to_ticket_id=converted_to_ticket_id,
    ))


def add_time_entry(ticket: RepairTicket, minutes: int = 30, user_id: str = 'tech-1') -> TimeEntry:
    start = datetime.now(timezone.utc) - timedelta(minutes=minutes)
    return _save(TimeEntry(ticket_id=ticket.id, user_id=user_id, start_time=start,
                           end_time=start + timedelta(minutes=minutes), duration_minutes=minutes))


def add_ticket_note(ticket: RepairTicket, content: str = 'Customer called') -> TicketNote:
    return _save(TicketNote(ticket_id=ticket.id, content=content, user_id='tech-1'))


def add_device(customer: Customer, device_type: str = 'phone', model: str = 'X1') -> CustomerDevice:
    return _save(CustomerDevice(customer_id=customer.id, device_type=device_type, model=model, serial_number='SN-1'))


def add_preference(customer: Customer, channel: str = 'email') -> NotificationPreference:
    return _save(NotificationPreference(customer_id=customer.id, channel=channel, event='status_change'))


def add_comment(customer: Customer, body: str = 'VIP') -> Comment:
    return _save(Comment(entity_type='customer', entity_id=customer.id, user_id='desk-1', body=body))


def seed_full_customer(name: str, tickets: int = 2, time_entries_per_ticket: int = 1):
    """Customer with tickets, time entries, notes, one appointment, a device, a preference and a comment."""
    customer = ensure_customer(name)
    ticket_rows = []
    for i in range(tickets):
        t = make_ticket(customer, status=RepairTicket.STATUS_IN_PROGRESS if i == 0 else RepairTicket.STATUS_COMPLETED)
        for _ in range(time_entries_per_ticket):
            add_time_entry(t)
        add_ticket_note(t)
        ticket_rows.append(t)
    appointment = make_appointment(customer)
    add_device(customer)
    add_preference(customer)
    add_comment(customer)
    return customer, ticket_rows, appointment


__all__ = [
    'ensure_customer', 'make_ticket', 'make_appointment', 'add_time_entry', 'add_ticket_note', 'add_device',
    'add_preference', 'add_comment', 'seed_full_customer',
]


# ---------------- Collaborator doubles ---------------- #
from repairdesk.errors import StorageError  # noqa: E402
from repairdesk.services.gateway import SqlGateway  # noqa: E402
from repairdesk.services.notifications import Dispatched  # noqa: E402


class FailingGateway(SqlGateway):
    """SqlGateway that raises StorageError for chosen kinds/tables and logs every delete it is asked for.

    ``silent_deletes`` tables report zero rows without touching storage, which
    mimics a delete blocked without an error.
    """

    def __init__(self, session, fail_updates=(), fail_deletes=(), fail_inserts=(), silent_deletes=()):
        super().__init__(session)
        self.fail_updates = set(fail_updates)
        self.fail_deletes = set(fail_deletes)
        self.fail_inserts = set(fail_inserts)
        self.silent_deletes = set(silent_deletes)
        self.delete_calls = []

    def update(self, kind, entity_id, fields):
        if kind in self.fail_updates:
            raise StorageError(f"update on {kind} failed: OperationalError", operation='update', table=kind)
        return super().update(kind, entity_id, fields)

    def insert(self, table, fields):
        if table in self.fail_inserts:
            raise StorageError(f"insert on {table} failed: OperationalError", operation='insert', table=table)
        return super().insert(table, fields)

    def delete_where(self, table, filters):
        self.delete_calls.append(table)
        if table in self.fail_deletes:
            raise StorageError(f"delete on {table} failed: IntegrityError", code=StorageError.CONSTRAINT_VIOLATION,
                               operation='delete', table=table)
        if table in self.silent_deletes:
            return 0
        return super().delete_where(table, filters)


class RecordingDispatcher:
    """Stands in for NotificationDispatcher; remembers (recipient, notice) pairs."""

    def __init__(self, fail_for=()):
        self.sent = []
        self.fail_for = set(fail_for)

    def notify_safely(self, recipient_id, notice, created_by=None):
        if recipient_id in self.fail_for:
            return Dispatched(recipient_id, notice, delivered=False, error='inbox unavailable')
        self.sent.append((recipient_id, notice))
        return Dispatched(recipient_id, notice)

    @property
    def recipients(self):
        return [r for r, _ in self.sent]


__all__ += ['FailingGateway', 'RecordingDispatcher']
