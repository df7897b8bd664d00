from __future__ import annotations
"""Cascade Delete Orchestrator: remove a customer and every dependent record.

Deletion order (children before the parents they reference):

  1. time_entries              ticket_id IN customer's tickets
  2. ticket_notes              ticket_id IN customer's tickets
  3. repair_tickets            customer_id
  4. appointments              customer_id (tickets reference appointments)
  5. customer_devices          customer_id
  6. notification_preferences  customer_id
  7. customer_comments         comments with entity_type='customer'
  8. customer                  the customer row itself

Steps run strictly in sequence and stop at the first failure. Completed
steps are not rolled back; the report says exactly what was removed.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from repairdesk.errors import DeletionIncomplete, DomainError, NotFound, StorageError
from repairdesk.models.appointment import Appointment
from repairdesk.models.repair_ticket import RepairTicket

logger = logging.getLogger(__name__)

STATUS_COMPLETED = 'completed'
STATUS_SKIPPED = 'skipped'
STATUS_FAILED = 'failed'

DEFAULT_SAMPLE_SIZE = 5


@dataclass(frozen=True)
class DeletionStep:
    name: str
    table: str
    filters: Dict[str, Any]
    needs_tickets: bool = False

    def skipped_for(self, ticket_ids: List[str]) -> bool:
        return self.needs_tickets and not ticket_ids


def build_steps(customer_id: str, ticket_ids: List[str]) -> List[DeletionStep]:
    return [
        DeletionStep('time_entries', 'time_entries', {'ticket_id': list(ticket_ids)}, needs_tickets=True),
        DeletionStep('ticket_notes', 'ticket_notes', {'ticket_id': list(ticket_ids)}, needs_tickets=True),
        DeletionStep('repair_tickets', 'repair_tickets', {'customer_id': customer_id}, needs_tickets=True),
        DeletionStep('appointments', 'appointments', {'customer_id': customer_id}),
        DeletionStep('customer_devices', 'customer_devices', {'customer_id': customer_id}),
        DeletionStep('notification_preferences', 'notification_preferences', {'customer_id': customer_id}),
        DeletionStep('customer_comments', 'comments', {'entity_type': 'customer', 'entity_id': customer_id}),
        DeletionStep('customer', 'customers', {'id': customer_id}),
    ]


STEP_NAMES = tuple(s.name for s in build_steps('', []))


@dataclass
class PlannedStep:
    name: str
    table: str
    expected_rows: int
    skipped: bool = False

    def to_dict(self):
        return {'name': self.name, 'table': self.table, 'expected_rows': self.expected_rows, 'skipped': self.skipped}


@dataclass
class DeletionPlan:
    customer: Dict[str, Any]
    categories: Dict[str, Dict[str, Any]]
    steps: List[PlannedStep]

    @property
    def total_related_records(self) -> int:
        return sum(c['count'] for c in self.categories.values())

    def expected_rows(self) -> Dict[str, int]:
        return {s.name: s.expected_rows for s in self.steps}

    def to_dict(self):
        return {
            'customer': self.customer,
            'related_data': self.categories,
            'total_related_records': self.total_related_records,
            'steps': [s.to_dict() for s in self.steps],
        }


@dataclass
class StepResult:
    index: int
    name: str
    table: str
    status: str
    rows_affected: int = 0
    error: Optional[str] = None
    error_kind: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status != STATUS_FAILED

    def to_dict(self):
        return {
            'index': self.index, 'name': self.name, 'table': self.table, 'status': self.status,
            'rows_affected': self.rows_affected, 'error': self.error, 'error_kind': self.error_kind,
        }


@dataclass
class DeletionReport:
    customer_id: str
    actor_id: str
    customer_name: Optional[str] = None
    steps: List[StepResult] = field(default_factory=list)
    error: Optional[DomainError] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def failed_step(self) -> Optional[StepResult]:
        for step in self.steps:
            if step.status == STATUS_FAILED:
                return step
        return None

    @property
    def attempted(self) -> List[str]:
        return [s.name for s in self.steps]

    def rows_by_step(self) -> Dict[str, int]:
        return {s.name: s.rows_affected for s in self.steps}

    def raise_for_failure(self):
        if self.error is not None:
            raise self.error
        return self

    def to_dict(self):
        failed_step = self.failed_step
        return {
            'customer_id': self.customer_id,
            'customer_name': self.customer_name,
            'deleted': not self.failed,
            'failed': self.failed,
            'failed_step': failed_step.name if failed_step else None,
            'error': self.error.to_dict() if self.error is not None else None,
            'steps': [s.to_dict() for s in self.steps],
        }


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class CascadeDeleteOrchestrator:
    def __init__(self, gateway, audit, system_actor_id: str, sample_size: int = DEFAULT_SAMPLE_SIZE):
        self.gateway = gateway
        self.audit = audit
        self.system_actor_id = system_actor_id
        self.sample_size = sample_size

    def _load_customer(self, customer_id: str):
        customer = self.gateway.get('customer', customer_id)
        if customer is None:
            raise NotFound('customer', customer_id)
        return customer

    def _ticket_ids(self, customer_id: str) -> List[str]:
        return [t.id for t in self.gateway.select_where('repair_tickets', {'customer_id': customer_id})]

    # --- preview ---
    def preview(self, customer_id: str, now: Optional[datetime] = None) -> DeletionPlan:
        """Read-only: counts and samples of everything ``execute`` would remove."""
        now = _as_utc(now) or datetime.now(timezone.utc)
        customer = self._load_customer(customer_id)
        tickets = self.gateway.select_where('repair_tickets', {'customer_id': customer.id}, order_by='created_at')
        ticket_ids = [t.id for t in tickets]
        appointments = self.gateway.select_where('appointments', {'customer_id': customer.id}, order_by='scheduled_at')
        devices = self.gateway.select_where('customer_devices', {'customer_id': customer.id})
        counts = {
            'time_entries': self.gateway.count_where('time_entries', {'ticket_id': ticket_ids}) if ticket_ids else 0,
            'ticket_notes': self.gateway.count_where('ticket_notes', {'ticket_id': ticket_ids}) if ticket_ids else 0,
            'repair_tickets': len(tickets),
            'appointments': len(appointments),
            'customer_devices': len(devices),
            'notification_preferences': self.gateway.count_where('notification_preferences', {'customer_id': customer.id}),
            'customer_comments': self.gateway.count_where('comments', {'entity_type': 'customer', 'entity_id': customer.id}),
            'customer': 1,
        }
        upcoming = [
            a for a in appointments
            if a.status in Appointment.UPCOMING_STATUSES and a.scheduled_at is not None and _as_utc(a.scheduled_at) > now
        ]
        n = self.sample_size
        categories = {
            'repair_tickets': {
                'count': len(tickets),
                'active_count': sum(1 for t in tickets if t.status in RepairTicket.ACTIVE_STATUSES),
                'items': [{'id': t.id, 'ticket_number': t.ticket_number, 'status': t.status} for t in tickets[:n]],
            },
            'appointments': {
                'count': len(appointments),
                'upcoming_count': len(upcoming),
                'items': [{
                    'id': a.id,
                    'appointment_number': a.appointment_number,
                    'scheduled_at': a.scheduled_at.isoformat() if a.scheduled_at else None,
                    'status': a.status,
                } for a in appointments[:n]],
            },
            'devices': {
                'count': len(devices),
                'items': [{'id': d.id, 'device_type': d.device_type, 'model': d.model} for d in devices[:n]],
            },
            'time_entries': {'count': counts['time_entries']},
            'notifications': {'count': counts['notification_preferences']},
        }
        steps = [
            PlannedStep(s.name, s.table, counts[s.name], skipped=s.skipped_for(ticket_ids))
            for s in build_steps(customer.id, ticket_ids)
        ]
        return DeletionPlan(
            customer={'id': customer.id, 'name': customer.name, 'email': customer.email, 'phone': customer.phone},
            categories=categories,
            steps=steps,
        )

    # --- execute ---
    def execute(self, customer_id: str, actor_id: Optional[str] = None) -> DeletionReport:
        actor = actor_id or self.system_actor_id
        customer = self._load_customer(customer_id)
        ticket_ids = self._ticket_ids(customer.id)
        report = DeletionReport(customer.id, actor, customer.name)
        logger.info("Starting cascade deletion for customer %s (%d tickets) by %s", customer.id, len(ticket_ids), actor)

        for index, step in enumerate(build_steps(customer.id, ticket_ids), start=1):
            if step.skipped_for(ticket_ids):
                logger.info("Step %d %s skipped: customer has no tickets", index, step.name)
                report.steps.append(StepResult(index, step.name, step.table, STATUS_SKIPPED))
                continue
            try:
                rows = self.gateway.delete_where(step.table, step.filters)
            except StorageError as exc:
                logger.error("Cascade deletion for customer %s failed at step %d %s: %s", customer.id, index, step.name, exc.detail)
                report.steps.append(StepResult(index, step.name, step.table, STATUS_FAILED, error=exc.detail, error_kind=exc.code))
                report.error = exc
                break
            logger.info("Step %d %s removed %d row(s)", index, step.name, rows)
            report.steps.append(StepResult(index, step.name, step.table, STATUS_COMPLETED, rows_affected=rows))
            if step.name == 'customer' and rows == 0:
                self._check_customer_gone(report)

        self._audit(report)
        return report

    def _check_customer_gone(self, report: DeletionReport):
        logger.warning("Customer %s delete affected no rows, re-checking existence", report.customer_id)
        last = report.steps[-1]
        try:
            still_there = self.gateway.exists('customer', report.customer_id)
        except StorageError as exc:
            last.status, last.error, last.error_kind = STATUS_FAILED, exc.detail, exc.code
            report.error = exc
            return
        if still_there:
            err = DeletionIncomplete(
                f"Customer {report.customer_id} still exists after cascade deletion; remaining related data may be blocking it",
                customer_id=report.customer_id, step='customer',
            )
            last.status, last.error, last.error_kind = STATUS_FAILED, err.detail, err.kind
            report.error = err
        else:
            logger.info("Customer %s already gone, treating deletion as complete", report.customer_id)

    def _audit(self, report: DeletionReport):
        action = 'CUSTOMER.CASCADE_DELETE.FAILED' if report.failed else 'CUSTOMER.CASCADE_DELETE'
        failed_step = report.failed_step
        self.audit.record(report.actor_id, action, 'Customer', report.customer_id, {
            'customer_name': report.customer_name,
            'rows': report.rows_by_step(),
            'failed_step': failed_step.name if failed_step else None,
            'error': report.error.detail if report.error is not None else None,
        })


__all__ = [
    'CascadeDeleteOrchestrator', 'DeletionPlan', 'DeletionReport', 'DeletionStep', 'PlannedStep',
    'StepResult', 'build_steps', 'STEP_NAMES',
]
