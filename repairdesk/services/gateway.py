from __future__ import annotations
"""Persistence Gateway over a SQLAlchemy session.

Each call is one statement followed by its own commit; there is no
transaction spanning calls. Failures roll the session back and surface as
StorageError so callers never see raw SQLAlchemy exceptions.

Filters are ``{column: value}`` maps; list/tuple/set values become IN (...).
"""
import logging
from typing import Any, Dict, List, Mapping, Optional
from sqlalchemy import select, update, delete, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from repairdesk.errors import NotFound, StorageError, ValidationError
from repairdesk.models.appointment import Appointment
from repairdesk.models.audit import AuditLog
from repairdesk.models.customer import Customer
from repairdesk.models.customer_records import Comment, CustomerDevice, NotificationPreference
from repairdesk.models.internal_notification import InternalNotification
from repairdesk.models.repair_ticket import RepairTicket
from repairdesk.models.ticket_activity import TicketNote, TimeEntry

logger = logging.getLogger(__name__)

TABLES = {
    'customers': Customer,
    'repair_tickets': RepairTicket,
    'appointments': Appointment,
    'time_entries': TimeEntry,
    'ticket_notes': TicketNote,
    'customer_devices': CustomerDevice,
    'notification_preferences': NotificationPreference,
    'comments': Comment,
    'internal_notifications': InternalNotification,
    'audit_logs': AuditLog,
}

ENTITY_TABLES = {
    'customer': 'customers',
    'ticket': 'repair_tickets',
    'appointment': 'appointments',
}


def model_for(table: str):
    try:
        return TABLES[table]
    except KeyError:
        raise ValidationError(f"Unknown table {table!r}", table=table) from None


def table_for_kind(kind: str) -> str:
    try:
        return ENTITY_TABLES[kind]
    except KeyError:
        raise ValidationError(f"Unknown entity kind {kind!r}", value=kind) from None


def build_conditions(model, filters: Mapping[str, Any]):
    conditions = []
    for column, value in filters.items():
        attr = getattr(model, column, None)
        if attr is None:
            raise ValidationError(f"Unknown column {model.__tablename__}.{column}", column=column)
        if isinstance(value, (list, tuple, set, frozenset)):
            conditions.append(attr.in_(list(value)))
        else:
            conditions.append(attr == value)
    return conditions


class SqlGateway:
    def __init__(self, session: Session):
        self.session = session

    def _fail(self, exc: SQLAlchemyError, operation: str, table: str):
        self.session.rollback()
        code = StorageError.CONSTRAINT_VIOLATION if isinstance(exc, IntegrityError) else StorageError.STORAGE_FAILURE
        logger.error("Storage %s on %s failed (%s): %s", operation, table, code, exc)
        raise StorageError(f"{operation} on {table} failed: {exc.__class__.__name__}", code=code, original=exc, operation=operation, table=table) from exc

    # --- single entity ---
    def get(self, kind: str, entity_id: str):
        table = table_for_kind(kind)
        model = model_for(table)
        try:
            return self.session.execute(
                select(model).where(model.id == entity_id).execution_options(populate_existing=True)
            ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            self._fail(exc, 'get', table)

    def exists(self, kind: str, entity_id: str) -> bool:
        table = table_for_kind(kind)
        return self.count_where(table, {'id': entity_id}) > 0

    def update(self, kind: str, entity_id: str, fields: Dict[str, Any]):
        table = table_for_kind(kind)
        model = model_for(table)
        try:
            result = self.session.execute(
                update(model).where(model.id == entity_id).values(**fields).execution_options(synchronize_session=False)
            )
            self.session.commit()
        except SQLAlchemyError as exc:
            self._fail(exc, 'update', table)
        if result.rowcount == 0:
            raise NotFound(kind, entity_id)
        return self.get(kind, entity_id)

    # --- table level ---
    def insert(self, table: str, fields: Dict[str, Any]):
        model = model_for(table)
        row = model(**fields)
        try:
            self.session.add(row)
            self.session.commit()
        except SQLAlchemyError as exc:
            self._fail(exc, 'insert', table)
        return row

    def select_where(self, table: str, filters: Mapping[str, Any], limit: Optional[int] = None, order_by: Optional[str] = None) -> List[Any]:
        model = model_for(table)
        stmt = select(model).where(*build_conditions(model, filters))
        if order_by:
            stmt = stmt.order_by(getattr(model, order_by))
        if limit is not None:
            stmt = stmt.limit(limit)
        try:
            return list(self.session.execute(stmt).scalars())
        except SQLAlchemyError as exc:
            self._fail(exc, 'select', table)

    def count_where(self, table: str, filters: Mapping[str, Any]) -> int:
        model = model_for(table)
        stmt = select(func.count()).select_from(model).where(*build_conditions(model, filters))
        try:
            return int(self.session.execute(stmt).scalar_one())
        except SQLAlchemyError as exc:
            self._fail(exc, 'count', table)

    def delete_where(self, table: str, filters: Mapping[str, Any]) -> int:
        model = model_for(table)
        stmt = delete(model).where(*build_conditions(model, filters)).execution_options(synchronize_session=False)
        try:
            result = self.session.execute(stmt)
            self.session.commit()
        except SQLAlchemyError as exc:
            self._fail(exc, 'delete', table)
        return result.rowcount or 0


__all__ = ['SqlGateway', 'TABLES', 'ENTITY_TABLES', 'model_for', 'table_for_kind']
