from __future__ import annotations
import logging
from typing import Any, Dict, Optional
from flask_jwt_extended import get_jwt
from repairdesk.errors import StorageError

logger = logging.getLogger(__name__)


def _perms_snapshot() -> Dict[str, Any]:
    try:
        claims = get_jwt() or {}
    except RuntimeError:
        claims = {}  # no request / JWT context (core invoked directly, e.g. from tests)
    return {'perms': claims.get('perms', [])}


class AuditSink:
    """Persist audit log entries for committed changes.

    Writes go through the gateway as their own statement; a failed write is
    logged and reported as ``None`` so the already committed mutation stands.
    """

    TABLE = 'audit_logs'

    def __init__(self, gateway, system_actor_id: str):
        self.gateway = gateway
        self.system_actor_id = system_actor_id

    def record(self, actor_id: Optional[str], action: str, entity: Optional[str] = None,
               entity_id: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        """Record one audit entry.

        Parameters:
          actor_id: staff identifier; falls back to the configured system actor
          action: short action code e.g. TICKET.ASSIGN, TICKET.STATUS.CHANGE, CUSTOMER.CASCADE_DELETE
          entity: optional entity label (RepairTicket, Appointment, Customer)
          entity_id: optional primary key string
          details: additional JSON-safe dictionary (shallow copied)
        """
        try:
            return self.gateway.insert(self.TABLE, {
                'actor_id': actor_id or self.system_actor_id,
                'action': action,
                'entity': entity,
                'entity_id': str(entity_id) if entity_id is not None else None,
                'perms_snapshot': _perms_snapshot(),
                'meta': dict(details or {}),
            })
        except StorageError as exc:
            logger.error("Audit entry %s for %s %s not written: %s", action, entity, entity_id, exc.detail)
            return None


__all__ = ['AuditSink']
