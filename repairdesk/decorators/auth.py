from __future__ import annotations
"""Route guard for staff endpoints.

Every repairdesk route is staff-only: the bearer token carries the staff id as
its identity and a flat ``perms`` claim (see ``constants.permissions``).
"""
import logging
from functools import wraps
from flask import abort, request
from flask_jwt_extended import verify_jwt_in_request
from repairdesk.services.policy import current_actor, missing_permissions

logger = logging.getLogger(__name__)


def require_permissions(*codes: str):
    """Reject the request with 403 unless the token grants every code.

    The 403 detail names only the codes that are missing.
    """
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            missing = missing_permissions(*codes)
            if missing:
                logger.warning("Staff %s denied %s %s: missing %s", current_actor(), request.method, request.path, ', '.join(missing))
                abort(403, description=f"Missing permission: {', '.join(missing)}")
            return fn(*args, **kwargs)
        return wrapper
    return outer
