from __future__ import annotations
import uuid
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def new_id() -> str:
    return str(uuid.uuid4())


def load_models():
    """Import every model module so all tables are registered on ``Base.metadata``."""
    from . import customer, appointment, repair_ticket, ticket_activity, customer_records, internal_notification, audit  # noqa: F401
    return Base.metadata
