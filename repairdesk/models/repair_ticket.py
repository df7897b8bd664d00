from __future__ import annotations
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, ForeignKey, DateTime, func
from .base import Base, new_id


class RepairTicket(Base):
    __tablename__ = 'repair_tickets'
    # Status constants
    STATUS_NEW = 'new'
    STATUS_IN_PROGRESS = 'in_progress'
    STATUS_ON_HOLD = 'on_hold'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    ALL_STATUSES = (STATUS_NEW, STATUS_IN_PROGRESS, STATUS_ON_HOLD, STATUS_COMPLETED, STATUS_CANCELLED)
    ACTIVE_STATUSES = (STATUS_NEW, STATUS_IN_PROGRESS, STATUS_ON_HOLD)
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    ticket_number: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    customer_id: Mapped[str] = mapped_column(ForeignKey('customers.id'), nullable=False, index=True)
    appointment_id: Mapped[Optional[str]] = mapped_column(ForeignKey('appointments.id'), nullable=True, index=True)
    device_brand: Mapped[Optional[str]] = mapped_column(String(80))
    device_model: Mapped[Optional[str]] = mapped_column(String(80))
    issue_summary: Mapped[str] = mapped_column(String(255), nullable=False, default='')
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=STATUS_NEW, index=True)
    status_reason: Mapped[Optional[str]] = mapped_column(String(500))
    assigned_to: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    created_by: Mapped[Optional[str]] = mapped_column(String(64))
    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

# Status flow: new -> in_progress <-> on_hold -> completed (reopen to on_hold); cancelled is terminal.
