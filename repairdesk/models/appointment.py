from __future__ import annotations
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, ForeignKey, DateTime, func
from .base import Base, new_id


class Appointment(Base):
    __tablename__ = 'appointments'
    STATUS_SCHEDULED = 'scheduled'
    STATUS_CONFIRMED = 'confirmed'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_NO_SHOW = 'no_show'
    ALL_STATUSES = (STATUS_SCHEDULED, STATUS_CONFIRMED, STATUS_COMPLETED, STATUS_CANCELLED, STATUS_NO_SHOW)
    UPCOMING_STATUSES = (STATUS_SCHEDULED, STATUS_CONFIRMED)
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    appointment_number: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    customer_id: Mapped[str] = mapped_column(ForeignKey('customers.id'), nullable=False, index=True)
    scheduled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(String(500))
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=STATUS_SCHEDULED, index=True)
    status_reason: Mapped[Optional[str]] = mapped_column(String(500))
    assigned_to: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    # No FK: tickets already reference appointments, keep the graph acyclic.
    converted_to_ticket_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    created_by: Mapped[Optional[str]] = mapped_column(String(64))
    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
