from __future__ import annotations
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Boolean, ForeignKey, DateTime, Text, text
from .base import Base, new_id


class CustomerDevice(Base):
    __tablename__ = 'customer_devices'
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    customer_id: Mapped[str] = mapped_column(ForeignKey('customers.id'), nullable=False, index=True)
    device_id: Mapped[Optional[str]] = mapped_column(String(36))
    device_type: Mapped[Optional[str]] = mapped_column(String(80))
    model: Mapped[Optional[str]] = mapped_column(String(80))
    serial_number: Mapped[Optional[str]] = mapped_column(String(64))
    imei: Mapped[Optional[str]] = mapped_column(String(32))
    nickname: Mapped[Optional[str]] = mapped_column(String(80))


class NotificationPreference(Base):
    __tablename__ = 'notification_preferences'
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    customer_id: Mapped[str] = mapped_column(ForeignKey('customers.id'), nullable=False, index=True)
    channel: Mapped[str] = mapped_column(String(16), nullable=False, default='email')
    event: Mapped[str] = mapped_column(String(64), nullable=False, default='status_change')
    enabled: Mapped[bool] = mapped_column(Boolean, default=True)


class Comment(Base):
    """Polymorphic comment; ``entity_type`` names the table the comment hangs off."""
    __tablename__ = 'comments'
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    entity_type: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    entity_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    user_id: Mapped[Optional[str]] = mapped_column(String(64))
    body: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=text('CURRENT_TIMESTAMP'))
