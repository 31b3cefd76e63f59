"""
Database Models Module

This module defines SQLAlchemy ORM models for:
- Orders handed to the gateway by the storefront
- Order notes (payment audit trail)
- Key/value options (access token cache)
"""

from datetime import UTC, datetime
from enum import Enum as PyEnum

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class OrderStatus(PyEnum):
    pending = "pending"
    paid = "paid"
    failed = "failed"


class Order(Base):
    """Storefront order. The gateway reads totals/contact and writes payment state."""

    __tablename__ = "orders"
    __table_args__ = (Index("ix_orders_session", "payment_session_id"),)

    id = Column(Integer, primary_key=True, index=True)
    total = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="INR")
    billing_first_name = Column(String(100), nullable=False, default="")
    billing_last_name = Column(String(100), nullable=False, default="")
    billing_email = Column(String(255), nullable=False, default="")
    billing_phone = Column(String(50), nullable=False, default="")
    status = Column(Enum(OrderStatus), nullable=False, default=OrderStatus.pending)
    payment_id = Column(String(255), nullable=True)
    payment_session_id = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC))
    updated_at = Column(
        DateTime, default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC)
    )

    notes = relationship(
        "OrderNote", backref="order", lazy="dynamic", order_by="OrderNote.id"
    )

    @property
    def billing_name(self) -> str:
        return f"{self.billing_first_name} {self.billing_last_name}".strip()

    def __repr__(self):
        return f"<Order(id={self.id}, status={self.status})>"


class NoteAction(PyEnum):
    """Enum for order note actions."""

    session_created = "session_created"
    payment_confirmed = "payment_confirmed"
    payment_failed = "payment_failed"


class OrderNote(Base):
    """Audit note attached to an order for each payment state change."""

    __tablename__ = "order_notes"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id"), index=True, nullable=False)
    action = Column(Enum(NoteAction), index=True, nullable=False)
    note = Column(Text, nullable=False, default="")
    payload = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, server_default=func.now())

    def __repr__(self):
        return (
            f"<OrderNote(id={self.id}, order_id={self.order_id}, action={self.action})>"
        )


class KeyValue(Base):
    """Durable key/value option, used for the cached access token."""

    __tablename__ = "kv_store"

    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(
        DateTime, default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC)
    )
