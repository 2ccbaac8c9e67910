"""CRM persistence models -- one table per record kind.

Five SQLAlchemy models on the shared declarative Base:
- ContactModel: People the sales team talks to
- DealModel: Sales opportunities moving through pipeline stages
- TaskModel: Follow-up work items with due dates
- ActivityModel: Logged interactions (calls, emails, meetings, notes)
- QuoteModel: Price quotes with billing and shipping addresses

Cross-record ids (contact_id, deal_id) are plain integer columns, not foreign
keys: deleting a contact never cascades, and dangling ids resolve to "not
found" when looked up.
"""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Date, DateTime, Float, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from src.crm.core.database import Base
from src.crm.records.schemas import EntityKind


class ContactModel(Base):
    """A person at a customer or prospect company."""

    __tablename__ = "contacts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    company: Mapped[str | None] = mapped_column(String(200), nullable=True)
    position: Mapped[str | None] = mapped_column(String(200), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    last_activity: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )


class DealModel(Base):
    """A sales opportunity.

    stage holds a DealStage value. It is a plain string column so rows
    written by other tools with an unknown stage still load.
    """

    __tablename__ = "deals"
    __table_args__ = (Index("ix_deals_stage", "stage"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    value: Mapped[float | None] = mapped_column(Float, nullable=True, default=0.0)
    stage: Mapped[str] = mapped_column(String(50), nullable=False, default="lead")
    probability: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    contact_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    expected_close_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )


class TaskModel(Base):
    __tablename__ = "tasks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default="medium")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    contact_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    deal_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )


class ActivityModel(Base):
    __tablename__ = "activities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="call")
    subject: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    contact_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    deal_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )


class QuoteModel(Base):
    """A price quote sent for a deal. Address fields are stored flat."""

    __tablename__ = "quotes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    company: Mapped[str] = mapped_column(String(200), nullable=False)
    contact_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    deal_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    quote_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    expires_on: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="Draft")
    delivery_method: Mapped[str | None] = mapped_column(String(20), nullable=True)
    billing_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    billing_street: Mapped[str | None] = mapped_column(String(300), nullable=True)
    billing_city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    billing_state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    billing_country: Mapped[str | None] = mapped_column(String(100), nullable=True)
    billing_pincode: Mapped[str | None] = mapped_column(String(20), nullable=True)
    shipping_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    shipping_street: Mapped[str | None] = mapped_column(String(300), nullable=True)
    shipping_city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    shipping_state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    shipping_country: Mapped[str | None] = mapped_column(String(100), nullable=True)
    shipping_pincode: Mapped[str | None] = mapped_column(String(20), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )


MODELS: dict[EntityKind, type[Base]] = {
    EntityKind.CONTACT: ContactModel,
    EntityKind.DEAL: DealModel,
    EntityKind.TASK: TaskModel,
    EntityKind.ACTIVITY: ActivityModel,
    EntityKind.QUOTE: QuoteModel,
}
