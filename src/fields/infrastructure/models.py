"""
Field Schema Infrastructure Models
==================================

SQLAlchemy ORM models for the field schema tables.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FieldModel(Base):
    """
    Database model for a field definition.

    Maps to the 'ticketing_fields' table.
    """
    __tablename__ = "ticketing_fields"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    account_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    field_type: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # "metadata" is reserved on declarative classes
    field_metadata: Mapped[Optional[dict]] = mapped_column("metadata", JSON, nullable=True)
    system_field: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class FieldOptionModel(Base):
    """
    Option of a select field.

    Maps to the 'ticketing_field_options' table.
    """
    __tablename__ = "ticketing_field_options"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    field_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("ticketing_fields.id"), nullable=False, index=True)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class StatusGroupModel(Base):
    """
    Workflow phase that status options belong to.

    Maps to the 'ticketing_field_status_groups' table.
    """
    __tablename__ = "ticketing_field_status_groups"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    account_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class StatusOptionModel(Base):
    """
    Option of a status field.

    Maps to the 'ticketing_field_status_options' table.
    """
    __tablename__ = "ticketing_field_status_options"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    field_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("ticketing_fields.id"), nullable=False, index=True)
    group_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("ticketing_field_status_groups.id"), nullable=False
    )
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class CurrencyOptionModel(Base):
    """
    Currency allowed on currency fields.

    Maps to the 'ticketing_currency_field_options' table.
    """
    __tablename__ = "ticketing_currency_field_options"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    account_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    code: Mapped[str] = mapped_column(String(3), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    symbol: Mapped[str] = mapped_column(String(8), nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
