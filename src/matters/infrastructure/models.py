"""
Matters Infrastructure Models
=============================

SQLAlchemy ORM models for matters, their field values (EAV rows) and the
status transition history.

These are the database representations of our domain entities.
They belong in the infrastructure layer, not the domain layer.
"""

from datetime import date, datetime, timezone
from typing import Callable, Dict, Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean, Date, DateTime, Float, ForeignKey, Index, Integer, Numeric,
    String, Text, UniqueConstraint, Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from src.config import FieldType
from src.infrastructure.database import Base
from src.matters.domain.field_values import (
    BooleanValue, CurrencyValue, DateValue, NumberValue, SelectRef,
    StatusRef, StoredValue, TextValue, UserRef,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserModel(Base):
    """
    Users that can be referenced by user fields.

    Maps to the 'users' table, owned by the account service.
    """
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)


class MatterModel(Base):
    """
    Database model for Matter entity.

    Maps to the 'ticketing_matters' table. Everything else about a matter
    lives in field-value rows.
    """
    __tablename__ = "ticketing_matters"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    board_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


class FieldValueModel(Base):
    """
    One matter's value for one field.

    Exactly one of the typed value columns is populated, the one belonging
    to the field's logical type. Text values written before the long-text
    column existed sit in ``string_value``.
    """
    __tablename__ = "ticketing_matter_field_values"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    matter_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("ticketing_matters.id"), nullable=False)
    field_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("ticketing_fields.id"), nullable=False)

    # Typed value columns
    text_value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    string_value: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    number_value: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    date_value: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    boolean_value: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    currency_amount: Mapped[Optional[float]] = mapped_column(Numeric(18, 2, asdecimal=False), nullable=True)
    currency_code: Mapped[Optional[str]] = mapped_column(String(3), nullable=True)
    user_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)
    select_option_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("ticketing_field_options.id"), nullable=True
    )
    status_option_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("ticketing_field_status_options.id"), nullable=True
    )

    # Audit
    created_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    updated_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        UniqueConstraint("matter_id", "field_id", name="uq_matter_field_value_matter_field"),
    )

    VALUE_COLUMNS = (
        "text_value", "string_value", "number_value", "date_value", "boolean_value",
        "currency_amount", "currency_code", "user_id", "select_option_id", "status_option_id",
    )

    def assign(self, field_type: FieldType, stored: Optional[StoredValue]) -> None:
        """
        Store ``stored`` in the column of ``field_type`` and clear all others.

        ``None`` clears the value.
        """
        for column in self.VALUE_COLUMNS:
            setattr(self, column, None)
        if stored is None:
            return
        if stored.field_type is not field_type:
            raise ValueError(f"{type(stored).__name__} cannot be stored in a {field_type.value} field")
        _COLUMN_WRITERS[field_type](self, stored)


def _write_text(row: FieldValueModel, v: TextValue) -> None:
    row.text_value = v.text


def _write_number(row: FieldValueModel, v: NumberValue) -> None:
    row.number_value = v.number


def _write_date(row: FieldValueModel, v: DateValue) -> None:
    row.date_value = v.day


def _write_boolean(row: FieldValueModel, v: BooleanValue) -> None:
    row.boolean_value = v.flag


def _write_currency(row: FieldValueModel, v: CurrencyValue) -> None:
    row.currency_amount = v.amount
    row.currency_code = v.currency_code


def _write_user(row: FieldValueModel, v: UserRef) -> None:
    row.user_id = v.user_id


def _write_select(row: FieldValueModel, v: SelectRef) -> None:
    row.select_option_id = v.option_id


def _write_status(row: FieldValueModel, v: StatusRef) -> None:
    row.status_option_id = v.option_id


_COLUMN_WRITERS: Dict[FieldType, Callable[[FieldValueModel, StoredValue], None]] = {
    FieldType.TEXT: _write_text,
    FieldType.NUMBER: _write_number,
    FieldType.DATE: _write_date,
    FieldType.BOOLEAN: _write_boolean,
    FieldType.CURRENCY: _write_currency,
    FieldType.USER: _write_user,
    FieldType.SELECT: _write_select,
    FieldType.STATUS: _write_status,
}

if set(_COLUMN_WRITERS) != set(FieldType):
    raise RuntimeError("every FieldType needs a value column")


class TransitionHistoryModel(Base):
    """
    Append-only log of status changes.

    Maps to the 'ticketing_cycle_time_histories' table. Rows are never
    updated or deleted.
    """
    __tablename__ = "ticketing_cycle_time_histories"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    matter_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("ticketing_matters.id"), nullable=False)
    status_field_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("ticketing_fields.id"), nullable=False)
    from_status_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("ticketing_field_status_options.id"), nullable=True
    )
    to_status_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("ticketing_field_status_options.id"), nullable=False
    )
    transitioned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        Index("ix_cycle_time_histories_matter_transitioned", "matter_id", "transitioned_at"),
    )
