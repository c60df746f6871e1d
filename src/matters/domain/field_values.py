"""
Field Value Variants
====================

A matter's value for a field is stored in exactly one typed slot, chosen by
the field's logical type. Each variant below is one of those slots; a
``StoredValue`` is always exactly one of them, so there is no "null unless
the type matches" convention to get wrong.

``parse_stored_value`` turns loosely typed input (JSON bodies, scripts) into
the variant for a logical type.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, ClassVar, Dict, Mapping, Optional, Union
from uuid import UUID

from src.config import FieldType
from src.core import UnsupportedFieldTypeException, ValidationException


@dataclass(frozen=True)
class TextValue:
    field_type: ClassVar[FieldType] = FieldType.TEXT
    text: str


@dataclass(frozen=True)
class NumberValue:
    field_type: ClassVar[FieldType] = FieldType.NUMBER
    number: float


@dataclass(frozen=True)
class DateValue:
    field_type: ClassVar[FieldType] = FieldType.DATE
    day: date


@dataclass(frozen=True)
class BooleanValue:
    field_type: ClassVar[FieldType] = FieldType.BOOLEAN
    flag: bool


@dataclass(frozen=True)
class CurrencyValue:
    field_type: ClassVar[FieldType] = FieldType.CURRENCY
    amount: float
    currency_code: str


@dataclass(frozen=True)
class UserRef:
    field_type: ClassVar[FieldType] = FieldType.USER
    user_id: int


@dataclass(frozen=True)
class SelectRef:
    field_type: ClassVar[FieldType] = FieldType.SELECT
    option_id: UUID


@dataclass(frozen=True)
class StatusRef:
    field_type: ClassVar[FieldType] = FieldType.STATUS
    option_id: UUID


StoredValue = Union[
    TextValue, NumberValue, DateValue, BooleanValue,
    CurrencyValue, UserRef, SelectRef, StatusRef,
]


def resolve_field_type(field_type: Union[FieldType, str]) -> FieldType:
    """Map a logical type name to ``FieldType``; unknown names are unsupported."""
    if isinstance(field_type, FieldType):
        return field_type
    try:
        return FieldType(field_type)
    except ValueError:
        raise UnsupportedFieldTypeException(str(field_type))


# ========== Parsers ==========

def _parse_text(raw: Any) -> TextValue:
    if not isinstance(raw, str):
        raise ValidationException("Text value must be a string", {"value": repr(raw)})
    return TextValue(text=raw)


def _parse_number(raw: Any) -> NumberValue:
    if isinstance(raw, bool):
        raise ValidationException("Number value must be numeric", {"value": repr(raw)})
    try:
        number = float(raw)
    except (TypeError, ValueError):
        raise ValidationException("Number value must be numeric", {"value": repr(raw)})
    if not math.isfinite(number):
        raise ValidationException("Number value must be finite", {"value": repr(raw)})
    return NumberValue(number=number)


def _parse_date(raw: Any) -> DateValue:
    if isinstance(raw, datetime):
        return DateValue(day=raw.date())
    if isinstance(raw, date):
        return DateValue(day=raw)
    if isinstance(raw, str):
        try:
            return DateValue(day=datetime.fromisoformat(raw.replace("Z", "+00:00")).date())
        except ValueError:
            pass
    raise ValidationException("Date value must be an ISO-8601 date", {"value": repr(raw)})


def _parse_boolean(raw: Any) -> BooleanValue:
    if not isinstance(raw, bool):
        raise ValidationException("Boolean value must be true or false", {"value": repr(raw)})
    return BooleanValue(flag=raw)


def _parse_currency(raw: Any) -> CurrencyValue:
    if isinstance(raw, CurrencyValue):
        raw = {"amount": raw.amount, "currencyCode": raw.currency_code}
    if not isinstance(raw, Mapping):
        raise ValidationException("Currency value must be an object", {"value": repr(raw)})

    code = raw.get("currencyCode", raw.get("currency_code", raw.get("currency")))
    amount = raw.get("amount")
    if not isinstance(code, str) or not code:
        raise ValidationException("Currency value requires a currency code", {"value": repr(raw)})
    if isinstance(amount, bool) or amount is None:
        raise ValidationException("Currency value requires a numeric amount", {"value": repr(raw)})
    try:
        amount = float(Decimal(str(amount)))
    except (InvalidOperation, ValueError):
        raise ValidationException("Currency value requires a numeric amount", {"value": repr(raw)})
    if not math.isfinite(amount):
        raise ValidationException("Currency amount must be finite", {"value": repr(raw)})
    return CurrencyValue(amount=amount, currency_code=code.upper())


def _parse_user(raw: Any) -> UserRef:
    if isinstance(raw, Mapping):
        raw = raw.get("id")
    if isinstance(raw, bool):
        raise ValidationException("User value must be a user id", {"value": repr(raw)})
    try:
        return UserRef(user_id=int(raw))
    except (TypeError, ValueError):
        raise ValidationException("User value must be a user id", {"value": repr(raw)})


def _parse_uuid(raw: Any) -> UUID:
    if isinstance(raw, UUID):
        return raw
    if isinstance(raw, Mapping):
        raw = raw.get("statusId", raw.get("id"))
    try:
        return UUID(str(raw))
    except ValueError:
        raise ValidationException("Option value must be an option id", {"value": repr(raw)})


def _parse_select(raw: Any) -> SelectRef:
    return SelectRef(option_id=_parse_uuid(raw))


def _parse_status(raw: Any) -> StatusRef:
    return StatusRef(option_id=_parse_uuid(raw))


_PARSERS: Dict[FieldType, Callable[[Any], StoredValue]] = {
    FieldType.TEXT: _parse_text,
    FieldType.NUMBER: _parse_number,
    FieldType.DATE: _parse_date,
    FieldType.BOOLEAN: _parse_boolean,
    FieldType.CURRENCY: _parse_currency,
    FieldType.USER: _parse_user,
    FieldType.SELECT: _parse_select,
    FieldType.STATUS: _parse_status,
}

# Adding a FieldType without a parser must fail at import time
if set(_PARSERS) != set(FieldType):
    raise RuntimeError("every FieldType needs a value parser")


def parse_stored_value(field_type: Union[FieldType, str], raw: Any) -> Optional[StoredValue]:
    """
    Build the stored variant for ``field_type`` from raw input.

    ``None`` clears the value, except on status fields where every change
    must land on a status option.

    Raises:
        UnsupportedFieldTypeException: no column mapping for the type
        ValidationException: raw input cannot be coerced
    """
    resolved = resolve_field_type(field_type)
    if raw is None:
        if resolved is FieldType.STATUS:
            raise ValidationException("Status value cannot be cleared")
        return None
    return _PARSERS[resolved](raw)
