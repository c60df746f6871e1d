"""
Matters Domain Layer
====================

Contains:
- Entities: Matter, FieldValue, TransitionHistoryEntry, CycleTime
- Field value variants: one stored variant per logical field type
- Value Objects & Services: CycleTimeCalculator (cycle time and SLA engine)

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from src.matters.domain.entities import (
    Matter,
    FieldValue,
    UserValue,
    StatusValue,
    CycleTime,
    TransitionHistoryEntry,
)
from src.matters.domain.field_values import (
    StoredValue,
    TextValue,
    NumberValue,
    DateValue,
    BooleanValue,
    CurrencyValue,
    UserRef,
    SelectRef,
    StatusRef,
    parse_stored_value,
    resolve_field_type,
)
from src.matters.domain.value_objects import CycleTimeCalculator

__all__ = [
    # Entities
    "Matter",
    "FieldValue",
    "UserValue",
    "StatusValue",
    "CycleTime",
    "TransitionHistoryEntry",
    # Field value variants
    "StoredValue",
    "TextValue",
    "NumberValue",
    "DateValue",
    "BooleanValue",
    "CurrencyValue",
    "UserRef",
    "SelectRef",
    "StatusRef",
    "parse_stored_value",
    "resolve_field_type",
    # Value Objects & Services
    "CycleTimeCalculator",
]
