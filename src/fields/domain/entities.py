"""
Field Schema Entities
=====================

Read-only description of the fields an account has defined.

A field is immutable for the duration of a request; it decides which value
column a matter's value for it lives in and, for select/status fields, the
ordinal used when sorting by it.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from uuid import UUID

from src.config import FieldType


@dataclass(frozen=True)
class FieldOption:
    """Option of a select field."""
    id: UUID
    label: str
    sequence: int


@dataclass(frozen=True)
class StatusOption:
    """Option of a status field, tied to a workflow phase."""
    id: UUID
    label: str
    group_id: UUID
    group_name: str
    sequence: int


@dataclass(frozen=True)
class StatusGroup:
    """Workflow phase (To Do / In Progress / Done)."""
    id: UUID
    name: str
    sequence: int


@dataclass(frozen=True)
class CurrencyOption:
    """Currency an account allows on currency fields."""
    id: UUID
    code: str
    name: str
    symbol: str
    sequence: int


@dataclass
class Field:
    """A field defined for an account."""

    id: UUID
    account_id: int
    name: str
    field_type: FieldType
    description: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    system_field: bool = False
    options: List[FieldOption] = field(default_factory=list)
    status_options: List[StatusOption] = field(default_factory=list)

    def find_option(self, option_id: UUID) -> Optional[FieldOption]:
        return next((o for o in self.options if o.id == option_id), None)

    def find_status_option(self, option_id: UUID) -> Optional[StatusOption]:
        return next((o for o in self.status_options if o.id == option_id), None)
