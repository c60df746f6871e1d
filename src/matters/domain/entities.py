"""
Matter Domain Entities
======================

Pure Python domain entities for matters.

A matter has no fixed attributes: its ``fields`` map is assembled from the
field-value rows stored for it. Cycle time and SLA are never stored; they
are recomputed on every read.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, Optional, Union
from uuid import UUID

from src.config import FieldType, SLAStatus, StatusGroupName
from src.matters.domain.field_values import CurrencyValue


@dataclass(frozen=True)
class UserValue:
    """User referenced by a user field."""
    id: int
    email: str
    first_name: str
    last_name: str

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@dataclass(frozen=True)
class StatusValue:
    """
    Status option a matter is in, with its workflow phase.

    The phase is carried alongside the option id because the cycle-time
    engine works on phases, not option labels.
    """
    status_id: UUID
    group_name: Optional[str]

    @property
    def phase(self) -> Optional[StatusGroupName]:
        return StatusGroupName.parse(self.group_name)


DisplayableValue = Union[str, float, bool, date, CurrencyValue, UserValue, StatusValue, UUID, None]


@dataclass
class FieldValue:
    """One field of a matter, normalised for display."""
    field_id: UUID
    field_name: str
    field_type: FieldType
    value: DisplayableValue
    display_value: Optional[str] = None


@dataclass(frozen=True)
class CycleTime:
    """Elapsed workflow time of a matter."""
    resolution_time_ms: Optional[int]
    resolution_time_formatted: str
    is_in_progress: bool
    started_at: Optional[datetime]
    completed_at: Optional[datetime]


@dataclass(frozen=True)
class TransitionHistoryEntry:
    """
    One status change of a matter.

    Append-only. The first entry of a matter has no ``from_status_id``.
    """
    id: UUID
    matter_id: UUID
    status_field_id: UUID
    from_status_id: Optional[UUID]
    to_status_id: UUID
    transitioned_at: datetime


@dataclass
class Matter:
    """
    Matter entity (a ticket) with its dynamic fields.

    ``transitioned_first``/``transitioned_last`` are the earliest and latest
    transition timestamps of the matter's history at read time.
    """

    id: UUID
    board_id: UUID
    created_at: datetime
    updated_at: datetime
    fields: Dict[str, FieldValue] = field(default_factory=dict)
    transitioned_first: Optional[datetime] = None
    transitioned_last: Optional[datetime] = None

    # Derived by the cycle-time engine
    cycle_time: Optional[CycleTime] = None
    sla: Optional[SLAStatus] = None

    @property
    def current_phase(self) -> Optional[StatusGroupName]:
        """Workflow phase of the matter's status field, if it has one."""
        for value in self.fields.values():
            if value.field_type is FieldType.STATUS and isinstance(value.value, StatusValue):
                return value.value.phase
        return None
