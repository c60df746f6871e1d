"""
Matter DTOs
===========

Data Transfer Objects for matter API requests, responses and the rows
passed from the repository to the Matter Assembler.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from src.config import FieldType, SLAStatus
from src.matters.domain import (
    CurrencyValue, CycleTime, FieldValue, Matter, StatusValue,
    TransitionHistoryEntry, UserValue,
)
from src.shared.api.schemas import CamelModel


# ========== Repository records ==========

class MatterRecord(BaseModel):
    """
    One matter row with its phase boundaries.

    ``transitioned_first``/``transitioned_last`` are projected from the
    transition history when the row is read.
    """
    id: UUID
    board_id: UUID
    created_at: datetime
    updated_at: datetime
    transitioned_first: Optional[datetime] = None
    transitioned_last: Optional[datetime] = None


class FieldValueRecord(BaseModel):
    """
    One EAV row joined with its field definition and referenced rows.

    ``field_type`` is the raw stored type name; it may be one this service
    does not know.
    """
    matter_id: UUID
    field_id: UUID
    field_name: str
    field_type: str

    text_value: Optional[str] = None
    string_value: Optional[str] = None
    number_value: Optional[float] = None
    date_value: Optional[date] = None
    boolean_value: Optional[bool] = None
    currency_amount: Optional[float] = None
    currency_code: Optional[str] = None

    user_id: Optional[int] = None
    user_email: Optional[str] = None
    user_first_name: Optional[str] = None
    user_last_name: Optional[str] = None

    select_option_id: Optional[UUID] = None
    select_option_label: Optional[str] = None

    status_option_id: Optional[UUID] = None
    status_option_label: Optional[str] = None
    status_group_name: Optional[str] = None


# ========== Request DTOs ==========

class UpdateMatterFieldRequest(CamelModel):
    """Request body for setting one field of a matter."""
    field_id: UUID = Field(..., description="Field to update")
    field_type: str = Field(..., description="Logical type of the field")
    value: Any = Field(None, description="New value; null clears the field")


# ========== Response DTOs ==========

class UserValueResponse(CamelModel):
    id: int
    email: str
    first_name: str
    last_name: str
    display_name: str


class CurrencyValueResponse(CamelModel):
    amount: float
    currency_code: str


class StatusValueResponse(CamelModel):
    status_id: UUID
    group_name: Optional[str] = None


class FieldValueResponse(CamelModel):
    """One field of a matter with its display rendering."""
    field_id: UUID
    field_name: str
    field_type: FieldType
    value: Any = None
    display_value: Optional[str] = None

    @classmethod
    def from_domain(cls, field_value: FieldValue) -> "FieldValueResponse":
        value = field_value.value
        if isinstance(value, UserValue):
            value = UserValueResponse(
                id=value.id,
                email=value.email,
                first_name=value.first_name,
                last_name=value.last_name,
                display_name=value.display_name,
            )
        elif isinstance(value, CurrencyValue):
            value = CurrencyValueResponse(amount=value.amount, currency_code=value.currency_code)
        elif isinstance(value, StatusValue):
            value = StatusValueResponse(status_id=value.status_id, group_name=value.group_name)

        return cls(
            field_id=field_value.field_id,
            field_name=field_value.field_name,
            field_type=field_value.field_type,
            value=value,
            display_value=field_value.display_value,
        )


class CycleTimeResponse(CamelModel):
    resolution_time_ms: Optional[int] = None
    resolution_time_formatted: str
    is_in_progress: bool
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, cycle_time: CycleTime) -> "CycleTimeResponse":
        return cls(
            resolution_time_ms=cycle_time.resolution_time_ms,
            resolution_time_formatted=cycle_time.resolution_time_formatted,
            is_in_progress=cycle_time.is_in_progress,
            started_at=cycle_time.started_at,
            completed_at=cycle_time.completed_at,
        )


class MatterResponse(CamelModel):
    """Response model for a matter with its fields, cycle time and SLA."""
    id: UUID
    board_id: UUID
    created_at: datetime
    updated_at: datetime
    fields: Dict[str, FieldValueResponse] = Field(default_factory=dict)
    transitioned_first: Optional[datetime] = None
    transitioned_last: Optional[datetime] = None
    cycle_time: Optional[CycleTimeResponse] = None
    sla: Optional[SLAStatus] = None

    @classmethod
    def from_domain(cls, matter: Matter) -> "MatterResponse":
        return cls(
            id=matter.id,
            board_id=matter.board_id,
            created_at=matter.created_at,
            updated_at=matter.updated_at,
            fields={name: FieldValueResponse.from_domain(v) for name, v in matter.fields.items()},
            transitioned_first=matter.transitioned_first,
            transitioned_last=matter.transitioned_last,
            cycle_time=CycleTimeResponse.from_domain(matter.cycle_time) if matter.cycle_time else None,
            sla=matter.sla,
        )


class MatterListResponse(CamelModel):
    """One page of matters with pagination metadata."""
    data: List[MatterResponse]
    total: int = Field(..., description="Matters matching the filter, across all pages")
    page: int
    limit: int
    total_pages: int


class TransitionHistoryResponse(CamelModel):
    id: UUID
    matter_id: UUID
    status_field_id: UUID
    from_status_id: Optional[UUID] = None
    to_status_id: UUID
    transitioned_at: datetime

    @classmethod
    def from_domain(cls, entry: TransitionHistoryEntry) -> "TransitionHistoryResponse":
        return cls(
            id=entry.id,
            matter_id=entry.matter_id,
            status_field_id=entry.status_field_id,
            from_status_id=entry.from_status_id,
            to_status_id=entry.to_status_id,
            transitioned_at=entry.transitioned_at,
        )
