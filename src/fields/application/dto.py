"""
Field Schema DTOs
=================

Response models for the field schema catalog endpoint.
"""

from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import Field as PydanticField

from src.shared.api.schemas import CamelModel
from src.config import FieldType


class FieldOptionResponse(CamelModel):
    id: UUID
    label: str
    sequence: int


class StatusOptionResponse(CamelModel):
    id: UUID
    label: str
    group_id: UUID
    group_name: str
    sequence: int


class FieldResponse(CamelModel):
    """A field definition with its select/status options."""
    id: UUID
    account_id: int
    name: str
    field_type: FieldType
    description: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    system_field: bool = False
    options: List[FieldOptionResponse] = PydanticField(default_factory=list)
    status_options: List[StatusOptionResponse] = PydanticField(default_factory=list)


class StatusGroupResponse(CamelModel):
    id: UUID
    name: str
    sequence: int


class CurrencyOptionResponse(CamelModel):
    id: UUID
    code: str
    name: str
    symbol: str
    sequence: int


class FieldCatalogResponse(CamelModel):
    """Everything a matter editor needs to render and edit fields."""
    fields: List[FieldResponse]
    status_groups: List[StatusGroupResponse]
    currency_options: List[CurrencyOptionResponse]
