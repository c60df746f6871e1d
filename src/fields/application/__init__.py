"""
Field Schema Application Layer
==============================

Contains:
- Services: Catalog lookups over the repository interface
- DTOs: Response models for the fields endpoint
"""

from src.fields.application.dto import (
    FieldOptionResponse,
    StatusOptionResponse,
    FieldResponse,
    StatusGroupResponse,
    CurrencyOptionResponse,
    FieldCatalogResponse,
)
from src.fields.application.services import (
    FieldCatalogService,
    IFieldRepository,
)

__all__ = [
    # DTOs
    "FieldOptionResponse",
    "StatusOptionResponse",
    "FieldResponse",
    "StatusGroupResponse",
    "CurrencyOptionResponse",
    "FieldCatalogResponse",
    # Services
    "FieldCatalogService",
    # Repository Interfaces
    "IFieldRepository",
]
