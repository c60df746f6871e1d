"""
Matters Application Layer
=========================

Contains:
- Services: MatterService and the repository interface it depends on
- Assembler: builds Matter entities from EAV rows
- DTOs: API request/response models and repository records

This layer depends on the domain layer and repository interfaces,
but not on concrete infrastructure implementations.
"""

from src.matters.application.dto import (
    MatterRecord,
    FieldValueRecord,
    UpdateMatterFieldRequest,
    UserValueResponse,
    CurrencyValueResponse,
    StatusValueResponse,
    FieldValueResponse,
    CycleTimeResponse,
    MatterResponse,
    MatterListResponse,
    TransitionHistoryResponse,
)
from src.matters.application.assembler import MatterAssembler
from src.matters.application.services import (
    MatterService,
    IMatterRepository,
)

__all__ = [
    # Records
    "MatterRecord",
    "FieldValueRecord",
    # DTOs
    "UpdateMatterFieldRequest",
    "UserValueResponse",
    "CurrencyValueResponse",
    "StatusValueResponse",
    "FieldValueResponse",
    "CycleTimeResponse",
    "MatterResponse",
    "MatterListResponse",
    "TransitionHistoryResponse",
    # Assembler
    "MatterAssembler",
    # Services
    "MatterService",
    # Repository Interfaces
    "IMatterRepository",
]
