"""
Field Schema Infrastructure Layer
=================================

- Models: SQLAlchemy ORM models for fields, options, status groups, currencies
- Repositories: Data access layer
"""

from src.fields.infrastructure.models import (
    FieldModel,
    FieldOptionModel,
    StatusGroupModel,
    StatusOptionModel,
    CurrencyOptionModel,
)
from src.fields.infrastructure.repositories import SQLAlchemyFieldRepository

__all__ = [
    "FieldModel",
    "FieldOptionModel",
    "StatusGroupModel",
    "StatusOptionModel",
    "CurrencyOptionModel",
    "SQLAlchemyFieldRepository",
]
