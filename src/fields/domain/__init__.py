"""
Field Schema Domain Layer
=========================

Entities describing the per-account field schema. Pure Python, no
infrastructure dependencies.
"""

from src.fields.domain.entities import (
    Field,
    FieldOption,
    StatusOption,
    StatusGroup,
    CurrencyOption,
)

__all__ = [
    "Field",
    "FieldOption",
    "StatusOption",
    "StatusGroup",
    "CurrencyOption",
]
