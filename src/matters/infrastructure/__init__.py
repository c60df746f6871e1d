"""
Matters Infrastructure Layer
============================

- Models: SQLAlchemy ORM models for matters, field values, history, users
- Query plan: sort/page compilation over the EAV table
- Repositories: Data access layer
"""

from src.matters.infrastructure.models import (
    MatterModel,
    FieldValueModel,
    TransitionHistoryModel,
    UserModel,
)
from src.matters.infrastructure.query_plan import (
    QueryPlan,
    QueryPlanCompiler,
    SortFragment,
    search_filter,
)
from src.matters.infrastructure.repositories import SQLAlchemyMatterRepository

__all__ = [
    "MatterModel",
    "FieldValueModel",
    "TransitionHistoryModel",
    "UserModel",
    "QueryPlan",
    "QueryPlanCompiler",
    "SortFragment",
    "search_filter",
    "SQLAlchemyMatterRepository",
]
