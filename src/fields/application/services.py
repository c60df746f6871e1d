"""
Field Schema Application Services
=================================

Read-only access to the field schema catalog.

The catalog is immutable for the lifetime of a request, so it is safe to
share between any number of concurrent readers.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional
from uuid import UUID

from src.fields.domain import CurrencyOption, Field, StatusGroup


# ========== Repository Interfaces (Dependency Inversion) ==========

class IFieldRepository(ABC):
    """Interface for field schema data access."""

    @abstractmethod
    async def list_fields(self, account_id: int) -> List[Field]:
        """List non-deleted fields of an account, with their options."""

    @abstractmethod
    async def get_field(self, field_id: UUID) -> Optional[Field]:
        """Get one field, with its options."""

    @abstractmethod
    async def list_status_groups(self, account_id: int) -> List[StatusGroup]:
        """List workflow phases of an account."""

    @abstractmethod
    async def list_currency_options(self, account_id: int) -> List[CurrencyOption]:
        """List currencies available to an account."""


# ========== Application Services ==========

class FieldCatalogService:
    """
    Service exposing the field schema catalog.

    Keeps a per-instance cache of fields looked up by id so that a request
    resolving the same field several times only reads it once.
    """

    def __init__(self, field_repository: IFieldRepository):
        self._field_repo = field_repository
        self._fields_by_id: Dict[UUID, Optional[Field]] = {}

    async def list_fields(self, account_id: int) -> List[Field]:
        fields = await self._field_repo.list_fields(account_id)
        for f in fields:
            self._fields_by_id[f.id] = f
        return fields

    async def get_field(self, field_id: UUID) -> Optional[Field]:
        if field_id not in self._fields_by_id:
            self._fields_by_id[field_id] = await self._field_repo.get_field(field_id)
        return self._fields_by_id[field_id]

    async def list_status_groups(self, account_id: int) -> List[StatusGroup]:
        return await self._field_repo.list_status_groups(account_id)

    async def list_currency_options(self, account_id: int) -> List[CurrencyOption]:
        return await self._field_repo.list_currency_options(account_id)
