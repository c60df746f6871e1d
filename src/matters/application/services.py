"""
Matter Application Services
===========================

Application services orchestrate business logic and coordinate between
domain entities and repositories.

MatterService answers list/detail reads (paged query, batch field load,
assembly, cycle time) and applies single-field updates.
"""

from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence, Tuple, Union
from uuid import UUID

from src.config import (
    DEFAULT_SORT_ORDER, DEFAULT_SORT_TYPE, PSEUDO_SORT_TYPES, FieldType,
    SortOrder, SortType,
)
from src.core import ResourceNotFoundException, ValidationException
from src.fields.application import FieldCatalogService
from src.fields.domain import Field
from src.matters.application.assembler import MatterAssembler
from src.matters.application.dto import FieldValueRecord, MatterRecord
from src.matters.domain import (
    CycleTimeCalculator, Matter, SelectRef, StatusRef, StoredValue,
    TransitionHistoryEntry, parse_stored_value, resolve_field_type,
)
from src.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class IMatterRepository(ABC):
    """Interface for matter data access."""

    @abstractmethod
    async def list_matters(
        self,
        sort_key: Optional[Union[str, UUID]],
        sort_type: SortType,
        sort_order: SortOrder,
        page: int,
        page_size: int,
        search: Optional[str] = None,
    ) -> Tuple[List[MatterRecord], int]:
        """One sorted page of matters and the total matching the filter."""

    @abstractmethod
    async def get_matter(self, matter_id: UUID) -> Optional[MatterRecord]:
        """Get one matter with its phase boundaries."""

    @abstractmethod
    async def get_field_values(self, matter_ids: Sequence[UUID]) -> List[FieldValueRecord]:
        """Field-value rows of a set of matters, ordered by field name."""

    @abstractmethod
    async def update_field(
        self,
        matter_id: UUID,
        field: Field,
        value: Optional[StoredValue],
        actor_id: int,
    ) -> None:
        """Upsert one field value, appending history for status changes, atomically."""

    @abstractmethod
    async def get_transition_history(self, matter_id: UUID) -> List[TransitionHistoryEntry]:
        """Status transitions of a matter, oldest first."""


# ========== Application Services ==========

class MatterService:
    """
    Service for reading and updating matters.

    Args:
        matter_repository: matter data access
        field_catalog: field schema lookups
        calculator: cycle-time/SLA engine applied to every matter read
    """

    def __init__(
        self,
        matter_repository: IMatterRepository,
        field_catalog: FieldCatalogService,
        calculator: CycleTimeCalculator,
    ):
        self._matter_repo = matter_repository
        self._field_catalog = field_catalog
        self._assembler = MatterAssembler(calculator)

    async def list_matters(
        self,
        page: int = 1,
        limit: int = 25,
        sort_by: Optional[str] = None,
        sort_type: Optional[str] = None,
        sort_order: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[Matter], int]:
        """
        List one page of matters.

        Args:
            page: 1-based page number
            limit: matters per page
            sort_by: pseudo-column name or field id
            sort_type: logical type of ``sort_by``
            sort_order: asc or desc
            search: case-insensitive substring filter

        Returns:
            Tuple of (matters, total matching matters)
        """
        sort_key, resolved_type, order = await self.resolve_sort(sort_by, sort_type, sort_order)

        records, total = await self._matter_repo.list_matters(
            sort_key, resolved_type, order, page, limit, search
        )
        if not records:
            return [], total

        rows = await self._matter_repo.get_field_values([r.id for r in records])
        return self._assembler.assemble_many(records, rows), total

    async def get_matter_by_id(self, matter_id: UUID) -> Optional[Matter]:
        """Get one matter, or None if it does not exist."""
        record = await self._matter_repo.get_matter(matter_id)
        if record is None:
            return None

        rows = await self._matter_repo.get_field_values([record.id])
        return self._assembler.assemble(record, rows)

    async def update_matter_field(
        self,
        matter_id: UUID,
        field_id: UUID,
        field_type: Union[FieldType, str],
        value: Any,
        actor_id: int,
    ) -> Matter:
        """
        Set one field of a matter and return the updated matter.

        Raises:
            UnsupportedFieldTypeException: ``field_type`` has no column mapping
            ResourceNotFoundException: matter or field does not exist
            ValidationException: value or option does not fit the field
        """
        resolved_type = resolve_field_type(field_type)

        if await self._matter_repo.get_matter(matter_id) is None:
            raise ResourceNotFoundException("Matter", str(matter_id))

        field = await self._field_catalog.get_field(field_id)
        if field is None:
            raise ResourceNotFoundException("Field", str(field_id))

        if field.field_type is not resolved_type:
            raise ValidationException(
                f"Field '{field.name}' is of type {field.field_type.value}, not {resolved_type.value}",
                {"field_id": str(field_id), "field_type": field.field_type.value}
            )

        stored = parse_stored_value(resolved_type, value)
        self._check_option(field, stored)

        await self._matter_repo.update_field(matter_id, field, stored, actor_id)

        logger.info(
            "Matter field updated",
            extra={
                "matter_id": str(matter_id),
                "field_id": str(field_id),
                "field_type": resolved_type.value,
                "actor_id": actor_id,
            }
        )

        matter = await self.get_matter_by_id(matter_id)
        if matter is None:
            raise ResourceNotFoundException("Matter", str(matter_id))
        return matter

    async def get_transition_history(self, matter_id: UUID) -> Optional[List[TransitionHistoryEntry]]:
        """Status history of a matter, or None if the matter does not exist."""
        if await self._matter_repo.get_matter(matter_id) is None:
            return None
        return await self._matter_repo.get_transition_history(matter_id)

    async def resolve_sort(
        self,
        sort_by: Optional[str],
        sort_type: Optional[str],
        sort_order: Optional[str],
    ) -> Tuple[Optional[Union[str, UUID]], SortType, SortOrder]:
        """
        Work out what a list request is sorted by.

        A pseudo-column name wins. Otherwise ``sort_by`` must be the id of an
        existing field, whose stored type decides the sort type. Anything
        else sorts by creation time, newest first.
        """
        try:
            order = SortOrder(sort_order) if sort_order else DEFAULT_SORT_ORDER
        except ValueError:
            logger.warning("Unknown sort order, using default", extra={"sort_order": sort_order})
            order = DEFAULT_SORT_ORDER

        pseudo_names = {t.value for t in PSEUDO_SORT_TYPES}
        if sort_by in pseudo_names:
            return sort_by, SortType(sort_by), order
        if not sort_by:
            if sort_type in pseudo_names:
                return sort_type, SortType(sort_type), order
            return None, DEFAULT_SORT_TYPE, order

        try:
            field_id = UUID(sort_by)
        except ValueError:
            logger.warning(
                "Sort key is neither a pseudo-column nor a field id, using default sort",
                extra={"sort_by": sort_by, "sort_type": sort_type}
            )
            return None, DEFAULT_SORT_TYPE, DEFAULT_SORT_ORDER

        field = await self._field_catalog.get_field(field_id)
        if field is None:
            logger.warning(
                "Sort field does not exist, using default sort",
                extra={"sort_by": sort_by, "sort_type": sort_type}
            )
            return None, DEFAULT_SORT_TYPE, DEFAULT_SORT_ORDER

        resolved = SortType(field.field_type.value)
        if sort_type and sort_type != resolved.value:
            logger.warning(
                "Sort type does not match the field's type, using the field's type",
                extra={"sort_by": sort_by, "sort_type": sort_type, "field_type": resolved.value}
            )
        return field_id, resolved, order

    @staticmethod
    def _check_option(field: Field, stored: Optional[StoredValue]) -> None:
        if isinstance(stored, SelectRef) and field.find_option(stored.option_id) is None:
            raise ValidationException(
                f"Option is not an option of field '{field.name}'",
                {"field_id": str(field.id), "option_id": str(stored.option_id)}
            )
        if isinstance(stored, StatusRef) and field.find_status_option(stored.option_id) is None:
            raise ValidationException(
                f"Status is not an option of field '{field.name}'",
                {"field_id": str(field.id), "option_id": str(stored.option_id)}
            )
