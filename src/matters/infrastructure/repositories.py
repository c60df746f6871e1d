"""
Matters Infrastructure Repositories
===================================

Concrete implementation of the matter repository using SQLAlchemy.

This layer contains the data access logic - how we page through matters,
load their field values in one batch, and write field updates.
"""

from datetime import datetime
from typing import Callable, List, Optional, Sequence, Tuple, Union
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import FieldType, SortOrder, SortType
from src.core import ResourceNotFoundException, ValidationException
from src.fields.domain import Field
from src.fields.infrastructure.models import (
    FieldModel, FieldOptionModel, StatusGroupModel, StatusOptionModel,
)
from src.matters.application.dto import FieldValueRecord, MatterRecord
from src.matters.application.services import IMatterRepository
from src.matters.domain import StatusRef, StoredValue, TransitionHistoryEntry, resolve_field_type
from src.matters.domain.value_objects import utcnow
from src.matters.infrastructure.models import (
    FieldValueModel, MatterModel, TransitionHistoryModel, UserModel,
)
from src.matters.infrastructure.query_plan import (
    QueryPlanCompiler, search_filter, transitioned_first_expression,
    transitioned_last_expression,
)
from src.shared.infrastructure.logging import get_logger, log_latency

logger = get_logger(__name__)


def _matter_columns():
    return (
        MatterModel.id,
        MatterModel.board_id,
        MatterModel.created_at,
        MatterModel.updated_at,
        transitioned_first_expression().label("transitioned_first"),
        transitioned_last_expression().label("transitioned_last"),
    )


def _to_record(row) -> MatterRecord:
    return MatterRecord(
        id=row.id,
        board_id=row.board_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
        transitioned_first=row.transitioned_first,
        transitioned_last=row.transitioned_last,
    )


class SQLAlchemyMatterRepository(IMatterRepository):
    """
    SQLAlchemy implementation of matter repository.

    Args:
        session: async session; ``update_field`` commits or rolls it back
        sla_threshold_ms: threshold used when sorting by SLA
        clock: source of "now" for resolution-time sorts and timestamps
    """

    def __init__(
        self,
        session: AsyncSession,
        sla_threshold_ms: int,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._session = session
        self._clock = clock
        self._compiler = QueryPlanCompiler(sla_threshold_ms, clock)

    async def list_matters(
        self,
        sort_key: Optional[Union[str, UUID]],
        sort_type: SortType,
        sort_order: SortOrder,
        page: int,
        page_size: int,
        search: Optional[str] = None,
    ) -> Tuple[List[MatterRecord], int]:
        plan = self._compiler.compile(sort_key, sort_type, sort_order, page, page_size)
        predicate = search_filter(search)

        # Total ignores paging and the sort joins
        count_stmt = select(func.count()).select_from(MatterModel)
        if predicate is not None:
            count_stmt = count_stmt.where(predicate)
        total = (await self._session.execute(count_stmt)).scalar_one()

        stmt = select(*_matter_columns(), plan.sort_value).select_from(MatterModel)
        for target, onclause in plan.joins:
            stmt = stmt.outerjoin(target, onclause)
        if predicate is not None:
            stmt = stmt.where(predicate)
        stmt = stmt.order_by(*plan.order_by).limit(plan.limit).offset(plan.offset)

        with log_latency(
            logger,
            "matter_page_query",
            sort_type=plan.sort_type.value,
            sort_order=plan.sort_order.value,
            page=plan.page,
            limit=plan.limit,
        ):
            result = await self._session.execute(stmt, plan.params or None)
            records = [_to_record(row) for row in result.all()]

        return records, total

    async def get_matter(self, matter_id: UUID) -> Optional[MatterRecord]:
        stmt = select(*_matter_columns()).where(MatterModel.id == matter_id)
        row = (await self._session.execute(stmt)).one_or_none()
        if row is None:
            return None
        return _to_record(row)

    async def get_field_values(self, matter_ids: Sequence[UUID]) -> List[FieldValueRecord]:
        """Field values of a whole page in one query, ordered by field name."""
        if not matter_ids:
            return []

        stmt = (
            select(
                FieldValueModel.matter_id,
                FieldValueModel.field_id,
                FieldModel.name.label("field_name"),
                FieldModel.field_type,
                FieldValueModel.text_value,
                FieldValueModel.string_value,
                FieldValueModel.number_value,
                FieldValueModel.date_value,
                FieldValueModel.boolean_value,
                FieldValueModel.currency_amount,
                FieldValueModel.currency_code,
                FieldValueModel.user_id,
                UserModel.email.label("user_email"),
                UserModel.first_name.label("user_first_name"),
                UserModel.last_name.label("user_last_name"),
                FieldValueModel.select_option_id,
                FieldOptionModel.label.label("select_option_label"),
                FieldValueModel.status_option_id,
                StatusOptionModel.label.label("status_option_label"),
                StatusGroupModel.name.label("status_group_name"),
            )
            .join(FieldModel, FieldModel.id == FieldValueModel.field_id)
            .outerjoin(UserModel, UserModel.id == FieldValueModel.user_id)
            .outerjoin(FieldOptionModel, FieldOptionModel.id == FieldValueModel.select_option_id)
            .outerjoin(StatusOptionModel, StatusOptionModel.id == FieldValueModel.status_option_id)
            .outerjoin(StatusGroupModel, StatusGroupModel.id == StatusOptionModel.group_id)
            .where(FieldValueModel.matter_id.in_(matter_ids), FieldModel.deleted_at.is_(None))
            .order_by(FieldModel.name, FieldValueModel.field_id)
        )

        with log_latency(logger, "matter_field_batch_load", matter_count=len(matter_ids)):
            result = await self._session.execute(stmt)
            return [FieldValueRecord(**row._mapping) for row in result.all()]

    async def update_field(
        self,
        matter_id: UUID,
        field: Field,
        value: Optional[StoredValue],
        actor_id: int,
    ) -> None:
        """
        Write one field value inside a single transaction.

        Status changes append a transition row carrying the prior status.
        ``None`` removes the value row. Any failure rolls the whole change
        back and is re-raised.
        """
        try:
            field_type = resolve_field_type(field.field_type)

            matter = await self._session.get(MatterModel, matter_id)
            if matter is None:
                raise ResourceNotFoundException("Matter", str(matter_id))

            now = self._clock()
            stmt = select(FieldValueModel).where(
                FieldValueModel.matter_id == matter_id,
                FieldValueModel.field_id == field.id,
            )
            existing = (await self._session.execute(stmt)).scalar_one_or_none()

            if field_type is FieldType.STATUS:
                if not isinstance(value, StatusRef):
                    raise ValidationException("Status value cannot be cleared", {"field_id": str(field.id)})
                self._session.add(TransitionHistoryModel(
                    matter_id=matter_id,
                    status_field_id=field.id,
                    from_status_id=existing.status_option_id if existing else None,
                    to_status_id=value.option_id,
                    transitioned_at=now,
                ))

            if value is None:
                if existing is not None:
                    await self._session.delete(existing)
            elif existing is None:
                row = FieldValueModel(
                    matter_id=matter_id,
                    field_id=field.id,
                    created_by=actor_id,
                    updated_by=actor_id,
                    created_at=now,
                    updated_at=now,
                )
                row.assign(field_type, value)
                self._session.add(row)
            else:
                existing.assign(field_type, value)
                existing.updated_by = actor_id
                existing.updated_at = now

            matter.updated_at = now
            await self._session.commit()

        except Exception:
            await self._session.rollback()
            logger.error(
                "Error updating matter field",
                extra={"matter_id": str(matter_id), "field_id": str(field.id)},
                exc_info=True
            )
            raise

    async def get_transition_history(self, matter_id: UUID) -> List[TransitionHistoryEntry]:
        stmt = (
            select(TransitionHistoryModel)
            .where(TransitionHistoryModel.matter_id == matter_id)
            .order_by(TransitionHistoryModel.transitioned_at, TransitionHistoryModel.id)
        )
        result = await self._session.execute(stmt)
        return [
            TransitionHistoryEntry(
                id=row.id,
                matter_id=row.matter_id,
                status_field_id=row.status_field_id,
                from_status_id=row.from_status_id,
                to_status_id=row.to_status_id,
                transitioned_at=row.transitioned_at,
            )
            for row in result.scalars().all()
        ]
