"""
Field Schema Infrastructure Repositories
========================================

SQLAlchemy implementation of the field schema catalog.
"""

from collections import defaultdict
from typing import Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import FieldType
from src.fields.application.services import IFieldRepository
from src.fields.domain import CurrencyOption, Field, FieldOption, StatusGroup, StatusOption
from src.fields.infrastructure.models import (
    CurrencyOptionModel,
    FieldModel,
    FieldOptionModel,
    StatusGroupModel,
    StatusOptionModel,
)
from src.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class SQLAlchemyFieldRepository(IFieldRepository):
    """
    SQLAlchemy implementation of the field repository.

    Options are loaded with one query per option table for the whole set of
    fields, not one query per field.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def list_fields(self, account_id: int) -> List[Field]:
        stmt = (
            select(FieldModel)
            .where(FieldModel.account_id == account_id, FieldModel.deleted_at.is_(None))
            .order_by(FieldModel.name)
        )
        result = await self._session.execute(stmt)
        return await self._to_entities(result.scalars().all())

    async def get_field(self, field_id: UUID) -> Optional[Field]:
        stmt = select(FieldModel).where(FieldModel.id == field_id, FieldModel.deleted_at.is_(None))
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        if model is None:
            return None
        fields = await self._to_entities([model])
        return fields[0]

    async def list_status_groups(self, account_id: int) -> List[StatusGroup]:
        stmt = (
            select(StatusGroupModel)
            .where(StatusGroupModel.account_id == account_id, StatusGroupModel.deleted_at.is_(None))
            .order_by(StatusGroupModel.sequence)
        )
        result = await self._session.execute(stmt)
        return [
            StatusGroup(id=row.id, name=row.name, sequence=row.sequence)
            for row in result.scalars().all()
        ]

    async def list_currency_options(self, account_id: int) -> List[CurrencyOption]:
        stmt = (
            select(CurrencyOptionModel)
            .where(CurrencyOptionModel.account_id == account_id, CurrencyOptionModel.deleted_at.is_(None))
            .order_by(CurrencyOptionModel.sequence)
        )
        result = await self._session.execute(stmt)
        return [
            CurrencyOption(id=row.id, code=row.code, name=row.name, symbol=row.symbol, sequence=row.sequence)
            for row in result.scalars().all()
        ]

    async def _to_entities(self, models: Sequence[FieldModel]) -> List[Field]:
        select_ids = [m.id for m in models if m.field_type == FieldType.SELECT.value]
        status_ids = [m.id for m in models if m.field_type == FieldType.STATUS.value]

        options = await self._load_options(select_ids)
        status_options = await self._load_status_options(status_ids)

        fields = []
        for model in models:
            try:
                field_type = FieldType(model.field_type)
            except ValueError:
                logger.warning(
                    "Skipping field with unknown logical type",
                    extra={"field_id": str(model.id), "field_type": model.field_type}
                )
                continue

            fields.append(Field(
                id=model.id,
                account_id=model.account_id,
                name=model.name,
                field_type=field_type,
                description=model.description,
                metadata=model.field_metadata,
                system_field=model.system_field,
                options=options.get(model.id, []),
                status_options=status_options.get(model.id, []),
            ))

        return fields

    async def _load_options(self, field_ids: List[UUID]) -> Dict[UUID, List[FieldOption]]:
        grouped: Dict[UUID, List[FieldOption]] = defaultdict(list)
        if not field_ids:
            return grouped

        stmt = (
            select(FieldOptionModel)
            .where(FieldOptionModel.field_id.in_(field_ids), FieldOptionModel.deleted_at.is_(None))
            .order_by(FieldOptionModel.sequence)
        )
        result = await self._session.execute(stmt)
        for row in result.scalars().all():
            grouped[row.field_id].append(FieldOption(id=row.id, label=row.label, sequence=row.sequence))
        return grouped

    async def _load_status_options(self, field_ids: List[UUID]) -> Dict[UUID, List[StatusOption]]:
        grouped: Dict[UUID, List[StatusOption]] = defaultdict(list)
        if not field_ids:
            return grouped

        stmt = (
            select(StatusOptionModel, StatusGroupModel.name)
            .join(StatusGroupModel, StatusOptionModel.group_id == StatusGroupModel.id)
            .where(StatusOptionModel.field_id.in_(field_ids), StatusOptionModel.deleted_at.is_(None))
            .order_by(StatusOptionModel.sequence)
        )
        result = await self._session.execute(stmt)
        for option, group_name in result.all():
            grouped[option.field_id].append(StatusOption(
                id=option.id,
                label=option.label,
                group_id=option.group_id,
                group_name=group_name,
                sequence=option.sequence,
            ))
        return grouped
