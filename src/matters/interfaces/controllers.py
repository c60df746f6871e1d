"""
Matter Controllers (API Routes)
===============================

FastAPI routes for listing, reading and updating matters.

Controllers are thin - they delegate to the matter service.
"""

import math
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.core import ResourceNotFoundException, UnsupportedFieldTypeException, ValidationException
from src.fields.application import FieldCatalogService
from src.fields.infrastructure import SQLAlchemyFieldRepository
from src.infrastructure.database import get_session
from src.matters.application import (
    MatterListResponse,
    MatterResponse,
    MatterService,
    TransitionHistoryResponse,
    UpdateMatterFieldRequest,
)
from src.matters.domain import CycleTimeCalculator
from src.matters.infrastructure import SQLAlchemyMatterRepository
from src.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/api/v1", tags=["Matters"])


# ========== Dependencies ==========

async def get_matter_service(
    session: AsyncSession = Depends(get_session)
) -> MatterService:
    """Get matter service instance."""
    threshold_ms = settings.sla_threshold_ms
    return MatterService(
        SQLAlchemyMatterRepository(session, threshold_ms),
        FieldCatalogService(SQLAlchemyFieldRepository(session)),
        CycleTimeCalculator(threshold_ms),
    )


# ========== Route Handlers ==========

@router.get(
    "/matters",
    response_model=MatterListResponse,
    summary="List matters",
    description="""
    List matters one page at a time.

    **Sorting:** `sortBy` is `created_at`, `resolution_time`, `sla` or a field id.
    When it is a field id, the field's own type decides how values compare;
    unusable sort input falls back to newest first. Empty values always sort last.

    **Search:** case-insensitive substring match over text values, option
    labels and user names.
    """,
)
async def list_matters(
    page: int = Query(1, ge=1, description="1-based page number"),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_type: Optional[str] = Query(None, alias="sortType"),
    sort_order: Optional[str] = Query(None, alias="sortOrder"),
    search: Optional[str] = Query(None),
    service: MatterService = Depends(get_matter_service),
):
    matters, total = await service.list_matters(
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_type=sort_type,
        sort_order=sort_order,
        search=search,
    )

    return MatterListResponse(
        data=[MatterResponse.from_domain(m) for m in matters],
        total=total,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit) if total else 0,
    )


@router.get(
    "/matters/{matter_id}",
    response_model=MatterResponse,
    summary="Get one matter",
)
async def get_matter(
    matter_id: UUID,
    service: MatterService = Depends(get_matter_service),
):
    matter = await service.get_matter_by_id(matter_id)
    if matter is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Matter {matter_id} not found"
        )
    return MatterResponse.from_domain(matter)


@router.patch(
    "/matters/{matter_id}",
    response_model=MatterResponse,
    summary="Update one field of a matter",
    description="""
    Set a single field value. `fieldType` must be the field's logical type.

    Status changes are recorded in the matter's transition history in the
    same transaction as the value itself. A null value clears the field,
    except on status fields.
    """,
)
async def update_matter_field(
    matter_id: UUID,
    payload: UpdateMatterFieldRequest,
    service: MatterService = Depends(get_matter_service),
):
    try:
        matter = await service.update_matter_field(
            matter_id=matter_id,
            field_id=payload.field_id,
            field_type=payload.field_type,
            value=payload.value,
            actor_id=settings.default_actor_id,
        )
    except ResourceNotFoundException as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    except (UnsupportedFieldTypeException, ValidationException) as e:
        logger.warning(
            "Rejected matter field update",
            extra={"matter_id": str(matter_id), "field_id": str(payload.field_id), "error": e.message}
        )
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.message)

    return MatterResponse.from_domain(matter)


@router.get(
    "/matters/{matter_id}/history",
    response_model=List[TransitionHistoryResponse],
    summary="Get a matter's status history",
)
async def get_matter_history(
    matter_id: UUID,
    service: MatterService = Depends(get_matter_service),
):
    history = await service.get_transition_history(matter_id)
    if history is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Matter {matter_id} not found"
        )
    return [TransitionHistoryResponse.from_domain(entry) for entry in history]


# Export router for inclusion in main app
matters_router = router
