"""
Field Schema Controllers (API Routes)
=====================================

Controllers are thin - they delegate to the catalog service.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.fields.application import (
    CurrencyOptionResponse,
    FieldCatalogResponse,
    FieldCatalogService,
    FieldResponse,
    StatusGroupResponse,
)
from src.fields.infrastructure import SQLAlchemyFieldRepository
from src.infrastructure.database import get_session

router = APIRouter(prefix="/api/v1", tags=["Fields"])


# ========== Dependencies ==========

async def get_field_catalog_service(
    session: AsyncSession = Depends(get_session)
) -> FieldCatalogService:
    """Get field catalog service instance."""
    return FieldCatalogService(SQLAlchemyFieldRepository(session))


# ========== Route Handlers ==========

@router.get(
    "/fields",
    response_model=FieldCatalogResponse,
    summary="Get the field schema",
    description="Fields with their options, status groups and currency options for the account.",
)
async def get_fields(
    catalog: FieldCatalogService = Depends(get_field_catalog_service)
):
    account_id = settings.default_account_id

    fields = await catalog.list_fields(account_id)
    status_groups = await catalog.list_status_groups(account_id)
    currency_options = await catalog.list_currency_options(account_id)

    return FieldCatalogResponse(
        fields=[FieldResponse.model_validate(f) for f in fields],
        status_groups=[StatusGroupResponse.model_validate(g) for g in status_groups],
        currency_options=[CurrencyOptionResponse.model_validate(c) for c in currency_options],
    )


# Export router for inclusion in main app
fields_router = router
