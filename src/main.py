"""
Matter Service - Main Application
=================================

Ticketing back end for matters whose attributes are a per-account schema
of typed fields.

Modules:
- Fields: Field schema catalog (fields, options, status groups, currencies)
- Matters: Sorted/paged listing over EAV field values, cycle time and SLA

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services, assembler and DTOs
- Domain: Entities, field value variants, cycle-time engine
- Infrastructure: Database models, query plan compiler, repositories
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Configuration
from src.config import settings

# Infrastructure
from src.infrastructure.database import close_database, create_tables, init_database

# Module Routers
from src.fields.interfaces import fields_router
from src.matters.interfaces import matters_router

# Shared
from src.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    global_exception_handler,
)
from src.shared.infrastructure.logging import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database
    3. Create database tables (when enabled)

    SHUTDOWN:
    1. Close database connections
    """
    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting Matter Service", extra={
        "version": settings.app_version,
        "environment": settings.environment,
        "sla_threshold_hours": settings.sla_threshold_hours,
    })

    logger.info("Initializing database")
    init_database()

    # Use migrations outside development
    if settings.create_tables_on_startup:
        logger.info("Creating database tables")
        await create_tables()

    logger.info("Matter Service started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down Matter Service")
    await close_database()
    logger.info("Matter Service shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Matter Service API",
    description="""
    ## Matters with dynamic, typed fields

    ### Matters

    - `GET /api/v1/matters` - Page through matters, sorted by any field or by
      `created_at`, `resolution_time`, `sla`; optional `search`
    - `GET /api/v1/matters/{id}` - One matter with fields, cycle time and SLA
    - `PATCH /api/v1/matters/{id}` - Set one field value
    - `GET /api/v1/matters/{id}/history` - Status transitions of a matter

    ### Fields

    - `GET /api/v1/fields` - Field schema, status groups and currencies

    ### Cycle time and SLA

    Cycle time runs from a matter's first status transition until its last
    one, or until now while the matter is in progress. A done matter meets
    its SLA when its cycle time is within the configured threshold
    (default 8 hours).
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# === CORS Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# === Custom Middleware (from shared) ===
app.add_middleware(LoggingMiddleware)
app.add_middleware(CorrelationIDMiddleware)
app.add_exception_handler(Exception, global_exception_handler)

# === Include Module Routers ===
app.include_router(matters_router)
app.include_router(fields_router)


# === Health Check Endpoint ===

@app.get("/health", tags=["Health"], responses={
    200: {
        "description": "Service is healthy",
        "content": {
            "application/json": {
                "example": {
                    "status": "healthy",
                    "version": "1.0.0",
                    "environment": "development",
                }
            }
        }
    }
})
async def health_check():
    """Health check endpoint for load balancers and orchestrators."""
    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
    }


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "service": "Matter Service",
        "version": settings.app_version,
        "architecture": "Clean Architecture / Modular Monolith",
        "docs": "/docs",
        "health": "/health",
        "modules": {
            "matters": {
                "prefix": "/api/v1/matters",
                "endpoints": [
                    "GET /api/v1/matters - List matters",
                    "GET /api/v1/matters/{id} - Get matter",
                    "PATCH /api/v1/matters/{id} - Update a matter field",
                    "GET /api/v1/matters/{id}/history - Get status history",
                ]
            },
            "fields": {
                "prefix": "/api/v1/fields",
                "endpoints": [
                    "GET /api/v1/fields - Get field schema",
                ]
            }
        }
    }


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower()
    )
