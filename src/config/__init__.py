"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from enum import Enum
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="matter-service", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/matters",
        description="Database connection URL (async driver)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)
    create_tables_on_startup: bool = Field(
        default=False,
        description="Create missing tables at startup (development only)"
    )

    # ========== Cycle Time / SLA ==========
    sla_threshold_hours: float = Field(
        default=8,
        description="Resolution time allowed before a done matter breaches its SLA",
        gt=0
    )

    # ========== Matter listing ==========
    default_page_size: int = Field(default=25, description="Default matters per page", ge=1)
    max_page_size: int = Field(default=100, description="Upper bound for matters per page", ge=1)

    # ========== Request context ==========
    # Account and actor resolution live outside this service.
    default_account_id: int = Field(default=1, description="Account whose field schema is served")
    default_actor_id: int = Field(default=1, description="User recorded as author of field updates")

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production", "test"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @property
    def sla_threshold_ms(self) -> int:
        """SLA threshold expressed in milliseconds."""
        return int(self.sla_threshold_hours * 60 * 60 * 1000)


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class FieldType(str, Enum):
    """Logical type of a field; decides which value column a field uses."""
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"
    CURRENCY = "currency"
    STATUS = "status"
    SELECT = "select"
    USER = "user"


class SortType(str, Enum):
    """Everything a matter list can be ordered by."""
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"
    CURRENCY = "currency"
    STATUS = "status"
    SELECT = "select"
    USER = "user"
    # Pseudo-columns, not backed by a field
    CREATED_AT = "created_at"
    RESOLUTION_TIME = "resolution_time"
    SLA = "sla"


class SortOrder(str, Enum):
    """Sort direction."""
    ASC = "asc"
    DESC = "desc"


class StatusGroupName(str, Enum):
    """Workflow phase a status option belongs to."""
    TODO = "To Do"
    IN_PROGRESS = "In Progress"
    DONE = "Done"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["StatusGroupName"]:
        """Map a stored group name to a phase, None when unrecognised."""
        if value is None:
            return None
        try:
            return cls(value)
        except ValueError:
            return None


class SLAStatus(str, Enum):
    """SLA verdict for a matter."""
    IN_PROGRESS = "In Progress"
    MET = "Met"
    BREACHED = "Breached"

    @property
    def ordinal(self) -> int:
        """Position used when a list is sorted by SLA."""
        return SLA_STATUS_ORDINALS[self]


SLA_STATUS_ORDINALS = {
    SLAStatus.MET: 0,
    SLAStatus.IN_PROGRESS: 1,
    SLAStatus.BREACHED: 2,
}

PSEUDO_SORT_TYPES = [SortType.CREATED_AT, SortType.RESOLUTION_TIME, SortType.SLA]
DEFAULT_SORT_TYPE = SortType.CREATED_AT
DEFAULT_SORT_ORDER = SortOrder.DESC
