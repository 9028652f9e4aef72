# backend/unity_erp/core/settings.py
"""
Unity ERP - Configuration Management with pydantic-settings

- Loads from environment and root .env
- Validates and normalizes values
- Cached singleton via get_settings()
"""
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# backend/unity_erp/core/settings.py -> <repo>/.env
_ENV_FILE = Path(__file__).resolve().parent.parent.parent.parent / ".env"


def _split_csv(v):
    if isinstance(v, str):
        return [item.strip() for item in v.split(",") if item.strip()]
    return v


class Settings(BaseSettings):
    """
    Application settings with validation.

    Environment variables take precedence over .env file values.
    """

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ===================
    # Application Settings
    # ===================
    PROJECT_NAME: str = "Unity ERP"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    DEBUG: bool = Field(default=False, description="Enable debug mode")
    ENVIRONMENT: str = Field(default="development", description="Deployment environment")

    # ===================
    # Database Settings
    # ===================
    DB_HOST: str = Field(default="localhost", description="PostgreSQL host")
    DB_PORT: int = Field(default=5432, description="PostgreSQL port")
    DB_NAME: str = Field(default="unity", description="Database name")
    DB_USER: str = Field(default="postgres", description="Database user")
    DB_PASSWORD: str = Field(default="postgres", description="Database password")
    DATABASE_URL: Optional[str] = Field(
        default=None, description="Full database URL (overrides DB_* settings)"
    )

    @property
    def database_url(self) -> str:
        """Build PostgreSQL database URL from components or use explicit URL."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )

    # ===================
    # CORS Settings
    # ===================
    ALLOWED_ORIGINS: List[str] = Field(
        default=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ],
        description="Allowed CORS origins",
    )

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        return _split_csv(v)

    # ===================
    # Logging
    # ===================
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"  # json or text
    LOG_FILE: Optional[str] = None

    @field_validator("LOG_FORMAT")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.lower().strip()
        if v not in ("json", "text"):
            raise ValueError("LOG_FORMAT must be 'json' or 'text'")
        return v

    # ===================
    # Requirements / Shortfall
    # ===================
    FG_COVERAGE_DEFAULT: bool = Field(
        default=True,
        description="Scale component requirements by finished-good reservations unless the caller opts out",
    )
    QUANTITY_DISPLAY_TOLERANCE: Decimal = Field(
        default=Decimal("0.001"),
        description="Quantities this close to an integer are displayed as integers",
    )
    CLOSED_ORDER_STATUSES: List[str] = Field(
        default=["Completed", "Cancelled"],
        description="Customer order statuses excluded from global demand",
    )
    OPEN_SUPPLIER_ORDER_STATUSES: List[str] = Field(
        default=["Open", "In Progress", "Approved", "Partially Received"],
        description="Supplier order statuses that count as on-order supply",
    )

    @field_validator("CLOSED_ORDER_STATUSES", "OPEN_SUPPLIER_ORDER_STATUSES", mode="before")
    @classmethod
    def parse_status_lists(cls, v):
        return _split_csv(v)

    # ===================
    # Purchasing
    # ===================
    DRAFT_STATUS_NAME: str = Field(
        default="Draft", description="Supplier order status assigned to new purchase orders"
    )

    # ===================
    # Stock Issuance
    # ===================
    ALLOW_NEGATIVE_STOCK_ISSUANCE: bool = Field(
        default=True,
        description="Allow order issuances to drive quantity on hand below zero (logged as a warning)",
    )
    MANUAL_ISSUE_CATEGORIES: List[str] = Field(
        default=["production", "customer_order", "samples", "wastage", "rework", "other"],
    )

    @field_validator("MANUAL_ISSUE_CATEGORIES", mode="before")
    @classmethod
    def parse_issue_categories(cls, v):
        return _split_csv(v)

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Singleton settings loader (cached)."""
    return Settings()


# Convenience alias
settings = get_settings()
