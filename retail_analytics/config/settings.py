"""
Retail Analytics Ingestion Service
Centralized Configuration Management

Pydantic settings with environment variable support for storage locations,
scan throttling, cache lifetimes and ingestion behaviour.
"""

from functools import lru_cache
from typing import Dict, List, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """S3 Object Storage Configuration"""

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    bucket: str = Field(default="retail-data-bcgr", description="S3 bucket name")
    region: str = Field(default="us-west-1", description="AWS region")
    raw_prefix: str = Field(default="raw-uploads", description="Prefix holding uploaded CSV exports")
    mapping_key: str = Field(
        default="config/brand_product_mapping.json",
        description="Brand to product type mapping document",
    )
    employee_key: str = Field(
        default="data/budtender_performance.csv",
        description="Employee performance export",
    )

    @property
    def raw_listing_prefix(self) -> str:
        """Listing prefix with a trailing slash"""
        return f"{self.raw_prefix.rstrip('/')}/"


class DynamoSettings(BaseSettings):
    """DynamoDB Configuration"""

    model_config = SettingsConfigDict(env_prefix="DYNAMODB_")

    line_items_table: str = Field(default="retail-invoice-line-items", description="Invoice line item table")
    region: Optional[str] = Field(default=None, description="Region override (defaults to storage region)")


class ScanSettings(BaseSettings):
    """Paginated table scan throttling configuration"""

    model_config = SettingsConfigDict(env_prefix="SCAN_")

    page_size: Optional[int] = Field(default=250, description="Items per scan page (None = backend maximum)")
    inter_page_delay_seconds: float = Field(default=1.0, description="Pause between pages")
    base_backoff_seconds: float = Field(default=1.0, description="Base delay for exponential backoff")
    max_retries: int = Field(default=7, description="Max throttling retries per page")

    @field_validator("max_retries")
    @classmethod
    def validate_retries(cls, v: int) -> int:
        """Retry budget can't be negative"""
        if v < 0:
            raise ValueError("max_retries must be >= 0")
        return v


class CacheSettings(BaseSettings):
    """In-process cache lifetimes"""

    model_config = SettingsConfigDict(env_prefix="CACHE_")

    data_ttl_seconds: float = Field(default=300, description="TTL for the S3-backed data load")
    invoice_ttl_seconds: float = Field(default=1800, description="TTL for the invoice table scan")


class IngestionSettings(BaseSettings):
    """Ingestion pipeline behaviour"""

    model_config = SettingsConfigDict(env_prefix="INGESTION_")

    max_concurrent_downloads: int = Field(default=4, description="Parallel file downloads per load")
    combined_store_id: str = Field(default="combined", description="Pseudo-store for multi-store exports")
    default_store_id: str = Field(default="grass_roots", description="Store for rows with no store column")
    segment_profile: str = Field(default="default", description="Customer segmentation profile")
    store_ids: List[str] = Field(
        default=["grass_roots", "barbary_coast", "combined"],
        description="Store identifiers accepted on upload",
    )
    store_aliases: Dict[str, str] = Field(
        default={
            "Grass Roots": "grass_roots",
            "Grass Roots SF": "grass_roots",
            "grass_roots": "grass_roots",
            "Barbary Coast": "barbary_coast",
            "Barbary Coast SF": "barbary_coast",
            "barbary_coast": "barbary_coast",
        },
        description="Store display name to store id",
    )

    @field_validator("segment_profile")
    @classmethod
    def validate_profile(cls, v: str) -> str:
        """Validate segmentation profile name"""
        allowed = ["default", "wide"]
        if v.lower() not in allowed:
            raise ValueError(f"Segment profile must be one of: {allowed}")
        return v.lower()


class SecuritySettings(BaseSettings):
    """HTTP security configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins"
    )


class MonitoringSettings(BaseSettings):
    """Monitoring and Observability Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", description="Log format: json or text")
    enable_metrics: bool = Field(default=True, description="Expose /metrics")


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    app_name: str = Field(default="retail-analytics", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")
    debug: bool = Field(default=False, alias="DEBUG", description="Debug mode")

    # API Server
    api_host: str = Field(default="0.0.0.0", alias="API_HOST", description="API host")
    api_port: int = Field(default=8000, alias="API_PORT", description="API port")

    # Version
    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    storage: StorageSettings = Field(default_factory=StorageSettings)
    dynamodb: DynamoSettings = Field(default_factory=DynamoSettings)
    scan: ScanSettings = Field(default_factory=ScanSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    ingestion: IngestionSettings = Field(default_factory=IngestionSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development"""
        return self.app_env == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
