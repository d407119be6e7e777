"""
Application Configuration Model.

Integrates the engine, factory and storage configurations.
"""

from typing import Any

from pydantic import Field, field_validator

from .base import BaseConfig
from .engine import EngineConfig
from .factory import FactoryConfig
from .storage import StorageConfig


class AppConfig(BaseConfig):
    """
    Main application configuration.

    Example:
        >>> config = AppConfig(engine=EngineConfig(max_slippage_bps=100))
        >>> config.factory.creation_fee
        100000000000000000000
    """

    app_name: str = Field(
        default="Index Fund",
        description="Application name",
    )
    environment: str = Field(
        default="development",
        description="Environment (development, staging, production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )

    engine: EngineConfig = Field(
        default_factory=EngineConfig,
        description="Fund engine configuration",
    )
    factory: FactoryConfig = Field(
        default_factory=FactoryConfig,
        description="Fund factory configuration",
    )
    storage: StorageConfig = Field(
        default_factory=StorageConfig,
        description="Persistence configuration",
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate and normalize environment."""
        v = v.lower().strip()
        valid_envs = {"development", "staging", "production", "dev", "prod", "test"}
        if v not in valid_envs:
            v = "development"
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        v = v.upper().strip()
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v not in valid_levels:
            v = "INFO"
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment in ("production", "prod")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AppConfig":
        """Create configuration from dictionary."""
        return cls(**data)
