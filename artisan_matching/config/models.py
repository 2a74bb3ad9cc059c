"""Configuration schema models using Pydantic."""

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


class TierDefaults(BaseModel):
    """Result assembly defaults for one matching tier."""

    max_results: int = Field(20, ge=1, le=1000, description="Maximum matches returned")
    min_score: float = Field(0.1, ge=0.0, le=1.0, description="Minimum relevance score kept")


class EmergencyTierDefaults(TierDefaults):
    """Result assembly defaults for the emergency tier."""

    max_results: int = Field(10, ge=1, le=1000, description="Maximum matches returned")
    min_score: float = Field(0.05, ge=0.0, le=1.0, description="Minimum relevance score kept")


class MatchingConfig(BaseModel):
    """Settings for the deterministic and emergency tiers."""

    deterministic: TierDefaults = Field(
        default_factory=TierDefaults,
        description="Defaults for the keyword/synonym tier",
    )
    emergency: EmergencyTierDefaults = Field(
        default_factory=EmergencyTierDefaults,
        description="Defaults for the plain-text emergency tier",
    )
    min_query_length: int = Field(
        2, ge=1, le=50, description="Normalized queries shorter than this return no analysis"
    )
    fuzzy_threshold: int = Field(
        85, ge=50, le=100, description="rapidfuzz ratio needed for a fuzzy term hit"
    )
    cancellation_check_interval: int = Field(
        256, ge=1, description="Candidates scored between cancellation checks"
    )


class AIConfig(BaseModel):
    """Settings for the AI/semantic tier and its health tracking."""

    enabled: bool = Field(True, description="Attempt the AI tier when healthy")
    timeout_seconds: float = Field(
        5.0, gt=0.0, le=120.0, description="Upper bound on one AI matcher call"
    )
    failure_threshold: int = Field(
        1, ge=1, le=100, description="Consecutive failures before the AI is marked unhealthy"
    )
    cooldown_seconds: float = Field(
        0.0, ge=0.0, le=3600.0, description="Wait before retrying an unhealthy AI matcher"
    )
    max_workers: int = Field(4, ge=1, le=64, description="Threads available for AI calls")


class TaxonomyConfig(BaseModel):
    """Location of the taxonomy data asset."""

    path: Optional[Path] = Field(None, description="Taxonomy YAML (defaults to packaged asset)")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(
        LogFormat.KEY_VALUE, description="Log output format (json or key-value)"
    )

    model_config = {"use_enum_values": True}


class AppConfig(BaseModel):
    """Root configuration object for the artisan matching engine."""

    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    ai: AIConfig = Field(default_factory=AIConfig)
    taxonomy: TaxonomyConfig = Field(default_factory=TaxonomyConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("taxonomy", mode="before")
    @classmethod
    def allow_bare_taxonomy_path(cls, v):
        """Accept ``taxonomy: path/to/file.yaml`` as shorthand."""
        if isinstance(v, (str, Path)):
            return {"path": v}
        return v
