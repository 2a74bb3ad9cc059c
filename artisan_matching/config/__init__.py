"""Configuration management module for the artisan matching engine."""

from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .loader import load_config, validate_config_file
from .models import (
    AIConfig,
    AppConfig,
    LogFormat,
    LogLevel,
    LoggingConfig,
    EmergencyTierDefaults,
    MatchingConfig,
    TaxonomyConfig,
    TierDefaults,
)

__all__ = [
    # Main loader functions
    "load_config",
    "validate_config_file",
    "load_environment_config",
    # Configuration models
    "AppConfig",
    "MatchingConfig",
    "EmergencyTierDefaults",
    "TierDefaults",
    "AIConfig",
    "TaxonomyConfig",
    "LoggingConfig",
    "EnvironmentConfig",
    # Enums
    "LogLevel",
    "LogFormat",
    # Exceptions
    "ConfigurationError",
]
