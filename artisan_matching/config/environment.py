"""Environment variable loading and validation."""

import os
from typing import Optional
from urllib.parse import urlparse

from .exceptions import ConfigurationError

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class EnvironmentConfig:
    """Environment variable configuration holder."""

    def __init__(
        self,
        semantic_matcher_url: Optional[str] = None,
        semantic_matcher_api_key: Optional[str] = None,
        log_level: Optional[str] = None,
        environment: Optional[str] = None,
    ):
        self.semantic_matcher_url = semantic_matcher_url
        self.semantic_matcher_api_key = semantic_matcher_api_key
        self.log_level = log_level
        self.environment = environment or "local"

    @property
    def semantic_matcher_configured(self) -> bool:
        """True when an AI/semantic matcher endpoint is available."""
        return bool(self.semantic_matcher_url)


def load_environment_config() -> EnvironmentConfig:
    """
    Load and validate environment variables.

    All variables are optional:
    - SEMANTIC_MATCHER_URL: HTTP(S) endpoint of the AI/semantic matcher
    - SEMANTIC_MATCHER_API_KEY: Bearer token sent to the semantic matcher
    - LOG_LEVEL: Override log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - ENVIRONMENT: Environment label attached to log records

    Returns:
        EnvironmentConfig object with validated values

    Raises:
        ConfigurationError: If a variable is set to an invalid value
    """
    errors = []

    semantic_matcher_url = os.getenv("SEMANTIC_MATCHER_URL") or None
    semantic_matcher_api_key = os.getenv("SEMANTIC_MATCHER_API_KEY") or None
    log_level = os.getenv("LOG_LEVEL") or None
    environment = os.getenv("ENVIRONMENT") or None

    if semantic_matcher_url:
        parsed = urlparse(semantic_matcher_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            errors.append(
                f"Invalid SEMANTIC_MATCHER_URL: '{semantic_matcher_url}'. "
                "Must be an absolute http(s) URL."
            )

    if semantic_matcher_api_key and not semantic_matcher_url:
        errors.append(
            "SEMANTIC_MATCHER_API_KEY is set but SEMANTIC_MATCHER_URL is not."
        )

    if log_level:
        if log_level.upper() not in VALID_LOG_LEVELS:
            errors.append(
                f"Invalid LOG_LEVEL: '{log_level}'. Must be one of: {', '.join(VALID_LOG_LEVELS)}"
            )
        else:
            log_level = log_level.upper()

    if errors:
        raise ConfigurationError(
            "Environment variable validation failed",
            errors=errors,
            suggestions=[
                "Copy .env.example to .env and adjust the values",
                "Unset SEMANTIC_MATCHER_* variables to run without the AI tier",
            ],
        )

    return EnvironmentConfig(
        semantic_matcher_url=semantic_matcher_url,
        semantic_matcher_api_key=semantic_matcher_api_key,
        log_level=log_level,
        environment=environment,
    )
