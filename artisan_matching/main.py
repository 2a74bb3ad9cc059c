"""Command-line entry point for the artisan matching engine."""

from dotenv import load_dotenv
load_dotenv()

import argparse
import json
import sys
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple

import yaml
from pydantic import ValidationError

from artisan_matching.config.environment import EnvironmentConfig
from artisan_matching.config.exceptions import ConfigurationError
from artisan_matching.config.loader import load_config
from artisan_matching.config.models import AppConfig
from artisan_matching.domain.models import CandidateProfile, MatchOptions
from artisan_matching.logging import get_logger
from artisan_matching.logging.config import configure_logging
from artisan_matching.matching.utils import (
    analysis_to_dict,
    build_run_analytics,
    run_result_to_dict,
)
from artisan_matching.routing.controller import ArtisanMatchingService, build_candidates
from artisan_matching.taxonomy.loader import TaxonomyError

logger = get_logger(__name__, component="cli")


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load configuration and resolve the effective log level.

    Without an explicit path the default locations are tried and built-in
    defaults are used when none exists.

    Args:
        config_path: Path to configuration file, or None
        log_level_override: Log level from CLI (takes precedence)

    Returns:
        Tuple of (AppConfig, EnvironmentConfig) with log_level resolved

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path, allow_missing=config_path is None)

    # Log level priority: CLI > Environment > Config
    if log_level_override:
        env_config.log_level = log_level_override
    elif not env_config.log_level:
        env_config.log_level = app_config.logging.level

    return app_config, env_config


def load_candidates(path: Path) -> List[CandidateProfile]:
    """
    Read candidate profiles from a JSON or YAML file.

    The file holds a list of flat profiles or nested user documents, or a
    mapping with a ``candidates`` list.

    Raises:
        ConfigurationError: If the file is unreadable or not a list of profiles
    """
    suggestions = [
        "Provide a JSON or YAML list of candidate profiles",
        "See tests/fixtures/candidates.yaml for an example",
    ]
    try:
        with open(path, "r", encoding="utf-8") as f:
            if path.suffix.lower() == ".json":
                data: Any = json.load(f)
            else:
                data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"Failed to read candidates file: {e}", suggestions=suggestions)
    except (ValueError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to parse candidates file {path}: {e}", suggestions=suggestions)

    if isinstance(data, dict):
        data = data.get("candidates")
    if not isinstance(data, list):
        raise ConfigurationError(
            f"Candidates file {path} must contain a list of profiles", suggestions=suggestions
        )

    try:
        return build_candidates(data)
    except (TypeError, ValidationError) as e:
        raise ConfigurationError(f"Invalid candidate in {path}: {e}", suggestions=suggestions)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="artisan-match",
        description="Artisan Matching Engine - rank artisan profiles against a buyer query",
    )
    parser.add_argument("--query", required=True, help="Buyer query text")
    parser.add_argument(
        "--candidates",
        type=Path,
        required=True,
        help="JSON or YAML file with candidate profiles",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.yaml if present)",
    )
    parser.add_argument("--max-results", type=int, default=None, help="Maximum matches returned")
    parser.add_argument("--min-score", type=float, default=None, help="Minimum relevance score")
    parser.add_argument(
        "--boost-exact",
        action="store_true",
        help="Boost candidates whose profession exactly matches the query",
    )
    parser.add_argument("--location", default=None, help="Requested location for the in-range flag")
    parser.add_argument(
        "--ai-unhealthy",
        action="store_true",
        help="Treat the AI matcher as unhealthy and go straight to the fallback tiers",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )
    parser.add_argument(
        "--analyze-only",
        action="store_true",
        help="Print the query analysis without scoring candidates",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main entry point for the artisan-match command.

    Returns:
        Exit code (0 for success, 1 for configuration or input errors).
    """
    args = build_parser().parse_args(argv)

    try:
        app_config, env_config = load_runtime_config(args.config, args.log_level)

        # stdout carries only the JSON result
        configure_logging(
            level=env_config.log_level,
            format_type=app_config.logging.format,
            environment=env_config.environment,
            stream=sys.stderr,
        )

        try:
            options = MatchOptions(
                max_results=args.max_results,
                min_score=args.min_score,
                boost_exact_matches=args.boost_exact,
                location=args.location,
            )
        except ValidationError as e:
            raise ConfigurationError(
                "Invalid matching options",
                errors=[f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()],
                suggestions=["--max-results must be >= 1 and --min-score within [0, 1]"],
            )

        candidates = [] if args.analyze_only else load_candidates(args.candidates)

        with ArtisanMatchingService.from_config(app_config, env_config) as service:
            if args.analyze_only:
                payload = analysis_to_dict(service.analyze_query(args.query, options))
            else:
                run = service.find_matches(
                    args.query,
                    candidates,
                    options,
                    ai_service_healthy=False if args.ai_unhealthy else None,
                )
                payload = run_result_to_dict(run)
                payload["analytics"] = build_run_analytics(run, len(candidates))

        print(json.dumps(payload, indent=2, ensure_ascii=False))
        return 0

    except (ConfigurationError, TaxonomyError) as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        logger.error(
            f"Configuration error: {e}",
            extra={"event": "config.error", "error_type": type(e).__name__},
        )
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
