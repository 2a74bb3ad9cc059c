"""Additional validation utilities for configuration."""

import warnings
from typing import Any, Dict, List


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """
    Check configuration for settings that are valid but probably unintended.

    Args:
        config_dict: Raw configuration dictionary

    Returns:
        List of warning messages
    """
    warning_messages = []

    ai = config_dict.get("ai", {})
    if isinstance(ai, dict):
        timeout = ai.get("timeout_seconds")
        if isinstance(timeout, (int, float)) and timeout > 30:
            warning_messages.append(
                f"Long ai.timeout_seconds ({timeout}) delays the keyword fallback on every AI outage"
            )
        if ai.get("enabled") is False:
            warning_messages.append("AI tier is disabled; every request uses the keyword fallback")

    matching = config_dict.get("matching", {})
    if isinstance(matching, dict):
        for tier in ("deterministic", "emergency"):
            settings = matching.get(tier, {})
            if not isinstance(settings, dict):
                continue

            min_score = settings.get("min_score")
            if isinstance(min_score, (int, float)) and min_score == 0:
                warning_messages.append(
                    f"matching.{tier}.min_score is 0; candidates with no matching signal will be returned"
                )

            max_results = settings.get("max_results")
            if isinstance(max_results, int) and max_results > 200:
                warning_messages.append(
                    f"Large matching.{tier}.max_results ({max_results}) may slow down responses"
                )

        deterministic = matching.get("deterministic", {})
        emergency = matching.get("emergency", {})
        if isinstance(deterministic, dict) and isinstance(emergency, dict):
            det_min = deterministic.get("min_score")
            emg_min = emergency.get("min_score")
            if (
                isinstance(det_min, (int, float))
                and isinstance(emg_min, (int, float))
                and emg_min > det_min
            ):
                warning_messages.append(
                    "matching.emergency.min_score is stricter than matching.deterministic.min_score"
                )

    return warning_messages


def emit_warnings(warning_messages: List[str]) -> None:
    """
    Emit warning messages using Python's warnings module.

    Args:
        warning_messages: List of warning messages to emit
    """
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)
