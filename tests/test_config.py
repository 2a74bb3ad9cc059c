"""Integration tests for configuration module."""

from pathlib import Path

import pytest

from artisan_matching.config import (
    AppConfig,
    ConfigurationError,
    LogFormat,
    load_config,
    load_environment_config,
    validate_config_file,
)
from artisan_matching.config.validators import check_for_warnings


# Test fixtures directory
FIXTURES_DIR = Path(__file__).parent / "fixtures"


class TestConfigurationLoading:
    """Test configuration loading from YAML files."""

    def test_load_valid_config(self, mock_env_vars):
        """Test loading a valid configuration file."""
        config_path = FIXTURES_DIR / "valid_config.yaml"
        app_config, env_config = load_config(config_path)

        # Verify tier defaults
        assert app_config.matching.deterministic.max_results == 15
        assert app_config.matching.deterministic.min_score == 0.2
        assert app_config.matching.emergency.max_results == 5
        assert app_config.matching.min_query_length == 3
        assert app_config.matching.fuzzy_threshold == 90
        assert app_config.matching.cancellation_check_interval == 100

        # Verify AI settings
        assert app_config.ai.enabled is True
        assert app_config.ai.timeout_seconds == 2.5
        assert app_config.ai.failure_threshold == 3
        assert app_config.ai.cooldown_seconds == 30

        # Verify logging config
        assert app_config.logging.level == "INFO"
        assert app_config.logging.format == "key-value"

        assert env_config.environment == "test"
        assert env_config.semantic_matcher_configured is False

    def test_load_minimal_config(self, mock_env_vars):
        """Test loading a minimal configuration with defaults."""
        config_path = FIXTURES_DIR / "minimal_config.yaml"
        app_config, _ = load_config(config_path)

        assert app_config.logging.level == "DEBUG"

        # Verify defaults are applied
        assert app_config.matching.deterministic.max_results == 20
        assert app_config.matching.deterministic.min_score == 0.1
        assert app_config.matching.emergency.max_results == 10
        assert app_config.matching.emergency.min_score == 0.05
        assert app_config.matching.min_query_length == 2
        assert app_config.ai.timeout_seconds == 5.0
        assert app_config.ai.failure_threshold == 1
        assert app_config.ai.cooldown_seconds == 0.0
        assert app_config.taxonomy.path is None

    @pytest.mark.parametrize(
        "section,expected",
        [
            ({"max_results": 5}, (5, 0.05)),
            ({"min_score": 0.02}, (10, 0.02)),
            ({}, (10, 0.05)),
        ],
    )
    def test_partial_emergency_section(self, section, expected):
        """Test keys missing from the emergency section keep the emergency defaults."""
        matching = AppConfig.model_validate({"matching": {"emergency": section}}).matching

        assert (matching.emergency.max_results, matching.emergency.min_score) == expected
        assert matching.deterministic.max_results == 20
        assert matching.deterministic.min_score == 0.1

    def test_partial_deterministic_section(self):
        """Test the deterministic section keeps its own defaults."""
        matching = AppConfig.model_validate({"matching": {"deterministic": {"max_results": 7}}}).matching

        assert matching.deterministic.min_score == 0.1
        assert matching.emergency.max_results == 10

    def test_config_file_not_found(self, mock_env_vars):
        """Test error when config file doesn't exist."""
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(Path("nonexistent.yaml"))

        assert "not found" in str(exc_info.value).lower()

    def test_no_config_file_anywhere(self, tmp_path, monkeypatch, mock_env_vars):
        """Test error when no default location has a config file."""
        monkeypatch.chdir(tmp_path)

        with pytest.raises(ConfigurationError) as exc_info:
            load_config()

        assert "config.example.yaml" in str(exc_info.value)
        assert "Tried: config.yaml" in str(exc_info.value)

    def test_allow_missing_uses_defaults(self, tmp_path, monkeypatch, mock_env_vars):
        """Test built-in defaults when no config file exists."""
        monkeypatch.chdir(tmp_path)

        app_config, _ = load_config(allow_missing=True)

        assert app_config == AppConfig()

    def test_default_location_found(self, tmp_path, monkeypatch, mock_env_vars):
        """Test ./config.yaml is picked up without an explicit path."""
        (tmp_path / "config.yaml").write_text("matching:\n  min_query_length: 4\n")
        monkeypatch.chdir(tmp_path)

        app_config, _ = load_config()

        assert app_config.matching.min_query_length == 4

    def test_invalid_yaml_syntax(self, tmp_path, mock_env_vars):
        """Test error when YAML syntax is invalid."""
        invalid_yaml = tmp_path / "invalid.yaml"
        invalid_yaml.write_text("matching:\n  deterministic: 'test\n    invalid yaml")

        with pytest.raises(ConfigurationError) as exc_info:
            load_config(invalid_yaml)

        assert "parse" in str(exc_info.value).lower()

    def test_empty_file(self, tmp_path, mock_env_vars):
        """Test error when the file is empty."""
        empty = tmp_path / "empty.yaml"
        empty.write_text("")

        with pytest.raises(ConfigurationError) as exc_info:
            load_config(empty)

        assert "empty" in str(exc_info.value).lower()

    def test_non_mapping_file(self, tmp_path, mock_env_vars):
        """Test error when the top level is not a mapping."""
        listing = tmp_path / "list.yaml"
        listing.write_text("- one\n- two\n")

        with pytest.raises(ConfigurationError) as exc_info:
            load_config(listing)

        assert "mapping" in str(exc_info.value).lower()


class TestConfigurationValidation:
    """Test configuration validation rules."""

    def test_invalid_types_and_ranges(self, mock_env_vars):
        """Test every invalid field is reported."""
        config_path = FIXTURES_DIR / "invalid_types_config.yaml"

        with pytest.raises(ConfigurationError) as exc_info:
            load_config(config_path)

        errors = exc_info.value.errors
        assert len(errors) == 3
        assert any("max_results" in error and "expected int" in error for error in errors)
        assert any("min_score" in error for error in errors)
        assert any("timeout_seconds" in error for error in errors)
        assert "Validation Errors:" in str(exc_info.value)

    def test_invalid_log_format(self, tmp_path, mock_env_vars):
        """Test an unknown log format is rejected."""
        config_path = tmp_path / "config.yaml"
        config_path.write_text("logging:\n  format: xml\n")

        with pytest.raises(ConfigurationError) as exc_info:
            load_config(config_path)

        assert "logging -> format" in str(exc_info.value)

    def test_bare_taxonomy_path(self, tmp_path, mock_env_vars):
        """Test ``taxonomy: <path>`` shorthand."""
        config_path = tmp_path / "config.yaml"
        config_path.write_text("taxonomy: data/custom.yaml\n")

        app_config, _ = load_config(config_path)

        assert app_config.taxonomy.path == Path("data/custom.yaml")

    def test_json_log_format(self, tmp_path, mock_env_vars):
        """Test json log format is accepted."""
        config_path = tmp_path / "config.yaml"
        config_path.write_text("logging:\n  format: json\n")

        app_config, _ = load_config(config_path)

        assert app_config.logging.format == LogFormat.JSON.value


class TestConfigurationWarnings:
    """Test warnings for valid but suspicious settings."""

    def test_warnings_emitted(self, mock_env_vars):
        """Test suspicious settings warn but still load."""
        config_path = FIXTURES_DIR / "warning_config.yaml"

        with pytest.warns(UserWarning) as record:
            app_config, _ = load_config(config_path)

        messages = [str(w.message) for w in record]
        assert any("min_score is 0" in m for m in messages)
        assert any("max_results (500)" in m for m in messages)
        assert any("timeout_seconds (60)" in m for m in messages)
        assert app_config.matching.deterministic.max_results == 500

    def test_disabled_ai_warns(self):
        """Test disabling the AI tier is flagged."""
        warnings = check_for_warnings({"ai": {"enabled": False}})
        assert warnings == ["AI tier is disabled; every request uses the keyword fallback"]

    def test_stricter_emergency_threshold(self):
        """Test an emergency min_score above the deterministic one is flagged."""
        warnings = check_for_warnings(
            {"matching": {"deterministic": {"min_score": 0.1}, "emergency": {"min_score": 0.3}}}
        )
        assert any("stricter" in w for w in warnings)

    def test_clean_config_has_no_warnings(self):
        """Test sensible settings produce no warnings."""
        assert check_for_warnings({"matching": {"deterministic": {"min_score": 0.2}}}) == []


class TestEnvironmentVariables:
    """Test environment variable loading and validation."""

    def test_defaults(self, mock_env_vars):
        """Test no variables means no AI endpoint."""
        env_config = load_environment_config()

        assert env_config.semantic_matcher_url is None
        assert env_config.semantic_matcher_configured is False
        assert env_config.log_level is None

    def test_semantic_matcher_settings(self, mock_env_vars, monkeypatch):
        """Test a configured semantic matcher endpoint."""
        monkeypatch.setenv("SEMANTIC_MATCHER_URL", "https://matcher.example.com/match")
        monkeypatch.setenv("SEMANTIC_MATCHER_API_KEY", "secret")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        env_config = load_environment_config()

        assert env_config.semantic_matcher_configured is True
        assert env_config.semantic_matcher_api_key == "secret"
        assert env_config.log_level == "DEBUG"

    def test_invalid_url(self, mock_env_vars, monkeypatch):
        """Test error when the matcher URL is not absolute http(s)."""
        monkeypatch.setenv("SEMANTIC_MATCHER_URL", "matcher.local")

        with pytest.raises(ConfigurationError) as exc_info:
            load_environment_config()

        assert "SEMANTIC_MATCHER_URL" in str(exc_info.value)

    def test_api_key_without_url(self, mock_env_vars, monkeypatch):
        """Test error when only the API key is set."""
        monkeypatch.setenv("SEMANTIC_MATCHER_API_KEY", "secret")

        with pytest.raises(ConfigurationError) as exc_info:
            load_environment_config()

        assert "SEMANTIC_MATCHER_API_KEY" in str(exc_info.value)

    def test_invalid_log_level(self, mock_env_vars, monkeypatch):
        """Test error when LOG_LEVEL is unknown."""
        monkeypatch.setenv("LOG_LEVEL", "LOUD")

        with pytest.raises(ConfigurationError) as exc_info:
            load_environment_config()

        assert "LOG_LEVEL" in str(exc_info.value)

    def test_errors_are_collected(self, mock_env_vars, monkeypatch):
        """Test all invalid variables are reported together."""
        monkeypatch.setenv("SEMANTIC_MATCHER_URL", "ftp://matcher")
        monkeypatch.setenv("LOG_LEVEL", "LOUD")

        with pytest.raises(ConfigurationError) as exc_info:
            load_environment_config()

        assert len(exc_info.value.errors) == 2

    def test_load_config_propagates_env_errors(self, mock_env_vars, monkeypatch):
        """Test environment errors surface through load_config."""
        monkeypatch.setenv("LOG_LEVEL", "LOUD")

        with pytest.raises(ConfigurationError):
            load_config(FIXTURES_DIR / "valid_config.yaml")


class TestConfigurationHelpers:
    """Test configuration helper methods."""

    def test_validate_config_file_utility(self, capsys):
        """Test the standalone config validation utility."""
        assert validate_config_file(FIXTURES_DIR / "valid_config.yaml") is True
        assert "is valid" in capsys.readouterr().out

        assert validate_config_file(FIXTURES_DIR / "invalid_types_config.yaml") is False
        assert "validation failed" in capsys.readouterr().out

    def test_configuration_error_str(self):
        """Test errors and suggestions are rendered."""
        error = ConfigurationError("Bad config", errors=["a is wrong"], suggestions=["fix a"])

        rendered = str(error)
        assert rendered.startswith("Bad config")
        assert "1. a is wrong" in rendered
        assert "- fix a" in rendered
