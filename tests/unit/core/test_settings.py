"""Tests for settings schema and loading."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from stepledger.core.config import (
    ContributionSettings,
    LoggingSettings,
    StepLedgerSettings,
    load_settings,
)


class TestSettingsSchema:
    """Tests for the Pydantic models."""

    def test_defaults(self) -> None:
        settings = StepLedgerSettings()
        assert settings.logging.level == "INFO"
        assert settings.logging.json_output is False
        assert settings.contribution.item_limit is None

    def test_level_is_case_insensitive(self) -> None:
        assert LoggingSettings(level="debug").level == "DEBUG"

    def test_unknown_level_rejected(self) -> None:
        with pytest.raises(ValidationError):
            LoggingSettings(level="chatty")

    @pytest.mark.parametrize("limit", [0, -1])
    def test_item_limit_must_be_positive(self, limit: int) -> None:
        with pytest.raises(ValidationError):
            ContributionSettings(item_limit=limit)

    def test_settings_are_frozen(self) -> None:
        settings = ContributionSettings(item_limit=10)
        with pytest.raises(ValidationError):
            settings.item_limit = 20  # type: ignore[misc]


class TestLoadSettings:
    """Tests for load_settings()."""

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "nope.yaml")

    def test_loads_yaml(self, tmp_path: Path) -> None:
        config = tmp_path / "settings.yaml"
        config.write_text("logging:\n  level: warning\n  json_output: true\ncontribution:\n  item_limit: 500\n")

        settings = load_settings(config)

        assert settings.logging.level == "WARNING"
        assert settings.logging.json_output is True
        assert settings.contribution.item_limit == 500

    def test_partial_file_keeps_defaults(self, tmp_path: Path) -> None:
        config = tmp_path / "settings.yaml"
        config.write_text("contribution:\n  item_limit: 50\n")

        settings = load_settings(config)

        assert settings.logging.level == "INFO"
        assert settings.contribution.item_limit == 50

    def test_env_var_references_expanded(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STEP_LOG_LEVEL", "ERROR")
        config = tmp_path / "settings.yaml"
        config.write_text('logging:\n  level: "${STEP_LOG_LEVEL}"\n')

        assert load_settings(config).logging.level == "ERROR"

    def test_env_var_default_used_when_unset(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("STEP_LOG_LEVEL", raising=False)
        config = tmp_path / "settings.yaml"
        config.write_text('logging:\n  level: "${STEP_LOG_LEVEL:-debug}"\n')

        assert load_settings(config).logging.level == "DEBUG"

    def test_invalid_values_fail_validation(self, tmp_path: Path) -> None:
        config = tmp_path / "settings.yaml"
        config.write_text("contribution:\n  item_limit: 0\n")

        with pytest.raises(ValidationError):
            load_settings(config)
