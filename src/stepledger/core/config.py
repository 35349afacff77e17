# src/stepledger/core/config.py
"""
Configuration schema and loading for stepledger.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.
"""

import os
import re
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LoggingSettings(BaseModel):
    """Logging configuration.

    Example YAML:
        logging:
          level: DEBUG
          json_output: true
    """

    model_config = {"frozen": True}

    level: LogLevel = Field(default="INFO", description="Root log level")
    json_output: bool = Field(default=False, description="Emit JSON lines instead of console output")

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        """Accept lowercase level names."""
        if isinstance(v, str):
            return v.upper()
        return v


class ContributionSettings(BaseModel):
    """Defaults applied to contributions created by a step execution.

    item_limit caps how many items one contribution is expected to read.
    The step controller decides what to do when the cap is reached; the
    contribution only reports it.
    """

    model_config = {"frozen": True}

    item_limit: int | None = Field(
        default=None,
        gt=0,
        description="Maximum items read per contribution (None = unlimited)",
    )


class StepLedgerSettings(BaseModel):
    """Top-level stepledger configuration.

    All sections are optional; an empty file yields the defaults.
    """

    model_config = {"frozen": True}

    logging: LoggingSettings = Field(
        default_factory=LoggingSettings,
        description="Logging configuration",
    )
    contribution: ContributionSettings = Field(
        default_factory=ContributionSettings,
        description="Contribution defaults",
    )


# Regex pattern for ${VAR} or ${VAR:-default} syntax
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")


def _expand_env_vars(config: dict[str, Any]) -> dict[str, Any]:
    """Recursively expand ${VAR} and ${VAR:-default} patterns in string values.

    Unresolvable references are left as-is so validation reports them.
    """

    def replacer(match: re.Match[str]) -> str:
        env_value = os.environ.get(match.group(1))
        if env_value is not None:
            return env_value
        default = match.group(2)
        if default is not None:
            return default
        return match.group(0)

    def _expand_value(value: Any) -> Any:
        if isinstance(value, str):
            return _ENV_VAR_PATTERN.sub(replacer, value)
        if isinstance(value, dict):
            return {k: _expand_value(v) for k, v in value.items()}
        if isinstance(value, list):
            return [_expand_value(item) for item in value]
        return value

    return {k: _expand_value(v) for k, v in config.items()}


def load_settings(config_path: Path) -> StepLedgerSettings:
    """Load settings from a YAML file with environment variable overrides.

    Precedence:
    1. Environment variables (STEPLEDGER_*) - highest priority
    2. Config file
    3. Defaults from the Pydantic schema - lowest priority

    Environment variable format: STEPLEDGER_LOGGING__LEVEL for nested keys.

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="STEPLEDGER",
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    # Dynaconf returns uppercase keys; Pydantic fields are lowercase
    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k.lower(): v for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}
    raw_config = {k: _lower_keys(v) for k, v in raw_config.items()}

    return StepLedgerSettings(**_expand_env_vars(raw_config))


def _lower_keys(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k).lower(): _lower_keys(v) for k, v in value.items()}
    return value
