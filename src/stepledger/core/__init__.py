# src/stepledger/core/__init__.py
"""Core infrastructure: Canonical JSON, Configuration, Execution Context, Logging."""

from stepledger.core.canonical import canonical_json, stable_hash
from stepledger.core.config import (
    ContributionSettings,
    LoggingSettings,
    StepLedgerSettings,
    load_settings,
)
from stepledger.core.execution_context import ExecutionContext
from stepledger.core.logging import (
    configure_logging,
    configure_logging_from_settings,
)

__all__ = [
    "ContributionSettings",
    "ExecutionContext",
    "LoggingSettings",
    "StepLedgerSettings",
    "canonical_json",
    "configure_logging",
    "configure_logging_from_settings",
    "load_settings",
    "stable_hash",
]
