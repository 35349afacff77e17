"""Shared contracts for cross-boundary data types.

Enums, value types, TypedDicts and exceptions that cross the boundary
between stepledger and its collaborators (job orchestration, repositories,
reporting) are defined here.

This package is a LEAF MODULE with no outbound dependencies to core/engine.

Import patterns:
    # Contracts (lightweight, no heavy dependencies)
    from stepledger.contracts import BatchStatus, ExitStatus, JobParameters

    # Runtime state (pulls in logging and serialization)
    from stepledger.engine import StepExecution, StepContribution
"""

from stepledger.contracts.enums import BatchStatus, max_status
from stepledger.contracts.errors import (
    ContributionAlreadyAppliedError,
    ExecutionContextSerializationError,
    FailureSummary,
    InvalidStepExecutionError,
    StepLedgerError,
)
from stepledger.contracts.exit_status import ExitStatus, code_severity
from stepledger.contracts.parameters import EMPTY_JOB_PARAMETERS, JobParameters, get_typed
from stepledger.contracts.snapshot import StepExecutionSnapshot

__all__ = [
    "EMPTY_JOB_PARAMETERS",
    "BatchStatus",
    "ContributionAlreadyAppliedError",
    "ExecutionContextSerializationError",
    "ExitStatus",
    "FailureSummary",
    "InvalidStepExecutionError",
    "JobParameters",
    "StepExecutionSnapshot",
    "StepLedgerError",
    "code_severity",
    "get_typed",
    "max_status",
]
