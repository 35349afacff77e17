"""Persistence snapshot contract for step executions.

A repository reads a step execution through StepExecution.snapshot(), which
copies every persisted field while holding the record's update lock. The
result is a plain dict safe to hand to any storage layer.
"""

from datetime import datetime
from typing import TypedDict

from stepledger.contracts.enums import BatchStatus
from stepledger.contracts.errors import FailureSummary


class StepExecutionSnapshot(TypedDict):
    """Field-for-field copy of a step execution at one instant.

    Counter fields and exit status are mutually consistent (taken under the
    record lock). ``execution_context`` is the canonical JSON text of the
    context so the snapshot never shares mutable state with the record.
    """

    id: int | None
    version: int | None
    step_name: str
    job_execution_id: int | None
    status: BatchStatus
    exit_code: str
    exit_description: str
    read_count: int
    write_count: int
    commit_count: int
    rollback_count: int
    filter_count: int
    read_skip_count: int
    write_skip_count: int
    process_skip_count: int
    skip_count: int
    start_time: datetime | None
    end_time: datetime | None
    last_updated: datetime | None
    terminate_only: bool
    execution_context: str
    failures: list[FailureSummary]
