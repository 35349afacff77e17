# src/stepledger/engine/step_execution.py
"""StepExecution - authoritative runtime state of one step run.

Many workers report progress against the same step execution. Each worker
accumulates a chunk of progress in its own StepContribution and folds it in
with apply(); counters are never lost or double counted, whatever the
interleaving.

Thread Safety:
    - apply(), increment_commit_count(), increment_rollback_count(), the
      counter/exit-status setters and snapshot() share one update lock.
      Nothing under that lock does I/O.
    - upgrade_status()/set_status() serialise on a separate status lock, so
      status changes never wait behind counter updates.
    - The terminate flag is a single boolean store (write-once-true).
    - Failure exceptions are appended under their own lock; readers get
      tuple snapshots.
    - No cross-field consistency is promised outside apply() and
      snapshot(). Reading read_count then write_count during an active run
      may observe two different applies.

Status Upgrades:
    upgrade_status() is a join on the BatchStatus severity order; asking for
    a less severe status is a silent no-op. A FAILED step stays FAILED even
    if a late worker reports COMPLETED.

Termination:
    set_terminate_only() only records the request. The step controller
    polls is_terminate_only between chunks and winds the step down itself.
"""

from __future__ import annotations

import threading
import traceback
from collections.abc import Mapping
from datetime import datetime
from typing import TYPE_CHECKING, Any

import structlog

from stepledger.contracts.enums import BatchStatus
from stepledger.contracts.errors import (
    ContributionAlreadyAppliedError,
    FailureSummary,
    InvalidStepExecutionError,
)
from stepledger.contracts.exit_status import ExitStatus
from stepledger.contracts.parameters import EMPTY_JOB_PARAMETERS, JobParameters
from stepledger.contracts.snapshot import StepExecutionSnapshot
from stepledger.core.config import ContributionSettings
from stepledger.core.execution_context import ExecutionContext
from stepledger.engine.clock import DEFAULT_CLOCK, Clock
from stepledger.engine.contribution import StepContribution

if TYPE_CHECKING:
    from stepledger.engine.job_execution import JobExecution

logger = structlog.get_logger(__name__)


def _check_count(value: object, field_name: str) -> int:
    """Counters restored from storage must be non-negative ints."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidStepExecutionError(f"{field_name} must be int, got {type(value).__name__}: {value!r}")
    if value < 0:
        raise InvalidStepExecutionError(f"{field_name} must be non-negative, got {value}")
    return value


class StepExecution:
    """Runtime state of a single execution of a step.

    Example:
        job = JobExecution(id=7, job_parameters={"run.date": "2026-10-18"})
        execution = job.create_step_execution("loadOrders")

        contribution = execution.create_contribution()
        contribution.increment_read_count(100)
        contribution.increment_write_count(98)
        contribution.increment_write_skip_count(2)
        execution.apply(contribution)

        execution.skip_count                 # 2
        execution.upgrade_status(BatchStatus.FAILED)
        execution.upgrade_status(BatchStatus.COMPLETED)
        execution.status                     # BatchStatus.FAILED
    """

    def __init__(
        self,
        step_name: str,
        job_execution: JobExecution | None = None,
        *,
        clock: Clock | None = None,
        contribution_settings: ContributionSettings | None = None,
    ) -> None:
        """Create a fresh step execution (STARTING, zero counters, started now).

        Args:
            step_name: Name of the step (required, non-empty)
            job_execution: Owning job execution. Only its id and parameters
                are kept, and the record registers itself with the job so a
                later JobExecution.assign_id() reaches it. None is allowed
                for detached records.
            clock: Time source for timestamps (default: system clock)
            contribution_settings: Defaults for create_contribution()

        Raises:
            InvalidStepExecutionError: If step_name is empty.
        """
        if not isinstance(step_name, str) or not step_name:
            raise InvalidStepExecutionError(f"A step_name is required, got {step_name!r}")

        self._step_name = step_name
        self._clock = clock if clock is not None else DEFAULT_CLOCK
        self._contribution_settings = contribution_settings or ContributionSettings()

        self._job_execution_id: int | None = None
        self._job_parameters: JobParameters = EMPTY_JOB_PARAMETERS

        self._id: int | None = None
        self.version: int | None = None

        self._update_lock = threading.Lock()
        self._status_lock = threading.Lock()
        self._failure_lock = threading.Lock()

        self._status = BatchStatus.STARTING
        self._exit_status = ExitStatus.EXECUTING

        self._read_count = 0
        self._write_count = 0
        self._commit_count = 0
        self._rollback_count = 0
        self._filter_count = 0
        self._read_skip_count = 0
        self._write_skip_count = 0
        self._process_skip_count = 0

        self._start_time: datetime | None = self._clock.now()
        self._end_time: datetime | None = None
        self._last_updated: datetime | None = None

        self._execution_context = ExecutionContext()
        self._terminate_only = False
        self._failure_exceptions: list[BaseException] = []

        if job_execution is not None:
            self._attach(job_execution)
            job_execution.add_step_execution(self)

    @classmethod
    def rehydrate(
        cls,
        step_name: str,
        job_execution: JobExecution | None,
        id: int | None,
        *,
        version: int | None = None,
        status: BatchStatus = BatchStatus.STARTING,
        exit_status: ExitStatus = ExitStatus.EXECUTING,
        read_count: int = 0,
        write_count: int = 0,
        commit_count: int = 0,
        rollback_count: int = 0,
        filter_count: int = 0,
        read_skip_count: int = 0,
        write_skip_count: int = 0,
        process_skip_count: int = 0,
        start_time: datetime | None = None,
        end_time: datetime | None = None,
        last_updated: datetime | None = None,
        execution_context: ExecutionContext | Mapping[str, Any] | None = None,
        terminate_only: bool = False,
        clock: Clock | None = None,
        contribution_settings: ContributionSettings | None = None,
    ) -> StepExecution:
        """Rebuild a persisted step execution and register it with its job.

        ``start_time`` of None keeps the construction time. The record is
        only registered with the job execution once every field has been
        validated, so a failed rehydration leaves nothing behind.

        Raises:
            InvalidStepExecutionError: If step_name is empty, job_execution or
                id is missing, or a field value is invalid.
        """
        if job_execution is None:
            raise InvalidStepExecutionError("A job execution must be provided to rehydrate an existing step execution")
        if id is None:
            raise InvalidStepExecutionError("The id must be provided to rehydrate an existing step execution")
        if not isinstance(status, BatchStatus):
            raise InvalidStepExecutionError(f"status must be BatchStatus, got {type(status).__name__}: {status!r}")
        if not isinstance(exit_status, ExitStatus):
            raise InvalidStepExecutionError(f"exit_status must be ExitStatus, got {type(exit_status).__name__}")

        # Built detached; registered with the job only after every field validates
        execution = cls(step_name, clock=clock, contribution_settings=contribution_settings)
        execution._attach(job_execution)
        execution.assign_id(id)
        execution.version = version
        execution.set_status(status)
        execution.exit_status = exit_status
        execution.read_count = read_count
        execution.write_count = write_count
        execution.commit_count = commit_count
        execution.rollback_count = rollback_count
        execution.filter_count = filter_count
        execution.read_skip_count = read_skip_count
        execution.write_skip_count = write_skip_count
        execution.process_skip_count = process_skip_count
        if start_time is not None:
            execution.start_time = start_time
        execution.end_time = end_time
        execution.last_updated = last_updated
        if execution_context is not None:
            execution.execution_context = execution_context
            execution.execution_context.clear_dirty_flag()
        if terminate_only:
            execution._terminate_only = True

        job_execution.add_step_execution(execution)
        return execution

    # -- identity ---------------------------------------------------------------

    @property
    def id(self) -> int | None:
        return self._id

    def assign_id(self, id: int) -> None:
        """Assign the repository id. An id, once assigned, never changes.

        Re-assigning the same value is a no-op.

        Raises:
            InvalidStepExecutionError: If id is not an int, or a different id
                was already assigned.
        """
        if isinstance(id, bool) or not isinstance(id, int):
            raise InvalidStepExecutionError(f"id must be int, got {type(id).__name__}: {id!r}")
        if self._id is not None and self._id != id:
            raise InvalidStepExecutionError(
                f"Step execution '{self._step_name}' already has id {self._id}, cannot reassign to {id}"
            )
        self._id = id

    def increment_version(self) -> None:
        """Bump the optimistic-lock version (repository use)."""
        self.version = 0 if self.version is None else self.version + 1

    @property
    def step_name(self) -> str:
        return self._step_name

    @property
    def job_execution_id(self) -> int | None:
        return self._job_execution_id

    def _attach(self, job_execution: JobExecution) -> None:
        self._job_execution_id = job_execution.id
        self._job_parameters = job_execution.job_parameters

    def _bind_job_execution_id(self, job_execution_id: int | None) -> None:
        # Called by JobExecution.assign_id() when the owner is persisted after
        # its steps were created.
        self._job_execution_id = job_execution_id

    @property
    def job_parameters(self) -> JobParameters:
        """Parameters of the owning job (empty for detached records)."""
        return self._job_parameters

    # -- status -------------------------------------------------------------------

    @property
    def status(self) -> BatchStatus:
        return self._status

    def upgrade_status(self, candidate: BatchStatus) -> BatchStatus:
        """Move status to the join of the current status and ``candidate``.

        Never downgrades; a less severe candidate leaves status unchanged.

        Returns:
            The status after the upgrade.
        """
        with self._status_lock:
            previous = self._status
            self._status = previous.upgrade_to(candidate)
            current = self._status
        if current is not previous:
            self._log().debug("step_status_upgraded", from_status=previous.value, to_status=current.value)
        return current

    def set_status(self, status: BatchStatus) -> None:
        """Overwrite status unconditionally.

        For rehydration from storage only; running code uses upgrade_status().
        """
        if not isinstance(status, BatchStatus):
            raise InvalidStepExecutionError(f"status must be BatchStatus, got {type(status).__name__}: {status!r}")
        with self._status_lock:
            self._status = status

    @property
    def exit_status(self) -> ExitStatus:
        return self._exit_status

    @exit_status.setter
    def exit_status(self, exit_status: ExitStatus) -> None:
        if not isinstance(exit_status, ExitStatus):
            raise TypeError(f"exit_status must be ExitStatus, got {type(exit_status).__name__}")
        with self._update_lock:
            self._exit_status = exit_status

    # -- aggregation ----------------------------------------------------------------

    def create_contribution(self, *, item_limit: int | None = None) -> StepContribution:
        """New contribution seeded with this step's exit status and skip count.

        Args:
            item_limit: Cap on items read by the chunk. Defaults to the
                configured ContributionSettings.item_limit.
        """
        if item_limit is None:
            item_limit = self._contribution_settings.item_limit
        return StepContribution.for_execution(self, item_limit=item_limit)

    def apply(self, contribution: StepContribution) -> None:
        """Fold one contribution into this step's counters and exit status.

        Safe to call concurrently from many workers, each with its own
        contribution. Status and timestamps are untouched.

        Raises:
            ContributionAlreadyAppliedError: If this contribution was applied before.
            ValueError: If the contribution was not created by this step execution.
        """
        if contribution.owner is not self:
            raise ValueError(
                f"Contribution for step '{contribution.step_name}' was not created by this '{self._step_name}' step execution"
            )
        with self._update_lock:
            if not contribution._mark_applied():
                raise ContributionAlreadyAppliedError(self._step_name)
            self._read_skip_count += contribution.read_skip_count
            self._write_skip_count += contribution.write_skip_count
            self._process_skip_count += contribution.process_skip_count
            self._filter_count += contribution.filter_count
            self._read_count += contribution.read_count
            self._write_count += contribution.write_count
            self._exit_status = self._exit_status & contribution.exit_status

    def increment_commit_count(self) -> None:
        with self._update_lock:
            self._commit_count += 1

    def increment_rollback_count(self) -> None:
        with self._update_lock:
            self._rollback_count += 1

    # -- counters ---------------------------------------------------------------
    # Setters exist for rehydration only; they may reset a counter but never
    # accept a negative value.

    @property
    def read_count(self) -> int:
        return self._read_count

    @read_count.setter
    def read_count(self, value: int) -> None:
        value = _check_count(value, "read_count")
        with self._update_lock:
            self._read_count = value

    @property
    def write_count(self) -> int:
        return self._write_count

    @write_count.setter
    def write_count(self, value: int) -> None:
        value = _check_count(value, "write_count")
        with self._update_lock:
            self._write_count = value

    @property
    def commit_count(self) -> int:
        return self._commit_count

    @commit_count.setter
    def commit_count(self, value: int) -> None:
        value = _check_count(value, "commit_count")
        with self._update_lock:
            self._commit_count = value

    @property
    def rollback_count(self) -> int:
        return self._rollback_count

    @rollback_count.setter
    def rollback_count(self, value: int) -> None:
        value = _check_count(value, "rollback_count")
        with self._update_lock:
            self._rollback_count = value

    @property
    def filter_count(self) -> int:
        return self._filter_count

    @filter_count.setter
    def filter_count(self, value: int) -> None:
        value = _check_count(value, "filter_count")
        with self._update_lock:
            self._filter_count = value

    @property
    def read_skip_count(self) -> int:
        return self._read_skip_count

    @read_skip_count.setter
    def read_skip_count(self, value: int) -> None:
        value = _check_count(value, "read_skip_count")
        with self._update_lock:
            self._read_skip_count = value

    @property
    def write_skip_count(self) -> int:
        return self._write_skip_count

    @write_skip_count.setter
    def write_skip_count(self, value: int) -> None:
        value = _check_count(value, "write_skip_count")
        with self._update_lock:
            self._write_skip_count = value

    @property
    def process_skip_count(self) -> int:
        return self._process_skip_count

    @process_skip_count.setter
    def process_skip_count(self, value: int) -> None:
        value = _check_count(value, "process_skip_count")
        with self._update_lock:
            self._process_skip_count = value

    @property
    def skip_count(self) -> int:
        """read_skip_count + process_skip_count + write_skip_count, computed on read."""
        with self._update_lock:
            return self._read_skip_count + self._process_skip_count + self._write_skip_count

    # -- timestamps -------------------------------------------------------------

    @property
    def start_time(self) -> datetime | None:
        return self._start_time

    @start_time.setter
    def start_time(self, value: datetime | None) -> None:
        self._start_time = value

    @property
    def end_time(self) -> datetime | None:
        return self._end_time

    @end_time.setter
    def end_time(self, value: datetime | None) -> None:
        self._end_time = value

    @property
    def last_updated(self) -> datetime | None:
        return self._last_updated

    @last_updated.setter
    def last_updated(self, value: datetime | None) -> None:
        self._last_updated = value

    def mark_updated(self) -> datetime:
        """Stamp last_updated with the current time and return it."""
        now = self._clock.now()
        self._last_updated = now
        return now

    def close(self, status: BatchStatus = BatchStatus.COMPLETED) -> BatchStatus:
        """Finish the step: upgrade status, merge the matching exit code, stamp end_time.

        The resulting status is the join with the current one, so closing a
        FAILED step as COMPLETED leaves it FAILED (with a FAILED exit code).

        Returns:
            The final status.
        """
        final_status = self.upgrade_status(status)
        with self._update_lock:
            self._exit_status = self._exit_status & ExitStatus.from_status(final_status)
        now = self._clock.now()
        self._end_time = now
        self._last_updated = now
        self._log().debug("step_closed", status=final_status.value, exit_code=self._exit_status.exit_code)
        return final_status

    @property
    def is_closed(self) -> bool:
        """True once end_time is set and status is terminal."""
        return self._end_time is not None and self._status.is_terminal

    # -- execution context --------------------------------------------------------

    @property
    def execution_context(self) -> ExecutionContext:
        return self._execution_context

    @execution_context.setter
    def execution_context(self, value: ExecutionContext | Mapping[str, Any]) -> None:
        """Replace the context wholesale. Plain mappings are copied into a new context."""
        if not isinstance(value, ExecutionContext):
            value = ExecutionContext(value)
        self._execution_context = value

    # -- termination ------------------------------------------------------------

    @property
    def is_terminate_only(self) -> bool:
        return self._terminate_only

    def set_terminate_only(self) -> None:
        """Request cooperative termination. Idempotent; cannot be undone."""
        if not self._terminate_only:
            self._terminate_only = True
            self._log().debug("step_terminate_requested")

    # -- failures ---------------------------------------------------------------

    @property
    def failure_exceptions(self) -> tuple[BaseException, ...]:
        """Captured failure causes in the order they were added."""
        with self._failure_lock:
            return tuple(self._failure_exceptions)

    def add_failure_exception(self, cause: BaseException) -> None:
        """Record a failure cause. Entries are never removed or reordered."""
        if not isinstance(cause, BaseException):
            raise TypeError(f"cause must be an exception, got {type(cause).__name__}")
        with self._failure_lock:
            self._failure_exceptions.append(cause)
        self._log().debug("step_failure_recorded", exc_type=type(cause).__name__)

    def failure_summaries(self) -> list[FailureSummary]:
        """Serializable payloads for the captured failures, in order."""
        summaries: list[FailureSummary] = []
        for cause in self.failure_exceptions:
            summary: FailureSummary = {"exception": str(cause), "type": type(cause).__name__}
            if cause.__traceback__ is not None:
                summary["traceback"] = "".join(traceback.format_exception(cause))
            summaries.append(summary)
        return summaries

    # -- persistence --------------------------------------------------------------

    def snapshot(self) -> StepExecutionSnapshot:
        """Copy every persisted field.

        Counters and exit status are read together under the update lock so
        they belong to the same set of applied contributions.
        """
        context_json = self._execution_context.to_json()
        failures = self.failure_summaries()
        with self._update_lock:
            return {
                "id": self._id,
                "version": self.version,
                "step_name": self._step_name,
                "job_execution_id": self._job_execution_id,
                "status": self._status,
                "exit_code": self._exit_status.exit_code,
                "exit_description": self._exit_status.exit_description,
                "read_count": self._read_count,
                "write_count": self._write_count,
                "commit_count": self._commit_count,
                "rollback_count": self._rollback_count,
                "filter_count": self._filter_count,
                "read_skip_count": self._read_skip_count,
                "write_skip_count": self._write_skip_count,
                "process_skip_count": self._process_skip_count,
                "skip_count": self._read_skip_count + self._process_skip_count + self._write_skip_count,
                "start_time": self._start_time,
                "end_time": self._end_time,
                "last_updated": self._last_updated,
                "terminate_only": self._terminate_only,
                "execution_context": context_json,
                "failures": failures,
            }

    # -- reporting ----------------------------------------------------------------

    def get_summary(self) -> str:
        """One-line diagnostic summary: name, status, exit code and all counters."""
        return (
            f"StepExecution: id={self._id}, version={self.version}, name={self._step_name}, "
            f"status={self._status.value}, exitStatus={self._exit_status.exit_code}, "
            f"readCount={self._read_count}, filterCount={self._filter_count}, "
            f"writeCount={self._write_count}, readSkipCount={self._read_skip_count}, "
            f"writeSkipCount={self._write_skip_count}, processSkipCount={self._process_skip_count}, "
            f"commitCount={self._commit_count}, rollbackCount={self._rollback_count}"
        )

    def __repr__(self) -> str:
        return f"{self.get_summary()}, exitDescription={self._exit_status.exit_description}"

    # -- equality -----------------------------------------------------------------

    def _identity_key(self) -> tuple[str, int, int] | None:
        if self._id is None or self._job_execution_id is None:
            return None
        return (self._step_name, self._job_execution_id, self._id)

    def __eq__(self, other: object) -> bool:
        """Persisted records compare by (step name, job execution id, id).

        Records without an id (or without a job execution id) are only equal
        to themselves.
        """
        if not isinstance(other, StepExecution):
            return NotImplemented
        key = self._identity_key()
        if key is None:
            return self is other
        return key == other._identity_key()

    def __hash__(self) -> int:
        key = self._identity_key()
        if key is None:
            return object.__hash__(self)
        return hash(key)

    def _log(self) -> Any:
        return logger.bind(
            step_name=self._step_name,
            step_execution_id=self._id,
            job_execution_id=self._job_execution_id,
        )
