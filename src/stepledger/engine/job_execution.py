# src/stepledger/engine/job_execution.py
"""JobExecution - the owning side of the job/step relation.

A job execution owns its step executions. Step executions point back only
by id (plus a snapshot of the job parameters), so there is no object cycle
between the two and nothing special is needed to serialize or discard
either side.

This is the minimal model stepledger needs from job orchestration; the
orchestration layer itself lives elsewhere.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from stepledger.contracts.parameters import JobParameters

if TYPE_CHECKING:
    from stepledger.engine.clock import Clock
    from stepledger.engine.step_execution import StepExecution


class JobExecution:
    """A run of a job, holding its parameters and step executions.

    Attributes:
        id: Repository-assigned id (None until persisted)
        job_parameters: Parameters the job was launched with
    """

    def __init__(
        self,
        id: int | None = None,
        job_parameters: JobParameters | Mapping[str, Any] | None = None,
    ) -> None:
        self.id = id
        if job_parameters is None:
            job_parameters = JobParameters()
        elif not isinstance(job_parameters, JobParameters):
            job_parameters = JobParameters(job_parameters)
        self.job_parameters: JobParameters = job_parameters
        self._step_executions: list[StepExecution] = []
        self._lock = threading.Lock()

    def assign_id(self, id: int) -> None:
        """Assign the repository id and propagate it to registered step executions."""
        with self._lock:
            self.id = id
            step_executions = list(self._step_executions)
        for step_execution in step_executions:
            step_execution._bind_job_execution_id(id)

    @property
    def step_executions(self) -> tuple[StepExecution, ...]:
        """Step executions in registration order."""
        with self._lock:
            return tuple(self._step_executions)

    def add_step_execution(self, step_execution: StepExecution) -> None:
        """Register a step execution and bind it to this job's current id.

        Registering the same record twice is a no-op.
        """
        with self._lock:
            if not any(existing is step_execution for existing in self._step_executions):
                self._step_executions.append(step_execution)
            step_execution._bind_job_execution_id(self.id)

    def create_step_execution(self, step_name: str, *, clock: Clock | None = None) -> StepExecution:
        """Create a fresh step execution for this job and register it."""
        from stepledger.engine.step_execution import StepExecution

        return StepExecution(step_name, self, clock=clock)

    def get_step_execution(self, step_name: str) -> StepExecution | None:
        """Most recently registered step execution with this name, if any."""
        with self._lock:
            for step_execution in reversed(self._step_executions):
                if step_execution.step_name == step_name:
                    return step_execution
        return None

    def __repr__(self) -> str:
        return f"JobExecution(id={self.id!r}, steps={len(self._step_executions)})"
