"""Status codes shared across subsystem boundaries.

BatchStatus is the lifecycle status of a step or job execution. Members are
declared in ascending severity: the declaration order IS the upgrade order,
so reordering members changes the join semantics.
"""

from enum import StrEnum


class BatchStatus(StrEnum):
    """Lifecycle status of a step execution.

    Stored by the repository (step_executions.status).

    Severity order (ascending):
        STARTING < STARTED < COMPLETING < STOPPING
        < COMPLETED < STOPPED < FAILED < ABANDONED

    Every running status sits below every terminal status, so a terminal
    status can only be replaced by a more severe terminal one (e.g. a
    COMPLETED step that later reports a failure becomes FAILED).
    """

    STARTING = "starting"
    STARTED = "started"
    COMPLETING = "completing"
    STOPPING = "stopping"
    COMPLETED = "completed"
    STOPPED = "stopped"
    FAILED = "failed"
    ABANDONED = "abandoned"

    @property
    def severity(self) -> int:
        """Rank of this status in the upgrade order (0 = least severe)."""
        return _SEVERITY[self]

    @property
    def is_running(self) -> bool:
        """True while the execution has not reached a terminal status."""
        return self in _RUNNING

    @property
    def is_terminal(self) -> bool:
        return not self.is_running

    @property
    def is_unsuccessful(self) -> bool:
        """True for the failure family (FAILED, ABANDONED)."""
        return self in _UNSUCCESSFUL

    def is_greater_than(self, other: "BatchStatus") -> bool:
        return self.severity > other.severity

    def is_less_than(self, other: "BatchStatus") -> bool:
        return self.severity < other.severity

    def upgrade_to(self, candidate: "BatchStatus") -> "BatchStatus":
        """Join of this status and ``candidate`` (the more severe of the two).

        Supplying a less severe candidate is not an error; the current
        status is simply returned.
        """
        if candidate.severity > self.severity:
            return candidate
        return self


_SEVERITY: dict[BatchStatus, int] = {status: rank for rank, status in enumerate(BatchStatus)}

_RUNNING = frozenset({BatchStatus.STARTING, BatchStatus.STARTED, BatchStatus.COMPLETING, BatchStatus.STOPPING})

_UNSUCCESSFUL = frozenset({BatchStatus.FAILED, BatchStatus.ABANDONED})


def max_status(*statuses: BatchStatus) -> BatchStatus:
    """Join of any number of statuses.

    Raises:
        ValueError: If no status is given.
    """
    if not statuses:
        raise ValueError("max_status() requires at least one status")
    result = statuses[0]
    for status in statuses[1:]:
        result = result.upgrade_to(status)
    return result
