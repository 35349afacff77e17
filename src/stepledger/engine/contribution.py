# src/stepledger/engine/contribution.py
"""StepContribution - one chunk's worth of uncommitted progress.

A worker creates a contribution at the start of a chunk, updates it freely
while processing items, then hands it to StepExecution.apply() exactly
once. Contributions are single-writer and never shared between threads, so
nothing here is locked.
"""

from __future__ import annotations

import weakref
from typing import TYPE_CHECKING

from stepledger.contracts.exit_status import ExitStatus

if TYPE_CHECKING:
    from stepledger.engine.step_execution import StepExecution


def _check_increment(count: int, what: str) -> None:
    if count < 0:
        raise ValueError(f"{what} increment must be non-negative, got {count}")


class StepContribution:
    """Accumulator for the counters of one chunk.

    Created through StepExecution.create_contribution(), which captures the
    step's current exit status and skip count and binds the contribution to
    that record. A contribution built directly has no owner and cannot be
    applied.

    Attributes:
        step_name: Name of the step this contribution belongs to
        parent_skip_count: Step skip count when this contribution was created
        item_limit: Optional cap on items read by this chunk
        exit_status: Exit status to merge into the step on apply
    """

    __slots__ = (
        "_applied",
        "_owner_ref",
        "_filter_count",
        "_process_skip_count",
        "_read_count",
        "_read_skip_count",
        "_write_count",
        "_write_skip_count",
        "exit_status",
        "item_limit",
        "parent_skip_count",
        "step_name",
    )

    def __init__(
        self,
        step_name: str,
        *,
        exit_status: ExitStatus = ExitStatus.EXECUTING,
        parent_skip_count: int = 0,
        item_limit: int | None = None,
    ) -> None:
        if item_limit is not None and item_limit <= 0:
            raise ValueError(f"item_limit must be positive, got {item_limit}")
        self.step_name = step_name
        self.exit_status = exit_status
        self.parent_skip_count = parent_skip_count
        self.item_limit = item_limit
        self._read_count = 0
        self._write_count = 0
        self._filter_count = 0
        self._read_skip_count = 0
        self._write_skip_count = 0
        self._process_skip_count = 0
        self._applied = False
        self._owner_ref: weakref.ref[StepExecution] | None = None

    @classmethod
    def for_execution(cls, execution: StepExecution, *, item_limit: int | None = None) -> StepContribution:
        """Contribution bound to ``execution``; only that record will apply it."""
        contribution = cls(
            execution.step_name,
            exit_status=execution.exit_status,
            parent_skip_count=execution.skip_count,
            item_limit=item_limit,
        )
        contribution._owner_ref = weakref.ref(execution)
        return contribution

    @property
    def owner(self) -> StepExecution | None:
        """Step execution that created this contribution, if it is still alive."""
        if self._owner_ref is None:
            return None
        return self._owner_ref()

    # -- counters -------------------------------------------------------------

    @property
    def read_count(self) -> int:
        return self._read_count

    @property
    def write_count(self) -> int:
        return self._write_count

    @property
    def filter_count(self) -> int:
        return self._filter_count

    @property
    def read_skip_count(self) -> int:
        return self._read_skip_count

    @property
    def write_skip_count(self) -> int:
        return self._write_skip_count

    @property
    def process_skip_count(self) -> int:
        return self._process_skip_count

    @property
    def step_skip_count(self) -> int:
        """Skips recorded by this contribution alone."""
        return self._read_skip_count + self._write_skip_count + self._process_skip_count

    @property
    def skip_count(self) -> int:
        """Skips for the whole step so far, including this chunk.

        Skip-limit checks in the step controller compare against this value.
        """
        return self.parent_skip_count + self.step_skip_count

    def increment_read_count(self, count: int = 1) -> None:
        _check_increment(count, "read count")
        self._read_count += count

    def increment_write_count(self, count: int = 1) -> None:
        _check_increment(count, "write count")
        self._write_count += count

    def increment_filter_count(self, count: int = 1) -> None:
        _check_increment(count, "filter count")
        self._filter_count += count

    def increment_read_skip_count(self, count: int = 1) -> None:
        _check_increment(count, "read skip count")
        self._read_skip_count += count

    def increment_write_skip_count(self, count: int = 1) -> None:
        _check_increment(count, "write skip count")
        self._write_skip_count += count

    def increment_process_skip_count(self, count: int = 1) -> None:
        _check_increment(count, "process skip count")
        self._process_skip_count += count

    def set_exit_status(self, exit_status: ExitStatus) -> None:
        self.exit_status = exit_status

    @property
    def item_limit_reached(self) -> bool:
        """True once read count has reached item_limit (never without a limit)."""
        return self.item_limit is not None and self._read_count >= self.item_limit

    # -- apply bookkeeping ----------------------------------------------------

    @property
    def is_applied(self) -> bool:
        return self._applied

    def _mark_applied(self) -> bool:
        """Flag as applied. Returns False if it already was."""
        if self._applied:
            return False
        self._applied = True
        return True

    def __repr__(self) -> str:
        return (
            f"[StepContribution: read={self._read_count}, written={self._write_count}, "
            f"filtered={self._filter_count}, readSkips={self._read_skip_count}, "
            f"writeSkips={self._write_skip_count}, processSkips={self._process_skip_count}, "
            f"exitStatus={self.exit_status.exit_code}]"
        )
