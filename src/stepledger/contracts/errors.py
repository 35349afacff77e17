"""Error contracts.

TypedDict payloads for recording captured failures, plus the exception
hierarchy raised by stepledger itself.
"""

from typing import NotRequired, TypedDict


class FailureSummary(TypedDict):
    """Serializable description of a captured failure cause.

    Used when a repository persists or reports a step's failure exceptions;
    the exception objects themselves never leave the process.
    """

    exception: str  # String representation of the exception
    type: str  # Exception class name (e.g., "ValueError")
    traceback: NotRequired[str]  # Optional full traceback


class StepLedgerError(Exception):
    """Base class for errors raised by stepledger."""


class InvalidStepExecutionError(StepLedgerError, ValueError):
    """A step execution was constructed or rehydrated with invalid fields.

    This is a programming error in the caller (empty step name, missing
    job execution or id on rehydration, negative counters), never a runtime
    condition. No partially-valid record is ever returned.
    """


class ContributionAlreadyAppliedError(StepLedgerError):
    """A contribution was applied to a step execution more than once.

    Each contribution carries exactly one chunk of progress; applying it
    twice would double count every delta it holds.
    """

    def __init__(self, step_name: str) -> None:
        self.step_name = step_name
        super().__init__(f"Contribution for step '{step_name}' has already been applied")


class ExecutionContextSerializationError(StepLedgerError, ValueError):
    """An execution context holds a value that cannot be canonically serialized."""
