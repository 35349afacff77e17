"""ExitStatus value type.

An exit status is the application-level outcome of a step: a short code used
for routing decisions downstream, plus a free-text description. It is
distinct from BatchStatus, which tracks the execution lifecycle.

Exit statuses are immutable. Combining two of them with ``&`` keeps the more
severe code and concatenates the descriptions, so folding any number of
contributions into a step yields the same exit code regardless of order.
"""

import traceback
from dataclasses import dataclass
from typing import ClassVar

from stepledger.contracts.enums import BatchStatus

# Severity of the well-known exit codes. Placeholders (UNKNOWN, EXECUTING)
# lose against any explicit code; FAILED beats everything.
_CODE_SEVERITY: dict[str, int] = {
    "UNKNOWN": 0,
    "EXECUTING": 1,
    "COMPLETED": 2,
    "NOOP": 3,
    "STOPPED": 4,
    "FAILED": 6,
}

# Any code not listed above (application-defined)
_CUSTOM_CODE_SEVERITY = 5

_DESCRIPTION_SEPARATOR = "; "


def code_severity(exit_code: str) -> int:
    """Severity rank of an exit code; unknown codes rank as custom codes."""
    return _CODE_SEVERITY.get(exit_code, _CUSTOM_CODE_SEVERITY)


def _join_descriptions(first: str, second: str) -> str:
    if not second or second == first:
        return first
    if not first:
        return second
    return f"{first}{_DESCRIPTION_SEPARATOR}{second}"


@dataclass(frozen=True, slots=True)
class ExitStatus:
    """Application outcome code plus human-readable description.

    Attributes:
        exit_code: Outcome code (e.g. "COMPLETED", "FAILED", or a custom code)
        exit_description: Free text, "; "-separated when merged
    """

    exit_code: str
    exit_description: str = ""

    UNKNOWN: ClassVar["ExitStatus"]
    EXECUTING: ClassVar["ExitStatus"]
    COMPLETED: ClassVar["ExitStatus"]
    NOOP: ClassVar["ExitStatus"]
    STOPPED: ClassVar["ExitStatus"]
    FAILED: ClassVar["ExitStatus"]

    def __post_init__(self) -> None:
        if not isinstance(self.exit_code, str) or not self.exit_code:
            raise ValueError(f"exit_code must be a non-empty string, got {self.exit_code!r}")
        if not isinstance(self.exit_description, str):
            raise TypeError(f"exit_description must be str, got {type(self.exit_description).__name__}")

    @property
    def severity(self) -> int:
        return code_severity(self.exit_code)

    @property
    def is_running(self) -> bool:
        """True while the code is still a placeholder (EXECUTING or UNKNOWN)."""
        return self.exit_code in ("EXECUTING", "UNKNOWN")

    def and_(self, other: "ExitStatus") -> "ExitStatus":
        """Merge with another exit status.

        The resulting code is the more severe of the two. Two different codes
        of equal severity (two custom codes) are resolved by lexical order so
        that the code never depends on which side was applied first.
        Descriptions are concatenated in call order, skipping blanks and
        exact repeats.
        """
        if (other.severity, other.exit_code) > (self.severity, self.exit_code):
            exit_code = other.exit_code
        else:
            exit_code = self.exit_code
        return ExitStatus(exit_code, _join_descriptions(self.exit_description, other.exit_description))

    def __and__(self, other: object) -> "ExitStatus":
        if not isinstance(other, ExitStatus):
            return NotImplemented
        return self.and_(other)

    def replace_exit_code(self, exit_code: str) -> "ExitStatus":
        """Same description, new code."""
        return ExitStatus(exit_code, self.exit_description)

    def add_exit_description(self, description: str | BaseException) -> "ExitStatus":
        """Append a description, or the formatted traceback of an exception."""
        if isinstance(description, BaseException):
            description = "".join(traceback.format_exception(description)).rstrip()
        return ExitStatus(self.exit_code, _join_descriptions(self.exit_description, description))

    @classmethod
    def from_status(cls, status: BatchStatus) -> "ExitStatus":
        """Default exit status for a lifecycle status."""
        return _FROM_STATUS.get(status, cls.EXECUTING)

    def __str__(self) -> str:
        return f"exitCode={self.exit_code};exitDescription={self.exit_description}"


ExitStatus.UNKNOWN = ExitStatus("UNKNOWN")
ExitStatus.EXECUTING = ExitStatus("EXECUTING")
ExitStatus.COMPLETED = ExitStatus("COMPLETED")
ExitStatus.NOOP = ExitStatus("NOOP")
ExitStatus.STOPPED = ExitStatus("STOPPED")
ExitStatus.FAILED = ExitStatus("FAILED")

_FROM_STATUS: dict[BatchStatus, ExitStatus] = {
    BatchStatus.COMPLETED: ExitStatus.COMPLETED,
    BatchStatus.STOPPED: ExitStatus.STOPPED,
    BatchStatus.FAILED: ExitStatus.FAILED,
    BatchStatus.ABANDONED: ExitStatus.FAILED,
}
