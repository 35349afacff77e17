"""Job parameters contract.

JobParameters is the immutable parameter set a job execution was launched
with. Step executions expose their owning job's parameters through it so
callers never need a second lookup.
"""

from collections.abc import Iterator, Mapping
from datetime import datetime
from types import MappingProxyType
from typing import Any, TypeVar

_T = TypeVar("_T")


def get_typed(
    mapping: Mapping[str, Any],
    key: str,
    expected: type[_T] | tuple[type, ...],
    default: _T | None = None,
) -> _T | None:
    """Look up ``key`` and check that the stored value has the expected type.

    Missing keys return ``default``. A present value of the wrong type is a
    caller bug and raises rather than being coerced. ``bool`` is never
    accepted where ``int`` is expected.

    Raises:
        TypeError: If the stored value is not an instance of ``expected``.
    """
    if key not in mapping:
        return default
    value = mapping[key]
    if isinstance(value, bool) and expected in (int, float, (int, float)):
        raise TypeError(f"Value for key '{key}' is bool, expected {_type_name(expected)}")
    if not isinstance(value, expected):
        raise TypeError(f"Value for key '{key}' is {type(value).__name__}, expected {_type_name(expected)}")
    return value  # type: ignore[return-value]


def _type_name(expected: type | tuple[type, ...]) -> str:
    if isinstance(expected, tuple):
        return " | ".join(t.__name__ for t in expected)
    return expected.__name__


class JobParameters(Mapping[str, Any]):
    """Read-only parameters of a job execution.

    Example:
        params = JobParameters({"run.date": "2026-10-18", "chunk.size": 100})
        params.get_string("run.date")   # "2026-10-18"
        params.get_int("chunk.size")    # 100
        params.get_int("missing", 10)   # 10
    """

    __slots__ = ("_parameters",)

    def __init__(self, parameters: Mapping[str, Any] | None = None) -> None:
        items = dict(parameters) if parameters is not None else {}
        for key in items:
            if not isinstance(key, str) or not key:
                raise ValueError(f"Job parameter keys must be non-empty strings, got {key!r}")
        self._parameters: Mapping[str, Any] = MappingProxyType(items)

    def __getitem__(self, key: str) -> Any:
        return self._parameters[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._parameters)

    def __len__(self) -> int:
        return len(self._parameters)

    def get_string(self, key: str, default: str | None = None) -> str | None:
        return get_typed(self._parameters, key, str, default)

    def get_int(self, key: str, default: int | None = None) -> int | None:
        return get_typed(self._parameters, key, int, default)

    def get_float(self, key: str, default: float | None = None) -> float | None:
        value = get_typed(self._parameters, key, (int, float), default)
        return float(value) if value is not None else None

    def get_datetime(self, key: str, default: datetime | None = None) -> datetime | None:
        return get_typed(self._parameters, key, datetime, default)

    def to_dict(self) -> dict[str, Any]:
        return dict(self._parameters)

    def __repr__(self) -> str:
        return f"JobParameters({dict(self._parameters)!r})"


EMPTY_JOB_PARAMETERS = JobParameters()
