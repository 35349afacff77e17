"""ExecutionContext - key/value state owned by one step execution.

Steps store restart state here (reader positions, partial totals, etc.).
The repository persists it as canonical JSON and restores it on restart.
Only JSON-native values are accepted (None, bool, int, finite float, str,
lists and str-keyed dicts of those), so a restored context holds the values
that were stored. The one lossy case is an integral float, which reads back
as an equal int.

Thread Safety:
    Individual reads and writes are atomic (guarded by an internal lock).
    Compound read-modify-write sequences are NOT atomic; callers that need
    them must coordinate externally.
"""

from __future__ import annotations

import json
import math
import threading
from collections.abc import Iterator, Mapping, MutableMapping
from typing import Any

from stepledger.contracts.errors import ExecutionContextSerializationError
from stepledger.contracts.parameters import get_typed
from stepledger.core.canonical import canonical_json, stable_hash

# RFC 8785 numbers are IEEE doubles; larger ints would not read back exactly
_MAX_SAFE_INT = 2**53 - 1

_MISSING = object()


class ExecutionContext(MutableMapping[str, Any]):
    """Mutable string-keyed mapping with a dirty flag.

    The dirty flag is raised by any write that changes the content and
    cleared by the repository after it has persisted the context.

    Example:
        ctx = ExecutionContext({"reader.offset": 0})
        ctx["reader.offset"] = 250
        ctx.is_dirty                 # True
        ctx.get_int("reader.offset") # 250
        ctx.to_json()                # '{"reader.offset":250}'
    """

    def __init__(self, values: Mapping[str, Any] | None = None) -> None:
        self._lock = threading.Lock()
        self._data: dict[str, Any] = {}
        self._dirty = False
        if values is not None:
            for key, value in values.items():
                self._data[_check_key(key)] = _check_value(value, key)

    # -- mapping protocol ---------------------------------------------------

    def __getitem__(self, key: str) -> Any:
        with self._lock:
            return self._data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        _check_key(key)
        _check_value(value, key)
        with self._lock:
            previous = self._data.get(key, _MISSING)
            if type(previous) is not type(value) or previous != value:
                self._dirty = True
            self._data[key] = value

    def __delitem__(self, key: str) -> None:
        with self._lock:
            del self._data[key]
            self._dirty = True

    def __iter__(self) -> Iterator[str]:
        # Iterate over a copy so concurrent writers can't break iteration
        with self._lock:
            keys = list(self._data)
        return iter(keys)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ExecutionContext):
            return self.to_dict() == other.to_dict()
        if isinstance(other, Mapping):
            return self.to_dict() == dict(other)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    # -- typed access ---------------------------------------------------------

    def get_string(self, key: str, default: str | None = None) -> str | None:
        return get_typed(self.to_dict(), key, str, default)

    def get_int(self, key: str, default: int | None = None) -> int | None:
        return get_typed(self.to_dict(), key, int, default)

    def get_float(self, key: str, default: float | None = None) -> float | None:
        value = get_typed(self.to_dict(), key, (int, float), default)
        return float(value) if value is not None else None

    # -- dirty tracking -------------------------------------------------------

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    def clear_dirty_flag(self) -> None:
        self._dirty = False

    # -- serialization --------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Shallow copy of the current content."""
        with self._lock:
            return dict(self._data)

    def _checked_dict(self) -> dict[str, Any]:
        data = self.to_dict()
        # Nested lists and dicts may have been mutated in place since they were stored
        for key, value in data.items():
            _check_value(value, key)
        return data

    def to_json(self) -> str:
        """Canonical JSON of the content (sorted keys, no whitespace).

        Raises:
            ExecutionContextSerializationError: If a value cannot be serialized.
        """
        data = self._checked_dict()
        try:
            return canonical_json(data)
        except (TypeError, ValueError) as e:
            raise ExecutionContextSerializationError(f"Execution context is not serializable: {e}") from e

    @classmethod
    def from_json(cls, text: str) -> ExecutionContext:
        """Restore a context persisted with to_json(). The result is clean."""
        data = json.loads(text, parse_int=_parse_int)
        if not isinstance(data, dict):
            raise ExecutionContextSerializationError(
                f"Execution context JSON must be an object, got {type(data).__name__}"
            )
        return cls(data)

    def content_hash(self) -> str:
        """Stable hash of the content, for change detection by a repository."""
        data = self._checked_dict()
        try:
            return stable_hash(data)
        except (TypeError, ValueError) as e:
            raise ExecutionContextSerializationError(f"Execution context is not serializable: {e}") from e

    def copy(self) -> ExecutionContext:
        return ExecutionContext(self.to_dict())

    def __repr__(self) -> str:
        return f"ExecutionContext(dirty={self._dirty}, {self.to_dict()!r})"


def _parse_int(text: str) -> int | float:
    # Integers past the safe range are never stored, so such a literal is an
    # integral float that RFC 8785 wrote without an exponent (e.g. 1e20)
    value = int(text)
    if abs(value) > _MAX_SAFE_INT:
        return float(value)
    return value


def _check_key(key: object) -> str:
    if not isinstance(key, str) or not key:
        raise ValueError(f"Execution context keys must be non-empty strings, got {key!r}")
    return key


def _check_value(value: Any, path: str) -> Any:
    """Reject values that would not read back unchanged from canonical JSON.

    Raises:
        ExecutionContextSerializationError: Naming the offending path.
    """
    if value is None or isinstance(value, str | bool):
        return value
    if isinstance(value, int):
        if abs(value) > _MAX_SAFE_INT:
            raise ExecutionContextSerializationError(
                f"Execution context value at {path!r} is outside the JSON-safe integer range: {value}"
            )
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ExecutionContextSerializationError(f"Execution context value at {path!r} is not finite: {value}")
        return value
    if isinstance(value, list):
        for index, item in enumerate(value):
            _check_value(item, f"{path}[{index}]")
        return value
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise ExecutionContextSerializationError(
                    f"Execution context keys must be strings, got {key!r} at {path!r}"
                )
            _check_value(item, f"{path}.{key}")
        return value
    raise ExecutionContextSerializationError(
        f"Execution context value at {path!r} must be JSON-native "
        f"(None, bool, int, float, str, list, dict), got {type(value).__name__}"
    )
