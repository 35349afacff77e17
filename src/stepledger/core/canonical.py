"""
Canonical JSON serialization for execution contexts.

Two-phase approach:
1. Normalize: Walk the data and reject non-finite floats
2. Serialize: Produce deterministic JSON per RFC 8785/JCS (rfc8785 package)

Values are never converted on the way out. Callers hand in JSON-native
data only (see ExecutionContext), so the JSON reads back to what was stored.
"""

from __future__ import annotations

import hashlib
import math
from typing import Any

import rfc8785


def _normalize_for_canonical(data: Any) -> Any:
    """Recursively copy dicts and lists, rejecting NaN and Infinity.

    Raises:
        ValueError: If a float is non-finite
    """
    if isinstance(data, dict):
        return {k: _normalize_for_canonical(v) for k, v in data.items()}
    if isinstance(data, list):
        return [_normalize_for_canonical(v) for v in data]
    if isinstance(data, float) and not math.isfinite(data):
        raise ValueError(f"Cannot canonicalize non-finite float: {data}. Use None for missing values, not NaN.")
    return data


def canonical_json(obj: Any) -> str:
    """Produce canonical JSON (no whitespace, sorted keys).

    Raises:
        ValueError: If data contains NaN, Infinity, or out-of-range integers
        TypeError: If data contains types that cannot be serialized
    """
    normalized = _normalize_for_canonical(obj)
    result: bytes = rfc8785.dumps(normalized)
    return result.decode("utf-8")


def stable_hash(obj: Any) -> str:
    """SHA-256 hex digest of the canonical JSON of ``obj``."""
    canonical = canonical_json(obj)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
