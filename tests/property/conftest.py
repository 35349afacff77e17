# tests/property/conftest.py
"""Shared Hypothesis strategies for property-based tests.

Strategy Categories:
- Status values (BatchStatus, ExitStatus)
- JSON-safe values (RFC 8785 compatible) for execution contexts
- Contribution deltas

Usage:
    from tests.property.conftest import batch_statuses, exit_statuses

    @given(a=batch_statuses, b=batch_statuses)
    def test_join_commutes(a, b) -> None:
        ...
"""

# =============================================================================
# Hypothesis Settings
# =============================================================================
#
# For standardized @settings decorators, import from tests.property.settings:
#   from tests.property.settings import STANDARD_SETTINGS, DETERMINISM_SETTINGS
#
# Tiers: DETERMINISM (500), STATE_MACHINE (200), STANDARD (100), QUICK (20)
# =============================================================================

from __future__ import annotations

from hypothesis import strategies as st

from stepledger.contracts import BatchStatus, ExitStatus

# =============================================================================
# RFC 8785 / JSON Canonicalization Scheme Constraints
# =============================================================================

# RFC 8785 (JCS) uses JavaScript-safe integers: -(2^53-1) to (2^53-1)
MAX_SAFE_INT = 2**53 - 1
MIN_SAFE_INT = -(2**53 - 1)


# =============================================================================
# Status Strategies
# =============================================================================

batch_statuses = st.sampled_from(list(BatchStatus))

# Well-known codes plus a handful of custom ones so equal-severity ties occur
exit_codes = st.sampled_from(
    ["UNKNOWN", "EXECUTING", "COMPLETED", "NOOP", "STOPPED", "FAILED", "PARTIAL", "RETRY", "SKIPPED_ALL"]
)

exit_descriptions = st.one_of(
    st.just(""),
    st.text(alphabet="abcdefghij ", min_size=1, max_size=12),
)

exit_statuses = st.builds(ExitStatus, exit_codes, exit_descriptions)


# =============================================================================
# JSON Strategies
# =============================================================================

# JSON-safe primitives (NaN/Infinity are rejected by canonical JSON)
json_primitives = (
    st.none()
    | st.booleans()
    | st.integers(min_value=MIN_SAFE_INT, max_value=MAX_SAFE_INT)
    | st.floats(allow_nan=False, allow_infinity=False)
    | st.text(max_size=50)
)

json_values = st.recursive(
    json_primitives,
    lambda children: (st.lists(children, max_size=5) | st.dictionaries(st.text(max_size=10), children, max_size=5)),
    max_leaves=20,
)

context_keys = st.text(min_size=1, max_size=20)

context_data = st.dictionaries(context_keys, json_values, max_size=8)


# =============================================================================
# Contribution Strategies
# =============================================================================

small_counts = st.integers(min_value=0, max_value=1_000)

contribution_deltas = st.fixed_dictionaries(
    {
        "read": small_counts,
        "write": small_counts,
        "filtered": small_counts,
        "read_skip": small_counts,
        "write_skip": small_counts,
        "process_skip": small_counts,
    }
)
