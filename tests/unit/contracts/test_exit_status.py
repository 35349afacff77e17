"""Tests for ExitStatus merge semantics."""

import itertools
from dataclasses import FrozenInstanceError

import pytest

from stepledger.contracts import BatchStatus, ExitStatus, code_severity


class TestExitStatusConstruction:
    """Tests for construction and constants."""

    def test_constants(self) -> None:
        assert ExitStatus.UNKNOWN.exit_code == "UNKNOWN"
        assert ExitStatus.EXECUTING.exit_code == "EXECUTING"
        assert ExitStatus.COMPLETED.exit_code == "COMPLETED"
        assert ExitStatus.NOOP.exit_code == "NOOP"
        assert ExitStatus.STOPPED.exit_code == "STOPPED"
        assert ExitStatus.FAILED.exit_code == "FAILED"
        assert ExitStatus.COMPLETED.exit_description == ""

    def test_empty_code_rejected(self) -> None:
        with pytest.raises(ValueError, match="non-empty"):
            ExitStatus("")

    def test_non_string_description_rejected(self) -> None:
        with pytest.raises(TypeError):
            ExitStatus("COMPLETED", None)  # type: ignore[arg-type]

    def test_is_frozen(self) -> None:
        status = ExitStatus("COMPLETED")
        with pytest.raises(FrozenInstanceError):
            status.exit_code = "FAILED"  # type: ignore[misc]

    def test_value_equality(self) -> None:
        assert ExitStatus("COMPLETED") == ExitStatus.COMPLETED
        assert ExitStatus("COMPLETED", "done") != ExitStatus.COMPLETED

    def test_is_running(self) -> None:
        assert ExitStatus.EXECUTING.is_running
        assert ExitStatus.UNKNOWN.is_running
        assert not ExitStatus.COMPLETED.is_running
        assert not ExitStatus("CUSTOM").is_running

    def test_str(self) -> None:
        assert str(ExitStatus("FAILED", "boom")) == "exitCode=FAILED;exitDescription=boom"


class TestExitCodePrecedence:
    """Tests for which code wins a merge."""

    def test_severity_ranks(self) -> None:
        codes = ["UNKNOWN", "EXECUTING", "COMPLETED", "NOOP", "STOPPED", "PARTIAL", "FAILED"]
        severities = [code_severity(code) for code in codes]
        assert severities == sorted(severities)
        assert len(set(severities)) == len(severities)

    @pytest.mark.parametrize("code", ["COMPLETED", "NOOP", "STOPPED", "PARTIAL"])
    def test_failed_dominates(self, code: str) -> None:
        assert (ExitStatus(code) & ExitStatus.FAILED).exit_code == "FAILED"
        assert (ExitStatus.FAILED & ExitStatus(code)).exit_code == "FAILED"

    @pytest.mark.parametrize("placeholder", [ExitStatus.EXECUTING, ExitStatus.UNKNOWN])
    @pytest.mark.parametrize("code", ["COMPLETED", "NOOP", "STOPPED", "PARTIAL", "FAILED"])
    def test_explicit_code_dominates_placeholder(self, placeholder: ExitStatus, code: str) -> None:
        assert (placeholder & ExitStatus(code)).exit_code == code
        assert (ExitStatus(code) & placeholder).exit_code == code

    def test_executing_beats_unknown(self) -> None:
        assert (ExitStatus.UNKNOWN & ExitStatus.EXECUTING).exit_code == "EXECUTING"

    def test_custom_code_tie_is_order_independent(self) -> None:
        a = ExitStatus("ALPHA")
        b = ExitStatus("BETA")
        assert (a & b).exit_code == (b & a).exit_code == "BETA"

    def test_code_merge_independent_of_order(self) -> None:
        statuses = [
            ExitStatus.EXECUTING,
            ExitStatus.COMPLETED,
            ExitStatus("PARTIAL"),
            ExitStatus("RETRY"),
            ExitStatus.NOOP,
        ]
        codes = set()
        for permutation in itertools.permutations(statuses):
            merged = permutation[0]
            for status in permutation[1:]:
                merged = merged & status
            codes.add(merged.exit_code)
        assert codes == {"RETRY"}

    def test_and_operator_matches_method(self) -> None:
        a = ExitStatus("COMPLETED", "x")
        b = ExitStatus("FAILED", "y")
        assert a & b == a.and_(b)

    def test_and_with_non_exit_status_is_type_error(self) -> None:
        with pytest.raises(TypeError):
            ExitStatus.COMPLETED & "FAILED"  # type: ignore[operator]


class TestExitDescriptions:
    """Tests for description concatenation."""

    def test_descriptions_concatenate_in_call_order(self) -> None:
        merged = ExitStatus("COMPLETED", "first") & ExitStatus("COMPLETED", "second")
        assert merged.exit_description == "first; second"

    def test_blank_descriptions_skipped(self) -> None:
        assert (ExitStatus("COMPLETED", "only") & ExitStatus.COMPLETED).exit_description == "only"
        assert (ExitStatus.COMPLETED & ExitStatus("COMPLETED", "only")).exit_description == "only"

    def test_identical_description_not_repeated(self) -> None:
        merged = ExitStatus("FAILED", "boom") & ExitStatus("FAILED", "boom")
        assert merged.exit_description == "boom"

    def test_add_exit_description_text(self) -> None:
        status = ExitStatus("FAILED", "first").add_exit_description("second")
        assert status == ExitStatus("FAILED", "first; second")

    def test_add_exit_description_exception(self) -> None:
        try:
            raise RuntimeError("disk full")
        except RuntimeError as e:
            status = ExitStatus.FAILED.add_exit_description(e)
        assert "RuntimeError: disk full" in status.exit_description
        assert "Traceback" in status.exit_description
        assert status.exit_code == "FAILED"

    def test_replace_exit_code_keeps_description(self) -> None:
        status = ExitStatus("COMPLETED", "3 files").replace_exit_code("NOOP")
        assert status == ExitStatus("NOOP", "3 files")


class TestFromStatus:
    """Tests for ExitStatus.from_status()."""

    @pytest.mark.parametrize(
        ("status", "expected"),
        [
            (BatchStatus.COMPLETED, ExitStatus.COMPLETED),
            (BatchStatus.STOPPED, ExitStatus.STOPPED),
            (BatchStatus.FAILED, ExitStatus.FAILED),
            (BatchStatus.ABANDONED, ExitStatus.FAILED),
            (BatchStatus.STARTING, ExitStatus.EXECUTING),
            (BatchStatus.STARTED, ExitStatus.EXECUTING),
            (BatchStatus.STOPPING, ExitStatus.EXECUTING),
            (BatchStatus.COMPLETING, ExitStatus.EXECUTING),
        ],
    )
    def test_mapping(self, status: BatchStatus, expected: ExitStatus) -> None:
        assert ExitStatus.from_status(status) == expected
