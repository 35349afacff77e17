# tests/conftest.py
"""Shared test fixtures and helpers.

Fixtures:
- clock: MockClock pinned to a fixed UTC instant
- job_execution: persisted JobExecution (id=1) with a small parameter set
- step_execution: fresh StepExecution for "loadOrders" owned by job_execution
- make_contribution: factory that fills a contribution with given deltas

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

import os
import pytest
import structlog
from hypothesis import Phase, Verbosity, settings

from stepledger.contracts import ExitStatus
from stepledger.engine import JobExecution, MockClock, StepContribution, StepExecution
from tests.fixtures.factories import FIXED_START, ContributionFactory, fill_contribution


@pytest.fixture
def clock() -> MockClock:
    return MockClock(start=FIXED_START)


@pytest.fixture
def job_execution() -> JobExecution:
    return JobExecution(id=1, job_parameters={"input.file": "orders.csv", "chunk.size": 100})


@pytest.fixture
def step_execution(job_execution: JobExecution, clock: MockClock) -> StepExecution:
    return job_execution.create_step_execution("loadOrders", clock=clock)


@pytest.fixture
def make_contribution(step_execution: StepExecution) -> ContributionFactory:
    def _make(**deltas: int | ExitStatus | None) -> StepContribution:
        return fill_contribution(step_execution.create_contribution(), **deltas)  # type: ignore[arg-type]

    return _make


@pytest.fixture(autouse=True)
def _reset_structlog() -> None:
    """Undo any configure_logging() done by a previous test."""
    structlog.reset_defaults()


# =============================================================================
# Hypothesis Configuration
# =============================================================================

# CI profile: Fast tests for continuous integration
settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

# Nightly profile: Thorough testing for scheduled runs
settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Debug profile: Minimal examples with verbose output for debugging
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

# Load profile from environment, default to "ci"
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))
