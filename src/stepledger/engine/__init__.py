# src/stepledger/engine/__init__.py
"""Runtime state: step executions, contributions and their owning job execution.

Example:
    from stepledger.engine import JobExecution

    job = JobExecution(id=1, job_parameters={"input.file": "orders.csv"})
    execution = job.create_step_execution("loadOrders")

    contribution = execution.create_contribution()
    contribution.increment_read_count()
    execution.apply(contribution)
    execution.increment_commit_count()
"""

from stepledger.engine.clock import DEFAULT_CLOCK, Clock, MockClock, SystemClock
from stepledger.engine.contribution import StepContribution
from stepledger.engine.job_execution import JobExecution
from stepledger.engine.step_execution import StepExecution

__all__ = [
    "DEFAULT_CLOCK",
    "Clock",
    "JobExecution",
    "MockClock",
    "StepContribution",
    "StepExecution",
    "SystemClock",
]
