# tests/property/__init__.py
"""Property-based tests for stepledger.

Property-based testing validates invariants that must hold for ALL inputs,
not just the specific examples we think of.

Test categories:
- contracts/: Status ordering, exit status merging
- core/: Execution context serialization
- engine/: StepExecution state machine
"""
