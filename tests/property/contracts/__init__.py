# tests/property/contracts/__init__.py
"""Property tests for contract invariants.

BatchStatus upgrades and ExitStatus merges must behave as joins: the
result never depends on the order in which workers report.
"""
